"""Expose the project-wide Click group for the ``dcreg-cli`` script.

The module:

* declares a single Click *group* called :pyfunc:`main`;
* wires common global flags (project root, YAML override, runner selection,
  verbosity, plain-text log mirror);
* sets up logging via :pyfunc:`dcreg.utils.logging.setup_logging`;
* loads the validated *dcreg.yaml* configuration;
* registers every sub-command lazily from sibling modules.
"""

from __future__ import annotations

import importlib
from pathlib import Path
from typing import Any, Dict

import click

from dcreg import __version__
from dcreg.config import load_config
from dcreg.utils.errors import ConfigurationError
from dcreg.utils.logging import setup_logging


class LazyGroup(click.Group):
    """Click group that imports sub-commands lazily."""

    def __init__(self, *args, **kwargs):
        self._lazy: dict[str, str] = {}
        super().__init__(*args, **kwargs)

    def set_lazy_command(self, name: str, target: str) -> None:
        """Register *name* to be imported from ``target`` on first use."""
        self._lazy[name] = target

    def list_commands(self, ctx):  # noqa: D401 - Click signature
        """Return eager and lazy command names for the help listing."""
        return sorted({*super().list_commands(ctx), *self._lazy})

    def get_command(self, ctx, cmd_name):  # noqa: D401 - Click signature
        """Resolve *cmd_name* from the eager map or import table."""
        cmd = super().get_command(ctx, cmd_name)
        if cmd is not None:
            return cmd
        target = self._lazy.get(cmd_name)
        if not target:
            return None
        module_name, attr = target.split(":", 1)
        module = importlib.import_module(module_name)
        cmd = getattr(module, attr)
        self.add_command(cmd, name=cmd_name)
        return cmd


# ─────────────────────────────────────────────────────────────────────────────
# Context settings shared by the entire Click hierarchy
# ─────────────────────────────────────────────────────────────────────────────
_CTX: Dict[str, Any] = dict(
    help_option_names=["-h", "--help"],
    show_default=True,
    max_content_width=120,
)


@click.group(
    cls=LazyGroup,
    context_settings=_CTX,
    help="""\b
dcreg-cli – HCP structural distortion correction and T2w→T1w registration.

""",
)
@click.version_option(__version__)
@click.option(
    "-r",
    "--root",
    type=click.Path(file_okay=False, path_type=Path),
    help="Project root searched for code/config/dcreg.yaml and receiving logs/.",
)
@click.option("-c", "--config", "config_path", type=click.Path(dir_okay=False, path_type=Path))
@click.option(
    "--runner",
    type=click.Choice(["native", "docker"]),
    help="Run FSL from the host or inside a container (overrides dcreg.yaml).",
)
@click.option("--image", help="FSL container image for --runner docker.")
@click.option("-v", "--verbose", is_flag=True, help="INFO-level console output.")
@click.option("--debug", is_flag=True, help="DEBUG console + JSON logfile.")
@click.option(
    "--save-logfile",
    type=click.Path(dir_okay=False, writable=True, path_type=Path),
    help="Mirror console output into this plain-text file.",
)
@click.pass_context
def main(  # noqa: D401 – Click requires the callback to be named “main”.
    ctx: click.Context,
    root: Path | None,
    config_path: Path | None,
    runner: str | None,
    image: str | None,
    verbose: bool,
    debug: bool,
    save_logfile: Path | None,
) -> None:
    """Root command executed by *dcreg-cli*.

    Args:
        ctx: Click runtime context that carries objects across sub-commands.
        root: Optional project root supplied via ``--root``.
        config_path: Explicit path to a *dcreg.yaml* override.
        runner: ``native`` or ``docker``; overrides the YAML value.
        image: Container image; overrides the YAML value.
        verbose: Emit INFO-level messages on stdout.
        debug: Emit DEBUG-level messages.
        save_logfile: Optional path for a plain-text log that mirrors console
            output.

    Raises:
        click.ClickException: When the configuration cannot be loaded.
    """
    root = root.resolve() if root is not None else None

    # Logging must be configured before any output is produced ----------------
    setup_logging(
        log_root=root if root is not None and root.exists() else None,
        verbose=verbose,
        debug=debug,
        extra_text_log=save_logfile,
    )

    try:
        cfg = load_config(
            config_path=config_path,
            root=root,
            overrides={"runner": runner, "image": image},
        )
    except ConfigurationError as exc:
        raise click.ClickException(str(exc)) from exc

    ctx.obj = {
        "root": root,
        "cfg": cfg,
        "verbose": verbose,
        "debug": debug,
    }


main.set_lazy_command("t2w-to-t1w", "dcreg.cli.t2w_to_t1w:cli")

# The public symbol exported by this module.  Required for ``python -m`` entry-points.
cli = main
__all__: list[str] = ["main"]
