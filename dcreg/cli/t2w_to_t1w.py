"""``t2w-to-t1w`` – HCP-compatible distortion correction and registration.

The command keeps the historical ``--flag=value`` interface so that existing
HCP batch scripts can call it unchanged::

    dcreg-cli t2w-to-t1w --workingdir=... --t1=... --t1brain=... ...
    dcreg-t2w-to-t1w --workingdir=... --t1=... ...

Exit status: ``0`` on success or when called without arguments (usage is
printed), ``1`` for fewer than 17 arguments, invalid options, missing inputs
or configuration problems, and the failing tool's status when an external
call fails.
"""

from __future__ import annotations

import click
import structlog

from dcreg.config import load_config
from dcreg.pipelines import t2w_to_t1w as pipeline
from dcreg.pipelines.options import parse_args, usage, usage_exit_code
from dcreg.utils.errors import DcregError, ExternalToolError
from dcreg.utils.logging import setup_logging

log = structlog.get_logger()


@click.command(
    "t2w-to-t1w",
    add_help_option=False,
    context_settings=dict(ignore_unknown_options=True, allow_extra_args=True),
)
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
@click.pass_context
def cli(ctx: click.Context, args: tuple[str, ...]) -> None:
    """Correct T1w/T2w readout distortion and register T2w to T1w."""
    prog = ctx.command_path

    code = usage_exit_code(args)
    if code is not None:
        click.echo(usage(prog))
        ctx.exit(code)

    # Standalone console script: no group callback prepared the context.
    if ctx.obj is None:
        setup_logging()
        try:
            cfg = load_config()
        except DcregError as exc:
            click.echo(f"ERROR: {exc}", err=True)
            ctx.exit(1)
    else:
        cfg = ctx.obj["cfg"]

    try:
        opts = parse_args(args)
        pipeline.run(opts, cfg, prog=prog)
    except ExternalToolError as exc:
        log.error("t2w-to-t1w.failed", stage=exc.stage, returncode=exc.returncode)
        click.echo(f"ERROR: {exc}", err=True)
        if exc.cmd:
            click.echo(f"  command: {' '.join(exc.cmd)}", err=True)
        ctx.exit(exc.returncode if exc.returncode > 0 else 1)
    except DcregError as exc:
        click.echo(f"ERROR: {exc}", err=True)
        ctx.exit(1)


__all__ = ["cli"]
