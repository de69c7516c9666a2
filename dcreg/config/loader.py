"""
YAML configuration loader.

This helper locates, reads, and validates *dcreg.yaml* before returning a
:class:`dcreg.config.schema.DcregConfig` instance.

Search precedence (first match wins)
1. An explicit path argument (``--config`` on the CLI).
2. ``<root>/code/config/dcreg.yaml`` – project-local override.
3. The packaged default shipped inside the wheel.

Keys left unset after that fall back to the environment (``$FSLDIR`` and
``$HCPPIPEDIR_Global``); explicit *overrides* win over everything.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

import structlog
import yaml
from importlib.resources import as_file, files

from .schema import DcregConfig
from ..utils.errors import ConfigurationError

log = structlog.get_logger()

_CONFIG_NAME = "dcreg.yaml"

# --------------------------------------------------------------------------- #
# Wheel-internal fallback (works even from a zipped wheel)                    #
# --------------------------------------------------------------------------- #
try:
    _DEFAULT_CONFIG = files("dcreg.resources") / "default_dcreg.yaml"
except ModuleNotFoundError:
    _DEFAULT_CONFIG = Path(__file__).resolve().parent.parent / "resources" / "default_dcreg.yaml"

# Environment variables consulted for keys the YAML leaves unset.
_ENV_FALLBACKS = {
    "fsldir": "FSLDIR",
    "global_scripts": "HCPPIPEDIR_Global",
}


def _project_local(root: Optional[str | Path]) -> Optional[Path]:
    """Return ``<root>/code/config/dcreg.yaml`` or *None* if *root* is ``None``."""
    if root is None:
        return None
    return Path(root).expanduser().resolve() / "code" / "config" / _CONFIG_NAME


def _first_existing(*candidates: Optional[Path]) -> Optional[Path]:
    """Return the first path in *candidates* that exists on disk."""
    for p in candidates:
        if p is not None and p.exists():
            return p
    return None


def _load_yaml(path: Path) -> dict:
    """Read a YAML mapping from *path* (empty file → empty dict).

    Raises:
        ConfigurationError: When the file is not valid YAML or not a mapping.
    """
    try:
        data = yaml.safe_load(path.read_text()) or {}
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"{path}: invalid YAML – {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path}: expected a mapping at the top level")
    return data


def resolve_config_path(
    explicit: Optional[str | Path] = None,
    root: Optional[str | Path] = None,
) -> Path:
    """Resolve the YAML path according to the documented precedence.

    Raises:
        ConfigurationError: When *explicit* is given but does not exist.
    """
    if explicit is not None:
        path = Path(explicit).expanduser().resolve()
        if not path.exists():
            raise ConfigurationError(f"configuration file not found: {path}")
        return path
    resolved = _first_existing(_project_local(root))
    if resolved is None:
        with as_file(_DEFAULT_CONFIG) as p:
            resolved = p
    return resolved


# --------------------------------------------------------------------------- #
# Public API                                                                  #
# --------------------------------------------------------------------------- #
def load_config(
    *,
    config_path: Optional[str | Path] = None,
    root: Optional[str | Path] = None,
    overrides: Optional[dict] = None,
) -> DcregConfig:
    """Return a fully validated :class:`DcregConfig`.

    Args:
        config_path: Explicit path to *dcreg.yaml*. ``None`` triggers the
            search sequence described in the module doc-string.
        root: Project root searched for ``code/config/dcreg.yaml``.
        overrides: Values that win over YAML and environment; ``None``
            entries are ignored.

    Returns:
        A :class:`DcregConfig` object ready for downstream use.

    Raises:
        ConfigurationError: When the YAML cannot be read or fails validation.
    """
    path = resolve_config_path(config_path, root)
    data = _load_yaml(path)

    for key, env_name in _ENV_FALLBACKS.items():
        if not data.get(key) and os.environ.get(env_name):
            data[key] = os.environ[env_name]

    data.update({k: v for k, v in (overrides or {}).items() if v is not None})

    try:
        cfg = DcregConfig(**data)
    except Exception as exc:  # pydantic.ValidationError or unexpected types
        raise ConfigurationError(f"Invalid configuration – {exc}") from exc

    log.debug("config", path=str(path), runner=cfg.runner)
    return cfg


__all__ = ["load_config", "resolve_config_path"]
