"""
Logging setup shared by every *dcreg* command.

Records flow through *structlog* into the standard library root logger,
which fans them out to:

* the console, formatted by rich;
* ``dcreg.log``, a size-rotated file of JSON records placed by
  :func:`log_dir`;
* an optional plain-text copy of the console stream (``--save-logfile``).

Call :func:`setup_logging` once, before the first record is emitted.
"""

from __future__ import annotations

import atexit
import logging
import logging.handlers
import os
from pathlib import Path
from typing import Optional

import structlog
from rich.logging import RichHandler
from structlog.dev import ConsoleRenderer
from structlog.stdlib import LoggerFactory

__all__ = ["setup_logging", "log_dir"]

_LOG_NAME = "dcreg.log"
_ROTATE_BYTES = 5_000_000
_ROTATE_KEEP = 3
_PLAIN_FORMAT = "[%(levelname)s] %(message)s"


def log_dir(log_root: Path | None) -> Path:
    """Return the directory that receives ``dcreg.log``.

    ``$DCREG_LOG_DIR`` wins; otherwise ``<log_root>/logs`` when a root is
    known, else a ``logs/`` folder next to the installed package.
    """
    override = os.environ.get("DCREG_LOG_DIR")
    if override:
        return Path(override).expanduser()
    if log_root is not None:
        return log_root / "logs"
    return Path(__file__).resolve().parents[1] / "logs"


def _levels(verbose: bool, debug: bool) -> tuple[int, int]:
    """Return ``(console_level, file_level)`` for the CLI flags."""
    if debug:
        return logging.DEBUG, logging.DEBUG
    if verbose:
        return logging.INFO, logging.INFO
    return logging.WARNING, logging.INFO


def _console_handler(level: int) -> logging.Handler:
    """Return the rich console handler."""
    handler = RichHandler(rich_tracebacks=True, tracebacks_show_locals=False, markup=True)
    handler.setLevel(level)
    return handler


def _rotating_json_handler(log_root: Path | None, level: int) -> logging.Handler:
    """Return the size-rotated handler writing ``dcreg.log``."""
    target = log_dir(log_root)
    target.mkdir(parents=True, exist_ok=True)
    handler = logging.handlers.RotatingFileHandler(
        target / _LOG_NAME,
        maxBytes=_ROTATE_BYTES,
        backupCount=_ROTATE_KEEP,
        encoding="utf-8",
    )
    handler.setLevel(level)
    return handler


def _text_mirror_handler(path: Path, level: int) -> logging.Handler:
    """Return an appending plain-text handler for *path*."""
    path = path.expanduser().resolve()
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, mode="a", encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_PLAIN_FORMAT))
    atexit.register(handler.close)
    return handler


def setup_logging(
    *,
    log_root: Path | None = None,
    verbose: bool = False,
    debug: bool = False,
    extra_text_log: Optional[Path] = None,
) -> None:
    """Configure console, rotating JSON and optional plain-text logging.

    Args:
        log_root: Project root; selects ``<log_root>/logs`` for the JSON log.
        verbose: Show INFO records on the console.
        debug: Show DEBUG records everywhere.
        extra_text_log: File that mirrors the console output.
    """
    console_lvl, file_lvl = _levels(verbose, debug)

    handlers = [
        _console_handler(console_lvl),
        _rotating_json_handler(log_root, file_lvl),
    ]
    if extra_text_log is not None:
        handlers.append(_text_mirror_handler(extra_text_log, console_lvl))

    # Root stays at DEBUG; each handler filters on its own level.
    logging.basicConfig(level=logging.DEBUG, handlers=handlers, format="%(message)s", force=True)

    processors: list = [structlog.processors.TimeStamper(fmt="iso"), structlog.processors.add_log_level]
    human = verbose or debug
    processors.append(ConsoleRenderer() if human else structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(file_lvl),
        logger_factory=LoggerFactory(),
    )
