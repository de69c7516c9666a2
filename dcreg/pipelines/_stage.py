"""Stage bookkeeping shared by the pipeline steps.

Every external call runs inside :func:`stage` so that a failure carries the
name of the step that produced it. :func:`expect_image` checks that a tool
actually wrote the image it was asked for.
"""

from __future__ import annotations

import subprocess
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

import structlog

from ..utils.errors import ExternalToolError
from ..utils.paths import find_image

log = structlog.get_logger()

# Exit status used by shells for "command not found".
_NOT_FOUND_RC = 127
# ... and for "found but not executable".
_NOT_EXECUTABLE_RC = 126


@contextmanager
def stage(name: str) -> Iterator[None]:
    """Run the enclosed calls as pipeline stage *name*.

    Raises:
        ExternalToolError: When a wrapped call exits non-zero or its
            executable cannot be found or run.
    """
    log.debug("stage.start", stage=name)
    try:
        yield
    except subprocess.CalledProcessError as exc:
        cmd = exc.cmd if isinstance(exc.cmd, (list, tuple)) else [str(exc.cmd)]
        log.error("stage.failed", stage=name, returncode=exc.returncode, cmd=list(map(str, cmd)))
        raise ExternalToolError(
            name,
            f"{Path(str(cmd[0])).name} exited with status {exc.returncode}",
            cmd=cmd,
            returncode=exc.returncode,
        ) from exc
    except PermissionError as exc:
        log.error("stage.failed", stage=name, returncode=_NOT_EXECUTABLE_RC, error=str(exc))
        raise ExternalToolError(
            name,
            f"not executable: {exc.filename or exc}",
            returncode=_NOT_EXECUTABLE_RC,
        ) from exc
    except FileNotFoundError as exc:
        log.error("stage.failed", stage=name, returncode=_NOT_FOUND_RC, error=str(exc))
        raise ExternalToolError(
            name,
            f"executable not found: {exc.filename or exc}",
            returncode=_NOT_FOUND_RC,
        ) from exc
    log.debug("stage.done", stage=name)


def expect_image(stage_name: str, base: Path) -> Path:
    """Return the on-disk file for image *base* written by *stage_name*.

    Raises:
        ExternalToolError: When no image exists for *base*.
    """
    found = find_image(base)
    if found is None:
        log.error("stage.failed", stage=stage_name, missing=str(base))
        raise ExternalToolError(stage_name, f"expected output image was not written: {base}")
    return found


def expect_file(stage_name: str, path: Path) -> Path:
    """Like :func:`expect_image` for non-image outputs (matrices)."""
    if not Path(path).is_file():
        log.error("stage.failed", stage=stage_name, missing=str(path))
        raise ExternalToolError(stage_name, f"expected output file was not written: {path}")
    return Path(path)


__all__ = ["stage", "expect_image", "expect_file"]
