"""Helpers for working with image base paths.

Images are referred to by their *base path*: the path without any image
extension, exactly like FSL's ``remove_ext``/``imtest`` utilities do. The
helpers below centralise extension handling so that pipeline stages never
manipulate file names textually.
"""
from __future__ import annotations

import os
import secrets
from datetime import datetime
from pathlib import Path
from typing import Optional

import structlog

log = structlog.get_logger()

# Ordered so that compound suffixes are tried before their shorter tails.
IMAGE_EXTENSIONS: tuple[str, ...] = (
    ".nii.gz",
    ".nii",
    ".hdr.gz",
    ".img.gz",
    ".hdr",
    ".img",
    ".mnc.gz",
    ".mnc",
)

# Extension written by FSL when FSLOUTPUTTYPE=NIFTI_GZ.
IMAGE_EXT = ".nii.gz"


def _strip_once(value: str) -> str:
    """Return *value* without a single trailing image extension."""
    for ext in IMAGE_EXTENSIONS:
        if value.endswith(ext) and len(value) > len(ext):
            return value[: -len(ext)]
    return value


def remove_ext(value: str | Path) -> str:
    """Strip every trailing image extension from *value*.

    Stripping repeats until no known extension remains, which makes the
    function idempotent: ``remove_ext(remove_ext(p)) == remove_ext(p)``.

    Args:
        value: File name or path, with or without an image extension.

    Returns:
        The base path as a string. An empty input yields an empty string.
    """
    text = str(value)
    while True:
        stripped = _strip_once(text)
        if stripped == text:
            return text
        text = stripped


def image_basename(value: str | Path) -> str:
    """Return the file name of *value* without directory or image extension.

    ``image_basename("/a/b/c.nii.gz") == "c"``; an empty input yields ``""``.
    """
    base = remove_ext(value)
    if not base:
        return ""
    return Path(base).name


def find_image(base: str | Path) -> Optional[Path]:
    """Return the first existing file for the image *base*, or *None*.

    *base* may already carry an extension, in which case that exact file is
    checked first.
    """
    text = str(base)
    if not text:
        return None
    direct = Path(text)
    if direct.is_file() and remove_ext(text) != text:
        return direct
    stem = remove_ext(text)
    for ext in IMAGE_EXTENSIONS:
        candidate = Path(stem + ext)
        if candidate.is_file():
            return candidate
    return None


def image_exists(base: str | Path) -> bool:
    """Return True when :func:`find_image` resolves *base*."""
    return find_image(base) is not None


def with_ext(base: str | Path, ext: str = IMAGE_EXT) -> Path:
    """Return the base path *base* with the image extension *ext* appended."""
    return Path(remove_ext(base) + ext)


def ensure_dir(path: Path) -> Path:
    """Create *path* (and parents) when missing and return it."""
    path.mkdir(parents=True, exist_ok=True)
    log.debug("ensure_dir", path=str(path))
    return path


def run_scoped_dir(working_dir: Path, *, now: datetime | None = None) -> Path:
    """Return a unique per-invocation directory below *working_dir*.

    The name combines a microsecond timestamp, the process id and a random
    suffix, e.g. ``run-20240101T120000-000123-4242-9f3a1c``.
    """
    stamp = (now or datetime.now()).strftime("%Y%m%dT%H%M%S-%f")
    return working_dir / f"run-{stamp}-{os.getpid()}-{secrets.token_hex(3)}"


__all__ = [
    "IMAGE_EXTENSIONS",
    "IMAGE_EXT",
    "remove_ext",
    "image_basename",
    "find_image",
    "image_exists",
    "with_ext",
    "ensure_dir",
    "run_scoped_dir",
]
