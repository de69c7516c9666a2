"""
Public façade for the *utils* package.

Only the path helpers and the error types are re-exported; the subprocess
runner (:mod:`dcreg.utils.fsl`) and logging setup are imported by module so
tests can monkeypatch them.
"""

from __future__ import annotations

from .errors import (
    ConfigurationError,
    DcregError,
    ExternalToolError,
    MissingInputError,
    OptionError,
)
from .paths import find_image, image_basename, image_exists, remove_ext

__all__: list[str] = [
    "DcregError",
    "OptionError",
    "MissingInputError",
    "ConfigurationError",
    "ExternalToolError",
    "remove_ext",
    "image_basename",
    "find_image",
    "image_exists",
]
