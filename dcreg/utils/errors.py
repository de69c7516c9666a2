"""Custom exceptions used across the distortion-correction pipeline.

Every failure is fatal to the run; the hierarchy only exists so that the CLI
can map each category to a clear message and exit status.
"""

from __future__ import annotations

from typing import Sequence


class DcregError(RuntimeError):
    """Base class for all errors raised by *dcreg*."""

    pass


class OptionError(DcregError):
    """Raised when a command-line option carries an unusable value."""

    pass


class MissingInputError(DcregError):
    """Raised when a required input path does not resolve to an existing image."""

    def __init__(self, option: str, path: str, reason: str = "no such image") -> None:
        self.option = option
        self.path = path
        super().__init__(f"{option}: {reason}: {path}")


class ConfigurationError(DcregError):
    """Raised when the YAML configuration or backend location is invalid."""

    pass


class ExternalToolError(DcregError):
    """Raised when an external tool fails inside a named pipeline stage.

    Attributes:
        stage: Human-readable name of the stage that failed.
        cmd: Command vector of the failing call (empty when the failure was a
            missing output rather than a non-zero exit).
        returncode: Exit status reported by the tool.
    """

    def __init__(
        self,
        stage: str,
        message: str,
        *,
        cmd: Sequence[str] = (),
        returncode: int = 1,
    ) -> None:
        self.stage = stage
        self.cmd = [str(c) for c in cmd]
        self.returncode = returncode
        super().__init__(f"stage '{stage}' failed: {message}")


__all__ = [
    "DcregError",
    "OptionError",
    "MissingInputError",
    "ConfigurationError",
    "ExternalToolError",
]
