"""
Pydantic model that mirrors the YAML configuration consumed by *dcreg*.

The configuration only describes *how* the imaging backend is reached
(native tools or a container image, where FSL and the HCP global scripts
live) and a few run-level switches. Everything that describes *what* to
process comes from the command line.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator


class DcregConfig(BaseModel):
    """Root configuration object consumed by the rest of *dcreg*.

    Attributes:
        runner: ``native`` runs tools from the host, ``docker`` wraps every
            command in ``docker run`` using :attr:`image`.
        image: FSL container image used by the docker runner.
        platform: Optional ``docker --platform`` value.
        fsldir: FSL installation root; *None* resolves tools on ``PATH``.
        global_scripts: Directory containing ``FieldMapPreprocessingAll.sh``.
        viewer: Viewer command written into ``qa.txt``.
        validate_inputs: Check input images before any external call.
        isolate_runs: Use a unique sub-directory of the working directory.
    """

    runner: Literal["native", "docker"] = "native"
    image: str = "fsl/fsl:6.0.7.5"
    platform: Optional[str] = None
    fsldir: Optional[Path] = None
    global_scripts: Optional[Path] = None
    viewer: str = Field("fslview", min_length=1)
    validate_inputs: bool = True
    isolate_runs: bool = False

    @field_validator("fsldir", "global_scripts", mode="before")
    @classmethod
    def _empty_is_none(cls, value):
        """Treat empty strings from YAML or the environment as unset."""
        if isinstance(value, str) and not value.strip():
            return None
        return value


__all__ = ["DcregConfig"]
