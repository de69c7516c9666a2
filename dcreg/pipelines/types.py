"""
Typed, immutable value objects that circulate between pipeline stages.

The module depends only on the Python standard library and *pydantic* so that
it can be imported early, even in lightweight environments that do not yet
have the imaging backend available.

Every class inherits from :class:`pydantic.BaseModel` with ``frozen=True``
to guarantee hash-ability and prevent accidental mutation once the objects
have been created. Image references are *base paths* (no extension), the
convention used by FSL.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel

ModalityName = Literal["T1w", "T2w"]


class Modality(BaseModel, frozen=True):
    """One structural modality processed by the distortion-correction loop.

    Attributes
    ----------
    name
        Modality tag, ``"T1w"`` or ``"T2w"``.
    image
        Base path of the full (non brain-extracted) image.
    brain
        Base path of the brain-extracted image.
    sample_spacing
        Readout sample spacing (dwell time) in seconds, kept as the text that
        was supplied so that it reaches the backend verbatim.
    """

    name: ModalityName
    image: Path
    brain: Path
    sample_spacing: str

    @property
    def image_basename(self) -> str:
        """File name of :attr:`image` without directory."""
        return self.image.name

    @property
    def brain_basename(self) -> str:
        """File name of :attr:`brain` without directory."""
        return self.brain.name


class DistortionCorrectionOptions(BaseModel, frozen=True):
    """Immutable run configuration built once from the command line.

    Image inputs ``t1``/``t1_brain``/``t2``/``t2_brain`` are base paths with
    the extension already stripped. ``t2`` is *None* when no T2w image was
    supplied, which restricts the run to the T1w modality.
    """

    working_dir: Path = Path(".")

    t1: Path
    t1_brain: Path
    t2: Optional[Path] = None
    t2_brain: Optional[Path] = None

    fmap_mag: Path
    fmap_phase: Path
    echo_diff: str

    t1_sample_spacing: str
    t2_sample_spacing: str = ""
    unwarp_dir: str

    out_t1: Path
    out_t1_brain: Path
    out_t1_warp: Path
    out_t2: Optional[Path] = None
    out_t2_warp: Optional[Path] = None
    out_t2_brain: Optional[Path] = None

    gd_coeffs: Optional[Path] = None
    global_scripts: Optional[Path] = None

    argv: tuple[str, ...] = ()

    @property
    def using_t2(self) -> bool:
        """True when a T2w image was supplied."""
        return self.t2 is not None


class FieldmapResult(BaseModel, frozen=True):
    """Outputs of the fieldmap preprocessing stage (base paths under ``<WD>``)."""

    magnitude: Path
    magnitude_brain: Path
    phase: Path
    fieldmap: Path


class ModalityResult(BaseModel, frozen=True):
    """Artefacts written under the working directory for one modality.

    All paths are base paths inside the working directory.
    """

    modality: ModalityName
    affine: Path
    fieldmap: Path
    shift_map: Path
    warp: Path
    image: Path
    brain: Path


class RegistrationResult(BaseModel, frozen=True):
    """Artefacts of the T2w → T1w registration stage (``<WD>/T2w2T1w``)."""

    matrix: Path
    warp: Path
    image: Path
    qa_image: Path


class PipelineResult(BaseModel, frozen=True):
    """Summary returned by :func:`dcreg.pipelines.t2w_to_t1w.run`."""

    working_dir: Path
    using_t2: bool
    fieldmap: FieldmapResult
    modalities: tuple[ModalityResult, ...]
    registration: Optional[RegistrationResult] = None
    published: tuple[Path, ...] = ()
    qa_script: Path
    run_log: Path


__all__ = [
    "ModalityName",
    "Modality",
    "DistortionCorrectionOptions",
    "FieldmapResult",
    "ModalityResult",
    "RegistrationResult",
    "PipelineResult",
]
