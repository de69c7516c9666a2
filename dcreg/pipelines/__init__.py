"""
Public façade for the *pipelines* sub-package.

* **Options**: :func:`parse_args`, :class:`DistortionCorrectionOptions`
* **Stages**, in execution order: :func:`run_fieldmap`,
  :func:`correct_modality`, :func:`register_t2w_to_t1w`
* **Orchestrator**: :func:`run_t2w_to_t1w` returning :class:`PipelineResult`
"""

from __future__ import annotations

from .types import (
    DistortionCorrectionOptions,
    FieldmapResult,
    Modality,
    ModalityResult,
    PipelineResult,
    RegistrationResult,
)
from .options import parse_args
from .modalities import select_modalities
from .fieldmap import run_fieldmap
from .distortion import correct_modality
from .registration import register_t2w_to_t1w
from .t2w_to_t1w import run as run_t2w_to_t1w

__all__: list[str] = [
    "DistortionCorrectionOptions",
    "FieldmapResult",
    "Modality",
    "ModalityResult",
    "RegistrationResult",
    "PipelineResult",
    "parse_args",
    "select_modalities",
    "run_fieldmap",
    "correct_modality",
    "register_t2w_to_t1w",
    "run_t2w_to_t1w",
]
