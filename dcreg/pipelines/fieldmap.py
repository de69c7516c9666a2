"""Fieldmap preprocessing stage.

Runs the HCP ``FieldMapPreprocessingAll.sh`` global script once per run. The
script's scratch files go to ``<WD>/FieldMap/``; its four products land
directly in ``<WD>``::

    <WD>/Magnitude        <WD>/Magnitude_brain
    <WD>/Phase            <WD>/FieldMap

A failure here aborts the run before any modality is processed.
"""

from __future__ import annotations

from pathlib import Path

import structlog

from ._stage import expect_image, stage
from .types import FieldmapResult
from ..tools.fsl import FslBackend
from ..utils.paths import ensure_dir

log = structlog.get_logger()

STAGE = "fieldmap preprocessing"


def fieldmap_outputs(working_dir: Path) -> FieldmapResult:
    """Return the base paths written by the fieldmap stage below *working_dir*."""
    return FieldmapResult(
        magnitude=working_dir / "Magnitude",
        magnitude_brain=working_dir / "Magnitude_brain",
        phase=working_dir / "Phase",
        fieldmap=working_dir / "FieldMap",
    )


def run_fieldmap(
    backend: FslBackend,
    *,
    working_dir: Path,
    magnitude: Path,
    phase: Path,
    echo_diff: str,
    gd_coeffs: Path | None,
    global_scripts: Path,
) -> FieldmapResult:
    """Derive a field map from magnitude/phase acquisitions.

    Args:
        backend: Backend issuing the external call.
        working_dir: Run working directory ``<WD>``.
        magnitude: Fieldmap magnitude image.
        phase: Fieldmap phase image (two 3D volumes in one 4D file).
        echo_diff: Echo-time difference in milliseconds, forwarded verbatim.
        gd_coeffs: Gradient-distortion coefficient file, or *None*.
        global_scripts: Directory holding the HCP global scripts.

    Returns:
        Base paths of the magnitude, brain magnitude, phase and field map.

    Raises:
        ExternalToolError: When the script fails or writes no field map.
    """
    out = fieldmap_outputs(working_dir)
    scratch = ensure_dir(working_dir / "FieldMap")

    log.info("fieldmap.start", magnitude=str(magnitude), phase=str(phase), echodiff=echo_diff)
    with stage(STAGE):
        backend.preprocess_fieldmap(
            global_scripts=global_scripts,
            working_dir=scratch,
            magnitude=magnitude,
            phase=phase,
            echo_diff=echo_diff,
            out_magnitude=out.magnitude,
            out_magnitude_brain=out.magnitude_brain,
            out_phase=out.phase,
            out_fieldmap=out.fieldmap,
            gd_coeffs=gd_coeffs,
        )
    expect_image(STAGE, out.magnitude_brain)
    expect_image(STAGE, out.fieldmap)
    log.info("fieldmap.done", fmap=str(out.fieldmap))
    return out


__all__ = ["STAGE", "fieldmap_outputs", "run_fieldmap"]
