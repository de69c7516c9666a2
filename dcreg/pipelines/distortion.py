"""Per-modality susceptibility distortion correction.

The same field map (fieldmap space) is re-registered into each modality's
own space, because sample spacing and geometry differ between T1w and T2w.
For modality ``M`` with brain base name ``<bb>`` the loop writes::

    <WD>/Magnitude_brain_warppedM          forward-warped magnitude
    <WD>/Magnitude_brain_warppedM2<bb>     ...registered to the M brain
    <WD>/fieldmap2<bb>.mat                 fieldmap → M affine
    <WD>/FieldMap2<bb>                     field map in M space
    <WD>/FieldMap2<bb>_ShiftMap            voxel shift map
    <WD>/FieldMap2<bb>_Warp                relative deformation field
    <WD>/<image basename>                  corrected image
    <WD>/<bb>                              corrected brain

Only the T1w results are published here; the T2w ones feed the registration
stage.
"""

from __future__ import annotations

from pathlib import Path

import structlog

from ._stage import expect_file, expect_image, stage
from .publish import publish_images
from .types import DistortionCorrectionOptions, FieldmapResult, Modality, ModalityResult
from ..tools.fsl import FslBackend
from ..utils.paths import with_ext

log = structlog.get_logger()


def modality_outputs(working_dir: Path, modality: Modality) -> ModalityResult:
    """Return the base paths the loop writes for *modality*."""
    bb = modality.brain_basename
    return ModalityResult(
        modality=modality.name,
        affine=working_dir / f"fieldmap2{bb}.mat",
        fieldmap=working_dir / f"FieldMap2{bb}",
        shift_map=working_dir / f"FieldMap2{bb}_ShiftMap",
        warp=working_dir / f"FieldMap2{bb}_Warp",
        image=working_dir / modality.image_basename,
        brain=working_dir / bb,
    )


def correct_modality(
    backend: FslBackend,
    modality: Modality,
    fmap: FieldmapResult,
    *,
    working_dir: Path,
    unwarp_dir: str,
) -> ModalityResult:
    """Distortion-correct the image and brain of one *modality*.

    Raises:
        ExternalToolError: When any external call fails.
    """
    name = f"distortion correction ({modality.name})"
    out = modality_outputs(working_dir, modality)
    warped = working_dir / f"Magnitude_brain_warpped{modality.name}"
    warped_reg = working_dir / f"Magnitude_brain_warpped{modality.name}2{modality.brain_basename}"
    dwell = modality.sample_spacing

    log.info("distortion.start", modality=modality.name, dwell=dwell, unwarpdir=unwarp_dir)
    with stage(name):
        backend.forward_warp(
            with_ext(fmap.magnitude_brain),
            with_ext(fmap.fieldmap),
            dwell=dwell,
            unwarp_dir=unwarp_dir,
            out=warped,
        )
        backend.rigid_register(warped, modality.brain, out=warped_reg, out_matrix=out.affine)
        backend.apply_affine(with_ext(fmap.fieldmap), modality.brain, matrix=out.affine, out=out.fieldmap)
        backend.fieldmap_to_shiftmap(out.fieldmap, dwell=dwell, out=with_ext(out.shift_map))
        backend.shiftmap_to_warp(
            with_ext(out.shift_map),
            modality.brain,
            shift_dir=unwarp_dir,
            out=with_ext(out.warp),
        )
        # Spline for intensities, nearest neighbour keeps the brain a mask.
        backend.apply_warp(
            modality.image, modality.image, warp=with_ext(out.warp), out=out.image, interp="spline"
        )
        backend.apply_warp(
            modality.brain, modality.brain, warp=with_ext(out.warp), out=out.brain, interp="nn"
        )
        backend.mask(out.image, out.brain, out=out.brain)

    expect_file(name, out.affine)
    for base in (out.warp, out.image, out.brain):
        expect_image(name, base)
    log.info("distortion.done", modality=modality.name, warp=str(out.warp))
    return out


def publish_t1w(
    backend: FslBackend, result: ModalityResult, opts: DistortionCorrectionOptions
) -> list[Path]:
    """Copy the corrected T1w warp, image and brain to their output paths."""
    return publish_images(
        backend,
        [
            (result.warp, opts.out_t1_warp),
            (result.image, opts.out_t1),
            (result.brain, opts.out_t1_brain),
        ],
    )


__all__ = ["modality_outputs", "correct_modality", "publish_t1w"]
