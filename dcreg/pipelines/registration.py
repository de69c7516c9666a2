"""T2w → T1w registration of the distortion-corrected images.

The boundary-based registration affine is chained with the T2w distortion
warp so that the *original* T2w image is resampled only once onto the
corrected T1w. All files go to ``<WD>/T2w2T1w/``.
"""

from __future__ import annotations

from pathlib import Path

import structlog

from ._stage import expect_file, expect_image, stage
from .publish import publish_images
from .types import DistortionCorrectionOptions, ModalityResult, RegistrationResult
from ..tools.fsl import FslBackend
from ..utils.paths import ensure_dir, with_ext

log = structlog.get_logger()

STAGE = "T2w to T1w registration"
REG_DIR = "T2w2T1w"


def registration_outputs(working_dir: Path) -> RegistrationResult:
    """Return the base paths written below ``<working_dir>/T2w2T1w``."""
    reg_dir = working_dir / REG_DIR
    return RegistrationResult(
        matrix=reg_dir / "T2w_reg.mat",
        warp=reg_dir / "T2w_dc_reg",
        image=reg_dir / "T2w_reg",
        qa_image=reg_dir / "sqrtT1wbyT2w",
    )


def register_t2w_to_t1w(
    backend: FslBackend,
    opts: DistortionCorrectionOptions,
    t1w: ModalityResult,
    t2w: ModalityResult,
) -> RegistrationResult:
    """Register the corrected T2w onto the corrected T1w.

    Args:
        backend: Backend issuing the external calls.
        opts: Run options; supplies the original T1w/T2w images.
        t1w: Output of the T1w distortion-correction pass.
        t2w: Output of the T2w distortion-correction pass.

    Returns:
        Paths of the affine, composed warp, registered T2w and QA image.

    Raises:
        ExternalToolError: When any external call fails.
    """
    out = registration_outputs(opts.working_dir)
    ensure_dir(out.image.parent)

    log.info("registration.start", moving=str(t2w.brain), fixed=str(t1w.image))
    with stage(STAGE):
        backend.cross_modal_register(t2w.brain, t1w.image, t1w.brain, out=out.image)
        backend.compose_warp(opts.t1, with_ext(t2w.warp), postmat=out.matrix, out=out.warp)
        backend.apply_warp(opts.t2, opts.t1, warp=out.warp, out=out.image, interp="spline")
        # Downstream ratio images divide by this one.
        backend.add_constant(with_ext(out.image), 1, out=with_ext(out.image))
        backend.geometric_mean(out.image, opts.t1, out=out.qa_image)

    expect_file(STAGE, out.matrix)
    for base in (out.warp, out.image, out.qa_image):
        expect_image(STAGE, base)
    log.info("registration.done", warp=str(out.warp), image=str(out.image))
    return out


def publish_t2w(
    backend: FslBackend,
    opts: DistortionCorrectionOptions,
    reg: RegistrationResult,
    t2w: ModalityResult,
) -> list[Path]:
    """Copy the composed warp and registered T2w (and optionally the brain)."""
    pairs = [(reg.warp, opts.out_t2_warp), (reg.image, opts.out_t2)]
    if opts.out_t2_brain is not None:
        pairs.append((t2w.brain, opts.out_t2_brain))
    return publish_images(backend, pairs)


__all__ = ["STAGE", "REG_DIR", "registration_outputs", "register_t2w_to_t1w", "publish_t2w"]
