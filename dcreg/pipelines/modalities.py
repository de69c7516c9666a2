"""Select the modalities processed by the distortion-correction loop."""

from __future__ import annotations

import structlog

from .types import DistortionCorrectionOptions, Modality

log = structlog.get_logger()


def select_modalities(opts: DistortionCorrectionOptions) -> tuple[Modality, ...]:
    """Return the active modalities in processing order.

    T1w is always processed; T2w joins when a T2w image was supplied
    (``opts.using_t2``). T1w comes first so that its corrected images exist
    when the T2w registration stage needs them.
    """
    modalities = [
        Modality(
            name="T1w",
            image=opts.t1,
            brain=opts.t1_brain,
            sample_spacing=opts.t1_sample_spacing,
        )
    ]
    if opts.using_t2:
        modalities.append(
            Modality(
                name="T2w",
                image=opts.t2,
                brain=opts.t2_brain,
                sample_spacing=opts.t2_sample_spacing,
            )
        )
    log.debug("modalities", active=[m.name for m in modalities])
    return tuple(modalities)


__all__ = ["select_modalities"]
