"""Parse the HCP-style ``--flag=value`` argument list.

The historical shell script accepted its options exclusively in the
``--name=value`` form, looked each flag up independently, and ignored tokens
it did not recognise. :func:`get_opt` keeps those semantics; :func:`parse_args`
layers explicit validation on top and returns an immutable
:class:`~dcreg.pipelines.types.DistortionCorrectionOptions`.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence

import structlog

from .types import DistortionCorrectionOptions
from ..utils.errors import OptionError
from ..utils.paths import remove_ext

log = structlog.get_logger()

# Sixteen required flags plus ``--gdcoeffs``.
MIN_ARGS = 17

UNWARP_DIRS = frozenset({"x", "y", "z", "x-", "y-", "z-", "-x", "-y", "-z"})

USAGE = """\
{prog}: Script for performing gradient-nonlinearity and susceptibility-inducted distortion correction on T1w and T2w images, then also registering T2w to T1w

Usage: {prog} [--workingdir=<working directory>]
            --t1=<input T1w image>
            --t1brain=<input T1w brain-extracted image>
            --t2=<input T2w image>
            --t2brain=<input T2w brain-extracted image>
            --fmapmag=<input fieldmap magnitude image>
            --fmapphase=<input fieldmap phase images (single 4D image containing 2x3D volumes)>
            --echodiff=<echo time difference for fieldmap images (in milliseconds)>
            --t1sampspacing=<sample spacing (readout direction) of T1w image - in seconds>
            --t2sampspacing=<sample spacing (readout direction) of T2w image - in seconds>
            --unwarpdir=<direction of distortion according to voxel axes (post reorient2std)>
            --ot1=<output corrected T1w image>
            --ot1brain=<output corrected, brain-extracted T1w image>
            --ot1warp=<output warpfield for distortion correction of T1w image>
            --ot2=<output corrected T2w image>
            --ot2warp=<output warpfield for distortion correction of T2w image>
            [--ot2brain=<output corrected, brain-extracted T2w image>]
            [--gdcoeffs=<gradient distortion coefficients (SIEMENS file)>]
            [--globalscripts=<HCP global scripts directory, default $HCPPIPEDIR_Global>]
"""


def usage(prog: str) -> str:
    """Return the usage text for program name *prog*."""
    return USAGE.format(prog=prog)


def usage_exit_code(args: Sequence[str]) -> Optional[int]:
    """Return the exit status when *args* only warrants printing usage.

    Returns:
        ``0`` for an empty argument list, ``1`` when fewer than
        :data:`MIN_ARGS` tokens were supplied, otherwise *None*.
    """
    if len(args) == 0:
        return 0
    if len(args) < MIN_ARGS:
        return 1
    return None


def get_opt(args: Sequence[str], flag: str, default: Optional[str] = None) -> Optional[str]:
    """Return the value of the first ``flag=value`` token in *args*.

    Args:
        args: Raw argument tokens.
        flag: Option name including the leading dashes, e.g. ``"--t1"``.
        default: Returned when no token matches.

    Returns:
        Text after the first ``=`` of the matching token, or *default*.
    """
    prefix = f"{flag}="
    for token in args:
        if token.startswith(prefix):
            return token[len(prefix):]
    return default


def default_opt(value: Optional[str], default: str) -> str:
    """Return *value* unless it is empty, in which case return *default*."""
    return value if value else default


def _required(args: Sequence[str], flag: str) -> str:
    """Return the non-empty value of *flag* or raise :class:`OptionError`."""
    value = get_opt(args, flag, "")
    if not value:
        raise OptionError(f"missing required option {flag}=<value>")
    return value


def _optional_path(args: Sequence[str], flag: str) -> Optional[Path]:
    """Return *flag* as a :class:`Path` or *None* when absent or empty."""
    value = get_opt(args, flag, "")
    return Path(value) if value else None


def _image_base(value: Optional[str]) -> Optional[Path]:
    """Return the extension-stripped base path of *value* (*None* when empty)."""
    base = remove_ext(value or "")
    if not base or not Path(base).name:
        return None
    return Path(base)


def _float_text(flag: str, value: str) -> str:
    """Validate that *value* parses as a number and return it unchanged."""
    try:
        float(value)
    except ValueError as exc:
        raise OptionError(f"{flag} expects a number, got {value!r}") from exc
    return value


def parse_args(args: Sequence[str]) -> DistortionCorrectionOptions:
    """Build :class:`DistortionCorrectionOptions` from raw ``--flag=value`` tokens.

    The T2w image decides which modalities run: an empty ``--t2`` value
    restricts the run to T1w, in which case the remaining T2w options may be
    empty as well.

    Args:
        args: Argument tokens, excluding the program name.

    Returns:
        The validated, immutable option set.

    Raises:
        OptionError: When a required option is missing or malformed.
    """
    args = list(args)

    t1 = _image_base(_required(args, "--t1"))
    t1_brain = _image_base(_required(args, "--t1brain"))
    if t1 is None or t1_brain is None:
        raise OptionError("--t1 and --t1brain must name images")

    t2 = _image_base(get_opt(args, "--t2", ""))
    t2_brain = _image_base(get_opt(args, "--t2brain", ""))

    unwarp_dir = _required(args, "--unwarpdir")
    if unwarp_dir not in UNWARP_DIRS:
        raise OptionError(
            f"--unwarpdir must be one of {', '.join(sorted(UNWARP_DIRS))}, got {unwarp_dir!r}"
        )

    fields: dict = dict(
        working_dir=Path(default_opt(get_opt(args, "--workingdir"), ".")),
        t1=t1,
        t1_brain=t1_brain,
        fmap_mag=Path(_required(args, "--fmapmag")),
        fmap_phase=Path(_required(args, "--fmapphase")),
        echo_diff=_float_text("--echodiff", _required(args, "--echodiff")),
        t1_sample_spacing=_float_text("--t1sampspacing", _required(args, "--t1sampspacing")),
        unwarp_dir=unwarp_dir,
        out_t1=Path(_required(args, "--ot1")),
        out_t1_brain=Path(_required(args, "--ot1brain")),
        out_t1_warp=Path(_required(args, "--ot1warp")),
        gd_coeffs=_optional_path(args, "--gdcoeffs"),
        global_scripts=_optional_path(args, "--globalscripts"),
        argv=tuple(args),
    )

    if t2 is not None:
        if t2_brain is None:
            raise OptionError("--t2brain is required when --t2 is given")
        fields.update(
            t2=t2,
            t2_brain=t2_brain,
            t2_sample_spacing=_float_text(
                "--t2sampspacing", _required(args, "--t2sampspacing")
            ),
            out_t2=Path(_required(args, "--ot2")),
            out_t2_warp=Path(_required(args, "--ot2warp")),
            out_t2_brain=_optional_path(args, "--ot2brain"),
        )
    else:
        log.info("options", msg="no T2w image supplied; running T1w only")

    opts = DistortionCorrectionOptions(**fields)
    _check_name_collisions(opts)
    return opts


def _check_name_collisions(opts: DistortionCorrectionOptions) -> None:
    """Reject base names that would overwrite each other inside ``<WD>``."""
    names = [("--t1", opts.t1.name), ("--t1brain", opts.t1_brain.name)]
    if opts.t2 is not None and opts.t2_brain is not None:
        names += [("--t2", opts.t2.name), ("--t2brain", opts.t2_brain.name)]

    seen: dict[str, str] = {}
    for flag, name in names:
        if name in seen:
            raise OptionError(
                f"{flag} and {seen[name]} share the base name {name!r}; "
                "their corrected images would collide in the working directory"
            )
        seen[name] = flag


__all__ = [
    "MIN_ARGS",
    "UNWARP_DIRS",
    "USAGE",
    "usage",
    "usage_exit_code",
    "get_opt",
    "default_opt",
    "parse_args",
]
