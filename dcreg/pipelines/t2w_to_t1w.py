"""Distortion-correct T1w/T2w images and register T2w to T1w.

High-level flow of :func:`run`:

1. Validate every input image (and the gradient coefficient file) before any
   external tool is called.
2. Create ``<WD>`` and append the invocation header to ``<WD>/log.txt``.
3. Derive the field map (HCP ``FieldMapPreprocessingAll.sh``).
4. Distortion-correct each active modality; publish the T1w outputs.
5. When a T2w image was supplied, register it to the corrected T1w with a
   single composed warp and publish the T2w outputs.
6. Append the ``END`` line to ``log.txt`` and regenerate ``<WD>/qa.txt``.

Every step is sequential and fail-fast: the first failing external call
raises :class:`~dcreg.utils.errors.ExternalToolError` naming its stage.
"""

from __future__ import annotations

import os
from pathlib import Path

import nibabel as nib
import structlog

from .distortion import correct_modality, publish_t1w
from .fieldmap import run_fieldmap
from .modalities import select_modalities
from .publish import write_qa_script, write_run_log_end, write_run_log_start
from .registration import publish_t2w, register_t2w_to_t1w
from .types import DistortionCorrectionOptions, PipelineResult
from ..config.schema import DcregConfig
from ..tools.fsl import FIELDMAP_SCRIPT, FslBackend
from ..utils.errors import ConfigurationError, MissingInputError
from ..utils.paths import ensure_dir, find_image, run_scoped_dir

log = structlog.get_logger()

PIPELINE_NAME = "T2wToT1wDistortionCorrectionAndReg"


def _required_inputs(opts: DistortionCorrectionOptions) -> list[tuple[str, Path]]:
    """Return ``(option, path)`` for every image the run reads."""
    inputs = [
        ("--t1", opts.t1),
        ("--t1brain", opts.t1_brain),
        ("--fmapmag", opts.fmap_mag),
        ("--fmapphase", opts.fmap_phase),
    ]
    if opts.using_t2:
        inputs += [("--t2", opts.t2), ("--t2brain", opts.t2_brain)]
    return inputs


def validate_inputs(opts: DistortionCorrectionOptions) -> None:
    """Check that every input resolves to a readable image.

    Raises:
        MissingInputError: Naming the first option whose image is missing or
            cannot be read.
    """
    for option, base in _required_inputs(opts):
        found = find_image(base)
        if found is None:
            raise MissingInputError(option, str(base))
        try:
            nib.load(str(found))
        except Exception as exc:  # nibabel raises several unrelated types
            raise MissingInputError(option, str(found), reason=f"unreadable image ({exc})") from exc
        log.debug("input.ok", option=option, path=str(found))

    if opts.gd_coeffs is not None and not opts.gd_coeffs.is_file():
        raise MissingInputError("--gdcoeffs", str(opts.gd_coeffs), reason="no such file")


def resolve_global_scripts(opts: DistortionCorrectionOptions, cfg: DcregConfig) -> Path:
    """Return the HCP global scripts directory (option, then configuration).

    Raises:
        ConfigurationError: When neither names a directory, or when running
            natively and the fieldmap script is missing or not executable.
    """
    scripts = opts.global_scripts or cfg.global_scripts
    if scripts is None:
        raise ConfigurationError(
            "HCP global scripts directory unknown; pass --globalscripts, set "
            "'global_scripts' in dcreg.yaml or export HCPPIPEDIR_Global"
        )
    scripts = Path(scripts).expanduser()
    # Inside a container the host path need not exist.
    if cfg.runner == "native" and not (scripts / FIELDMAP_SCRIPT).is_file():
        raise ConfigurationError(f"{FIELDMAP_SCRIPT} not found in {scripts}")
    if cfg.runner == "native" and not os.access(scripts / FIELDMAP_SCRIPT, os.X_OK):
        raise ConfigurationError(f"{FIELDMAP_SCRIPT} in {scripts} is not executable")
    return scripts


def run(
    opts: DistortionCorrectionOptions,
    cfg: DcregConfig,
    backend: FslBackend | None = None,
    *,
    prog: str = "dcreg-t2w-to-t1w",
) -> PipelineResult:
    """Execute the full pipeline for *opts*.

    Args:
        opts: Parsed command-line options.
        cfg: Validated configuration.
        backend: Imaging backend; defaults to :class:`FslBackend` built from
            *cfg*.
        prog: Program name written to ``log.txt``.

    Returns:
        Summary of every artefact written and published.

    Raises:
        MissingInputError: Before any external call when an input is missing.
        ConfigurationError: When the HCP global scripts cannot be located.
        ExternalToolError: When an external tool fails.
    """
    backend = backend or FslBackend(cfg)

    if cfg.validate_inputs:
        validate_inputs(opts)
    global_scripts = resolve_global_scripts(opts, cfg)

    if cfg.isolate_runs:
        opts = opts.model_copy(update={"working_dir": run_scoped_dir(opts.working_dir)})
        log.info("isolate_runs", working_dir=str(opts.working_dir))

    wd = opts.working_dir
    ensure_dir(wd)
    ensure_dir(wd / "FieldMap")
    run_log = write_run_log_start(wd, prog, opts.argv)

    print(f" START: {PIPELINE_NAME}")
    log.info("pipeline.start", working_dir=str(wd), using_t2=opts.using_t2)

    fmap = run_fieldmap(
        backend,
        working_dir=wd,
        magnitude=opts.fmap_mag,
        phase=opts.fmap_phase,
        echo_diff=opts.echo_diff,
        gd_coeffs=opts.gd_coeffs,
        global_scripts=global_scripts,
    )

    published: list[Path] = []
    results = {}
    for modality in select_modalities(opts):
        results[modality.name] = correct_modality(
            backend, modality, fmap, working_dir=wd, unwarp_dir=opts.unwarp_dir
        )
        if modality.name == "T1w":
            published += publish_t1w(backend, results["T1w"], opts)

    registration = None
    if opts.using_t2:
        registration = register_t2w_to_t1w(backend, opts, results["T1w"], results["T2w"])
        published += publish_t2w(backend, opts, registration, results["T2w"])

    write_run_log_end(wd)
    print(f" END: {PIPELINE_NAME}")
    qa_script = write_qa_script(opts, viewer=cfg.viewer, cwd=Path(os.getcwd()))
    log.info("pipeline.done", working_dir=str(wd), published=len(published))

    return PipelineResult(
        working_dir=wd,
        using_t2=opts.using_t2,
        fieldmap=fmap,
        modalities=tuple(results.values()),
        registration=registration,
        published=tuple(published),
        qa_script=qa_script,
        run_log=run_log,
    )


__all__ = ["PIPELINE_NAME", "validate_inputs", "resolve_global_scripts", "run"]
