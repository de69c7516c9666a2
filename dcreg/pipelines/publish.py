"""Output publishing, the per-run log and the QA viewer script.

Two plain-text files live in the working directory:

``log.txt``
    Appended on every run: invocation line, current directory, start date
    and, once the run succeeded, an ``END`` line.
``qa.txt``
    Deleted and rewritten on every run. It lists viewer commands for
    checking the results by eye and is never executed by the pipeline.
"""

from __future__ import annotations

import os
from datetime import datetime
from pathlib import Path
from typing import Iterable, Sequence

import structlog

from ._stage import stage
from .types import DistortionCorrectionOptions
from ..tools.fsl import FslBackend
from ..utils.paths import ensure_dir, image_basename

log = structlog.get_logger()

STAGE = "publish outputs"
RUN_LOG = "log.txt"
QA_SCRIPT = "qa.txt"


def _date(now: datetime | None = None) -> str:
    """Return *now* formatted like the POSIX ``date`` command."""
    return (now or datetime.now()).astimezone().strftime("%a %b %d %H:%M:%S %Z %Y")


def publish_images(backend: FslBackend, pairs: Iterable[tuple[Path, Path]]) -> list[Path]:
    """Copy each ``(source, destination)`` image pair and return the destinations.

    Destinations are overwritten; missing parent directories are created.
    """
    published: list[Path] = []
    with stage(STAGE):
        for src, dst in pairs:
            ensure_dir(Path(dst).parent)
            backend.copy_image(src, dst)
            log.info("publish", src=str(src), dst=str(dst))
            published.append(Path(dst))
    return published


def write_run_log_start(
    working_dir: Path,
    prog: str,
    argv: Sequence[str],
    *,
    cwd: Path | None = None,
    now: datetime | None = None,
) -> Path:
    """Append the invocation header to ``<WD>/log.txt`` and return its path."""
    path = working_dir / RUN_LOG
    lines = [
        " ".join([prog, *argv]),
        f"PWD = {cwd or Path(os.getcwd())}",
        f"date: {_date(now)}",
        " ",
    ]
    with path.open("a", encoding="utf-8") as fh:
        fh.write("\n".join(lines) + "\n")
    return path


def write_run_log_end(working_dir: Path, *, now: datetime | None = None) -> Path:
    """Append the ``END`` line to ``<WD>/log.txt``."""
    path = working_dir / RUN_LOG
    with path.open("a", encoding="utf-8") as fh:
        fh.write(f" END: {_date(now)}\n")
    return path


def qa_lines(
    opts: DistortionCorrectionOptions,
    *,
    viewer: str,
    cwd: Path | None = None,
) -> list[str]:
    """Return the lines of the QA viewer script for *opts*.

    T1w-only runs get one viewer line; runs with a T2w image get three.
    """
    wd = opts.working_dir
    lines = [f"cd {cwd or Path(os.getcwd())}"]
    if opts.using_t2:
        lines += [
            "# View registration result of corrected T2w to corrected T1w image: "
            "showing both images + sqrt(T1w*T2w)",
            f"{viewer} {opts.out_t1} {opts.out_t2} {wd / 'T2w2T1w' / 'sqrtT1wbyT2w'}",
        ]
    lines += [
        "# Compare pre- and post-distortion correction for T1w",
        f"{viewer} {opts.t1} {opts.out_t1}",
    ]
    if opts.using_t2:
        lines += [
            "# Compare pre- and post-distortion correction for T2w",
            f"{viewer} {opts.t2} {wd / image_basename(opts.t2)}",
        ]
    return lines


def write_qa_script(
    opts: DistortionCorrectionOptions,
    *,
    viewer: str,
    cwd: Path | None = None,
) -> Path:
    """Regenerate ``<WD>/qa.txt`` from scratch and return its path."""
    path = opts.working_dir / QA_SCRIPT
    path.unlink(missing_ok=True)
    path.write_text("\n".join(qa_lines(opts, viewer=viewer, cwd=cwd)) + "\n", encoding="utf-8")
    log.info("qa.written", path=str(path))
    return path


__all__ = [
    "STAGE",
    "RUN_LOG",
    "QA_SCRIPT",
    "publish_images",
    "write_run_log_start",
    "write_run_log_end",
    "qa_lines",
    "write_qa_script",
]
