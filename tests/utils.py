"""Test helpers for dcreg modules."""

from __future__ import annotations

import subprocess
from pathlib import Path

import nibabel as nib
import numpy as np

from dcreg.utils.paths import remove_ext


def make_image(path: Path, shape: tuple[int, ...] = (2, 2, 2)) -> Path:
    """Write a small all-ones NIfTI image to *path* and return it."""
    path.parent.mkdir(parents=True, exist_ok=True)
    img = nib.Nifti1Image(np.ones(shape, dtype="float32"), np.eye(4))
    img.to_filename(path)
    return path


def make_inputs(root: Path) -> dict[str, Path]:
    """Create every input image plus a fake HCP global scripts directory."""
    src = root / "in"
    inputs = {
        "t1": make_image(src / "T1w.nii.gz"),
        "t1brain": make_image(src / "T1w_brain.nii.gz"),
        "t2": make_image(src / "T2w.nii.gz"),
        "t2brain": make_image(src / "T2w_brain.nii.gz"),
        "fmapmag": make_image(src / "FieldMap_Magnitude.nii.gz", (2, 2, 2, 2)),
        "fmapphase": make_image(src / "FieldMap_Phase.nii.gz", (2, 2, 2, 2)),
    }
    scripts = root / "global" / "scripts"
    scripts.mkdir(parents=True)
    script = scripts / "FieldMapPreprocessingAll.sh"
    script.write_text("#!/bin/sh\n")
    script.chmod(0o755)
    inputs["globalscripts"] = scripts
    coeffs = root / "coeff.grad"
    coeffs.write_text("# gradient coefficients\n")
    inputs["gdcoeffs"] = coeffs
    return inputs


def build_args(
    inputs: dict[str, Path],
    wd: Path,
    out: Path,
    *,
    t2: bool = True,
    gdcoeffs: bool = False,
    extra: tuple[str, ...] = (),
) -> list[str]:
    """Return the ``--flag=value`` tokens for a full run."""
    t2_value = (lambda v: str(v)) if t2 else (lambda v: "")
    return [
        f"--workingdir={wd}",
        f"--t1={inputs['t1']}",
        f"--t1brain={inputs['t1brain']}",
        f"--t2={t2_value(inputs['t2'])}",
        f"--t2brain={t2_value(inputs['t2brain'])}",
        f"--fmapmag={inputs['fmapmag']}",
        f"--fmapphase={inputs['fmapphase']}",
        "--echodiff=2.46",
        "--t1sampspacing=0.0000074",
        f"--t2sampspacing={t2_value('0.0000021')}",
        "--unwarpdir=z",
        f"--ot1={out / 'T1w_acpc_dc'}",
        f"--ot1brain={out / 'T1w_acpc_dc_brain'}",
        f"--ot1warp={out / 'xfms' / 'T1w_dc'}",
        f"--ot2={t2_value(out / 'T2w_acpc_dc')}",
        f"--ot2warp={t2_value(out / 'xfms' / 'T2w_reg_dc')}",
        f"--gdcoeffs={inputs['gdcoeffs'] if gdcoeffs else ''}",
        f"--globalscripts={inputs['globalscripts']}",
        *extra,
    ]


def _image(value: str) -> Path:
    """Return the file an FSL tool writes for output *value*."""
    return Path(value) if remove_ext(value) != value else Path(value + ".nii.gz")


def _flag(cmd: list[str], prefix: str) -> str | None:
    """Return the value of the ``prefix=value`` token in *cmd*."""
    for token in cmd:
        if token.startswith(prefix + "="):
            return token.split("=", 1)[1]
    return None


def _after(cmd: list[str], flag: str) -> str | None:
    """Return the token following *flag* in *cmd*."""
    if flag in cmd:
        return cmd[cmd.index(flag) + 1]
    return None


def fake_run_factory(
    calls: list[list[str]],
    *,
    fail_on: str | None = None,
    returncode: int = 1,
):
    """Create a fake FSL runner that records commands and writes expected outputs.

    Args:
        calls: List receiving every command vector.
        fail_on: Tool name whose first invocation exits with *returncode*.
        returncode: Exit status reported for *fail_on*.
    """

    def _fake_run(cmd):
        cmd = [str(c) for c in cmd]
        calls.append(cmd)
        tool = Path(cmd[0]).name
        if tool == fail_on:
            raise subprocess.CalledProcessError(returncode, cmd)

        outputs: list[Path] = []
        if tool == "FieldMapPreprocessingAll.sh":
            for flag in ("--ofmapmag", "--ofmapmagbrain", "--ophase", "--ofmap"):
                outputs.append(_image(_flag(cmd, flag)))
        elif tool == "fugue":
            if "-w" in cmd:
                outputs.append(_image(_after(cmd, "-w")))
            if _flag(cmd, "--saveshift"):
                outputs.append(_image(_flag(cmd, "--saveshift")))
        elif tool == "flirt":
            outputs.append(_image(_after(cmd, "-out")))
            if "-omat" in cmd:
                outputs.append(Path(_after(cmd, "-omat")))
        elif tool == "convertwarp":
            outputs.append(_image(_flag(cmd, "--out") or _after(cmd, "-o")))
        elif tool == "applywarp":
            outputs.append(_image(_after(cmd, "-o")))
        elif tool == "fslmaths":
            out = _after(cmd, "-odt")
            target = cmd[cmd.index("-odt") - 1] if out else cmd[-1]
            outputs.append(_image(target))
        elif tool == "epi_reg":
            out = _flag(cmd, "--out")
            outputs += [_image(out), Path(out + ".mat")]
        elif tool == "imcp":
            outputs.append(_image(cmd[2]))

        for path in outputs:
            path.touch()
        return subprocess.CompletedProcess(cmd, 0, "", "")

    return _fake_run


def tools(calls: list[list[str]]) -> list[str]:
    """Return the tool name of every recorded command."""
    return [Path(c[0]).name for c in calls]
