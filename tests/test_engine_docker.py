import subprocess

import pytest

from dcreg.engines import DockerEngine


def test_build_command():
    engine = DockerEngine(platform="linux/amd64")
    cmd = engine.build_command(
        "fsl/fsl:6.0.7.5",
        ["flirt", "-in", "/data/a"],
        volumes={"/data": "/data"},
        env={"FSLOUTPUTTYPE": "NIFTI_GZ"},
        workdir="/data",
    )
    assert cmd == [
        "docker", "run", "--rm", "-t",
        "--platform", "linux/amd64",
        "-v", "/data:/data",
        "-e", "FSLOUTPUTTYPE=NIFTI_GZ",
        "-w", "/data",
        "fsl/fsl:6.0.7.5",
        "flirt", "-in", "/data/a",
    ]


def test_build_command_minimal():
    cmd = DockerEngine().build_command("img", ["bet"], volumes={}, env={}, entrypoint="/bin/sh")
    assert cmd == ["docker", "run", "--rm", "-t", "--entrypoint", "/bin/sh", "img", "bet"]


def test_run_invokes_docker(monkeypatch):
    seen = {}

    def _run(cmd, check):
        seen["cmd"] = cmd
        seen["check"] = check
        return subprocess.CompletedProcess(cmd, 0)

    monkeypatch.setattr(subprocess, "run", _run)
    assert DockerEngine().run("img", ["fslmaths"], volumes={}, env={}) == 0
    assert seen["cmd"][-2:] == ["img", "fslmaths"]
    assert seen["check"] is True


def test_run_propagates_failure(monkeypatch):
    def _run(cmd, check):
        raise subprocess.CalledProcessError(2, cmd)

    monkeypatch.setattr(subprocess, "run", _run)
    with pytest.raises(subprocess.CalledProcessError):
        DockerEngine().run("img", ["fslmaths"], volumes={}, env={})
