from pathlib import Path

from dcreg.config.schema import DcregConfig
from dcreg.engines import DockerEngine, ExecutionEngine
from dcreg.tools.fsl import FslBackend, FslTool, mounts_for


class RecordingEngine(ExecutionEngine):
    """Engine that records every request instead of running it."""

    def __init__(self):
        self.runs = []

    def run(self, image, args, *, volumes, env, entrypoint=None, workdir=None):
        self.runs.append(dict(image=image, args=list(args), volumes=dict(volumes), env=dict(env), workdir=workdir))
        return 0


def test_fsl_tool_spec():
    tool = FslTool(DcregConfig().image, ["bet", "a", "b"], volumes={"/d": "/d"}, workdir="/d")
    spec = tool.build_spec()
    assert spec.image == "fsl/fsl:6.0.7.5"
    assert list(spec.args) == ["bet", "a", "b"]
    assert spec.volumes == {"/d": "/d"}
    assert spec.workdir == "/d"


def test_native_tool_paths():
    assert FslBackend(DcregConfig()).tool("flirt") == "flirt"
    backend = FslBackend(DcregConfig(fsldir="/opt/fsl"))
    assert backend.tool("flirt") == "/opt/fsl/bin/flirt"
    assert backend.engine is None


def test_docker_runner_selects_engine():
    backend = FslBackend(DcregConfig(runner="docker", platform="linux/amd64"))
    assert isinstance(backend.engine, DockerEngine)
    assert backend.engine.platform == "linux/amd64"
    assert backend.tool("flirt") == "flirt"


def test_native_runner_uses_run_cmd(calls, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    FslBackend(DcregConfig()).mask(Path("a"), Path("m"), out=Path("b"))
    assert calls == [["fslmaths", "a", "-mas", "m", "b"]]


def test_docker_runner_mounts_referenced_directories(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    data = tmp_path / "data"
    data.mkdir()
    engine = RecordingEngine()
    backend = FslBackend(DcregConfig(runner="docker", image="my/fsl:1", fsldir="/opt/fsl"), engine=engine)
    backend.shiftmap_to_warp(
        data / "shift.nii.gz", Path("/elsewhere/ref"), shift_dir="y-", out=Path("rel/warp.nii.gz")
    )
    (run,) = engine.runs
    assert run["image"] == "my/fsl:1"
    assert run["args"][0] == "convertwarp"
    assert run["env"] == {"FSLOUTPUTTYPE": "NIFTI_GZ"}
    assert run["workdir"] == str(tmp_path)
    assert run["volumes"] == {
        str(tmp_path): str(tmp_path),
        str(data): str(data),
        "/elsewhere": "/elsewhere",
    }


def test_mounts_for_directories(tmp_path):
    mounts = mounts_for(["tool", str(tmp_path), "--x=relative"], Path("/work"))
    assert mounts == {"/work": "/work", str(tmp_path): str(tmp_path)}


def test_fieldmap_command_with_coefficients(calls, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "wd").mkdir()
    FslBackend(DcregConfig()).preprocess_fieldmap(
        global_scripts=Path("/hcp/global/scripts"),
        working_dir=Path("wd/FieldMap"),
        magnitude=Path("mag.nii.gz"),
        phase=Path("phase.nii.gz"),
        echo_diff="2.46",
        out_magnitude=Path("wd/Magnitude"),
        out_magnitude_brain=Path("wd/Magnitude_brain"),
        out_phase=Path("wd/Phase"),
        out_fieldmap=Path("wd/FieldMap"),
        gd_coeffs=Path("coeff.grad"),
    )
    assert calls[0][0] == "/hcp/global/scripts/FieldMapPreprocessingAll.sh"
    assert calls[0][-1] == "--gdcoeffs=coeff.grad"


def test_fsl_tool_execute_forwards_call():
    engine = RecordingEngine()
    rc = FslTool("my/fsl:2", ["imcp", "a", "b"], env={"FSLOUTPUTTYPE": "NIFTI_GZ"}, workdir="/w").execute(engine)
    assert rc == 0
    assert engine.runs == [
        dict(image="my/fsl:2", args=["imcp", "a", "b"], volumes={}, env={"FSLOUTPUTTYPE": "NIFTI_GZ"}, workdir="/w")
    ]
