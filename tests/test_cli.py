from click.testing import CliRunner

from dcreg.cli import main as cli_main
from dcreg.cli.t2w_to_t1w import cli as t2w_cli
from dcreg.utils import fsl
from dcreg.utils.paths import image_exists

from .utils import build_args, fake_run_factory


def _invoke(*args):
    return CliRunner().invoke(cli_main, list(args))


def test_no_arguments_prints_usage():
    result = _invoke("t2w-to-t1w")
    assert result.exit_code == 0, result.output
    assert "Usage:" in result.output
    assert "--t1brain=" in result.output


def test_too_few_arguments():
    result = _invoke("t2w-to-t1w", "--t1=a", "--t1brain=b")
    assert result.exit_code == 1
    assert "Usage:" in result.output


def test_full_run(inputs, calls, tmp_path):
    result = _invoke("t2w-to-t1w", *build_args(inputs, tmp_path / "wd", tmp_path / "out"))
    assert result.exit_code == 0, result.output
    assert " START: T2wToT1wDistortionCorrectionAndReg" in result.output
    assert " END: T2wToT1wDistortionCorrectionAndReg" in result.output
    assert image_exists(tmp_path / "out" / "T2w_acpc_dc")
    assert (tmp_path / "wd" / "qa.txt").is_file()


def test_tool_failure_exit_status(inputs, monkeypatch, tmp_path):
    recorded = []
    monkeypatch.setattr(
        fsl, "run_cmd", fake_run_factory(recorded, fail_on="FieldMapPreprocessingAll.sh", returncode=3)
    )
    result = _invoke("t2w-to-t1w", *build_args(inputs, tmp_path / "wd", tmp_path / "out"))
    assert result.exit_code == 3
    assert "fieldmap preprocessing" in result.output
    assert len(recorded) == 1


def test_missing_input_exit_status(inputs, calls, tmp_path):
    inputs["t2brain"].unlink()
    result = _invoke("t2w-to-t1w", *build_args(inputs, tmp_path / "wd", tmp_path / "out"))
    assert result.exit_code == 1
    assert "--t2brain" in result.output
    assert calls == []


def test_invalid_option_exit_status(inputs, calls, tmp_path):
    args = build_args(inputs, tmp_path / "wd", tmp_path / "out")
    args = ["--unwarpdir=w" if a.startswith("--unwarpdir=") else a for a in args]
    result = _invoke("t2w-to-t1w", *args)
    assert result.exit_code == 1
    assert "--unwarpdir" in result.output


def test_global_config_file(inputs, calls, tmp_path):
    cfg = tmp_path / "dcreg.yaml"
    cfg.write_text("viewer: fsleyes\n")
    result = _invoke(
        "--config", str(cfg), "t2w-to-t1w", *build_args(inputs, tmp_path / "wd", tmp_path / "out", t2=False)
    )
    assert result.exit_code == 0, result.output
    assert "fsleyes " in (tmp_path / "wd" / "qa.txt").read_text()


def test_invalid_config_file(tmp_path):
    cfg = tmp_path / "dcreg.yaml"
    cfg.write_text("runner: slurm\n")
    result = _invoke("--config", str(cfg), "t2w-to-t1w")
    assert result.exit_code == 1
    assert "Invalid configuration" in result.output


def test_help_lists_command():
    result = _invoke("--help")
    assert result.exit_code == 0
    assert "t2w-to-t1w" in result.output


def test_standalone_script(inputs, calls, tmp_path):
    runner = CliRunner()
    assert runner.invoke(t2w_cli, []).exit_code == 0
    assert runner.invoke(t2w_cli, ["--t1=a"]).exit_code == 1
    result = runner.invoke(t2w_cli, build_args(inputs, tmp_path / "wd", tmp_path / "out", t2=False))
    assert result.exit_code == 0, result.output
    assert image_exists(tmp_path / "out" / "T1w_acpc_dc")
