"""Pytest configuration for dcreg tests."""

import pytest

from dcreg.utils import fsl

from .utils import fake_run_factory, make_inputs


@pytest.fixture(autouse=True)
def _isolated_env(tmp_path_factory, monkeypatch):
    """Keep JSON logs out of the source tree and ignore the host FSL setup."""
    monkeypatch.setenv("DCREG_LOG_DIR", str(tmp_path_factory.mktemp("logs")))
    monkeypatch.delenv("FSLDIR", raising=False)
    monkeypatch.delenv("HCPPIPEDIR_Global", raising=False)


@pytest.fixture
def inputs(tmp_path, monkeypatch):
    """Create the input images and run from *tmp_path*."""
    monkeypatch.chdir(tmp_path)
    return make_inputs(tmp_path)


@pytest.fixture
def calls(monkeypatch):
    """Replace :func:`dcreg.utils.fsl.run_cmd` with a recording fake."""
    recorded: list[list[str]] = []
    monkeypatch.setattr(fsl, "run_cmd", fake_run_factory(recorded))
    return recorded
