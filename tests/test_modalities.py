from dcreg.pipelines.modalities import select_modalities
from dcreg.pipelines.options import parse_args

from .utils import build_args, make_inputs


def test_t1w_and_t2w(tmp_path):
    inputs = make_inputs(tmp_path)
    opts = parse_args(build_args(inputs, tmp_path / "wd", tmp_path / "out"))
    t1, t2 = select_modalities(opts)
    assert (t1.name, t2.name) == ("T1w", "T2w")
    assert t1.brain_basename == "T1w_brain"
    assert t2.image_basename == "T2w"
    assert t1.sample_spacing == "0.0000074"
    assert t2.sample_spacing == "0.0000021"


def test_t1w_only(tmp_path):
    inputs = make_inputs(tmp_path)
    opts = parse_args(build_args(inputs, tmp_path / "wd", tmp_path / "out", t2=False))
    (only,) = select_modalities(opts)
    assert only.name == "T1w"
