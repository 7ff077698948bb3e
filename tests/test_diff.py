import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import h5py
import numpy as np

from sds_tools import diff as sds_diff
from sds_tools.reader import open_sds


def test_identical_files(h5_path, capsys):
    assert sds_diff.main(["-g", str(h5_path), str(h5_path)]) == 0
    assert capsys.readouterr().out == ""


def test_structural_differences(h5_path, tmp_path):
    other = tmp_path / "other.h5"
    with h5py.File(other, "w") as f:
        f.attrs["title"] = "something else"
        time = f.create_dataset("time", data=np.arange(12, dtype=np.float64))
        time.make_scale("time")
        temp = f.create_dataset("temp", data=np.zeros(12, dtype=np.float32))
        temp.dims[0].attach_scale(time)
        temp.attrs["units"] = "K"
        f.create_dataset("salt", data=np.zeros(3))

    with open_sds(str(h5_path)) as a, open_sds(str(other)) as b:
        lines = sds_diff.diff_files(a, b)

    assert "attribute title: values differ" in lines
    assert "< attribute version" in lines
    assert "< dimension lat" in lines
    assert "dimension time: size 10 != 12" in lines
    assert "> dimension phony_dim_0" in lines
    assert "< variable lat" in lines
    assert "> variable salt" in lines
    assert "variable temp: type double != float" in lines
    assert "variable temp: dimensions [time=10][lat=5] != [time=12]" in lines
    assert "< attribute temp@valid_range" in lines


def test_exit_status_when_different(h5_path, nc_path, capsys):
    assert sds_diff.main(["-g", str(h5_path), str(nc_path)]) == 1
    assert "> dimension strlen" in capsys.readouterr().out


def test_missing_file(h5_path, tmp_path, capsys):
    assert sds_diff.main([str(h5_path), str(tmp_path / "gone.nc")]) == -2
    assert "error opening file" in capsys.readouterr().err
