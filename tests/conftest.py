import os
import stat
import sys
from pathlib import Path

import h5py
import numpy as np
import pytest
from scipy.io import netcdf_file

TIME = 10
LAT = 5


def make_tool(directory: Path, name: str, body: str) -> Path:
    """Write an executable Python script called ``name`` into ``directory``."""
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / name
    path.write_text(f"#!{sys.executable}\nimport sys\n{body}\n")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@pytest.fixture
def bin_dir(tmp_path, monkeypatch):
    """A directory at the front of PATH for fake sub-tools and pagers."""
    d = tmp_path / "bin"
    d.mkdir()
    monkeypatch.setenv("PATH", f"{d}{os.pathsep}{os.environ.get('PATH', '')}")
    return d


@pytest.fixture
def h5_path(tmp_path) -> Path:
    path = tmp_path / "ocean.h5"
    with h5py.File(path, "w") as f:
        f.attrs["title"] = "ocean test"
        f.attrs["version"] = np.array([1, 2], dtype=np.int32)

        time = f.create_dataset("time", data=np.arange(TIME, dtype=np.float64))
        lat = f.create_dataset("lat", data=np.linspace(-10.0, 10.0, LAT))
        time.make_scale("time")
        lat.make_scale("lat")

        temp = f.create_dataset("temp", data=np.arange(TIME * LAT, dtype=np.float64).reshape(TIME, LAT))
        temp.dims[0].attach_scale(time)
        temp.dims[1].attach_scale(lat)
        temp.attrs["units"] = "K"
        temp.attrs["valid_range"] = np.array([0.0, 100.0])

        f.create_dataset("offset", data=2.5)
    return path


@pytest.fixture
def nc_path(tmp_path) -> Path:
    path = tmp_path / "ocean.nc"
    nc = netcdf_file(str(path), "w")
    try:
        nc.title = "classic test"
        nc.createDimension("time", None)
        nc.createDimension("lat", LAT)
        nc.createDimension("strlen", 4)

        time = nc.createVariable("time", "d", ("time",))
        time[:] = np.arange(TIME, dtype=np.float64)
        lat = nc.createVariable("lat", "d", ("lat",))
        lat[:] = np.linspace(-10.0, 10.0, LAT)

        temp = nc.createVariable("temp", "d", ("time", "lat"))
        temp[:] = np.arange(TIME * LAT, dtype=np.float64).reshape(TIME, LAT)
        temp.units = "K"

        station = nc.createVariable("station", "c", ("lat", "strlen"))
        station[:] = np.array([list(s.ljust(4, "\0")) for s in ("ab", "cd", "ef", "gh", "ij")], dtype="S1")
    finally:
        nc.close()
    return path
