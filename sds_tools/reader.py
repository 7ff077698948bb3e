"""
reader.py — uniform read-only view of scientific data set files

Supported formats:
  • NetCDF classic / 64-bit offset (via scipy.io.netcdf_file)
  • HDF5, including NetCDF-4 files (via h5py); dimension scales become
    dimensions, unlabeled axes become phony_dim_N

Dimensions, variables and attributes are exposed as ordered lists. Values
are read as numpy arrays, optionally restricted by a RangeSpec.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple

import h5py
import numpy as np
from scipy.io import netcdf_file

from .errors import FileOpenError, NoSuchAttribute, NoSuchVariable
from .ranges import RangeSpec

logger = logging.getLogger(__name__)

NETCDF_MAGIC = (b"CDF\x01", b"CDF\x02")

# bookkeeping attributes written by the HDF5 dimension-scale API and netCDF-4
_HIDDEN_ATTS = {
    "CLASS",
    "NAME",
    "REFERENCE_LIST",
    "DIMENSION_LIST",
    "_Netcdf4Dimid",
    "_Netcdf4Coordinates",
    "_NCProperties",
    "_nc3_strict",
}
_PURE_DIMENSION = "This is a netCDF dimension but not a netCDF variable"

_TYPE_NAMES = {
    "i1": "byte",
    "u1": "ubyte",
    "i2": "short",
    "u2": "ushort",
    "i4": "int",
    "u4": "uint",
    "i8": "int64",
    "u8": "uint64",
    "f4": "float",
    "f8": "double",
}


def type_name(dtype) -> str:
    dtype = np.dtype(dtype)
    if dtype.kind == "S" and dtype.itemsize == 1:
        return "char"
    if dtype.kind in "SUO":
        return "string"
    return _TYPE_NAMES.get(f"{dtype.kind}{dtype.itemsize}", dtype.name)


@dataclass
class Dimension:
    name: str
    size: int
    is_unlimited: bool = False


@dataclass
class Attribute:
    name: str
    type: str
    value: Any  # str for string attributes, 1-D ndarray otherwise

    @property
    def is_string(self) -> bool:
        return self.type == "string"

    @property
    def count(self) -> int:
        return len(self.value)


@dataclass
class Variable:
    name: str
    type: str
    dims: List[Dimension]
    atts: List[Attribute] = field(default_factory=list)
    is_coord: bool = False
    source: Any = field(default=None, repr=False, compare=False)

    @property
    def ndims(self) -> int:
        return len(self.dims)

    @property
    def sizes(self) -> Tuple[int, ...]:
        return tuple(d.size for d in self.dims)


def _decode(value) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


def make_attribute(name: str, value) -> Attribute:
    if isinstance(value, (bytes, str)):
        return Attribute(name, "string", _decode(value))
    arr = np.asarray(value)
    if arr.dtype.kind in "SUO":
        # netCDF classic char attributes arrive as bytes, HDF5 ones as str
        return Attribute(name, "string", ", ".join(_decode(v) for v in arr.ravel()))
    return Attribute(name, type_name(arr.dtype), np.atleast_1d(arr).ravel())


class SDSFile:
    """An open data file. Use as a context manager or call ``close()``."""

    def __init__(
        self,
        path: str,
        format_name: str,
        gatts: List[Attribute],
        dims: List[Dimension],
        variables: List[Variable],
        handle=None,
    ):
        self.path = path
        self.format_name = format_name
        self.gatts = gatts
        self.dims = dims
        self.vars = variables
        self._handle = handle

    def __enter__(self) -> "SDSFile":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def close(self) -> None:
        if self._handle is not None:
            self._handle.close()
            self._handle = None

    def variable(self, name: str) -> Variable:
        for var in self.vars:
            if var.name == name:
                return var
        raise NoSuchVariable(self.path, name)

    def attribute(self, name: str, var: Optional[Variable] = None) -> Attribute:
        atts = var.atts if var is not None else self.gatts
        for att in atts:
            if att.name == name:
                return att
        raise NoSuchAttribute(self.path, name, var.name if var is not None else None)

    def read(self, var: Variable, spec: Optional[RangeSpec] = None) -> np.ndarray:
        """All values of ``var``, or the slice ``spec`` selects."""
        if spec is None or var.ndims == 0:
            return np.asarray(var.source[()])
        return np.asarray(var.source[spec.to_slices(var.sizes)])

    def timesteps(self, var: Variable, spec: Optional[RangeSpec] = None) -> Iterator[np.ndarray]:
        """Yield one outermost-dimension step of ``var`` at a time."""
        if spec is None:
            spec = RangeSpec.full_extent(var.sizes)
        outer, *inner = spec.to_slices(var.sizes)
        for t in range(outer.start, outer.stop):
            yield np.asarray(var.source[(t, *inner)])


# ------------ NetCDF classic ------------

def _load_netcdf(path: str, nc) -> SDSFile:
    dims: Dict[str, Dimension] = {}
    for name, size in nc.dimensions.items():
        name = _decode(name)
        if size is None:
            # record dimension: its length is the record count of any user
            size = max(
                (v.shape[0] for v in nc.variables.values()
                 if v.dimensions and _decode(v.dimensions[0]) == name),
                default=0,
            )
            dims[name] = Dimension(name, int(size), is_unlimited=True)
        else:
            dims[name] = Dimension(name, int(size))

    variables = []
    for name, v in nc.variables.items():
        name = _decode(name)
        vdims = [dims[_decode(d)] for d in v.dimensions]
        atts = [make_attribute(_decode(k), val) for k, val in v._attributes.items()]
        is_coord = len(vdims) == 1 and vdims[0].name == name
        variables.append(Variable(name, type_name(v.data.dtype), vdims, atts, is_coord, source=v))

    gatts = [make_attribute(_decode(k), val) for k, val in nc._attributes.items()]
    version = "64-bit offset " if nc.version_byte == 2 else ""
    return SDSFile(path, f"NetCDF {version}classic", gatts, list(dims.values()), variables, handle=nc)


# ------------ HDF5 / NetCDF-4 ------------

def _iter_datasets_recursive(g, prefix=""):
    for k, v in g.items():
        p = f"{prefix}/{k}" if prefix else k
        if isinstance(v, h5py.Dataset):
            yield p, v
        elif isinstance(v, h5py.Group):
            yield from _iter_datasets_recursive(v, p)


def _h5_attributes(attrs) -> List[Attribute]:
    return [make_attribute(k, attrs[k]) for k in attrs.keys() if k not in _HIDDEN_ATTS]


def _is_pure_dimension(ds) -> bool:
    return _decode(ds.attrs.get("NAME", b"")).startswith(_PURE_DIMENSION)


def _load_hdf5(path: str, f) -> SDSFile:
    datasets = list(_iter_datasets_recursive(f))
    dims: Dict[str, Dimension] = {}
    for name, ds in datasets:
        if ds.is_scale and ds.ndim == 1:
            dims[name] = Dimension(name, int(ds.shape[0]), ds.maxshape[0] is None)

    phony: Dict[int, Dimension] = {}

    def axis_dimension(name: str, ds, i: int) -> Dimension:
        if ds.is_scale and name in dims:
            return dims[name]
        axis = ds.dims[i]
        if len(axis) > 0:
            scale_name = axis[0].name.lstrip("/")
            if scale_name in dims:
                return dims[scale_name]
        size = int(ds.shape[i])
        if axis.label:
            return dims.setdefault(axis.label, Dimension(axis.label, size, ds.maxshape[i] is None))
        if size not in phony:
            phony[size] = Dimension(f"phony_dim_{len(phony)}", size)
            dims[phony[size].name] = phony[size]
        return phony[size]

    variables = []
    for name, ds in datasets:
        if ds.is_scale and _is_pure_dimension(ds):
            continue
        vdims = [axis_dimension(name, ds, i) for i in range(ds.ndim)]
        variables.append(Variable(name, type_name(ds.dtype), vdims, _h5_attributes(ds.attrs),
                                  is_coord=bool(ds.is_scale), source=ds))

    netcdf4 = "_NCProperties" in f.attrs or any("_Netcdf4Dimid" in ds.attrs for _, ds in datasets)
    return SDSFile(path, "NetCDF-4" if netcdf4 else "HDF5", _h5_attributes(f.attrs),
                   list(dims.values()), variables, handle=f)


def open_sds(path: str) -> SDSFile:
    """Open ``path`` with whichever backend recognises it."""
    if not os.path.isfile(path):
        raise FileOpenError(path, "no such file")
    try:
        with open(path, "rb") as fh:
            magic = fh.read(4)
        if magic in NETCDF_MAGIC:
            logger.debug(f"{path}: opening as NetCDF classic")
            handle, load = netcdf_file(path, "r", mmap=False), _load_netcdf
        elif h5py.is_hdf5(path):
            logger.debug(f"{path}: opening as HDF5")
            handle, load = h5py.File(path, "r"), _load_hdf5
        else:
            raise FileOpenError(path, "unrecognised format")
    except (OSError, ValueError, TypeError) as e:
        raise FileOpenError(path, str(e)) from e

    try:
        return load(path, handle)
    except (OSError, ValueError, TypeError, KeyError) as e:
        handle.close()
        raise FileOpenError(path, str(e)) from e
