"""
SDS Tools: inspect scientific data set files from the terminal.

Command line:

  sds dump [OPTION]... FILE     summary, listings, attribute and variable values
  sds diff FILE1 FILE2          structural differences between two files

Programmatic use:

>>> from sds_tools import open_sds, parse_variable_selector, resolve_ranges
>>> name, spec = parse_variable_selector("temp(1:3,:)")
>>> with open_sds("ocean.nc") as sds:
...     var = sds.variable(name)
...     values = sds.read(var, resolve_ranges(var.name, spec, var.sizes))
"""

__version__ = "0.3.0"

from .errors import (
    FileOpenError,
    InvalidPager,
    NoSuchAttribute,
    NoSuchVariable,
    RangeSyntaxError,
    RangeValidationError,
    RelayError,
    SDSError,
    SpawnError,
    UsageError,
)
from .ranges import (
    Bounds,
    RangeForm,
    RangeSpec,
    parse_range,
    parse_variable_selector,
    resolve_ranges,
    split_name_and_range,
    validate_ranges,
)
from .reader import Attribute, Dimension, SDSFile, Variable, open_sds
from .paging import TerminalGeometry, open_pager, should_page
from .pipeline import ChildProcess, StreamRole, launch, one_open

__all__ = [
    "Attribute",
    "Bounds",
    "ChildProcess",
    "Dimension",
    "FileOpenError",
    "InvalidPager",
    "NoSuchAttribute",
    "NoSuchVariable",
    "RangeForm",
    "RangeSpec",
    "RangeSyntaxError",
    "RangeValidationError",
    "RelayError",
    "SDSError",
    "SDSFile",
    "SpawnError",
    "StreamRole",
    "TerminalGeometry",
    "UsageError",
    "Variable",
    "launch",
    "one_open",
    "open_pager",
    "open_sds",
    "parse_range",
    "parse_variable_selector",
    "resolve_ranges",
    "should_page",
    "split_name_and_range",
    "validate_ranges",
]
