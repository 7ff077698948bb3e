# sds_tools/config.py
"""
Configuration for the sds tools.

Options are built once from argv and the environment and passed explicitly
to each component; nothing here is mutated after construction.
"""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional

BLOCK_SIZE = 4096
LOG_LEVEL_ENV = "SDS_LOG_LEVEL"


class DimStyle(Enum):
    """How variable dimensions are displayed."""

    BRACKET = "c"    # [outer=..][inner=..], storage order
    PAREN = "f"      # (inner=..,outer=..), Fortran order


class OutputType(Enum):
    FULL_SUMMARY = "summary"
    LIST_DIMS = "list-dims"
    LIST_VARS = "list-vars"
    LIST_ATTS = "list-atts"
    LIST_DIM_SIZES = "dim-sizes"
    PRINT_ATTS = "print-atts"
    PRINT_VAR = "print-var"


@dataclass(frozen=True)
class DumpOptions:
    """Everything ``sds-dump`` needs to know about one invocation."""

    infile: str
    color: bool = False
    single_column: bool = False
    dim_style: DimStyle = DimStyle.PAREN
    out_type: OutputType = OutputType.FULL_SUMMARY
    name: Optional[str] = None
    att: Optional[str] = None

    @property
    def separator(self) -> str:
        if self.single_column:
            return "\n"
        if self.out_type is OutputType.FULL_SUMMARY:
            return ", "
        return " "


@dataclass(frozen=True)
class DispatchConfig:
    """Settings of the ``sds`` dispatcher."""

    istty: bool
    pager: Optional[str] = None
    block_size: int = BLOCK_SIZE

    @classmethod
    def from_environ(cls, environ: Optional[Mapping[str, str]] = None, stream=None) -> "DispatchConfig":
        environ = os.environ if environ is None else environ
        stream = sys.stdout if stream is None else stream
        try:
            istty = stream.isatty()
        except (AttributeError, ValueError):
            istty = False
        return cls(istty=istty, pager=environ.get("PAGER") or None)


def color_default(stream=None, environ: Optional[Mapping[str, str]] = None) -> bool:
    """Color by default when writing to a terminal, unless NO_COLOR is set."""
    environ = os.environ if environ is None else environ
    stream = sys.stdout if stream is None else stream
    if "NO_COLOR" in environ:
        return False
    try:
        return stream.isatty()
    except (AttributeError, ValueError):
        return False


def configure_logging(environ: Optional[Mapping[str, str]] = None) -> None:
    environ = os.environ if environ is None else environ
    level_name = environ.get(LOG_LEVEL_ENV, "WARNING").upper()
    level = getattr(logging, level_name, None)
    if not isinstance(level, int):
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        stream=sys.stderr,
        format="%(name)s: %(levelname)s: %(message)s",
    )
