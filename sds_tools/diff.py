#!/usr/bin/env python3
"""
sds-diff — compare the structure of two SDS files

Reports dimensions, variables and attributes present in only one file
(``<`` first file, ``>`` second file) and those whose size, type,
dimensions or value differ. Variable values are not compared.
Exits 0 when nothing differs and 1 otherwise.
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Dict, List, Optional

import numpy as np

from .colors import Palette
from .config import color_default, configure_logging
from .errors import SDSError, UsageError
from .reader import Attribute, SDSFile, Variable, open_sds

logger = logging.getLogger(__name__)


class _Parser(argparse.ArgumentParser):
    def error(self, message):
        raise UsageError(f"{self.prog}: {message}\n{self.format_usage().rstrip()}")


def _same_value(a: Attribute, b: Attribute) -> bool:
    if a.type != b.type:
        return False
    if a.is_string:
        return a.value == b.value
    return np.array_equal(a.value, b.value)


def _dims_text(var: Variable) -> str:
    return "[" + "][".join(f"{d.name}={d.size}" for d in var.dims) + "]" if var.dims else "[]"


class StructureDiff:
    def __init__(self, pal: Optional[Palette] = None):
        self.pal = pal or Palette(False)
        self.lines: List[str] = []

    def only_in(self, side: str, kind: str, name: str) -> None:
        self.lines.append(f"{side} {kind} {name}")

    def changed(self, kind: str, name: str, what: str, a, b) -> None:
        self.lines.append(f"{kind} {name}: {what} {a} != {b}")

    def attributes(self, owner: str, atts_a: List[Attribute], atts_b: List[Attribute]) -> None:
        by_name_b: Dict[str, Attribute] = {att.name: att for att in atts_b}
        names_a = {att.name for att in atts_a}
        for att in atts_a:
            label = self.pal.att(f"{owner}@{att.name}" if owner else att.name)
            other = by_name_b.get(att.name)
            if other is None:
                self.only_in("<", "attribute", label)
            elif not _same_value(att, other):
                self.lines.append(f"attribute {label}: values differ")
        for att in atts_b:
            if att.name not in names_a:
                self.only_in(">", "attribute", self.pal.att(f"{owner}@{att.name}" if owner else att.name))

    def compare(self, a: SDSFile, b: SDSFile) -> List[str]:
        self.attributes("", a.gatts, b.gatts)

        dims_b = {d.name: d for d in b.dims}
        names_a = {d.name for d in a.dims}
        for dim in a.dims:
            other = dims_b.get(dim.name)
            if other is None:
                self.only_in("<", "dimension", self.pal.dim(dim.name))
            elif other.size != dim.size:
                self.changed("dimension", self.pal.dim(dim.name), "size", dim.size, other.size)
        for dim in b.dims:
            if dim.name not in names_a:
                self.only_in(">", "dimension", self.pal.dim(dim.name))

        vars_b = {v.name: v for v in b.vars}
        names_a = {v.name for v in a.vars}
        for var in a.vars:
            label = self.pal.var(var.name)
            other = vars_b.get(var.name)
            if other is None:
                self.only_in("<", "variable", label)
                continue
            if var.type != other.type:
                self.changed("variable", label, "type", var.type, other.type)
            if _dims_text(var) != _dims_text(other):
                self.changed("variable", label, "dimensions", _dims_text(var), _dims_text(other))
            self.attributes(var.name, var.atts, other.atts)
        for var in b.vars:
            if var.name not in names_a:
                self.only_in(">", "variable", self.pal.var(var.name))
        return self.lines


def diff_files(a: SDSFile, b: SDSFile, pal: Optional[Palette] = None) -> List[str]:
    return StructureDiff(pal).compare(a, b)


def main(argv: Optional[List[str]] = None) -> int:
    configure_logging()
    parser = _Parser(prog="sds-diff", description="Compare the structure of two SDS files.")
    parser.add_argument("file1", metavar="FILE1")
    parser.add_argument("file2", metavar="FILE2")
    parser.add_argument("-g", dest="color", action="store_const", const=False,
                        help="never color the output")
    parser.add_argument("-G", dest="color", action="store_const", const=True,
                        help="always color the output")
    try:
        args = parser.parse_args(argv)
        pal = Palette(color_default() if args.color is None else args.color)
        with open_sds(args.file1) as a, open_sds(args.file2) as b:
            lines = diff_files(a, b, pal)
    except SDSError as e:
        print(e.render(), file=sys.stderr)
        return e.exit_code

    logger.debug(f"{len(lines)} differences between {args.file1} and {args.file2}")
    for line in lines:
        print(line)
    return 1 if lines else 0


if __name__ == "__main__":
    sys.exit(main())
