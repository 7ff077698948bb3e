#!/usr/bin/env python3
"""
sds-dump — print human- and script-readable parts of SDS files

Without options a colorful summary of the whole file is printed: global
attributes, dimensions, and every variable with its dimensions and
attributes. The other modes list names, dimension sizes, attribute values
or a variable's values, optionally restricted to a range:

  sds-dump -v temp FILE            every value of temp
  sds-dump -v 'temp[0:2][:]' FILE  bracket form, 0-based, outermost first
  sds-dump -v 'temp(:,1:3)' FILE   paren form, 1-based, innermost first
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import IO, Iterable, List, Optional

import numpy as np

from .colors import VALUE_COLOR, Palette, escape
from .config import DimStyle, DumpOptions, OutputType, color_default, configure_logging
from .errors import SDSError, UsageError
from .ranges import parse_variable_selector, resolve_ranges
from .reader import Attribute, Dimension, SDSFile, Variable, open_sds

logger = logging.getLogger(__name__)

RANGE_HELP = """\
Where RANGE is an expression in one of two forms. A Fortran-style range uses
parentheses and looks like '(1:3,:6,:)'; an equivalent C-style range uses
square brackets and looks like '[0:2][:5][:]'."""


# ------------ command line ------------

class _Parser(argparse.ArgumentParser):
    def error(self, message):
        raise UsageError(f"{self.prog}: {message}\n{self.format_usage().rstrip()}")


class _Select(argparse.Action):
    """Switch the output mode; the last mode given wins."""

    def __init__(self, option_strings, dest, out_type=None, **kwargs):
        self.out_type = out_type
        super().__init__(option_strings, dest, **kwargs)

    def __call__(self, parser, namespace, values, option_string=None):
        namespace.out_type = self.out_type
        namespace.name = values or None


def build_parser() -> argparse.ArgumentParser:
    p = _Parser(
        prog="sds-dump",
        description="Dumps part or all of INFILE, producing a colorful summary "
                    "of its contents by default.",
        epilog=RANGE_HELP,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        add_help=False,
    )
    p.add_argument("infile", nargs="?", metavar="INFILE")
    p.add_argument("-1", dest="single_column", action="store_true",
                   help="output values in a single column")
    p.add_argument("-a", action=_Select, out_type=OutputType.PRINT_ATTS, nargs="?", const="",
                   metavar="VAR@ATT",
                   help="print attribute values, of VAR instead of the global ones "
                        "and just ATT if given")
    p.add_argument("-c", dest="dim_style", action="store_const", const=DimStyle.BRACKET,
                   help="print variable dimensions in C order and format")
    p.add_argument("-d", action=_Select, out_type=OutputType.LIST_DIM_SIZES, nargs="?", const="",
                   metavar="VAR", help="print dimension sizes for the file or VAR")
    p.add_argument("-f", dest="dim_style", action="store_const", const=DimStyle.PAREN,
                   help="print variable dimensions in Fortran order and format (default)")
    p.add_argument("-g", dest="color", action="store_const", const=False,
                   help="never color the output")
    p.add_argument("-G", dest="color", action="store_const", const=True,
                   help="always color the output")
    p.add_argument("-h", action="help", help="print this help and exit")
    p.add_argument("-la", action=_Select, out_type=OutputType.LIST_ATTS, nargs="?", const="",
                   metavar="VAR", help="list the attributes in the file or of VAR")
    p.add_argument("-ld", action=_Select, out_type=OutputType.LIST_DIMS, nargs="?", const="",
                   metavar="VAR", help="list the dimensions in the file or of VAR")
    p.add_argument("-lv", action=_Select, out_type=OutputType.LIST_VARS, nargs=0,
                   help="list the variables in the file")
    p.add_argument("-v", action=_Select, out_type=OutputType.PRINT_VAR,
                   metavar="VAR[RANGE]", help="print VAR's values, or the subset RANGE selects")
    p.set_defaults(out_type=OutputType.FULL_SUMMARY, name=None, dim_style=DimStyle.PAREN, color=None)
    return p


def parse_args(argv: Optional[List[str]] = None) -> DumpOptions:
    parser = build_parser()
    ns = parser.parse_args(argv)

    infile, name = ns.infile, ns.name
    # an optional VAR argument naming an existing file was really INFILE
    if name is not None and ns.out_type is not OutputType.PRINT_VAR and os.path.isfile(name):
        if infile is not None:
            parser.error("only one input file is allowed")
        infile, name = name, None
    if infile is None:
        parser.error("you need to specify an input file")

    att = None
    if ns.out_type is OutputType.PRINT_ATTS and name and "@" in name:
        name, att = name.split("@", 1)
        name = name or None
        att = att or None

    return DumpOptions(
        infile=infile,
        color=color_default() if ns.color is None else ns.color,
        single_column=ns.single_column,
        dim_style=ns.dim_style,
        out_type=ns.out_type,
        name=name,
        att=att,
    )


# ------------ formatting ------------

def format_value(value) -> str:
    if isinstance(value, (bytes, np.bytes_)):
        return value.decode("utf-8", errors="replace")
    if isinstance(value, (float, np.floating)):
        return f"{value:g}"
    if isinstance(value, (int, np.integer)):
        return str(int(value))
    return str(value)


def char_rows(values: np.ndarray) -> List[str]:
    """Collapse the last axis of a char array into strings."""
    arr = np.asarray(values)
    if arr.ndim == 0:
        return [format_value(arr[()]).rstrip("\x00")]
    rows = arr.reshape(int(np.prod(arr.shape[:-1])), arr.shape[-1])
    return [row.tobytes().decode("utf-8", errors="replace").rstrip("\x00") for row in rows]


class Dumper:
    """Writes the requested view of ``sds`` to ``out``."""

    def __init__(self, sds: SDSFile, opts: DumpOptions, out: IO[str]):
        self.sds = sds
        self.opts = opts
        self.out = out
        self.pal = Palette(opts.color)
        self.sep = opts.separator

    def write(self, text: str) -> None:
        self.out.write(text)

    def end_list(self) -> None:
        if not self.opts.single_column:
            self.write("\n")

    def string_value(self, s: str) -> str:
        escaped = s.replace('"', '\\"')
        if self.pal.enabled:
            # re-color after each newline so pagers keep the value color
            escaped = escaped.replace("\n", "\n" + escape(VALUE_COLOR))
        return self.pal.quote('"') + self.pal.value(escaped) + self.pal.quote('"')

    def values(self, var_type: str, values: np.ndarray) -> str:
        if var_type == "char":
            return self.sep.join(self.string_value(s) for s in char_rows(values))
        flat = np.asarray(values).ravel()
        if var_type == "string":
            return self.sep.join(self.string_value(format_value(v)) for v in flat)
        return self.sep.join(self.pal.value(format_value(v)) for v in flat)

    def att_values(self, att: Attribute) -> str:
        if att.is_string:
            return self.string_value(att.value)
        return self.values(att.type, att.value)

    def var_dims(self, var: Variable) -> str:
        parts = [f"{self.pal.dim(d.name)}={d.size}" for d in var.dims]
        if self.opts.dim_style is DimStyle.BRACKET:
            return "".join(f"[{p}]" for p in parts)
        return "(" + ",".join(reversed(parts)) + ")"

    def atts(self, atts: Iterable[Attribute]) -> None:
        for att in atts:
            self.write("  " + self.pal.type_name(att.type.ljust(7)) + self.pal.att(att.name))
            if att.is_string:
                n = len(att.value)
                self.write(f"[{n}]" if self.opts.dim_style is DimStyle.BRACKET else f"({n})")
            self.write(" = " + self.att_values(att) + "\n")

    # -- output modes --

    def full_summary(self) -> None:
        sds, pal = self.sds, self.pal
        self.write(f"{pal.bold(sds.path)}: {sds.format_name} format\n  ")
        self.write(pal.att(f"{len(sds.gatts)} global attributes") + ", ")
        self.write(pal.dim(f"{len(sds.dims)} dimensions") + ", ")
        self.write(pal.var(f"{len(sds.vars)} variables") + "\n")

        if sds.gatts:
            self.write("\nGlobal attributes:\n")
            self.atts(sds.gatts)
            self.write("\n")
        else:
            self.write("\n - no global attributes -\n\n")

        self.write("Dimensions:\n")
        for dim in sds.dims:
            unlimited = " (unlimited)" if dim.is_unlimited else ""
            self.write(f"  {pal.dim(dim.name)} = {pal.value(str(dim.size))}{unlimited}\n")

        self.write("\nVariables:\n")
        for var in sds.vars:
            coord = " (coordinate)" if var.is_coord else ""
            self.write(f"\n{pal.type_name(var.type)} {pal.var(var.name)}{self.var_dims(var)}{coord}\n")
            self.atts(var.atts)
        self.write("\n")

    def _names(self, names: Iterable[str], color) -> None:
        for name in names:
            self.write(color(name) + self.sep)
        self.end_list()

    def list_atts(self) -> None:
        atts = self.sds.variable(self.opts.name).atts if self.opts.name else self.sds.gatts
        self._names((a.name for a in atts), self.pal.att)

    def list_dims(self) -> None:
        dims: List[Dimension] = self.sds.variable(self.opts.name).dims if self.opts.name else self.sds.dims
        self._names((d.name for d in dims), self.pal.dim)

    def list_vars(self) -> None:
        self._names((v.name for v in self.sds.vars), self.pal.var)

    def dim_sizes(self) -> None:
        dims = self.sds.variable(self.opts.name).dims if self.opts.name else self.sds.dims
        self._names((str(d.size) for d in dims), self.pal.value)

    def print_atts(self) -> None:
        var = self.sds.variable(self.opts.name) if self.opts.name else None
        if self.opts.att:
            self.write(self.att_values(self.sds.attribute(self.opts.att, var)))
        else:
            for att in (var.atts if var is not None else self.sds.gatts):
                self.write(self.att_values(att) + self.sep)
        self.write("\n")

    def print_var(self) -> None:
        name, spec = parse_variable_selector(self.opts.name)
        var = self.sds.variable(name)
        spec = resolve_ranges(var.name, spec, var.sizes)
        logger.debug(f"printing {var.name} over {list(spec)}")

        # char variables keep their last axis together as strings
        per_step = var.ndims > 2 if var.type == "char" else var.ndims > 1
        if per_step:
            for step in self.sds.timesteps(var, spec):
                self.write(self.values(var.type, step) + self.sep)
        else:
            self.write(self.values(var.type, self.sds.read(var, spec)))
        self.end_list()

    def run(self) -> None:
        {
            OutputType.FULL_SUMMARY: self.full_summary,
            OutputType.LIST_ATTS: self.list_atts,
            OutputType.LIST_DIMS: self.list_dims,
            OutputType.LIST_VARS: self.list_vars,
            OutputType.LIST_DIM_SIZES: self.dim_sizes,
            OutputType.PRINT_ATTS: self.print_atts,
            OutputType.PRINT_VAR: self.print_var,
        }[self.opts.out_type]()


def dump(opts: DumpOptions, out: Optional[IO[str]] = None) -> None:
    out = sys.stdout if out is None else out
    with open_sds(opts.infile) as sds:
        Dumper(sds, opts, out).run()


def main(argv: Optional[List[str]] = None) -> int:
    configure_logging()
    try:
        opts = parse_args(argv)
        dump(opts)
        sys.stdout.flush()
    except SDSError as e:
        sys.stdout.flush()
        print(e.render(), file=sys.stderr)
        return e.exit_code
    except BrokenPipeError:
        # reader went away; point stdout at devnull so the exit flush is quiet
        devnull = os.open(os.devnull, os.O_WRONLY)
        os.dup2(devnull, sys.stdout.fileno())
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
