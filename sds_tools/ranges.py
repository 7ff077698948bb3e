"""
ranges.py — range expressions selecting a slice of a variable

Two surface syntaxes are accepted after a variable name:

  temp[0:2][:][5]     bracket form: 0-based, outermost dimension first
  temp(6,:,1:3)       paren form: 1-based, fastest-varying dimension first

Each per-dimension range is START, ':', START:, :END or START:END; a bare
START selects a single index. Both forms normalise to the same RangeSpec:
0-based, outermost-first, with -1 standing for an unspecified side and END
inclusive.

The paren form's reversal assumes files store dimensions row-major (C order)
while the paren display lists them Fortran-style, which holds for the
NetCDF/HDF5 family read by sds_tools.reader.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List, NamedTuple, Optional, Sequence, Tuple

from .errors import RangeSyntaxError, RangeValidationError

logger = logging.getLogger(__name__)

MAX_DIMS = 32
UNSPECIFIED = -1

_DIGITS = re.compile(r"[0-9]+")
_BLANKS = " \t"


class Bounds(NamedTuple):
    start: int
    end: int


class RangeForm(Enum):
    BRACKET = "["
    PAREN = "("


@dataclass(frozen=True)
class RangeSpec:
    """Per-dimension bounds in canonical (0-based, outermost-first) order."""

    bounds: Tuple[Bounds, ...] = ()

    def __len__(self) -> int:
        return len(self.bounds)

    def __iter__(self) -> Iterator[Bounds]:
        return iter(self.bounds)

    def __getitem__(self, i: int) -> Bounds:
        return self.bounds[i]

    @classmethod
    def full_extent(cls, sizes: Sequence[int]) -> "RangeSpec":
        return cls(tuple(Bounds(0, int(size)) for size in sizes))

    def to_slices(self, sizes: Sequence[int]) -> Tuple[slice, ...]:
        """Translate the bounds into slices over an array of shape ``sizes``.

        Ends are inclusive; both sides are clipped to the dimension so the
        full-extent spec (whose end equals the size) covers the whole axis.
        """
        slices = []
        for (start, end), size in zip(self.bounds, sizes):
            lo = 0 if start == UNSPECIFIED else min(start, size)
            hi = size if end == UNSPECIFIED else min(end + 1, size)
            slices.append(slice(lo, max(lo, hi)))
        return tuple(slices)


def split_name_and_range(text: str) -> Tuple[str, Optional[str]]:
    """Split ``name[range]`` / ``name(range)`` into the name and the suffix.

    The suffix keeps its delimiters. Returns ``(text, None)`` when there is
    no suffix. Trailing blanks of the name are dropped.
    """
    opener = None
    if text.endswith(")"):
        opener = "("
    elif text.endswith("]"):
        opener = "["

    name, range_text = text, None
    if opener:
        i = text.find(opener)
        if i >= 0:
            name, range_text = text[:i], text[i:]
    return name.rstrip(_BLANKS), range_text


class _RangeParser:
    def __init__(self, text: str):
        self.text = text
        self.pos = 0
        self.bounds: List[Bounds] = []

    def peek(self) -> str:
        return self.text[self.pos] if self.pos < len(self.text) else ""

    def skip_ws(self) -> None:
        while self.pos < len(self.text) and self.text[self.pos] in _BLANKS:
            self.pos += 1

    def fail(self, cause: str):
        raise RangeSyntaxError(self.text, self.pos, cause)

    def number(self, one_based: bool) -> int:
        m = _DIGITS.match(self.text, self.pos)
        if not m:
            return UNSPECIFIED
        value = int(m.group())
        if one_based and value == 0:
            self.fail("cannot start indexes with 0")
        self.pos = m.end()
        return value

    def one_range(self, one_based: bool) -> Bounds:
        self.skip_ws()
        start = self.number(one_based)
        self.skip_ws()

        if self.peek() == ":":
            self.pos += 1
            self.skip_ws()
        elif start != UNSPECIFIED:
            return Bounds(start, start)
        else:
            self.fail("expected a number or ':'")

        end = self.number(one_based)
        self.skip_ws()
        if start != UNSPECIFIED and end != UNSPECIFIED and start > end:
            self.fail("start of range must be less than or equal to end")
        return Bounds(start, end)

    def bracket(self) -> RangeSpec:
        self.pos = 1
        while len(self.bounds) < MAX_DIMS:
            self.bounds.append(self.one_range(one_based=False))
            logger.debug(f"got bracket range [{self.bounds[-1].start}:{self.bounds[-1].end}]")
            if self.peek() != "]":
                self.fail("expected ']'")
            self.pos += 1
            self.skip_ws()
            if not self.peek():
                return RangeSpec(tuple(self.bounds))
            if self.peek() != "[":
                self.fail("expected '[' or end of range")
            self.pos += 1
        self.fail("too many dimensions")

    def paren(self) -> RangeSpec:
        self.pos = 1
        while True:
            if len(self.bounds) >= MAX_DIMS:
                self.fail("too many dimensions")
            self.bounds.append(self.one_range(one_based=True))
            logger.debug(f"got paren range ({self.bounds[-1].start}:{self.bounds[-1].end})")
            if self.peek() == ",":
                self.pos += 1
            elif self.peek() == ")":
                self.pos += 1
                self.skip_ws()
                if self.peek():
                    self.fail("unexpected text after ')'")
                break
            else:
                self.fail("expected ',' or ')'")

        # zero was rejected while parsing, so every specified bound is >= 1
        zero_based = [
            Bounds(s - 1 if s > 0 else s, e - 1 if e > 0 else e) for s, e in self.bounds
        ]
        return RangeSpec(tuple(reversed(zero_based)))


def parse_range(range_text: str) -> RangeSpec:
    """Parse a bracket- or paren-form suffix (delimiters included)."""
    parser = _RangeParser(range_text)
    if parser.peek() == RangeForm.BRACKET.value:
        return parser.bracket()
    if parser.peek() == RangeForm.PAREN.value:
        return parser.paren()
    parser.fail("expected '[' or '('")


def parse_variable_selector(text: str) -> Tuple[str, Optional[RangeSpec]]:
    """Parse ``-v`` arguments such as ``temp``, ``temp[0:3][:]`` or ``temp(:,2)``.

    Returns the plain variable name and the RangeSpec, or ``None`` when no
    range was given. Syntax errors point into ``text`` itself.
    """
    name, range_text = split_name_and_range(text)
    if range_text is None:
        return name, None
    offset = len(text) - len(range_text)
    try:
        spec = parse_range(range_text)
    except RangeSyntaxError as exc:
        raise exc.within(text, offset) from None
    return name, spec


def validate_ranges(name: str, spec: RangeSpec, sizes: Sequence[int]) -> None:
    """Check ``spec`` against a variable's dimension sizes.

    Every problem found is collected; a single RangeValidationError listing
    all of them is raised at the end.
    """
    problems = []
    if len(spec) != len(sizes):
        problems.append(
            f"Variable {name} has {len(sizes)} dimensions, but got {len(spec)} in the range"
        )

    for i, ((start, end), size) in enumerate(zip(spec, sizes), start=1):
        if start > size:
            problems.append(
                f"Variable {name} dimension {i} range starts too high ({start} > {size})"
            )
        if end > size:
            problems.append(
                f"Variable {name} dimension {i} range ends past actual end ({end} > {size})"
            )

    if problems:
        raise RangeValidationError(problems)


def resolve_ranges(name: str, spec: Optional[RangeSpec], sizes: Sequence[int]) -> RangeSpec:
    """Validated spec to read with; no spec means the whole variable."""
    if spec is None or len(spec) == 0:
        return RangeSpec.full_extent(sizes)
    validate_ranges(name, spec, sizes)
    return spec
