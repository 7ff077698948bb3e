"""
paging.py — deciding whether output needs a pager, and feeding one

should_page() measures a block of output against the terminal: newlines
and wrapped long lines take a row each, escape sequences take no room at
all. open_pager() starts $PAGER (or less -R, falling back to more) reading
from a pipe, and relay() copies a sub-tool's output into it.
"""

from __future__ import annotations

import logging
import os
import shlex
from dataclasses import dataclass
from enum import Enum
from typing import IO, List, Optional

from .config import BLOCK_SIZE
from .errors import InvalidPager, RelayError, SpawnError
from .pipeline import ChildProcess, StreamRole, drain, one_open, read_block

logger = logging.getLogger(__name__)

# rows kept free for the shell prompt and the pager's status line
ROW_MARGIN = 2

ESC = 0x1B
BEL = 0x07
NEWLINE = 0x0A
CSI_INTRO = ord("[")
OSC_INTRO = ord("]")
ST_FINAL = ord("\\")


@dataclass(frozen=True)
class TerminalGeometry:
    rows: int
    columns: int

    @classmethod
    def query(cls, stream) -> Optional["TerminalGeometry"]:
        """Size of the terminal behind ``stream``, or None if there isn't one."""
        try:
            if not stream.isatty():
                return None
            size = os.get_terminal_size(stream.fileno())
        except (AttributeError, ValueError, OSError):
            return None
        if size.lines <= 0 or size.columns <= 0:
            return None
        return cls(rows=size.lines, columns=size.columns)


def _skip_escape(data: bytes, i: int) -> int:
    """Index of the last byte of the escape sequence starting at ``data[i]``.

    CSI sequences (ESC [ ...) end at the first byte in 0x40-0x7E; OSC
    sequences (ESC ] ...) end at BEL or ESC \\; other escapes run through any
    intermediate bytes (0x20-0x2F) to one final byte, as in ESC ( B. A
    sequence cut off by the end of the block runs to the end.
    """
    n = len(data)
    if i + 1 >= n:
        return n - 1
    intro = data[i + 1]
    if intro == CSI_INTRO:
        j = i + 2
        while j < n and not 0x40 <= data[j] <= 0x7E:
            j += 1
        return min(j, n - 1)
    if intro == OSC_INTRO:
        j = i + 2
        while j < n:
            if data[j] == BEL:
                return j
            if data[j] == ESC and j + 1 < n and data[j + 1] == ST_FINAL:
                return j + 1
            j += 1
        return n - 1
    j = i + 1
    while j < n and 0x20 <= data[j] <= 0x2F:
        j += 1
    return min(j, n - 1)


def should_page(data: bytes, geometry: TerminalGeometry) -> bool:
    """True if ``data`` would not fit in ``geometry`` minus the row margin."""
    limit = max(geometry.rows - ROW_MARGIN, 0)
    line = col = 0
    i, n = 0, len(data)
    while i < n:
        byte = data[i]
        if byte == NEWLINE:
            line += 1
            col = 0
        elif byte == ESC:
            i = _skip_escape(data, i)
        else:
            col += 1
            if col >= geometry.columns:
                line += 1
                col = 0
        if line > limit:
            return True
        i += 1
    return False


def pager_candidates(configured: Optional[str] = None) -> List[List[str]]:
    """Pager command lines to try, in order; ``configured`` is $PAGER."""
    configured = (configured or "").strip()
    if configured:
        try:
            argv = shlex.split(configured)
        except ValueError as e:
            raise InvalidPager(configured, str(e)) from e
        if os.path.basename(argv[0]) == "less" and "-R" not in argv:
            argv.append("-R")
        return [argv]
    return [["less", "-R"], ["more"]]


def open_pager(configured: Optional[str] = None) -> ChildProcess:
    """Start the first pager that can be executed, reading from a pipe."""
    failure = None
    for argv in pager_candidates(configured):
        try:
            return one_open(argv, StreamRole.STDIN)
        except SpawnError as e:
            logger.debug(f"pager {argv[0]!r} unavailable: {e}")
            failure = e
    raise failure


class RelayOutcome(Enum):
    COMPLETE = "complete"
    CLOSED_EARLY = "closed-early"


def relay(first_block: bytes, source: IO[bytes], sink: IO[bytes],
          block_size: int = BLOCK_SIZE) -> RelayOutcome:
    """Copy ``first_block`` and the rest of ``source`` to ``sink`` in order.

    If the sink goes away (a pager the user quit, a closed terminal pipe),
    forwarding stops and ``source`` is drained so its writer can finish.
    Other write failures raise RelayError; a failing read from ``source``
    propagates unchanged.
    """
    block = first_block
    while block:
        try:
            sink.write(block)
            sink.flush()
        except BrokenPipeError:
            discarded = drain(source, block_size)
            logger.debug(f"output consumer closed early; discarded {discarded} more bytes")
            return RelayOutcome.CLOSED_EARLY
        except OSError as e:
            drain(source, block_size)
            raise RelayError(e) from e
        block = read_block(source, block_size)
    return RelayOutcome.COMPLETE
