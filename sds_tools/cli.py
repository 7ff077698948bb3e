#!/usr/bin/env python3
"""
sds — run an sds-* sub-tool, paging its output when it won't fit

  sds dump [OPTION]... FILE      -> sds-dump
  sds diff FILE1 FILE2           -> sds-diff

The sub-tool's standard output comes back through a pipe. When standard
output is a terminal, the sub-tool is asked for color (-G) and the first
block it writes decides whether everything goes through $PAGER (default
less -R, then more) or straight to the terminal.
"""

from __future__ import annotations

import logging
import sys
from typing import IO, List, Optional, Sequence

from .config import DispatchConfig, configure_logging
from .errors import SDSError
from .paging import RelayOutcome, TerminalGeometry, open_pager, relay, should_page
from .pipeline import drain, fill_block, launch

logger = logging.getLogger(__name__)

SUBCOMMANDS = {
    "diff": "compare the structure of two files",
    "dump": "print the contents of a file",
}

USAGE = "Usage: sds COMMAND ARG...\n"


def usage_text() -> str:
    lines = [USAGE, "Commands:"]
    for name, summary in sorted(SUBCOMMANDS.items()):
        lines.append(f"  {name:<6} {summary}")
    return "\n".join(lines) + "\n"


def exit_status(returncode: int) -> int:
    """Shell-style status for a child's Popen return code."""
    if returncode < 0:
        return 128 - returncode
    return returncode


def run_subcommand(
    command: str,
    args: Sequence[str],
    config: DispatchConfig,
    out: Optional[IO[bytes]] = None,
    geometry: Optional[TerminalGeometry] = None,
) -> int:
    """Run ``sds-COMMAND args`` and forward its output; returns its status.

    ``geometry`` defaults to the size of the terminal behind ``out`` when
    ``config.istty``; without one the output is never paged.
    """
    out = sys.stdout.buffer if out is None else out
    if geometry is None and config.istty:
        geometry = TerminalGeometry.query(out)

    child = launch(command, args, color=config.istty)
    pager = None
    try:
        first = fill_block(child.stream, config.block_size)
        if geometry is not None and should_page(first, geometry):
            logger.debug(f"output of {command!r} exceeds {geometry.rows}x{geometry.columns}; paging")
            pager = open_pager(config.pager)
            outcome = relay(first, child.stream, pager.stream, config.block_size)
        else:
            outcome = relay(first, child.stream, out, config.block_size)
        if outcome is RelayOutcome.CLOSED_EARLY:
            logger.debug("output closed before the sub-tool finished")
    finally:
        if pager is not None:
            pager.wait()
        drain(child.stream, config.block_size)
        status = child.wait()
    return status


def main(argv: Optional[List[str]] = None) -> int:
    argv = sys.argv[1:] if argv is None else list(argv)
    configure_logging()

    if not argv:
        sys.stderr.write(usage_text())
        return -1

    command = argv[0]
    if command not in SUBCOMMANDS:
        sys.stderr.write(f"Invalid command '{command}'\n\n")
        sys.stderr.write(usage_text())
        return -1

    config = DispatchConfig.from_environ()
    try:
        status = run_subcommand(command, argv[1:], config)
    except SDSError as e:
        print(e.render(), file=sys.stderr)
        return e.exit_code
    return exit_status(status)


if __name__ == "__main__":
    sys.exit(main())
