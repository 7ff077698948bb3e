"""
pipeline.py — launching sub-tools with one end of a pipe attached

A child gets exactly one of its standard streams replaced by a pipe,
chosen by StreamRole; the parent keeps the opposite end and the child's
end is closed in the parent once the child has started. Every
ChildProcess is reaped exactly once through ``wait()``.
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass, field
from enum import Enum
from typing import IO, List, Optional, Sequence

from .config import BLOCK_SIZE
from .errors import SpawnError

logger = logging.getLogger(__name__)

TOOL_PREFIX = "sds"
FORCE_COLOR_FLAG = "-G"


class StreamRole(Enum):
    """Which of the child's standard streams is replaced by the pipe."""

    STDIN = "stdin"     # parent writes, child reads (pagers)
    STDOUT = "stdout"   # child writes, parent reads (sub-tools)


@dataclass
class ChildProcess:
    argv: List[str]
    role: StreamRole
    process: subprocess.Popen = field(repr=False)
    returncode: Optional[int] = None

    @property
    def pid(self) -> int:
        return self.process.pid

    @property
    def stream(self) -> IO[bytes]:
        """The parent's end of the pipe."""
        if self.role is StreamRole.STDIN:
            return self.process.stdin
        return self.process.stdout

    @property
    def reaped(self) -> bool:
        return self.returncode is not None

    def close_stream(self) -> None:
        stream = self.stream
        if stream is not None and not stream.closed:
            try:
                stream.close()
            except BrokenPipeError:
                # a pager that already quit cannot take the buffered tail
                pass

    def wait(self) -> int:
        """Close our pipe end and reap the child; later calls reuse the status."""
        if self.reaped:
            return self.returncode
        self.close_stream()
        self.returncode = self.process.wait()
        logger.debug(f"reaped {self.argv[0]!r} (pid {self.pid}) with status {self.returncode}")
        return self.returncode


def one_open(argv: Sequence[str], role: StreamRole, executable: Optional[str] = None) -> ChildProcess:
    """Spawn ``argv`` with its stdin or stdout (per ``role``) on a new pipe.

    ``executable`` is looked up on PATH when given; ``argv[0]`` is then only
    the name the child sees. Spawn failures raise SpawnError.
    """
    pipe_in = subprocess.PIPE if role is StreamRole.STDIN else None
    pipe_out = subprocess.PIPE if role is StreamRole.STDOUT else None
    program = executable or argv[0]
    try:
        process = subprocess.Popen(
            list(argv),
            executable=executable,
            stdin=pipe_in,
            stdout=pipe_out,
        )
    except OSError as e:
        raise SpawnError(program, e) from e
    logger.debug(f"spawned {program!r} as {list(argv)} (pid {process.pid}, {role.value} piped)")
    return ChildProcess(list(argv), role, process)


def subtool_argv(command: str, args: Sequence[str], color: bool = False) -> List[str]:
    """argv for sub-tool ``command``: ``["sds COMMAND", ("-G",) *args]``."""
    argv = [f"{TOOL_PREFIX} {command}"]
    if color:
        argv.append(FORCE_COLOR_FLAG)
    argv.extend(args)
    return argv


def subtool_executable(command: str) -> str:
    return f"{TOOL_PREFIX}-{command}"


def launch(command: str, args: Sequence[str], color: bool = False) -> ChildProcess:
    """Run ``sds-COMMAND`` with its standard output captured by the parent."""
    return one_open(
        subtool_argv(command, args, color),
        StreamRole.STDOUT,
        executable=subtool_executable(command),
    )


def read_block(stream: IO[bytes], block_size: int = BLOCK_SIZE) -> bytes:
    """One read from ``stream``; ``b""`` only at EOF."""
    read1 = getattr(stream, "read1", None)
    if read1 is not None:
        return read1(block_size)
    return stream.read(block_size)


def fill_block(stream: IO[bytes], block_size: int = BLOCK_SIZE) -> bytes:
    """Read until ``block_size`` bytes are in hand or ``stream`` hits EOF.

    Unlike read_block() this does not stop at the writer's first small
    write, so the result is a fair sample of what follows.
    """
    chunks = []
    remaining = block_size
    while remaining > 0:
        chunk = read_block(stream, remaining)
        if not chunk:
            break
        chunks.append(chunk)
        remaining -= len(chunk)
    return b"".join(chunks)


def drain(stream: IO[bytes], block_size: int = BLOCK_SIZE) -> int:
    """Read ``stream`` to EOF, discarding the data. Returns the byte count."""
    total = 0
    while True:
        block = read_block(stream, block_size)
        if not block:
            return total
        total += len(block)
