"""Exceptions raised by the sds tools.

Every fatal condition is an ``SDSError`` carrying the exit status the
command-line entry points terminate with. Nothing below ``main()`` calls
``sys.exit`` itself.
"""

from __future__ import annotations

from typing import List, Optional


class SDSError(Exception):
    """Base class for user-facing fatal errors."""

    exit_code = -1

    def render(self) -> str:
        return str(self)


class UsageError(SDSError):
    exit_code = -1


class FileOpenError(SDSError):
    exit_code = -2

    def __init__(self, path: str, reason: Optional[str] = None):
        self.path = path
        self.reason = reason
        msg = f"{path}: error opening file"
        if reason:
            msg += f" ({reason})"
        super().__init__(msg)


class NoSuchVariable(SDSError):
    exit_code = -3

    def __init__(self, path: str, name: str):
        self.path = path
        self.name = name
        super().__init__(f"{path}: no variable '{name}' found")


class NoSuchAttribute(SDSError):
    exit_code = -4

    def __init__(self, path: str, name: str, var: Optional[str] = None):
        self.path = path
        self.name = name
        self.var = var
        if var:
            msg = f"{path}: attribute '{name}' not found for variable '{var}'"
        else:
            msg = f"{path}: global attribute '{name}' not found"
        super().__init__(msg)


class RangeSyntaxError(SDSError):
    """A malformed range expression.

    ``expression`` is the full text the user typed and ``position`` the
    0-based offset of the offending character within it.
    """

    exit_code = -1

    def __init__(self, expression: str, position: int, cause: str):
        self.expression = expression
        self.position = position
        self.cause = cause
        super().__init__(f"parse error at column {position + 1} of '{expression}': {cause}")

    def within(self, text: str, offset: int) -> "RangeSyntaxError":
        """Re-anchor this error inside the longer ``text`` it was cut from."""
        return RangeSyntaxError(text, self.position + offset, self.cause)

    def render(self) -> str:
        caret = " " * (self.position + 3) + "^"
        return f"in {self.expression}\n{caret}\nparse error: {self.cause}"


class RangeValidationError(SDSError):
    """One or more range bounds do not fit the variable; all are listed."""

    exit_code = -1

    def __init__(self, problems: List[str]):
        self.problems = list(problems)
        super().__init__("\n".join(self.problems))


class SpawnError(SDSError):
    exit_code = -5

    def __init__(self, program: str, error: OSError):
        self.program = program
        self.error = error
        reason = error.strerror or str(error)
        super().__init__(f"exec()ing '{program}': {reason}")


class InvalidPager(SpawnError):
    """$PAGER could not be split into a command line."""

    def __init__(self, configured: str, reason: str):
        self.configured = self.program = configured
        self.reason = reason
        self.error = None
        SDSError.__init__(self, f"invalid PAGER '{configured}': {reason}")


class RelayError(SDSError):
    exit_code = -6

    def __init__(self, error: OSError):
        self.error = error
        reason = error.strerror or str(error)
        super().__init__(f"writing output from command: {reason}")
