"""ANSI color escapes for terminal output."""

from __future__ import annotations

from dataclasses import dataclass

# 0 black, 1 red, 2 green, 3 yellow, 4 blue, 5 magenta, 6 cyan, 7 white;
# 10 + any of those turns on bold as well.
TYPE_COLOR = 16
ATTNAME_COLOR = 3
VARNAME_COLOR = 2
DIMNAME_COLOR = 5
VALUE_COLOR = 14
QUOTE_COLOR = 4

RESET = "\x1b[0m"
BOLD = "\x1b[1m"


def escape(color: int) -> str:
    if color < 10:
        return f"\x1b[{30 + color}m"
    return f"\x1b[{20 + color};1m"


@dataclass(frozen=True)
class Palette:
    """Wraps text in escapes when ``enabled``, passes it through otherwise."""

    enabled: bool = False

    def color(self, text: str, color: int) -> str:
        if not self.enabled:
            return text
        return f"{escape(color)}{text}{RESET}"

    def bold(self, text: str) -> str:
        if not self.enabled:
            return text
        return f"{BOLD}{text}{RESET}"

    def type_name(self, text: str) -> str:
        return self.color(text, TYPE_COLOR)

    def att(self, text: str) -> str:
        return self.color(text, ATTNAME_COLOR)

    def var(self, text: str) -> str:
        return self.color(text, VARNAME_COLOR)

    def dim(self, text: str) -> str:
        return self.color(text, DIMNAME_COLOR)

    def value(self, text: str) -> str:
        return self.color(text, VALUE_COLOR)

    def quote(self, text: str) -> str:
        return self.color(text, QUOTE_COLOR)
