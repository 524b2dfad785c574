"""Terminal abstraction used as a drawing destination."""

from __future__ import annotations

import abc
import os
import re
import sys
from typing import TextIO

from wcwidth import wcwidth

__all__ = ["measure_text_width", "TermLike", "Terminal"]

DEFAULT_WIDTH = 79

_ANSI_RE = re.compile(
    r"[\x1b\x9b][\[()#;?]*(?:[0-9]{1,4}(?:;[0-9]{0,4})*)?[0-9A-ORZcf-nqry=><]"
)


def _strip_ansi_codes(text: str) -> str:
    return _ANSI_RE.sub("", text)


def measure_text_width(text: str) -> int:
    """Return the number of terminal cells ``text`` occupies, ignoring ANSI codes."""
    return sum(max(wcwidth(char), 0) for char in _strip_ansi_codes(text))


def _check_count(n: int) -> int:
    if n < 0:
        raise ValueError("cursor movement count must not be negative")
    return n


class TermLike(abc.ABC):
    """Anything a progress display can be painted onto."""

    @abc.abstractmethod
    def width(self) -> int:
        """Return the width of the terminal in cells."""

    @abc.abstractmethod
    def move_cursor_up(self, n: int) -> None:
        """Move the cursor up ``n`` lines."""

    @abc.abstractmethod
    def move_cursor_down(self, n: int) -> None:
        """Move the cursor down ``n`` lines."""

    @abc.abstractmethod
    def clear_line(self) -> None:
        """Clear the current line and return the cursor to its start."""

    @abc.abstractmethod
    def write_line(self, line: str) -> None:
        """Write ``line`` followed by a newline."""

    @abc.abstractmethod
    def write_str(self, text: str) -> None:
        """Write ``text`` as is."""

    @abc.abstractmethod
    def flush(self) -> None:
        """Flush pending output."""


class Terminal(TermLike):
    """A terminal backed by a text stream, using ANSI escape sequences."""

    def __init__(self, stream: TextIO) -> None:
        self._stream = stream

    @classmethod
    def stdout(cls) -> "Terminal":
        return cls(sys.stdout)

    @classmethod
    def stderr(cls) -> "Terminal":
        return cls(sys.stderr)

    def is_term(self) -> bool:
        """Return True if the stream is attached to an interactive terminal."""
        isatty = getattr(self._stream, "isatty", None)
        return bool(isatty is not None and isatty())

    def width(self) -> int:
        try:
            columns = os.get_terminal_size(self._stream.fileno()).columns
        except (OSError, ValueError, AttributeError):
            return DEFAULT_WIDTH
        return columns or DEFAULT_WIDTH

    def move_cursor_up(self, n: int) -> None:
        if _check_count(n) > 0:
            self._stream.write(f"\x1b[{n}A")

    def move_cursor_down(self, n: int) -> None:
        if _check_count(n) > 0:
            self._stream.write(f"\x1b[{n}B")

    def clear_line(self) -> None:
        self._stream.write("\r\x1b[2K")

    def write_line(self, line: str) -> None:
        self._stream.write(f"{line}\n")

    def write_str(self, text: str) -> None:
        self._stream.write(text)

    def flush(self) -> None:
        self._stream.flush()