"""Draw targets: where progress output goes and how often it is painted."""

from __future__ import annotations

import contextlib
import math
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from tallybar.terminal import TermLike, Terminal, measure_text_width

__all__ = [
    "MAX_BURST",
    "MultiProgressAlignment",
    "LineAdjust",
    "RateLimiter",
    "DrawState",
    "DrawStateWrapper",
    "Drawable",
    "ProgressDrawTarget",
]

MAX_BURST = 20
_NANOS_PER_MILLI = 1_000_000
_NANOS_PER_SECOND = 1_000_000_000


class MultiProgressAlignment(Enum):
    """Vertical alignment of a multi progress display when bars are removed."""

    TOP = "top"
    BOTTOM = "bottom"


class _AdjustKind(Enum):
    CLEAR = "clear"
    KEEP = "keep"


@dataclass(frozen=True)
class LineAdjust:
    """A change to the number of lines the next draw will clear."""

    kind: _AdjustKind
    count: int

    @classmethod
    def clear(cls, count: int) -> "LineAdjust":
        """Also clear ``count`` more lines on the next draw."""
        return cls(_AdjustKind.CLEAR, count)

    @classmethod
    def keep(cls, count: int) -> "LineAdjust":
        """Leave ``count`` lines in place on the next draw."""
        return cls(_AdjustKind.KEEP, count)

    def apply(self, last_line_count: int) -> int:
        """Return the adjusted line count, never below zero."""
        if self.kind is _AdjustKind.CLEAR:
            return last_line_count + self.count
        return max(last_line_count - self.count, 0)


class RateLimiter:
    """Limits draws to a rate while allowing occasional bursts above it."""

    def __init__(self, rate: int, now: float) -> None:
        if not 1 <= rate <= 255:
            raise ValueError("refresh rate must be between 1 and 255")
        self.interval = 1000 // rate  # milliseconds
        self.capacity = MAX_BURST
        self._prev = now

    def allow(self, now: float) -> bool:
        """Return True if a draw at time ``now`` (seconds) is permitted."""
        if now < self._prev:
            return False
        elapsed_ns = round((now - self._prev) * _NANOS_PER_SECOND)
        if self.capacity == 0 and elapsed_ns < self.interval * _NANOS_PER_MILLI:
            return False
        new = (elapsed_ns // _NANOS_PER_MILLI) // self.interval
        remainder = elapsed_ns % self.interval * _NANOS_PER_MILLI
        self.capacity = min(MAX_BURST, self.capacity + new - 1)
        self._prev = now - remainder / _NANOS_PER_SECOND
        return True


def _rows(line: str, width: int) -> int:
    """Terminal rows a line takes up, counting wrapping; at least one."""
    if not line or width <= 0:
        return 1
    return max(math.ceil(measure_text_width(line) / width), 1)


@dataclass
class DrawState:
    """The drawn state of an element."""

    lines: list[str] = field(default_factory=list)
    orphan_lines_count: int = 0
    move_cursor: bool = False
    alignment: MultiProgressAlignment = MultiProgressAlignment.TOP

    def draw_to_term(self, term: TermLike, last_line_count: int) -> int:
        """Paint the lines onto ``term`` and return the new last line count."""
        if self.lines and self.move_cursor:
            term.move_cursor_up(last_line_count)
        else:
            n = last_line_count
            term.move_cursor_up(max(n - 1, 0))
            for i in range(n):
                term.clear_line()
                if i + 1 != n:
                    term.move_cursor_down(1)
            term.move_cursor_up(max(n - 1, 0))

        shift = 0
        if (
            self.alignment is MultiProgressAlignment.BOTTOM
            and len(self.lines) < last_line_count
        ):
            shift = last_line_count - len(self.lines)
            for _ in range(shift):
                term.write_line("")

        width = term.width()
        real_len = sum(_rows(line, width) for line in self.lines)
        if self.lines:
            *head, tail = self.lines
            for line in head:
                term.write_line(line)
            # The last line gets no newline; pad so later output starts fresh.
            term.write_str(tail)
            term.write_str(" " * max(width - measure_text_width(tail), 0))

        term.flush()
        return real_len - self.orphan_lines_count + shift

    def reset(self) -> None:
        """Forget all lines."""
        self.lines.clear()
        self.orphan_lines_count = 0


class DrawStateWrapper:
    """Context manager around a draw state.

    On exit, leading orphan lines are moved to the owning multi progress.
    """

    def __init__(
        self, state: DrawState, orphan_lines: Optional[list[str]] = None
    ) -> None:
        self.state = state
        self._orphan_lines = orphan_lines

    @classmethod
    def for_term(cls, state: DrawState) -> "DrawStateWrapper":
        return cls(state)

    @classmethod
    def for_multi(
        cls, state: DrawState, orphan_lines: list[str]
    ) -> "DrawStateWrapper":
        return cls(state, orphan_lines)

    def __enter__(self) -> DrawState:
        return self.state

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        if self._orphan_lines is not None:
            count = self.state.orphan_lines_count
            self._orphan_lines.extend(self.state.lines[:count])
            del self.state.lines[:count]
            self.state.orphan_lines_count = 0


@dataclass
class _TermTarget:
    term: TermLike
    check_tty: bool
    rate_limiter: Optional[RateLimiter]
    last_line_count: int = 0
    draw_state: DrawState = field(default_factory=DrawState)


@dataclass
class _RemoteTarget:
    state: Any
    idx: int


class Drawable:
    """A draw target that is ready to be painted."""

    def __init__(
        self,
        term_target: Optional[_TermTarget] = None,
        multi_state: Any = None,
        idx: int = 0,
        force_draw: bool = False,
        now: float = 0.0,
    ) -> None:
        self._term_target = term_target
        self._multi_state = multi_state
        self._idx = idx
        self._force_draw = force_draw
        self._now = now

    def adjust_last_line_count(self, adjust: LineAdjust) -> None:
        """Make the next draw keep or clear additional lines."""
        if self._term_target is not None:
            target = self._term_target
            target.last_line_count = adjust.apply(target.last_line_count)

    def state(self) -> DrawStateWrapper:
        """Return the emptied draw state to fill with lines."""
        if self._term_target is not None:
            wrapper = DrawStateWrapper.for_term(self._term_target.draw_state)
        else:
            with self._multi_state.lock:
                wrapper = self._multi_state.draw_state(self._idx)
        wrapper.state.reset()
        return wrapper

    def clear(self) -> None:
        """Erase what was drawn."""
        with self.state():
            pass
        self.draw()

    def draw(self) -> None:
        """Paint the current draw state."""
        if self._term_target is not None:
            target = self._term_target
            target.last_line_count = target.draw_state.draw_to_term(
                target.term, target.last_line_count
            )
        else:
            with self._multi_state.lock:
                self._multi_state.draw(self._force_draw, None, self._now)


class ProgressDrawTarget:
    """Where a progress bar or multi progress paints to."""

    def __init__(self, kind: _TermTarget | _RemoteTarget | None) -> None:
        self._kind = kind

    def __repr__(self) -> str:
        return f"ProgressDrawTarget({self._kind!r})"

    @classmethod
    def stdout(cls) -> "ProgressDrawTarget":
        """Draw to stdout at most 20 times a second."""
        return cls.term(Terminal.stdout(), 20)

    @classmethod
    def stderr(cls) -> "ProgressDrawTarget":
        """Draw to stderr at most 20 times a second."""
        return cls.term(Terminal.stderr(), 20)

    @classmethod
    def stdout_with_hz(cls, refresh_rate: int) -> "ProgressDrawTarget":
        return cls.term(Terminal.stdout(), refresh_rate)

    @classmethod
    def stderr_with_hz(cls, refresh_rate: int) -> "ProgressDrawTarget":
        return cls.term(Terminal.stderr(), refresh_rate)

    @classmethod
    def term(cls, term: Terminal, refresh_rate: int) -> "ProgressDrawTarget":
        """Draw to a terminal; nothing is drawn if it is not interactive."""
        limiter = RateLimiter(refresh_rate, time.monotonic())
        return cls(_TermTarget(term, check_tty=True, rate_limiter=limiter))

    @classmethod
    def term_like(cls, term_like: TermLike) -> "ProgressDrawTarget":
        """Draw to any terminal-like object without rate limiting."""
        return cls(_TermTarget(term_like, check_tty=False, rate_limiter=None))

    @classmethod
    def term_like_with_hz(
        cls, term_like: TermLike, refresh_rate: int
    ) -> "ProgressDrawTarget":
        limiter = RateLimiter(refresh_rate, time.monotonic())
        return cls(_TermTarget(term_like, check_tty=False, rate_limiter=limiter))

    @classmethod
    def hidden(cls) -> "ProgressDrawTarget":
        """A target that never draws anything."""
        return cls(None)

    @classmethod
    def new_remote(cls, state: Any, idx: int) -> "ProgressDrawTarget":
        """A target that forwards to member ``idx`` of a multi progress state."""
        return cls(_RemoteTarget(state, idx))

    def is_hidden(self) -> bool:
        kind = self._kind
        if kind is None:
            return True
        if isinstance(kind, _RemoteTarget):
            return kind.state.is_hidden()
        if kind.check_tty:
            return not kind.term.is_term()
        return False

    def width(self) -> int:
        kind = self._kind
        if kind is None:
            return 0
        if isinstance(kind, _RemoteTarget):
            return kind.state.width()
        return kind.term.width()

    def mark_zombie(self) -> None:
        """Tell the owning multi progress that this bar has gone away."""
        kind = self._kind
        if isinstance(kind, _RemoteTarget):
            with kind.state.lock:
                kind.state.mark_zombie(kind.idx)

    def drawable(self, force_draw: bool, now: float) -> Optional[Drawable]:
        """Return a drawable if drawing is possible and not rate limited."""
        kind = self._kind
        if kind is None:
            return None
        if isinstance(kind, _RemoteTarget):
            return Drawable(
                multi_state=kind.state, idx=kind.idx, force_draw=force_draw, now=now
            )
        if kind.check_tty and not kind.term.is_term():
            return None
        if force_draw or kind.rate_limiter is None or kind.rate_limiter.allow(now):
            return Drawable(term_target=kind)
        return None

    def disconnect(self, now: float) -> None:
        """Detach cleanly, erasing this bar from a multi progress."""
        kind = self._kind
        if isinstance(kind, _RemoteTarget):
            with kind.state.lock, contextlib.suppress(OSError):
                Drawable(
                    multi_state=kind.state, idx=kind.idx, force_draw=True, now=now
                ).clear()

    def remote(self) -> Optional[tuple[Any, int]]:
        """Return ``(state, idx)`` for a multi progress member, else None."""
        kind = self._kind
        if isinstance(kind, _RemoteTarget):
            return kind.state, kind.idx
        return None

    def adjust_last_line_count(self, adjust: LineAdjust) -> None:
        kind = self._kind
        if isinstance(kind, _TermTarget):
            kind.last_line_count = adjust.apply(kind.last_line_count)