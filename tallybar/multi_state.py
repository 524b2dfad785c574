"""Shared state behind a display of several progress bars."""

from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, TypeVar

from tallybar.draw_target import (
    DrawState,
    DrawStateWrapper,
    LineAdjust,
    MultiProgressAlignment,
    ProgressDrawTarget,
)
from tallybar.terminal import measure_text_width

__all__ = ["InsertLocation", "MultiStateMember", "MultiState"]

T = TypeVar("T")


class _Where(Enum):
    END = "end"
    INDEX = "index"
    INDEX_FROM_BACK = "index_from_back"
    AFTER = "after"
    BEFORE = "before"


def _non_negative(value: int) -> int:
    if value < 0:
        raise ValueError("position must not be negative")
    return value


@dataclass(frozen=True)
class InsertLocation:
    """Where a new member goes in the visual order."""

    where: _Where
    position: int = 0

    @classmethod
    def end(cls) -> "InsertLocation":
        return cls(_Where.END)

    @classmethod
    def index(cls, pos: int) -> "InsertLocation":
        return cls(_Where.INDEX, _non_negative(pos))

    @classmethod
    def index_from_back(cls, pos: int) -> "InsertLocation":
        return cls(_Where.INDEX_FROM_BACK, _non_negative(pos))

    @classmethod
    def after(cls, idx: int) -> "InsertLocation":
        return cls(_Where.AFTER, idx)

    @classmethod
    def before(cls, idx: int) -> "InsertLocation":
        return cls(_Where.BEFORE, idx)


@dataclass
class MultiStateMember:
    """One slot: its last drawn state and whether its bar has gone away."""

    draw_state: Optional[DrawState] = None
    is_zombie: bool = False


def _real_len(lines: list[str], width: float) -> int:
    """Rows the lines take up on a terminal ``width`` cells wide."""
    if width <= 0:
        return 0
    return sum(math.ceil(measure_text_width(line) / width) for line in lines)


def _split_lines(text: str) -> list[str]:
    pieces = text.split("\n")
    if pieces[-1] == "":
        pieces.pop()
    return [piece[:-1] if piece.endswith("\r") else piece for piece in pieces]


class MultiState:
    """Members, visual ordering and draw bookkeeping of a multi progress."""

    def __init__(self, draw_target: ProgressDrawTarget) -> None:
        self.members: list[MultiStateMember] = []
        self.free_set: list[int] = []
        self.ordering: list[int] = []
        self.draw_target = draw_target
        self.move_cursor = False
        self.alignment = MultiProgressAlignment.TOP
        self.orphan_lines: list[str] = []
        self.zombie_lines_count = 0
        self.lock = threading.RLock()

    def __len__(self) -> int:
        return len(self.members) - len(self.free_set)

    def _check_consistency(self) -> None:
        if len(self) != len(self.ordering):
            raise RuntimeError("Draw state is inconsistent")

    def mark_zombie(self, index: int) -> None:
        """Mark a member whose bar has gone away; reap it now if it is first."""
        member = self.members[index]
        if index != self.ordering[0]:
            member.is_zombie = True
            return
        line_count = len(member.draw_state.lines) if member.draw_state else 0
        self.zombie_lines_count += line_count
        self.draw_target.adjust_last_line_count(LineAdjust.keep(line_count))
        self.remove_idx(index)

    def draw(
        self, force_draw: bool, extra_lines: Optional[list[str]], now: float
    ) -> None:
        """Paint all members, with ``extra_lines`` printed above them."""
        width = float(self.width())

        reap_indices: list[int] = []
        adjust = 0
        for index in self.ordering:
            member = self.members[index]
            if not member.is_zombie:
                break
            line_count = (
                _real_len(member.draw_state.lines, width) if member.draw_state else 0
            )
            self.zombie_lines_count += line_count
            adjust += line_count
            reap_indices.append(index)

        # Printed lines go above everything, so zombie lines must be erased.
        if extra_lines is not None:
            self.draw_target.adjust_last_line_count(
                LineAdjust.clear(self.zombie_lines_count)
            )
            self.zombie_lines_count = 0

        orphan_lines_count = _real_len(self.orphan_lines, width)
        force_draw = force_draw or orphan_lines_count > 0
        drawable = self.draw_target.drawable(force_draw, now)
        if drawable is None:
            return

        with drawable.state() as draw_state:
            draw_state.orphan_lines_count = orphan_lines_count
            draw_state.alignment = self.alignment
            if extra_lines is not None:
                draw_state.lines.extend(extra_lines)
                draw_state.orphan_lines_count += _real_len(extra_lines, width)
            draw_state.lines.extend(self.orphan_lines)
            self.orphan_lines.clear()
            for index in self.ordering:
                member_state = self.members[index].draw_state
                if member_state is not None:
                    draw_state.lines.extend(member_state.lines)

        try:
            drawable.draw()
        finally:
            for index in reap_indices:
                self.remove_idx(index)
            if extra_lines is None:
                self.draw_target.adjust_last_line_count(LineAdjust.keep(adjust))

    def println(self, msg: str, now: float) -> None:
        """Print ``msg`` above all members."""
        lines = _split_lines(msg) if msg else [""]
        self.draw(True, lines, now)

    def draw_state(self, idx: int) -> DrawStateWrapper:
        """Return the draw state of member ``idx``, creating it if needed."""
        member = self.members[idx]
        if member.draw_state is None:
            member.draw_state = DrawState(move_cursor=self.move_cursor)
        return DrawStateWrapper.for_multi(member.draw_state, self.orphan_lines)

    def is_hidden(self) -> bool:
        return self.draw_target.is_hidden()

    def suspend(self, func: Callable[[], T], now: float) -> T:
        """Clear the display, run ``func``, redraw and return its result."""
        self.clear(now)
        result = func()
        self.draw(True, None, time.monotonic())
        return result

    def width(self) -> int:
        return self.draw_target.width()

    def insert(self, location: InsertLocation) -> int:
        """Add a member at ``location`` and return its index."""
        if self.free_set:
            idx = self.free_set.pop()
            self.members[idx] = MultiStateMember()
        else:
            self.members.append(MultiStateMember())
            idx = len(self.members) - 1

        match location.where:
            case _Where.END:
                self.ordering.append(idx)
            case _Where.INDEX:
                pos = min(location.position, len(self.ordering))
                self.ordering.insert(pos, idx)
            case _Where.INDEX_FROM_BACK:
                pos = max(len(self.ordering) - location.position, 0)
                self.ordering.insert(pos, idx)
            case _Where.AFTER:
                pos = self.ordering.index(location.position)
                self.ordering.insert(pos + 1, idx)
            case _Where.BEFORE:
                pos = self.ordering.index(location.position)
                self.ordering.insert(pos, idx)

        self._check_consistency()
        return idx

    def clear(self, now: float) -> None:
        """Erase everything drawn, zombie lines included."""
        drawable = self.draw_target.drawable(True, now)
        if drawable is None:
            return
        drawable.adjust_last_line_count(LineAdjust.clear(self.zombie_lines_count))
        self.zombie_lines_count = 0
        drawable.clear()

    def remove_idx(self, idx: int) -> None:
        """Free member ``idx``; removing it twice has no effect."""
        if idx in self.free_set:
            return
        self.members[idx] = MultiStateMember()
        self.free_set.append(idx)
        self.ordering = [x for x in self.ordering if x != idx]
        self._check_consistency()