"""A display that manages several progress bars at once."""

from __future__ import annotations

import time
from typing import Callable, Optional, Protocol, TypeVar

from tallybar.draw_target import MultiProgressAlignment, ProgressDrawTarget
from tallybar.multi_state import InsertLocation, MultiState

__all__ = ["MultiProgress"]

T = TypeVar("T")


class _ProgressBarLike(Protocol):
    """What a bar must offer to be managed by a multi progress."""

    draw_target: ProgressDrawTarget

    def set_draw_target(self, target: ProgressDrawTarget) -> None:
        ...


class MultiProgress:
    """Manages several progress bars, possibly updated from different threads.

    Bars added here have their draw target replaced by a remote target that
    forwards to this object.
    """

    def __init__(self, draw_target: Optional[ProgressDrawTarget] = None) -> None:
        if draw_target is None:
            draw_target = ProgressDrawTarget.stderr()
        self.state = MultiState(draw_target)

    def set_draw_target(self, target: ProgressDrawTarget) -> None:
        """Replace the draw target, disconnecting the old one."""
        with self.state.lock:
            self.state.draw_target.disconnect(time.monotonic())
            self.state.draw_target = target

    def set_move_cursor(self, move_cursor: bool) -> None:
        """Move the cursor instead of clearing lines where possible."""
        with self.state.lock:
            self.state.move_cursor = move_cursor

    def set_alignment(self, alignment: MultiProgressAlignment) -> None:
        with self.state.lock:
            self.state.alignment = alignment

    def add(self, pb: _ProgressBarLike) -> _ProgressBarLike:
        """Add a bar at the end."""
        return self._internalize(InsertLocation.end(), pb)

    def insert(self, index: int, pb: _ProgressBarLike) -> _ProgressBarLike:
        """Insert a bar at ``index``, or at the end if ``index`` is too large."""
        return self._internalize(InsertLocation.index(index), pb)

    def insert_from_back(self, index: int, pb: _ProgressBarLike) -> _ProgressBarLike:
        """Insert a bar ``index`` places from the end, or at the start."""
        return self._internalize(InsertLocation.index_from_back(index), pb)

    def insert_before(
        self, before: _ProgressBarLike, pb: _ProgressBarLike
    ) -> _ProgressBarLike:
        """Insert a bar directly before ``before``, which must be a member."""
        return self._internalize(InsertLocation.before(self._member_index(before)), pb)

    def insert_after(
        self, after: _ProgressBarLike, pb: _ProgressBarLike
    ) -> _ProgressBarLike:
        """Insert a bar directly after ``after``, which must be a member."""
        return self._internalize(InsertLocation.after(self._member_index(after)), pb)

    def remove(self, pb: _ProgressBarLike) -> None:
        """Remove a bar; a bar not attached to any multi progress is ignored."""
        remote = pb.draw_target.remote()
        if remote is None:
            return
        state, idx = remote
        if state is not self.state:
            raise ValueError("progress bar belongs to a different MultiProgress")
        pb.draw_target = ProgressDrawTarget.hidden()
        with self.state.lock:
            self.state.remove_idx(idx)

    def index_of(self, pb: _ProgressBarLike) -> Optional[int]:
        """Return the member index of ``pb`` here, or None if it is not a member."""
        remote = pb.draw_target.remote()
        if remote is None:
            return None
        state, idx = remote
        return idx if state is self.state else None

    def println(self, msg: str) -> None:
        """Print a line above all bars; does nothing when hidden."""
        with self.state.lock:
            self.state.println(msg, time.monotonic())

    def suspend(self, func: Callable[[], T]) -> T:
        """Hide all bars, run ``func``, redraw, and return its result."""
        with self.state.lock:
            return self.state.suspend(func, time.monotonic())

    def clear(self) -> None:
        """Erase all drawn bars."""
        with self.state.lock:
            self.state.clear(time.monotonic())

    def is_hidden(self) -> bool:
        with self.state.lock:
            return self.state.is_hidden()

    def _member_index(self, pb: _ProgressBarLike) -> int:
        idx = self.index_of(pb)
        if idx is None:
            raise ValueError("progress bar is not a member of this MultiProgress")
        return idx

    def _internalize(
        self, location: InsertLocation, pb: _ProgressBarLike
    ) -> _ProgressBarLike:
        with self.state.lock:
            idx = self.state.insert(location)
        pb.set_draw_target(ProgressDrawTarget.new_remote(self.state, idx))
        return pb