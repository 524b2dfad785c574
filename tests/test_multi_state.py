import time

import pytest

from tallybar.draw_target import ProgressDrawTarget
from tallybar.multi_state import InsertLocation, MultiState, MultiStateMember
from tallybar.terminal import TermLike


class FakeTerm(TermLike):
    def __init__(self, columns=80):
        self.columns = columns
        self.ops = []
        self.output = ""

    def width(self):
        return self.columns

    def move_cursor_up(self, n):
        self.ops.append(("up", n))

    def move_cursor_down(self, n):
        self.ops.append(("down", n))

    def clear_line(self):
        self.ops.append(("clear",))

    def write_line(self, line):
        self.ops.append(("line", line))
        self.output += line + "\n"

    def write_str(self, text):
        self.ops.append(("str", text))
        self.output += text

    def flush(self):
        self.ops.append(("flush",))


def make_state(count=0, term=None):
    state = MultiState(ProgressDrawTarget.term_like(term or FakeTerm()))
    indices = [state.insert(InsertLocation.end()) for _ in range(count)]
    return state, indices


def set_lines(state, idx, lines):
    with state.draw_state(idx) as ds:
        ds.lines[:] = lines


def test_modifications_reuse_freed_slot():
    state, _ = make_state(4)
    state.remove_idx(2)
    state.remove_idx(1)
    p4 = state.insert(InsertLocation.index(1))
    assert len(state.members) == 4
    assert len(state) == 3
    assert p4 == 1
    assert state.free_set == [2]
    assert state.ordering == [0, 1, 3]
    assert state.members[2].draw_state is None


def test_insert_from_back():
    state, _ = make_state(3)
    assert state.insert(InsertLocation.index_from_back(1)) == 3
    assert state.insert(InsertLocation.index_from_back(10)) == 4
    assert state.ordering == [4, 0, 1, 3, 2]


def test_insert_after():
    state, _ = make_state(3)
    state.insert(InsertLocation.after(2))
    state.insert(InsertLocation.after(0))
    assert state.ordering == [0, 4, 1, 2, 3]


def test_insert_before():
    state, _ = make_state(3)
    state.insert(InsertLocation.before(0))
    state.insert(InsertLocation.before(2))
    assert state.ordering == [3, 0, 1, 4, 2]


def test_insert_before_and_after():
    state, _ = make_state(3)
    p3 = state.insert(InsertLocation.before(0))
    state.insert(InsertLocation.after(p3))
    state.insert(InsertLocation.after(p3))
    state.insert(InsertLocation.before(1))
    assert state.ordering == [3, 5, 4, 0, 6, 1, 2]


def test_insert_index_clamps_to_end():
    state, _ = make_state(2)
    idx = state.insert(InsertLocation.index(50))
    assert state.ordering[-1] == idx


def test_insert_after_unknown_member_raises():
    state, _ = make_state(1)
    with pytest.raises(ValueError):
        state.insert(InsertLocation.after(42))


def test_negative_index_rejected():
    with pytest.raises(ValueError):
        InsertLocation.index(-1)


def test_multiple_remove_has_no_extra_effect():
    state, _ = make_state(2)
    for _ in range(3):
        state.remove_idx(0)
    assert len(state.members) == 2
    assert state.free_set == [0]
    assert len(state) == 1
    assert state.members[0].draw_state is None
    assert state.ordering == [1]


def test_draw_paints_members_in_order():
    term = FakeTerm()
    state, (a, b) = make_state(2, term)
    set_lines(state, a, ["first"])
    set_lines(state, b, ["second"])
    state.draw(True, None, time.monotonic())
    assert term.output.index("first") < term.output.index("second")


def test_redraw_clears_previous_lines():
    term = FakeTerm()
    state, (a,) = make_state(1, term)
    set_lines(state, a, ["bar"])
    state.draw(True, None, time.monotonic())
    term.ops.clear()
    state.draw(True, None, time.monotonic())
    assert term.ops.count(("clear",)) == 1


def test_println_lines_stay_on_screen():
    term = FakeTerm()
    state, _ = make_state(0, term)
    state.println("hello\nworld", time.monotonic())
    assert term.output.startswith("hello\nworld")
    term.ops.clear()
    state.draw(True, None, time.monotonic())
    assert ("clear",) not in term.ops


def test_println_empty_message_prints_line():
    term = FakeTerm()
    state, _ = make_state(0, term)
    state.println("", time.monotonic())
    assert ("str", "") in term.ops


def test_orphan_lines_from_member_state():
    term = FakeTerm()
    state, (a,) = make_state(1, term)
    with state.draw_state(a) as ds:
        ds.lines[:] = ["log line", "bar"]
        ds.orphan_lines_count = 1
    assert state.orphan_lines == ["log line"]
    state.draw(False, None, time.monotonic())
    assert state.orphan_lines == []
    assert term.output.index("log line") < term.output.index("bar")


def test_mark_zombie_first_member_is_reaped():
    term = FakeTerm()
    state, (a,) = make_state(1, term)
    set_lines(state, a, ["bar"])
    state.draw(True, None, time.monotonic())
    state.mark_zombie(a)
    assert len(state) == 0
    assert state.zombie_lines_count == 1
    term.ops.clear()
    state.clear(time.monotonic())
    assert state.zombie_lines_count == 0
    assert term.ops.count(("clear",)) == 1


def test_mark_zombie_later_member_is_deferred():
    state, (a, b) = make_state(2)
    state.mark_zombie(b)
    assert state.members[b].is_zombie is True
    assert state.ordering == [a, b]


def test_draw_reaps_leading_zombies():
    state, (a, b) = make_state(2)
    set_lines(state, b, ["done"])
    state.mark_zombie(b)
    state.remove_idx(a)
    state.draw(True, None, time.monotonic())
    assert len(state) == 0
    assert state.members[b] == MultiStateMember()


def test_suspend_runs_function_and_redraws():
    term = FakeTerm()
    state, (a,) = make_state(1, term)
    set_lines(state, a, ["bar"])
    state.draw(True, None, time.monotonic())
    seen = []

    def work():
        seen.append(list(term.ops))
        return "result"

    assert state.suspend(work, time.monotonic()) == "result"
    assert ("clear",) in seen[0]
    assert term.output.count("bar") == 2


def test_hidden_state():
    state = MultiState(ProgressDrawTarget.hidden())
    idx = state.insert(InsertLocation.end())
    set_lines(state, idx, ["bar"])
    state.println("message", time.monotonic())
    assert state.is_hidden() is True
    assert state.width() == 0
    assert state.orphan_lines == []


def test_new_member_inherits_move_cursor():
    state, (a,) = make_state(1)
    state.move_cursor = True
    with state.draw_state(a) as ds:
        assert ds.move_cursor is True