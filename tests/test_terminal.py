import io
import sys
from unittest import mock

import pytest

from tallybar.terminal import TermLike, Terminal, measure_text_width


class _TtyStream(io.StringIO):
    def isatty(self):
        return True


@pytest.fixture
def buf():
    return io.StringIO()


def test_measure_plain_ascii_is_length():
    text = "hello world"
    assert measure_text_width(text) == len(text)


def test_measure_ignores_ansi_codes():
    assert measure_text_width("\x1b[31mhello\x1b[0m") == measure_text_width("hello")
    assert measure_text_width("\x1b[1;32mok\x1b[0m") == len("ok")


def test_measure_wide_characters():
    assert measure_text_width("中") == 2
    assert measure_text_width("中文") == 2 * measure_text_width("中")


def test_measure_combining_mark_adds_nothing():
    assert measure_text_width("e\u0301") == measure_text_width("e")


def test_measure_empty():
    assert measure_text_width("") == 0


def test_termlike_is_abstract():
    with pytest.raises(TypeError):
        TermLike()


def test_stringio_is_not_a_terminal(buf):
    assert Terminal(buf).is_term() is False


def test_tty_stream_is_a_terminal():
    assert Terminal(_TtyStream()).is_term() is True


def test_width_falls_back_without_terminal(buf):
    assert Terminal(buf).width() == 79


def test_write_line_and_write_str(buf):
    term = Terminal(buf)
    term.write_line("abc")
    term.write_str("def")
    assert buf.getvalue() == "abc\ndef"


def test_move_by_zero_writes_nothing(buf):
    term = Terminal(buf)
    term.move_cursor_up(0)
    term.move_cursor_down(0)
    assert not buf.getvalue()


def test_cursor_moves_are_invisible_and_distinct():
    up, down = io.StringIO(), io.StringIO()
    Terminal(up).move_cursor_up(3)
    Terminal(down).move_cursor_down(3)
    assert "3" in up.getvalue()
    assert "3" in down.getvalue()
    assert up.getvalue() != down.getvalue()
    assert measure_text_width(up.getvalue()) == measure_text_width("")
    assert measure_text_width(down.getvalue()) == measure_text_width("")


def test_clear_line_is_invisible(buf):
    Terminal(buf).clear_line()
    out = buf.getvalue()
    assert out
    assert measure_text_width(out.replace("\r", "")) == measure_text_width("")


def test_negative_move_rejected(buf):
    term = Terminal(buf)
    with pytest.raises(ValueError):
        term.move_cursor_up(-1)
    with pytest.raises(ValueError):
        term.move_cursor_down(-2)


def test_flush_reaches_stream():
    stream = mock.MagicMock()
    Terminal(stream).flush()
    assert stream.flush.call_count == 1


def test_stdout_and_stderr_constructors(monkeypatch):
    fake_out, fake_err = io.StringIO(), io.StringIO()
    monkeypatch.setattr(sys, "stdout", fake_out)
    monkeypatch.setattr(sys, "stderr", fake_err)
    Terminal.stdout().write_str("out")
    Terminal.stderr().write_str("err")
    assert fake_out.getvalue() == "out"
    assert fake_err.getvalue() == "err"


def test_incomplete_termlike_subclass_rejected(buf):
    class Partial(TermLike):
        def width(self):
            return 10

        def write_str(self, text):
            pass

    with pytest.raises(TypeError):
        Partial()

    # The concrete terminal implements the whole interface and works.
    term = Terminal(buf)
    term.write_line("ok")
    term.flush()
    assert buf.getvalue() == "ok\n"


def test_complete_termlike_subclass_can_be_built():
    class Recorder(TermLike):
        def __init__(self):
            self.written = []

        def width(self):
            return 10

        def move_cursor_up(self, n):
            pass

        def move_cursor_down(self, n):
            pass

        def clear_line(self):
            pass

        def write_line(self, line):
            self.written.append(line)

        def write_str(self, text):
            self.written.append(text)

        def flush(self):
            pass

    rec = Recorder()
    rec.write_line("\x1b[32mx\x1b[0m")
    rec.write_str("中")
    assert rec.written == ["\x1b[32mx\x1b[0m", "中"]
    assert [measure_text_width(text) for text in rec.written] == [1, 2]