# tallybar

Building blocks for terminal progress reporting:

- `tallybar.format`: human-readable formatting of durations, byte sizes and counts;
- `tallybar.terminal`: a small terminal abstraction (`TermLike`, `Terminal`) and
  `measure_text_width`, which counts terminal cells and ignores ANSI escape codes;
- `tallybar.draw_target`: draw targets that repaint a region of a terminal,
  optionally at a limited rate;
- `tallybar.multi`: `MultiProgress`, which lays out the lines of several bars
  one under another.

## Installation

```
pip install tallybar
```

## Formatting values

The formatting wrappers are frozen dataclasses that render with `str()`.
Durations may be given as a `timedelta` or as a number of seconds.

```python
from datetime import timedelta

from tallybar.format import (
    BinaryBytes, DecimalBytes, FormattedDuration, HumanBytes,
    HumanCount, HumanDuration, HumanFloatCount,
)

str(HumanBytes(3 * 1024 * 1024))                  # '3.00 MiB'
str(DecimalBytes(3_000_000))                      # '3.00 MB'
str(HumanDuration(timedelta(seconds=8)))          # '8 seconds'
format(HumanDuration(timedelta(minutes=2)), "#")  # '2m'
str(FormattedDuration(timedelta(hours=26)))       # '1d 02:00:00'
str(HumanCount(33857009))                         # '33,857,009'
str(HumanFloatCount(33857009.123456))             # '33,857,009.1235'
```

`HumanDuration` rounds to the nearest unit rather than truncating, and
moves to the next smaller unit near 1.5 units, so that an estimate never
reads "1 hour" when nearly two remain. Negative durations, byte sizes and
counts raise `ValueError`.

## Drawing to a terminal

`ProgressDrawTarget` decides where output goes and how often:

```python
from tallybar.draw_target import ProgressDrawTarget

ProgressDrawTarget.stderr()            # at most 20 redraws a second
ProgressDrawTarget.stdout_with_hz(5)   # stdout, at most 5 redraws a second
ProgressDrawTarget.hidden()            # draw nothing
```

A target on a stream that is not a terminal is treated as hidden, so output
piped to a file does not fill up with escape codes. Any object implementing
the `TermLike` interface from `tallybar.terminal` can be drawn to with
`ProgressDrawTarget.term_like(...)` (no rate limit) or
`ProgressDrawTarget.term_like_with_hz(...)`. A refresh rate outside 1 to 255
raises `ValueError`.

To paint, ask the target for a `Drawable`, fill its draw state with lines and
draw it:

```python
import time

drawable = target.drawable(True, time.monotonic())
if drawable is not None:
    with drawable.state() as state:
        state.lines.append("[#####     ] 50%")
    drawable.draw()
```

`drawable()` returns `None` when the target is hidden or when the draw is
rate limited and not forced. Each draw erases the lines painted last time.

## Several bars at once

`MultiProgress` manages any object that has a `draw_target` attribute and a
`set_draw_target(target)` method. Adding such an object gives it a remote
draw target that paints into the shared display.

```python
from tallybar.draw_target import MultiProgressAlignment, ProgressDrawTarget
from tallybar.multi import MultiProgress


class Bar:
    def __init__(self):
        self.draw_target = ProgressDrawTarget.hidden()

    def set_draw_target(self, target):
        self.draw_target = target


multi = MultiProgress()                      # draws to stderr by default
multi.set_alignment(MultiProgressAlignment.BOTTOM)

first = multi.add(Bar())
second = multi.insert_after(first, Bar())
multi.println("starting!")
multi.remove(second)
multi.clear()
```

Bars can be placed with `add`, `insert`, `insert_from_back`,
`insert_before` and `insert_after`; `index_of` returns a bar's member index,
or `None` if it is not a member. `insert_before` and `insert_after` raise
`ValueError` when the reference bar is not a member, and `remove` raises
`ValueError` for a bar that belongs to another `MultiProgress`. `println`
writes a line above all bars (nothing when the display is hidden), and
`suspend(func)` clears the display while `func` runs, redraws it afterwards
and returns what `func` returned. `set_move_cursor(True)` moves the cursor
up instead of clearing lines, which reduces flicker when the number of lines
does not change.

## What is not included

The package has no progress bar or spinner of its own: there are no
templates, styles, message or position tracking, ETA computation or
iterator wrappers. It provides the formatting, terminal drawing and
multi-bar layout that such a bar is built on, and has no command-line
program.

## Running the tests

```
pip install -e ".[test]"
pytest
```