"""Human-friendly formatting of durations, byte sizes and counts."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import timedelta

__all__ = [
    "FormattedDuration",
    "HumanDuration",
    "HumanBytes",
    "DecimalBytes",
    "BinaryBytes",
    "HumanCount",
    "HumanFloatCount",
]

_MICROS_PER_SECOND = 1_000_000
_SECOND = _MICROS_PER_SECOND
_MINUTE = 60 * _SECOND
_HOUR = 60 * _MINUTE
_DAY = 24 * _HOUR
_WEEK = 7 * _DAY
_YEAR = 365 * _DAY

_UNITS: tuple[tuple[int, str, str], ...] = (
    (_YEAR, "year", "y"),
    (_WEEK, "week", "w"),
    (_DAY, "day", "d"),
    (_HOUR, "hour", "h"),
    (_MINUTE, "minute", "m"),
    (_SECOND, "second", "s"),
)

_BINARY_PREFIXES = ("Ki", "Mi", "Gi", "Ti", "Pi", "Ei", "Zi", "Yi")
_DECIMAL_PREFIXES = ("k", "M", "G", "T", "P", "E", "Z", "Y")


def _to_micros(duration: timedelta | float) -> int:
    """Convert a timedelta or a number of seconds to whole microseconds."""
    if isinstance(duration, timedelta):
        micros = duration // timedelta(microseconds=1)
    else:
        micros = round(duration * _MICROS_PER_SECOND)
    if micros < 0:
        raise ValueError("duration must not be negative")
    return micros


def _require_unsigned(value: int) -> int:
    if value < 0:
        raise ValueError("value must not be negative")
    return value


def _group_thousands(digits: str) -> str:
    """Insert a comma before every group of three trailing characters."""
    out: list[str] = []
    length = len(digits)
    for idx, char in enumerate(digits):
        out.append(char)
        remaining = length - idx - 1
        if remaining > 0 and remaining % 3 == 0:
            out.append(",")
    return "".join(out)


def _format_prefixed(amount: float, kilo: float, prefixes: tuple[str, ...]) -> str:
    negative = amount < 0
    magnitude = -amount if negative else amount
    if magnitude < kilo:
        return f"{amount:.0f}B"
    prefix = 0
    while magnitude >= kilo and prefix < len(prefixes):
        magnitude /= kilo
        prefix += 1
    if negative:
        magnitude = -magnitude
    return f"{magnitude:.2f} {prefixes[prefix - 1]}B"


@dataclass(frozen=True)
class FormattedDuration:
    """A duration shown as ``HH:MM:SS``, with a day count when needed."""

    duration: timedelta | float

    def __str__(self) -> str:
        total = _to_micros(self.duration) // _MICROS_PER_SECOND
        total, seconds = divmod(total, 60)
        total, minutes = divmod(total, 60)
        days, hours = divmod(total, 24)
        clock = f"{hours:02}:{minutes:02}:{seconds:02}"
        return f"{days}d {clock}" if days > 0 else clock


@dataclass(frozen=True)
class HumanDuration:
    """A duration rounded to its most fitting unit, e.g. ``3 minutes``.

    The ``#`` format spec gives the short form, e.g. ``3m``.
    """

    duration: timedelta | float

    def _parts(self) -> tuple[int, str, str]:
        micros = _to_micros(self.duration)
        idx = len(_UNITS) - 1
        for i, ((cur, _, _), (nxt, _, _)) in enumerate(zip(_UNITS, _UNITS[1:])):
            if micros + nxt // 2 >= cur + cur // 2:
                idx = i
                break
        unit, name, alt = _UNITS[idx]
        count = (2 * micros + unit) // (2 * unit)
        if idx < len(_UNITS) - 1:
            count = max(count, 2)
        return count, name, alt

    def __str__(self) -> str:
        count, name, _ = self._parts()
        return f"{count} {name}" if count == 1 else f"{count} {name}s"

    def __format__(self, spec: str) -> str:
        if spec.startswith("#"):
            count, _, alt = self._parts()
            return format(f"{count}{alt}", spec[1:])
        return format(str(self), spec)


@dataclass(frozen=True)
class HumanBytes:
    """A byte count with binary prefixes, e.g. ``3.00 MiB``."""

    value: int

    def __str__(self) -> str:
        return _format_prefixed(float(_require_unsigned(self.value)), 1024.0, _BINARY_PREFIXES)


@dataclass(frozen=True)
class DecimalBytes:
    """A byte count with SI prefixes, e.g. ``3.00 MB``."""

    value: int

    def __str__(self) -> str:
        return _format_prefixed(float(_require_unsigned(self.value)), 1000.0, _DECIMAL_PREFIXES)


@dataclass(frozen=True)
class BinaryBytes:
    """A byte count with ISO/IEC prefixes, e.g. ``3.00 MiB``."""

    value: int

    def __str__(self) -> str:
        return _format_prefixed(float(_require_unsigned(self.value)), 1024.0, _BINARY_PREFIXES)


@dataclass(frozen=True)
class HumanCount:
    """An integer count with comma thousands separators."""

    value: int

    def __str__(self) -> str:
        return _group_thousands(str(_require_unsigned(self.value)))


@dataclass(frozen=True)
class HumanFloatCount:
    """A float with comma thousands separators and at most four decimals."""

    value: float

    def __str__(self) -> str:
        value = float(self.value)
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "-inf" if value < 0 else "inf"
        int_part, _, frac_part = f"{value:.4f}".partition(".")
        frac = frac_part.rstrip("0")
        grouped = _group_thousands(int_part)
        return f"{grouped}.{frac}" if frac else grouped