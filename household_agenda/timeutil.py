"""``HH:MM`` arithmetic for single-day intervals.

All values live inside one day: ``00:00`` is minute 0 and ``24:00`` (minute
1440) is accepted only as an end-of-day bound. Nothing wraps past midnight;
arithmetic that would leave the day raises ``DayOverflowError``.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Any, List, Tuple

from .config import HHMM_RE, MINUTES_PER_DAY
from .errors import DayOverflowError, ParseError


def to_minutes(t: str) -> int:
    if not isinstance(t, str):
        raise ParseError(f"Time must be an HH:MM string: {t!r}")
    match = HHMM_RE.match(t.strip())
    if not match:
        raise ParseError(f"Malformed time: {t!r}")
    hours = int(match.group(1))
    minutes = int(match.group(2))
    if hours == 24 and minutes == 0:
        return MINUTES_PER_DAY
    if not 0 <= hours <= 23:
        raise ParseError(f"Hour out of range: {t!r}")
    if not 0 <= minutes <= 59:
        raise ParseError(f"Minute out of range: {t!r}")
    return hours * 60 + minutes


def minutes_to_time(minutes: int) -> str:
    if not 0 <= minutes <= MINUTES_PER_DAY:
        raise DayOverflowError(f"{minutes} minutes is outside a single day")
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def add_minutes(t: str, delta: int) -> str:
    total = to_minutes(t) + int(delta)
    if total < 0 or total > MINUTES_PER_DAY:
        raise DayOverflowError(f"{t} {delta:+d} min leaves the day")
    return minutes_to_time(total)


def _bounds(interval: Any) -> Tuple[int, int]:
    if isinstance(interval, (tuple, list)):
        start, end = interval
    else:
        start, end = interval.start, interval.end
    return (to_minutes(start), to_minutes(end))


def overlap_minutes(a: Any, b: Any) -> int:
    a_start, a_end = _bounds(a)
    b_start, b_end = _bounds(b)
    return max(0, min(a_end, b_end) - max(a_start, b_start))


def gap_minutes(a_end: str, b_start: str) -> int:
    return to_minutes(b_start) - to_minutes(a_end)


def time_slots(start: str, end: str, step: int = 15) -> List[str]:
    if step <= 0:
        raise ValueError("step must be positive")
    slots: List[str] = []
    current = to_minutes(start)
    stop = to_minutes(end)
    while current < stop:
        slots.append(minutes_to_time(current))
        current += step
    return slots


def next_half_hour(now: datetime) -> Tuple[date, str]:
    """Quick-schedule slot: ``:30`` of this hour up to half past, else the next ``:00``."""
    if now.minute <= 30:
        return (now.date(), f"{now.hour:02d}:30")
    top = now.replace(minute=0, second=0, microsecond=0) + timedelta(hours=1)
    return (top.date(), top.strftime("%H:%M"))


def hour_of(t: str) -> int:
    return to_minutes(t) // 60
