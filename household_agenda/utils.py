from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Any, Callable, List, Optional, Tuple

from .config import AGENDA_DEBUG, ISO_DATE_RE, LOCAL_TZ
from .errors import ParseError

Clock = Callable[[], datetime]


def _log_debug(message: str) -> None:
    if AGENDA_DEBUG:
        print(message, flush=True)


class SystemClock:
    """Wall clock in the configured household timezone."""

    def __init__(self, tz=LOCAL_TZ):
        self.tz = tz

    def __call__(self) -> datetime:
        return datetime.now(self.tz).replace(tzinfo=None)


class FixedClock:
    """Clock pinned to a given instant; ``advance`` moves it forward."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, minutes: int = 0, days: int = 0) -> None:
        self.now = self.now + timedelta(minutes=minutes, days=days)


def parse_iso_date(value: Any) -> date:
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        raise ParseError(f"Date must be a YYYY-MM-DD string: {value!r}")
    raw = value.strip()
    if len(raw) > 10 and raw[10] in ("T", " "):
        raw = raw[:10]
    if not ISO_DATE_RE.match(raw):
        raise ParseError(f"Malformed date: {value!r}")
    try:
        return datetime.strptime(raw, "%Y-%m-%d").date()
    except ValueError as exc:
        raise ParseError(f"Malformed date: {value!r}") from exc


def try_parse_date(value: Any) -> Optional[date]:
    try:
        return parse_iso_date(value)
    except ParseError:
        return None


def date_part(value: Optional[str]) -> Optional[str]:
    """``"2024-05-03T09:00:00"`` -> ``"2024-05-03"``; None for junk."""
    parsed = try_parse_date(value)
    return parsed.isoformat() if parsed else None


def week_bounds(day: date) -> Tuple[date, date]:
    monday = day - timedelta(days=day.weekday())
    return (monday, monday + timedelta(days=6))


def week_dates(week_start: date) -> List[date]:
    return [week_start + timedelta(days=offset) for offset in range(7)]


def dedupe_tags(tags: Optional[List[str]]) -> List[str]:
    seen: List[str] = []
    for tag in tags or []:
        if tag not in seen:
            seen.append(tag)
    return seen
