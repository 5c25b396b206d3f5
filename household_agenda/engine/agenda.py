"""
Merge scheduled events and unscheduled items into one ordered agenda.

Two orderings exist and are kept apart on purpose:

- ``CHRONOLOGICAL`` for the day/week timeline: entries with an interval first,
  by date then start time; unscheduled entries after them in input order.
- ``INTELLIGENT`` for the sidebar: priority, then due date (overdue first,
  then soonest, undated last), then kind, then shorter duration first.

Both rely on Python's stable sort so equal keys keep their input order.
"""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Dict, Iterable, List, Optional, Set, Tuple

from ..models import CalendarEvent, EntryKind, Priority, SchedulableItem, ScheduleEntry
from ..utils import _log_debug, try_parse_date
from .normalizer import normalize_events, normalize_items


class SortStrategy(str, Enum):
    CHRONOLOGICAL = "chronological"
    INTELLIGENT = "intelligent"


PRIORITY_RANK: Dict[Priority, int] = {
    Priority.CRITICAL: 4,
    Priority.HIGH: 3,
    Priority.MEDIUM: 2,
    Priority.LOW: 1,
}

KIND_RANK: Dict[EntryKind, int] = {
    EntryKind.TASK: 5,
    EntryKind.MILESTONE: 4,
    EntryKind.GOAL: 3,
    EntryKind.PROJECT: 2,
    EntryKind.SOP: 1,
}


def _chronological_key(entry: ScheduleEntry) -> Tuple[int, str, int]:
    if entry.interval is None:
        return (1, "", 0)
    return (0, entry.date or "", entry.interval.start_minutes)


def _due_key(entry: ScheduleEntry, today: date) -> Tuple[int, str]:
    due = try_parse_date(entry.due_date)
    if due is None:
        return (2, "")
    if due < today:
        return (0, due.isoformat())
    return (1, due.isoformat())


def _intelligent_key(entry: ScheduleEntry, today: date) -> Tuple[int, Tuple[int, str], int, int]:
    return (
        -PRIORITY_RANK.get(entry.priority, 0),
        _due_key(entry, today),
        -KIND_RANK.get(entry.kind, 0),
        entry.estimated_duration_minutes,
    )


def sort_entries(entries: Iterable[ScheduleEntry],
                 strategy: SortStrategy,
                 today: Optional[date] = None) -> List[ScheduleEntry]:
    if strategy == SortStrategy.CHRONOLOGICAL:
        return sorted(entries, key=_chronological_key)
    if today is None:
        raise ValueError("intelligent ordering needs today's date")
    return sorted(entries, key=lambda entry: _intelligent_key(entry, today))


def dedupe_entries(entries: Iterable[ScheduleEntry]) -> List[ScheduleEntry]:
    """Keep the first entry per source record; synthetic entries key on their own id."""
    seen: Set[str] = set()
    unique: List[ScheduleEntry] = []
    for entry in entries:
        key = entry.source_id if entry.source_id is not None else f"entry:{entry.id}"
        if key in seen:
            _log_debug(f"[AGENDA] dropping duplicate {entry.id} (source {key})")
            continue
        seen.add(key)
        unique.append(entry)
    return unique


def exclude_scheduled(items: Iterable[SchedulableItem]) -> List[SchedulableItem]:
    return [item for item in items if not item.is_scheduled]


def build_agenda(events: Iterable[CalendarEvent],
                 unscheduled_items: Iterable[SchedulableItem],
                 now: datetime,
                 strategy: SortStrategy = SortStrategy.CHRONOLOGICAL) -> List[ScheduleEntry]:
    scheduled = normalize_events(events, now)
    pending = normalize_items(unscheduled_items)
    merged = dedupe_entries(scheduled + pending)
    return sort_entries(merged, strategy, today=now.date())


def rank_items(items: Iterable[SchedulableItem], now: datetime) -> List[ScheduleEntry]:
    entries = dedupe_entries(normalize_items(items))
    return sort_entries(entries, SortStrategy.INTELLIGENT, today=now.date())
