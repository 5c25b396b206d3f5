from __future__ import annotations

from typing import List, Optional, Sequence

from ..config import TRANSITION_HARMONY, TRANSITION_THRESHOLD_MINUTES
from ..models import Domain, Energy, EntryKind, Interval, ScheduleEntry, TimeStatus
from ..timeutil import gap_minutes

TRANSITION_PREFIX = "transition-"


def _transition_between(prev: ScheduleEntry, nxt: ScheduleEntry, index: int) -> ScheduleEntry:
    return ScheduleEntry(
        id=f"{TRANSITION_PREFIX}{prev.date}-{index}",
        kind=EntryKind.TRANSITION,
        title=f"Transition: {prev.domain.value} → {nxt.domain.value}",
        interval=Interval(start=prev.interval.end, end=nxt.interval.start),
        date=prev.date,
        domain=Domain.TRANSITION,
        status=TimeStatus.UPCOMING,
        energy=Energy.LOW,
        harmony_score=TRANSITION_HARMONY,
        estimated_duration_minutes=gap_minutes(prev.interval.end, nxt.interval.start),
    )


def _needs_transition(prev: ScheduleEntry, nxt: ScheduleEntry, threshold: int) -> bool:
    if prev.interval is None or nxt.interval is None:
        return False
    if prev.date != nxt.date:
        return False
    if prev.domain == nxt.domain:
        return False
    return gap_minutes(prev.interval.end, nxt.interval.start) > threshold


def insert_transitions(entries: Sequence[ScheduleEntry],
                       threshold: Optional[int] = None) -> List[ScheduleEntry]:
    """Return a new list with transition entries spliced between domain changes.

    Only adjacent pairs of the input are compared, so an inserted transition
    never becomes a neighbour for a later comparison.
    """
    limit = TRANSITION_THRESHOLD_MINUTES if threshold is None else threshold
    result: List[ScheduleEntry] = []
    for index, entry in enumerate(entries):
        result.append(entry)
        if index + 1 >= len(entries):
            break
        nxt = entries[index + 1]
        if _needs_transition(entry, nxt, limit):
            result.append(_transition_between(entry, nxt, index))
    return result
