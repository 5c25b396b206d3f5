"""
Heuristic tagging of calendar entries: life domain, time status, energy
level, harmony score and presentation color.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Iterable, List, Optional, Sequence, Tuple

from ..models import CalendarEvent, Domain, Energy, Interval, Priority, TimeStatus
from ..timeutil import hour_of, to_minutes

# Order matters: the first group with a hit wins.
EVENT_DOMAIN_KEYWORDS: Tuple[Tuple[Domain, Tuple[str, ...]], ...] = (
    (Domain.WORK, ("work", "meeting", "call")),
    (Domain.FAMILY, ("family", "kid", "school")),
    (Domain.HOME, ("meal", "dinner", "lunch")),
    (Domain.HEALTH, ("exercise", "workout", "doctor")),
)

TASK_DOMAIN_TAGS: Tuple[Domain, ...] = (
    Domain.WORK,
    Domain.FAMILY,
    Domain.HEALTH,
    Domain.HOME,
)

PRIORITY_COLORS = {
    Priority.CRITICAL: "#dc2626",
    Priority.HIGH: "#ea580c",
    Priority.MEDIUM: "#d97706",
    Priority.LOW: "#65a30d",
}
DEFAULT_COLOR = "#6b7280"

HARMONY_BASE = 70
HARMONY_SPACING_MAX = 15
HARMONY_DIVERSITY_MAX = 15
COMFORTABLE_GAP_MINUTES = 15
CLASSIFIABLE_DOMAINS = 5


def classify_event_domain(title: Optional[str]) -> Domain:
    lowered = (title or "").lower()
    for domain, keywords in EVENT_DOMAIN_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return domain
    return Domain.PERSONAL


def classify_task_domain(tags: Optional[Iterable[str]]) -> Domain:
    tag_set = set(tags or ())
    for domain in TASK_DOMAIN_TAGS:
        if domain.value in tag_set:
            return domain
    return Domain.PERSONAL


def derive_status(interval: Optional[Interval],
                  now: datetime,
                  on_date: Optional[date] = None) -> TimeStatus:
    if interval is None:
        return TimeStatus.UPCOMING
    if on_date is not None and on_date != now.date():
        return TimeStatus.COMPLETED if on_date < now.date() else TimeStatus.UPCOMING
    now_minutes = now.hour * 60 + now.minute
    if now_minutes < interval.start_minutes:
        return TimeStatus.UPCOMING
    if interval.start_minutes <= now_minutes <= interval.end_minutes:
        return TimeStatus.CURRENT
    if now_minutes > interval.end_minutes:
        return TimeStatus.COMPLETED
    return TimeStatus.UPCOMING


def derive_energy(start_time: str) -> Energy:
    hour = hour_of(start_time)
    if 6 <= hour <= 10:
        return Energy.HIGH
    if 14 <= hour <= 16:
        return Energy.HIGH
    if hour >= 20 or hour <= 6:
        return Energy.LOW
    return Energy.MEDIUM


def _spacing_points(event: CalendarEvent, same_day: Sequence[CalendarEvent]) -> int:
    others = [other for other in same_day if other.id != event.id]
    if not others:
        return HARMONY_SPACING_MAX
    start = to_minutes(event.start_time)
    end = to_minutes(event.end_time)
    closest: Optional[int] = None
    for other in others:
        other_start = to_minutes(other.start_time)
        other_end = to_minutes(other.end_time)
        if start < other_end and end > other_start:
            return 0
        gap = other_start - end if other_start >= end else start - other_end
        closest = gap if closest is None else min(closest, gap)
    if closest is None or closest >= COMFORTABLE_GAP_MINUTES:
        return HARMONY_SPACING_MAX
    return closest * HARMONY_SPACING_MAX // COMFORTABLE_GAP_MINUTES


def _diversity_points(same_day: Sequence[CalendarEvent]) -> int:
    domains = {event.domain or classify_event_domain(event.title) for event in same_day}
    share = min(len(domains), CLASSIFIABLE_DOMAINS)
    return share * HARMONY_DIVERSITY_MAX // CLASSIFIABLE_DOMAINS


def harmony_score(event: CalendarEvent, siblings: Sequence[CalendarEvent]) -> int:
    """How well an event sits among the other events of its day, 70-100.

    Spacing rewards at least a quarter hour of air to the nearest neighbour
    (overlaps score nothing); diversity rewards a day that mixes domains.
    Events whose times do not parse are ignored as neighbours.
    """
    same_day: List[CalendarEvent] = []
    for other in siblings:
        if other.date != event.date:
            continue
        try:
            to_minutes(other.start_time)
            to_minutes(other.end_time)
        except ValueError:
            continue
        same_day.append(other)
    if not any(other.id == event.id for other in same_day):
        same_day.append(event)
    score = HARMONY_BASE + _spacing_points(event, same_day) + _diversity_points(same_day)
    return max(HARMONY_BASE, min(100, score))


def priority_color(priority: Optional[Priority]) -> str:
    if priority is None:
        return DEFAULT_COLOR
    try:
        return PRIORITY_COLORS.get(Priority(priority), DEFAULT_COLOR)
    except ValueError:
        return DEFAULT_COLOR
