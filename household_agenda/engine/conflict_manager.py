"""
Conflict Manager: overlap checks for placing or moving a calendar event
- detect events that overlap a requested slot for the same assignee
- suggest free alternative slots on the same day, or the next day
"""

from __future__ import annotations

from datetime import timedelta
from typing import List, Optional, Sequence

from ..config import (
    MAX_CONFLICT_SUGGESTIONS,
    SLOT_MINUTES,
    WORKING_HOURS_END,
    WORKING_HOURS_START,
)
from ..errors import DayOverflowError
from ..models import CalendarEvent, ConflictReport, SlotSuggestion
from ..timeutil import add_minutes, time_slots, to_minutes
from ..utils import parse_iso_date


class ConflictManager:
    """Overlap detection against a snapshot of one day's events."""

    def __init__(self,
                 day_start: str = WORKING_HOURS_START,
                 day_end: str = WORKING_HOURS_END,
                 slot_minutes: int = SLOT_MINUTES,
                 max_suggestions: int = MAX_CONFLICT_SUGGESTIONS):
        self.day_start = day_start
        self.day_end = day_end
        self.slot_minutes = slot_minutes
        self.max_suggestions = max_suggestions

    def _relevant(self,
                  event: CalendarEvent,
                  assigned_to: Optional[str],
                  exclude_event_id: Optional[str]) -> bool:
        if exclude_event_id and event.id == exclude_event_id:
            return False
        # Different people can be busy at the same time.
        if assigned_to and event.assigned_to and event.assigned_to != assigned_to:
            return False
        return True

    def detect_conflicts(self,
                         events: Sequence[CalendarEvent],
                         start_time: str,
                         duration: int,
                         assigned_to: Optional[str] = None,
                         exclude_event_id: Optional[str] = None) -> List[CalendarEvent]:
        request_start = to_minutes(start_time)
        request_end = to_minutes(add_minutes(start_time, duration))
        conflicts: List[CalendarEvent] = []
        for event in events:
            if not self._relevant(event, assigned_to, exclude_event_id):
                continue
            try:
                event_start = to_minutes(event.start_time)
                event_end = to_minutes(event.end_time)
            except ValueError:
                continue
            if request_start < event_end and request_end > event_start:
                conflicts.append(event)
        return conflicts

    def suggest_alternatives(self,
                             events: Sequence[CalendarEvent],
                             date: str,
                             start_time: str,
                             duration: int,
                             assigned_to: Optional[str] = None,
                             exclude_event_id: Optional[str] = None) -> List[SlotSuggestion]:
        suggestions: List[SlotSuggestion] = []
        for slot in time_slots(self.day_start, self.day_end, self.slot_minutes):
            try:
                clash = self.detect_conflicts(events, slot, duration, assigned_to,
                                              exclude_event_id)
            except DayOverflowError:
                break
            if clash:
                continue
            suggestions.append(SlotSuggestion(alternative_date=date, alternative_time=slot))
            if len(suggestions) >= self.max_suggestions:
                break
        if not suggestions:
            next_day = parse_iso_date(date) + timedelta(days=1)
            suggestions.append(SlotSuggestion(alternative_date=next_day.isoformat(),
                                              alternative_time=start_time))
        return suggestions

    def check(self,
              events: Sequence[CalendarEvent],
              date: str,
              start_time: str,
              duration: int,
              assigned_to: Optional[str] = None,
              exclude_event_id: Optional[str] = None) -> Optional[ConflictReport]:
        same_day = [event for event in events if event.date == date]
        conflicting = self.detect_conflicts(same_day, start_time, duration, assigned_to,
                                            exclude_event_id)
        if not conflicting:
            return None
        return ConflictReport(
            target_date=date,
            target_time=start_time,
            conflicting_events=conflicting,
            suggestions=self.suggest_alternatives(same_day, date, start_time, duration,
                                                  assigned_to, exclude_event_id),
        )
