"""
AgendaService: the read path end to end, plus access to the scheduler.

Reads never raise for a failing source; the failure is listed on the view
next to the revision the view was built at.
"""

from __future__ import annotations

from datetime import date
from typing import Dict, Iterable, List, Optional

from ..config import SLOT_MINUTES, WORKING_HOURS_END, WORKING_HOURS_START
from ..errors import FetchFailed
from ..models import (
    CalendarDay,
    CalendarEvent,
    CalendarWeek,
    DayAgendaView,
    EntryKind,
    ReadFailure,
    SidebarFilters,
    SidebarView,
    WeekAgendaView,
)
from ..state import ScheduleStore
from ..timeutil import time_slots
from ..utils import Clock, SystemClock, _log_debug, week_bounds, week_dates
from .agenda import build_agenda, rank_items
from .context_provider import load_day_context, load_sidebar_items, load_week_context
from .filters import apply_filters, validate_filters
from .refresh import RefreshTrigger
from .scheduler import DropScheduler
from .transitions import insert_transitions


def _failures(raw: Iterable[FetchFailed]) -> List[ReadFailure]:
    return [ReadFailure(source=f.source, error=str(f.cause)) for f in raw]


class AgendaService:

    def __init__(self,
                 store: ScheduleStore,
                 clock: Optional[Clock] = None,
                 refresh: Optional[RefreshTrigger] = None,
                 scheduler: Optional[DropScheduler] = None):
        self.store = store
        self.clock = clock or SystemClock()
        self.refresh = refresh or RefreshTrigger()
        self.scheduler = scheduler or DropScheduler(store, refresh=self.refresh, clock=self.clock)

    @property
    def revision(self) -> int:
        return self.refresh.value

    async def day_agenda(self, context_id: str, day: Optional[date] = None) -> DayAgendaView:
        now = self.clock()
        day = day or now.date()
        revision = self.refresh.value
        context = await load_day_context(self.store, context_id, day)
        entries = build_agenda(context["events"], context["unscheduled"], now)
        entries = insert_transitions(entries)
        _log_debug(f"[AGENDA] day={day} entries={len(entries)} rev={revision}")
        return DayAgendaView(date=day.isoformat(),
                             entries=entries,
                             revision=revision,
                             failures=_failures(context["failures"]))

    async def week_agenda(self, context_id: str, week_start: Optional[date] = None) -> WeekAgendaView:
        now = self.clock()
        monday, sunday = week_bounds(week_start or now.date())
        revision = self.refresh.value
        context = await load_week_context(self.store, context_id, monday)

        by_date: Dict[str, List[CalendarEvent]] = {}
        for event in context["events"]:
            by_date.setdefault(event.date, []).append(event)

        slots = time_slots(WORKING_HOURS_START, WORKING_HOURS_END, SLOT_MINUTES)
        days: List[CalendarDay] = []
        total_events = 0
        total_duration = 0
        for day in week_dates(monday):
            entries = build_agenda(by_date.get(day.isoformat(), []), [], now)
            for entry in entries:
                if entry.kind == EntryKind.EVENT:
                    total_events += 1
                    total_duration += entry.estimated_duration_minutes
            days.append(CalendarDay(date=day.isoformat(),
                                    day_name=day.strftime("%A"),
                                    is_today=day == now.date(),
                                    is_weekend=day.weekday() >= 5,
                                    entries=insert_transitions(entries),
                                    time_slots=list(slots)))

        week = CalendarWeek(week_start=monday.isoformat(),
                            week_end=sunday.isoformat(),
                            days=days,
                            total_events=total_events,
                            total_duration=total_duration)
        return WeekAgendaView(week=week,
                              revision=revision,
                              failures=_failures(context["failures"]))

    async def sidebar(self, context_id: str, filters: Optional[SidebarFilters] = None) -> SidebarView:
        filters = filters or SidebarFilters()
        # Contradictory filters fail before any fetch.
        validate_filters(filters)
        now = self.clock()
        revision = self.refresh.value
        context = await load_sidebar_items(self.store, context_id, now.date())
        ranked = rank_items(context["items"], now)
        entries = apply_filters(ranked, filters, now.date())
        return SidebarView(entries=entries,
                           revision=revision,
                           failures=_failures(context["failures"]))

