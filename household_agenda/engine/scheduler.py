"""
Drop scheduling: place an unscheduled item on a time slot.

One attempt walks REQUESTED -> EVENT_CREATED -> SOURCE_MARKED -> DONE. The
two writes are not transactional, so a failure after the event exists runs a
compensating delete (unless disabled) and reports what was left behind on the
raised ``ScheduleFailed``.
"""

from __future__ import annotations

import asyncio
import logging
from collections import OrderedDict
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from ..config import (
    COMPENSATE_ON_FAILURE,
    DEFAULT_DURATION_MINUTES,
    DEFER_EVENING_HOUR,
    DEFER_MORNING_HOUR,
)
from ..errors import ParseError, ScheduleFailed, SchedulingConflict, ValidationError
from ..models import (
    CalendarEvent,
    DeferOption,
    ItemType,
    SchedulableItem,
    ScheduleResult,
)
from ..state import ScheduleStore
from ..timeutil import add_minutes, next_half_hour, to_minutes
from ..utils import Clock, SystemClock, _log_debug, dedupe_tags, parse_iso_date
from .classifier import classify_task_domain, priority_color
from .conflict_manager import ConflictManager
from .refresh import RefreshTrigger

logger = logging.getLogger(__name__)

COMPLETED_CACHE_SIZE = 512

ARCHIVED_TAG = "archived"

EVENT_TYPE_BY_ITEM = {
    ItemType.TASK: "goal_task",
    ItemType.SOP: "sop",
    ItemType.GOAL: "goal_review",
    ItemType.MILESTONE: "milestone",
    ItemType.PROJECT: "project_review",
}

LINK_FIELD_BY_ITEM = {
    ItemType.TASK: "task_id",
    ItemType.SOP: "sop_id",
    ItemType.GOAL: "goal_id",
    ItemType.MILESTONE: "milestone_id",
    ItemType.PROJECT: "project_id",
}


class SchedulingState(str, Enum):
    REQUESTED = "requested"
    EVENT_CREATED = "event_created"
    SOURCE_MARKED = "source_marked"
    DONE = "done"
    FAILED = "failed"


class SchedulingAttempt:
    """Trace of one ``schedule`` call."""

    def __init__(self, item_id: str, date: str, slot_start: str):
        self.item_id = item_id
        self.date = date
        self.slot_start = slot_start
        self.state = SchedulingState.REQUESTED
        self.transitions: List[SchedulingState] = [SchedulingState.REQUESTED]
        self.event_id: Optional[str] = None

    def advance(self, state: SchedulingState) -> None:
        self.state = state
        self.transitions.append(state)
        _log_debug(f"[SCHEDULE] {self.item_id} -> {state.value}")

    def fail(self,
             message: str,
             cause: Optional[BaseException] = None,
             compensated: bool = False) -> ScheduleFailed:
        reached = self.state
        self.advance(SchedulingState.FAILED)
        return ScheduleFailed(message,
                              state=reached.value,
                              source_id=self.item_id,
                              event_id=self.event_id,
                              compensated=compensated,
                              cause=cause)


def build_event_payload(item: SchedulableItem, date: str, start_time: str, end_time: str,
                        duration: int) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "title": item.title,
        "description": item.description or "",
        "date": date,
        "start_time": start_time,
        "end_time": end_time,
        "duration": duration,
        "type": EVENT_TYPE_BY_ITEM[item.type],
        "priority": item.priority.value,
        "color": priority_color(item.priority),
        "domain": classify_task_domain(item.tags).value,
        "assigned_to": item.assigned_to,
        "context_id": item.context_id,
        "status": "scheduled",
        "goal_id": item.goal_id,
        "project_id": item.project_id,
        "milestone_id": item.milestone_id,
    }
    payload[LINK_FIELD_BY_ITEM[item.type]] = item.id
    return {key: value for key, value in payload.items() if value is not None}


def defer_target(now: datetime, option: DeferOption) -> datetime:
    morning = {"hour": DEFER_MORNING_HOUR, "minute": 0, "second": 0, "microsecond": 0}
    if option == DeferOption.EVENING:
        return now.replace(hour=DEFER_EVENING_HOUR, minute=0, second=0, microsecond=0)
    if option == DeferOption.TOMORROW:
        return (now + timedelta(days=1)).replace(**morning)
    if option == DeferOption.END_OF_WEEK:
        # Friday of this week; after Friday, the coming one.
        days = (4 - now.weekday()) % 7
        return (now + timedelta(days=days)).replace(**morning)
    if option == DeferOption.NEXT_WEEK:
        days = 7 - now.weekday()
        return (now + timedelta(days=days)).replace(**morning)
    raise ValidationError(f"{option.value} has no due date")


class DropScheduler:

    def __init__(self,
                 store: ScheduleStore,
                 refresh: Optional[RefreshTrigger] = None,
                 clock: Optional[Clock] = None,
                 compensate: bool = COMPENSATE_ON_FAILURE,
                 conflicts: Optional[ConflictManager] = None):
        self.store = store
        self.refresh = refresh or RefreshTrigger()
        self.clock = clock or SystemClock()
        self.compensate = compensate
        self.conflicts = conflicts or ConflictManager()
        self._locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = {}
        self._completed: OrderedDict[Tuple[str, str, str], ScheduleResult] = OrderedDict()

    # -------------------------
    # schedule
    # -------------------------
    async def schedule(self, item: SchedulableItem, slot_start: str, date: str) -> ScheduleResult:
        lock = self._locks.setdefault(item.id, asyncio.Lock())
        self._lock_users[item.id] = self._lock_users.get(item.id, 0) + 1
        try:
            async with lock:
                key = (item.id, date, slot_start.strip())
                done = self._completed.get(key)
                if done is not None:
                    if await self._still_placed(item, done):
                        _log_debug(f"[SCHEDULE] {item.id} already placed at {date} {slot_start}")
                        return done
                    _log_debug(f"[SCHEDULE] cached event {done.event_id} is gone, placing again")
                    del self._completed[key]
                result = await self._run(item, slot_start, date)
                self._completed[key] = result
                while len(self._completed) > COMPLETED_CACHE_SIZE:
                    self._completed.popitem(last=False)
                return result
        finally:
            self._lock_users[item.id] -= 1
            if not self._lock_users[item.id]:
                del self._lock_users[item.id]
                self._locks.pop(item.id, None)

    async def _still_placed(self, item: SchedulableItem, done: ScheduleResult) -> bool:
        events = await self.store.get_events_for_date_range(item.context_id or "", done.date,
                                                            done.date)
        return any(e.id == done.event_id and e.start_time == done.start_time for e in events)

    def _forget(self, event_id: str) -> None:
        for key in [k for k, result in self._completed.items() if result.event_id == event_id]:
            del self._completed[key]

    async def _run(self, item: SchedulableItem, slot_start: str, date: str) -> ScheduleResult:
        attempt = SchedulingAttempt(item.id, date, slot_start)
        duration = item.estimated_duration or DEFAULT_DURATION_MINUTES
        try:
            parse_iso_date(date)
            if duration <= 0:
                raise ValidationError(f"Duration must be positive, got {duration}")
            end_time = add_minutes(slot_start, duration)
        except (ParseError, ValidationError) as exc:
            raise attempt.fail(f"Cannot place {item.id} at {date} {slot_start}: {exc}",
                               cause=exc) from exc

        payload = build_event_payload(item, date, slot_start.strip(), end_time, duration)
        try:
            attempt.event_id = await self.store.create_event(payload)
        except Exception as exc:
            logger.warning("Event create failed for %s: %s", item.id, exc)
            raise attempt.fail(f"Creating the event for {item.id} failed: {exc}",
                               cause=exc) from exc
        attempt.advance(SchedulingState.EVENT_CREATED)

        # Only tasks carry scheduled_date/scheduled_time; SOPs and review
        # sessions for goals, milestones and projects can be placed repeatedly.
        if item.type == ItemType.TASK:
            try:
                await self.store.schedule_task(item.id, date, slot_start.strip())
            except Exception as exc:
                logger.warning("Marking %s scheduled failed after event %s: %s", item.id,
                               attempt.event_id, exc)
                compensated = await self._compensate(attempt.event_id) if self.compensate else False
                raise attempt.fail(f"Marking {item.id} as scheduled failed: {exc}",
                                   cause=exc,
                                   compensated=compensated) from exc
            attempt.advance(SchedulingState.SOURCE_MARKED)

        revision = self.refresh.bump()
        attempt.advance(SchedulingState.DONE)
        return ScheduleResult(event_id=attempt.event_id,
                              source_id=item.id,
                              date=date,
                              start_time=slot_start.strip(),
                              end_time=end_time,
                              revision=revision)

    async def _compensate(self, event_id: Optional[str]) -> bool:
        if not event_id:
            return False
        try:
            await self.store.delete_event(event_id)
        except Exception as exc:
            logger.error("Compensating delete of event %s failed; it is left dangling: %s",
                         event_id, exc)
            return False
        return True

    async def quick_schedule(self, item: SchedulableItem) -> ScheduleResult:
        day, slot = next_half_hour(self.clock())
        return await self.schedule(item, slot, day.isoformat())

    async def unschedule(self, item_id: Optional[str], event_id: str) -> int:
        """Undo a placement: drop the event and clear the task's schedule fields.

        ``item_id`` is None for non-task items, which keep no schedule fields.
        """
        await self.store.delete_event(event_id)
        if item_id:
            await self.store.update_task(item_id, {"scheduled_date": None, "scheduled_time": None})
        self._forget(event_id)
        return self.refresh.bump()

    # -------------------------
    # defer / archive
    # -------------------------
    async def defer_item(self, item: SchedulableItem, option: DeferOption) -> SchedulableItem:
        option = DeferOption(option)
        if option == DeferOption.ARCHIVE:
            fields: Dict[str, Any] = {"tags": dedupe_tags([*item.tags, ARCHIVED_TAG])}
        else:
            due = defer_target(self.clock(), option)
            fields = {"due_date": due.strftime("%Y-%m-%dT%H:%M:%S")}
        await self.store.update_task(item.id, fields)
        self.refresh.bump()
        return item.model_copy(update=fields)

    # -------------------------
    # move an existing event
    # -------------------------
    async def move_event(self,
                         event: CalendarEvent,
                         target_date: str,
                         target_time: str,
                         new_duration: Optional[int] = None,
                         context_id: Optional[str] = None) -> CalendarEvent:
        parse_iso_date(target_date)
        context_id = context_id or event.context_id or ""
        duration = new_duration or event.duration or (
            to_minutes(event.end_time) - to_minutes(event.start_time))
        end_time = add_minutes(target_time, duration)
        day_events = await self.store.get_events_for_date_range(context_id, target_date,
                                                                target_date)
        report = self.conflicts.check(day_events, target_date, target_time, duration,
                                      assigned_to=event.assigned_to,
                                      exclude_event_id=event.id)
        if report is not None:
            raise SchedulingConflict(report)
        updates = {
            "date": target_date,
            "start_time": target_time,
            "end_time": end_time,
            "duration": duration,
        }
        await self.store.update_event(event.id, updates)
        self._forget(event.id)
        self.refresh.bump()
        return event.model_copy(update=updates)
