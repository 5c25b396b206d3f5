from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Iterable, List, Optional, Sequence

from pydantic import ValidationError as PydanticValidationError

from ..config import DEFAULT_DURATION_BY_TYPE, DEFAULT_DURATION_MINUTES, UNSCHEDULED_HARMONY
from ..errors import ParseError
from ..models import (
    CalendarEvent,
    Energy,
    EntryKind,
    Goal,
    Interval,
    ItemType,
    Milestone,
    Priority,
    Project,
    SchedulableItem,
    ScheduleEntry,
    TimeStatus,
)
from ..timeutil import to_minutes
from ..utils import _log_debug, parse_iso_date
from .classifier import (
    classify_event_domain,
    classify_task_domain,
    derive_energy,
    derive_status,
    harmony_score,
)

logger = logging.getLogger(__name__)

UNSCHEDULED_PREFIX = "unscheduled-"

_KIND_BY_TYPE = {
    ItemType.TASK: EntryKind.TASK,
    ItemType.MILESTONE: EntryKind.MILESTONE,
    ItemType.GOAL: EntryKind.GOAL,
    ItemType.PROJECT: EntryKind.PROJECT,
    ItemType.SOP: EntryKind.SOP,
}


def default_duration(item_type: ItemType) -> int:
  return DEFAULT_DURATION_BY_TYPE.get(item_type.value, DEFAULT_DURATION_MINUTES)


def item_duration(item: SchedulableItem) -> int:
  if isinstance(item.estimated_duration, int) and item.estimated_duration > 0:
    return item.estimated_duration
  return default_duration(item.type)


def _build_interval(start: str, end: str) -> Interval:
  start_min = to_minutes(start)
  end_min = to_minutes(end)
  if end_min <= start_min:
    raise ParseError(f"End {end} does not follow start {start}")
  return Interval(start=start.strip(), end=end.strip())


def normalize_event(event: CalendarEvent,
                    siblings: Sequence[CalendarEvent],
                    now: datetime) -> ScheduleEntry:
  on_date = parse_iso_date(event.date)
  interval = _build_interval(event.start_time, event.end_time)
  duration = event.duration if event.duration > 0 else (
      interval.end_minutes - interval.start_minutes)
  return ScheduleEntry(
      id=event.id,
      kind=EntryKind.EVENT,
      title=event.title,
      description=event.description,
      interval=interval,
      date=on_date.isoformat(),
      domain=event.domain or classify_event_domain(event.title),
      priority=event.priority or Priority.MEDIUM,
      status=derive_status(interval, now, on_date=on_date),
      energy=derive_energy(interval.start),
      harmony_score=harmony_score(event, siblings),
      source=event.model_copy(deep=True),
      estimated_duration_minutes=duration,
      assigned_to=event.assigned_to,
  )


def normalize_unscheduled_item(item: SchedulableItem) -> ScheduleEntry:
  due = None
  if item.due_date:
    # Keep the raw value for display but reject garbage up front.
    parse_iso_date(item.due_date)
    due = item.due_date
  return ScheduleEntry(
      id=UNSCHEDULED_PREFIX + item.id,
      kind=_KIND_BY_TYPE[item.type],
      title=item.title,
      description=item.description,
      interval=None,
      domain=classify_task_domain(item.tags),
      priority=item.priority,
      status=TimeStatus.UPCOMING,
      energy=Energy.MEDIUM,
      harmony_score=UNSCHEDULED_HARMONY,
      source=item.model_copy(deep=True),
      estimated_duration_minutes=item_duration(item),
      due_date=due,
      assigned_to=item.assigned_to,
  )


def normalize_events(events: Iterable[CalendarEvent], now: datetime) -> List[ScheduleEntry]:
  snapshot = list(events)
  entries: List[ScheduleEntry] = []
  for event in snapshot:
    try:
      entries.append(normalize_event(event, snapshot, now))
    except (ParseError, PydanticValidationError) as exc:
      logger.warning("Skipping calendar event %s: %s", getattr(event, "id", "?"), exc)
  _log_debug(f"[NORMALIZE] events in={len(snapshot)} out={len(entries)}")
  return entries


def normalize_items(items: Iterable[SchedulableItem]) -> List[ScheduleEntry]:
  entries: List[ScheduleEntry] = []
  count = 0
  for item in items:
    count += 1
    try:
      entries.append(normalize_unscheduled_item(item))
    except (ParseError, PydanticValidationError) as exc:
      logger.warning("Skipping schedulable item %s: %s", getattr(item, "id", "?"), exc)
  _log_debug(f"[NORMALIZE] items in={count} out={len(entries)}")
  return entries


# -------------------------
# Goal / milestone / project -> schedulable item
# -------------------------
def _in_window(value: Optional[str], window: Optional[tuple[date, date]]) -> bool:
  if window is None:
    return True
  if not value:
    return False
  try:
    target = parse_iso_date(value)
  except ParseError:
    return False
  return window[0] <= target <= window[1]


def goal_to_item(goal: Goal) -> SchedulableItem:
  return SchedulableItem(
      id=goal.id,
      type=ItemType.GOAL,
      title=f"Goal: {goal.title}",
      description=goal.description,
      estimated_duration=default_duration(ItemType.GOAL),
      priority=goal.priority,
      assigned_to=goal.assigned_members[0] if goal.assigned_members else None,
      due_date=goal.target_date,
      goal_id=goal.id,
      context_id=goal.context_id,
  )


def milestone_to_item(milestone: Milestone) -> SchedulableItem:
  return SchedulableItem(
      id=milestone.id,
      type=ItemType.MILESTONE,
      title=f"Milestone: {milestone.title}",
      description=milestone.description,
      estimated_duration=default_duration(ItemType.MILESTONE),
      priority=Priority.HIGH,
      due_date=milestone.target_date,
      goal_id=milestone.goal_id,
      project_id=milestone.project_id,
      milestone_id=milestone.id,
      context_id=milestone.context_id,
  )


def project_to_item(project: Project) -> SchedulableItem:
  return SchedulableItem(
      id=project.id,
      type=ItemType.PROJECT,
      title=f"Project: {project.title}",
      description=project.description,
      estimated_duration=default_duration(ItemType.PROJECT),
      priority=project.priority,
      assigned_to=project.assigned_members[0] if project.assigned_members else None,
      due_date=project.target_end_date,
      goal_id=project.goal_id,
      project_id=project.id,
      context_id=project.context_id,
  )


def goals_needing_attention(goals: Iterable[Goal],
                            window: Optional[tuple[date, date]]) -> List[SchedulableItem]:
  return [goal_to_item(goal) for goal in goals
          if goal.status in ("in_progress", "not_started")
          and _in_window(goal.target_date, window)]


def open_milestones(milestones: Iterable[Milestone],
                    window: Optional[tuple[date, date]]) -> List[SchedulableItem]:
  return [milestone_to_item(m) for m in milestones
          if m.status != "completed" and _in_window(m.target_date, window)]


def active_projects(projects: Iterable[Project],
                    window: Optional[tuple[date, date]]) -> List[SchedulableItem]:
  return [project_to_item(p) for p in projects
          if p.status == "active" and _in_window(p.target_end_date, window)]
