from __future__ import annotations

import asyncio
import logging
from datetime import date
from typing import Any, Awaitable, Dict, List, Sequence, Tuple

from ..errors import FetchFailed
from ..models import SchedulableItem
from ..state import ScheduleStore
from ..utils import date_part, week_bounds
from .normalizer import active_projects, goals_needing_attention, open_milestones

logger = logging.getLogger(__name__)

INBOX_TAG = "inbox"
ARCHIVED_TAG = "archived"


async def _gather_sources(sources: Sequence[Tuple[str, Awaitable[Any]]]) -> Tuple[List[Any], List[FetchFailed]]:
  """Await every source concurrently; a failing one yields ``[]``."""
  results = await asyncio.gather(*(call for _, call in sources), return_exceptions=True)
  values: List[Any] = []
  failures: List[FetchFailed] = []
  for (name, _), result in zip(sources, results):
    if isinstance(result, BaseException):
      if not isinstance(result, Exception):
        raise result
      logger.warning("[CONTEXT] %s fetch failed: %s", name, result)
      failures.append(FetchFailed(name, result))
      values.append([])
    else:
      values.append(result or [])
  return values, failures


def _is_open(item: SchedulableItem) -> bool:
  return item.status != "completed" and not item.is_scheduled


def _day_pool(tasks: Sequence[SchedulableItem], day: date) -> List[SchedulableItem]:
  """Tasks due on ``day`` or sitting in the inbox, still waiting for a slot."""
  wanted = day.isoformat()
  pool: List[SchedulableItem] = []
  for task in tasks:
    if not _is_open(task) or ARCHIVED_TAG in task.tags:
      continue
    if date_part(task.due_date) == wanted or INBOX_TAG in task.tags:
      pool.append(task)
  return pool


async def load_day_context(store: ScheduleStore, context_id: str, day: date) -> Dict[str, Any]:
  iso = day.isoformat()
  (events, tasks), failures = await _gather_sources([
      ("events", store.get_events_for_date_range(context_id, iso, iso)),
      ("tasks", store.get_schedulable_tasks(context_id)),
  ])
  return {
      "events": events,
      "unscheduled": _day_pool(tasks, day),
      "failures": failures,
      "scope": {"start_date": iso, "end_date": iso},
  }


async def load_week_context(store: ScheduleStore, context_id: str, week_start: date) -> Dict[str, Any]:
  monday, sunday = week_bounds(week_start)
  (events,), failures = await _gather_sources([
      ("events", store.get_events_for_date_range(context_id, monday.isoformat(),
                                                 sunday.isoformat())),
  ])
  return {
      "events": events,
      "failures": failures,
      "scope": {"start_date": monday.isoformat(), "end_date": sunday.isoformat()},
  }


async def load_sidebar_items(store: ScheduleStore, context_id: str, today: date) -> Dict[str, Any]:
  window = week_bounds(today)
  (unscheduled, goals, milestones, projects, inbox), failures = await _gather_sources([
      ("unscheduled", store.get_unscheduled_items(context_id)),
      ("goals", store.get_goals_by_context(context_id)),
      ("milestones", store.get_milestones_by_context(context_id)),
      ("projects", store.get_projects_by_context(context_id)),
      ("inbox", store.get_tasks_with_tag(context_id, INBOX_TAG)),
  ])

  # Source order decides which copy of an item survives.
  ordered: List[SchedulableItem] = [
      *unscheduled,
      *goals_needing_attention(goals, window),
      *open_milestones(milestones, window),
      *active_projects(projects, window),
      *[task for task in inbox if _is_open(task)],
  ]
  items: List[SchedulableItem] = []
  seen = set()
  for item in ordered:
    if item.id in seen or ARCHIVED_TAG in item.tags:
      continue
    seen.add(item.id)
    items.append(item)
  return {
      "items": items,
      "failures": failures,
      "scope": {"start_date": window[0].isoformat(), "end_date": window[1].isoformat()},
  }
