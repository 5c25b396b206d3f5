from __future__ import annotations

import copy
import json
import logging
import pathlib
import uuid
from typing import Any, Dict, List, Optional, Protocol

from pydantic import ValidationError as PydanticValidationError

from .errors import ParseError, StoreError
from .models import CalendarEvent, Goal, Milestone, Project, SchedulableItem
from .timeutil import to_minutes
from .utils import _log_debug

logger = logging.getLogger(__name__)


def _start_key(event: CalendarEvent) -> Any:
    # Unparseable start times go last within their date.
    try:
        return (event.date, to_minutes(event.start_time))
    except ParseError:
        return (event.date, 24 * 60 + 1)


class ScheduleStore(Protocol):
    """Async document-store collaborator consumed by the engine."""

    async def get_events_for_date_range(self, context_id: str, start: str,
                                        end: str) -> List[CalendarEvent]: ...

    async def get_schedulable_tasks(self, context_id: str) -> List[SchedulableItem]: ...

    async def get_tasks_with_tag(self, context_id: str, tag: str) -> List[SchedulableItem]: ...

    async def get_unscheduled_items(self, context_id: str) -> List[SchedulableItem]: ...

    async def get_goals_by_context(self, context_id: str) -> List[Goal]: ...

    async def get_milestones_by_context(self, context_id: str) -> List[Milestone]: ...

    async def get_projects_by_context(self, context_id: str) -> List[Project]: ...

    async def create_event(self, payload: Dict[str, Any]) -> str: ...

    async def update_event(self, event_id: str, fields: Dict[str, Any]) -> None: ...

    async def delete_event(self, event_id: str) -> None: ...

    async def schedule_task(self, task_id: str, date: str, time: str) -> None: ...

    async def update_task(self, task_id: str, fields: Dict[str, Any]) -> None: ...


def _clean_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    # ``id`` belongs to the store; None values clear the field.
    return {key: value for key, value in fields.items() if key != "id"}


def _load_records(raw: Any, model: Any, label: str) -> Dict[str, Any]:
    records: Dict[str, Any] = {}
    if not isinstance(raw, list):
        return records
    for item in raw:
        if not isinstance(item, dict):
            continue
        try:
            record = model(**item)
        except PydanticValidationError as exc:
            logger.warning("Skipping stored %s %s: %s", label, item.get("id"), exc)
            continue
        records[record.id] = record
    return records


class InMemoryStore:
    """Dict-backed store; persists to ``data_file`` after every write when set."""

    def __init__(self, data_file: Optional[pathlib.Path] = None):
        self.data_file = pathlib.Path(data_file) if data_file else None
        self.events: Dict[str, CalendarEvent] = {}
        self.tasks: Dict[str, SchedulableItem] = {}
        self.goals: Dict[str, Goal] = {}
        self.milestones: Dict[str, Milestone] = {}
        self.projects: Dict[str, Project] = {}
        if self.data_file is not None:
            self._load_from_disk()

    # -------------------------
    # persistence
    # -------------------------
    def _serialize_payload(self) -> Dict[str, Any]:
        return {
            "version": 1,
            "events": [e.model_dump(mode="json") for e in self.events.values()],
            "tasks": [t.model_dump(mode="json") for t in self.tasks.values()],
            "goals": [g.model_dump(mode="json") for g in self.goals.values()],
            "milestones": [m.model_dump(mode="json") for m in self.milestones.values()],
            "projects": [p.model_dump(mode="json") for p in self.projects.values()],
        }

    def _save_to_disk(self) -> None:
        if self.data_file is None:
            return
        try:
            self.data_file.write_text(
                json.dumps(self._serialize_payload(), ensure_ascii=False, indent=2),
                encoding="utf-8")
        except OSError as exc:
            raise StoreError(f"Saving {self.data_file} failed: {exc}") from exc

    def _load_from_disk(self) -> None:
        if self.data_file is None or not self.data_file.exists():
            return
        try:
            data = json.loads(self.data_file.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("[STORE] load failed for %s: %s", self.data_file, exc)
            return
        if not isinstance(data, dict):
            return
        self.events = _load_records(data.get("events"), CalendarEvent, "event")
        self.tasks = _load_records(data.get("tasks"), SchedulableItem, "task")
        self.goals = _load_records(data.get("goals"), Goal, "goal")
        self.milestones = _load_records(data.get("milestones"), Milestone, "milestone")
        self.projects = _load_records(data.get("projects"), Project, "project")

    # -------------------------
    # seeding helpers
    # -------------------------
    def add_event(self, event: CalendarEvent) -> CalendarEvent:
        self.events[event.id] = event.model_copy(deep=True)
        self._save_to_disk()
        return event

    def add_task(self, task: SchedulableItem) -> SchedulableItem:
        self.tasks[task.id] = task.model_copy(deep=True)
        self._save_to_disk()
        return task

    def add_goal(self, goal: Goal) -> Goal:
        self.goals[goal.id] = goal.model_copy(deep=True)
        self._save_to_disk()
        return goal

    def add_milestone(self, milestone: Milestone) -> Milestone:
        self.milestones[milestone.id] = milestone.model_copy(deep=True)
        self._save_to_disk()
        return milestone

    def add_project(self, project: Project) -> Project:
        self.projects[project.id] = project.model_copy(deep=True)
        self._save_to_disk()
        return project

    # -------------------------
    # reads
    # -------------------------
    @staticmethod
    def _in_context(record: Any, context_id: str) -> bool:
        owner = getattr(record, "context_id", None)
        return owner is None or owner == context_id

    async def get_events_for_date_range(self, context_id: str, start: str,
                                        end: str) -> List[CalendarEvent]:
        found = [
            e.model_copy(deep=True) for e in self.events.values()
            if self._in_context(e, context_id) and start <= e.date <= end
        ]
        return sorted(found, key=_start_key)

    async def get_schedulable_tasks(self, context_id: str) -> List[SchedulableItem]:
        return [t.model_copy(deep=True) for t in self.tasks.values()
                if self._in_context(t, context_id)]

    async def get_tasks_with_tag(self, context_id: str, tag: str) -> List[SchedulableItem]:
        return [t for t in await self.get_schedulable_tasks(context_id) if tag in t.tags]

    async def get_unscheduled_items(self, context_id: str) -> List[SchedulableItem]:
        return [t for t in await self.get_schedulable_tasks(context_id)
                if not t.is_scheduled and t.status != "completed"]

    async def get_goals_by_context(self, context_id: str) -> List[Goal]:
        return [g.model_copy(deep=True) for g in self.goals.values()
                if self._in_context(g, context_id)]

    async def get_milestones_by_context(self, context_id: str) -> List[Milestone]:
        return [m.model_copy(deep=True) for m in self.milestones.values()
                if self._in_context(m, context_id)]

    async def get_projects_by_context(self, context_id: str) -> List[Project]:
        return [p.model_copy(deep=True) for p in self.projects.values()
                if self._in_context(p, context_id)]

    # -------------------------
    # writes
    # -------------------------
    async def create_event(self, payload: Dict[str, Any]) -> str:
        event_id = uuid.uuid4().hex
        try:
            event = CalendarEvent(id=event_id, **_clean_fields(copy.deepcopy(payload)))
        except PydanticValidationError as exc:
            raise StoreError(f"Invalid event payload: {exc}") from exc
        self.events[event_id] = event
        self._save_to_disk()
        _log_debug(f"[STORE] created event {event_id} {event.date} {event.start_time}")
        return event_id

    async def update_event(self, event_id: str, fields: Dict[str, Any]) -> None:
        current = self.events.get(event_id)
        if current is None:
            raise StoreError(f"Event {event_id} not found", status=404)
        merged = {**current.model_dump(), **_clean_fields(fields)}
        try:
            self.events[event_id] = CalendarEvent(**merged)
        except PydanticValidationError as exc:
            raise StoreError(f"Invalid event update: {exc}") from exc
        self._save_to_disk()

    async def delete_event(self, event_id: str) -> None:
        if self.events.pop(event_id, None) is None:
            raise StoreError(f"Event {event_id} not found", status=404)
        self._save_to_disk()

    async def schedule_task(self, task_id: str, date: str, time: str) -> None:
        await self.update_task(task_id, {"scheduled_date": date, "scheduled_time": time})

    async def update_task(self, task_id: str, fields: Dict[str, Any]) -> None:
        current = self.tasks.get(task_id)
        if current is None:
            raise StoreError(f"Task {task_id} not found", status=404)
        merged = {**current.model_dump(), **_clean_fields(fields)}
        try:
            self.tasks[task_id] = SchedulableItem(**merged)
        except PydanticValidationError as exc:
            raise StoreError(f"Invalid task update: {exc}") from exc
        self._save_to_disk()
