from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Type, TypeVar
from urllib.parse import quote

import requests
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from .config import AGENDA_STORE_TIMEOUT, AGENDA_STORE_TOKEN, AGENDA_STORE_URL
from .errors import StoreError
from .models import CalendarEvent, Goal, Milestone, Project, SchedulableItem
from .utils import _log_debug

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class RemoteDocumentStore:
    """``ScheduleStore`` over a JSON/REST document service.

    Calls are blocking ``requests`` calls pushed to a worker thread so the
    event loop stays free; timeouts are the HTTP client's.
    """

    def __init__(self,
                 base_url: str = AGENDA_STORE_URL,
                 timeout: float = AGENDA_STORE_TIMEOUT,
                 token: str = AGENDA_STORE_TOKEN,
                 session: Optional[requests.Session] = None):
        if not base_url:
            raise ValueError("RemoteDocumentStore needs a base URL (AGENDA_STORE_URL).")
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"

    def _request(self,
                 method: str,
                 path: str,
                 params: Optional[Dict[str, Any]] = None,
                 payload: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{self.base_url}/{path.lstrip('/')}"
        _log_debug(f"[REMOTE STORE] {method} {url} params={params}")
        try:
            resp = self.session.request(method,
                                        url,
                                        params=params,
                                        json=payload,
                                        timeout=self.timeout)
        except requests.RequestException as exc:
            raise StoreError(f"{method} {path} failed: {exc}") from exc

        if resp.status_code >= 400:
            raise StoreError(f"{method} {path} returned {resp.status_code}: {resp.text[:200]}",
                             status=resp.status_code)
        if resp.status_code == 204 or not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as exc:
            raise StoreError(f"{method} {path} returned non-JSON body") from exc

    async def _call(self, method: str, path: str, **kwargs: Any) -> Any:
        return await asyncio.to_thread(self._request, method, path, **kwargs)

    @staticmethod
    def _parse_list(data: Any, model: Type[ModelT], label: str) -> List[ModelT]:
        if isinstance(data, dict):
            data = data.get("items", [])
        if not isinstance(data, list):
            raise StoreError(f"{label} response is not a list.")
        parsed: List[ModelT] = []
        for raw in data:
            if not isinstance(raw, dict):
                continue
            try:
                parsed.append(model(**raw))
            except PydanticValidationError as exc:
                logger.warning("Skipping malformed %s %s: %s", label, raw.get("id"), exc)
        return parsed

    def _context_path(self, context_id: str, collection: str) -> str:
        return f"contexts/{quote(context_id, safe='')}/{collection}"

    # -------------------------
    # reads
    # -------------------------
    async def get_events_for_date_range(self, context_id: str, start: str,
                                        end: str) -> List[CalendarEvent]:
        data = await self._call("GET", self._context_path(context_id, "events"),
                                params={"start_date": start, "end_date": end})
        return self._parse_list(data, CalendarEvent, "event")

    async def get_schedulable_tasks(self, context_id: str) -> List[SchedulableItem]:
        data = await self._call("GET", self._context_path(context_id, "tasks"))
        return self._parse_list(data, SchedulableItem, "task")

    async def get_tasks_with_tag(self, context_id: str, tag: str) -> List[SchedulableItem]:
        data = await self._call("GET", self._context_path(context_id, "tasks"),
                                params={"tag": tag})
        return self._parse_list(data, SchedulableItem, "task")

    async def get_unscheduled_items(self, context_id: str) -> List[SchedulableItem]:
        data = await self._call("GET", self._context_path(context_id, "tasks"),
                                params={"unscheduled": "1"})
        return self._parse_list(data, SchedulableItem, "task")

    async def get_goals_by_context(self, context_id: str) -> List[Goal]:
        data = await self._call("GET", self._context_path(context_id, "goals"))
        return self._parse_list(data, Goal, "goal")

    async def get_milestones_by_context(self, context_id: str) -> List[Milestone]:
        data = await self._call("GET", self._context_path(context_id, "milestones"))
        return self._parse_list(data, Milestone, "milestone")

    async def get_projects_by_context(self, context_id: str) -> List[Project]:
        data = await self._call("GET", self._context_path(context_id, "projects"))
        return self._parse_list(data, Project, "project")

    # -------------------------
    # writes
    # -------------------------
    async def create_event(self, payload: Dict[str, Any]) -> str:
        data = await self._call("POST", "events", payload=payload)
        event_id = data.get("id") if isinstance(data, dict) else None
        if not isinstance(event_id, str) or not event_id:
            raise StoreError("Event create response carried no id.")
        return event_id

    async def update_event(self, event_id: str, fields: Dict[str, Any]) -> None:
        await self._call("PATCH", f"events/{quote(event_id, safe='')}", payload=fields)

    async def delete_event(self, event_id: str) -> None:
        await self._call("DELETE", f"events/{quote(event_id, safe='')}")

    async def schedule_task(self, task_id: str, date: str, time: str) -> None:
        await self.update_task(task_id, {"scheduled_date": date, "scheduled_time": time})

    async def update_task(self, task_id: str, fields: Dict[str, Any]) -> None:
        await self._call("PATCH", f"tasks/{quote(task_id, safe='')}", payload=fields)
