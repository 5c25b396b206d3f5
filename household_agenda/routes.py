from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Query, Request

from .config import API_BASE, DEFAULT_CONTEXT_ID
from .errors import (
    AgendaError,
    ParseError,
    ScheduleFailed,
    SchedulingConflict,
    StoreError,
    ValidationError,
)
from .models import (
    CalendarEvent,
    DayAgendaView,
    DeferRequest,
    EntryKind,
    MoveEventRequest,
    Priority,
    QuickScheduleRequest,
    SchedulableItem,
    ScheduleRequest,
    ScheduleResult,
    SidebarFilters,
    SidebarView,
    UnscheduleRequest,
    WeekAgendaView,
)
from .utils import _log_debug, parse_iso_date

logger = logging.getLogger(__name__)

router = APIRouter(prefix=API_BASE)


def _http_error(exc: AgendaError) -> HTTPException:
  if isinstance(exc, SchedulingConflict):
    return HTTPException(status_code=409,
                         detail={
                             "message": str(exc),
                             "report": exc.report.model_dump(mode="json"),
                         })
  if isinstance(exc, ScheduleFailed):
    # Rejected input never reaches the store.
    status = 400 if isinstance(exc.cause, (ParseError, ValidationError)) else 502
    return HTTPException(status_code=status, detail=exc.to_dict())
  if isinstance(exc, StoreError):
    if exc.status == 404:
      return HTTPException(status_code=404, detail=str(exc))
    return HTTPException(status_code=502, detail=str(exc))
  if isinstance(exc, (ParseError, ValidationError)):
    return HTTPException(status_code=400, detail=str(exc))
  return HTTPException(status_code=500, detail=str(exc))


def _service(request: Request):
  return request.app.state.service


@router.get("/agenda/day", response_model=DayAgendaView)
async def agenda_day(request: Request,
                     context_id: str = Query(DEFAULT_CONTEXT_ID),
                     date: Optional[str] = Query(None)):
  try:
    day = parse_iso_date(date) if date else None
    return await _service(request).day_agenda(context_id, day)
  except AgendaError as exc:
    raise _http_error(exc) from exc


@router.get("/agenda/week", response_model=WeekAgendaView)
async def agenda_week(request: Request,
                      context_id: str = Query(DEFAULT_CONTEXT_ID),
                      week_start: Optional[str] = Query(None)):
  try:
    start = parse_iso_date(week_start) if week_start else None
    return await _service(request).week_agenda(context_id, start)
  except AgendaError as exc:
    raise _http_error(exc) from exc


@router.get("/sidebar", response_model=SidebarView)
async def sidebar(request: Request,
                  context_id: str = Query(DEFAULT_CONTEXT_ID),
                  priority: List[Priority] = Query(default=[]),
                  assigned_to: List[str] = Query(default=[]),
                  item_types: List[EntryKind] = Query(default=[]),
                  due_today: bool = False,
                  overdue: bool = False,
                  search: str = ""):
  filters = SidebarFilters(priority=priority,
                           assigned_to=assigned_to,
                           item_types=item_types,
                           due_today=due_today,
                           overdue=overdue,
                           search=search)
  try:
    return await _service(request).sidebar(context_id, filters)
  except AgendaError as exc:
    raise _http_error(exc) from exc


@router.post("/schedule", response_model=ScheduleResult)
async def schedule_item(request: Request, payload: ScheduleRequest):
  try:
    return await _service(request).scheduler.schedule(payload.item, payload.slot_start,
                                                      payload.date)
  except AgendaError as exc:
    logger.exception("Scheduling %s failed", payload.item.id)
    raise _http_error(exc) from exc


@router.post("/schedule/quick", response_model=ScheduleResult)
async def quick_schedule_item(request: Request, payload: QuickScheduleRequest):
  try:
    return await _service(request).scheduler.quick_schedule(payload.item)
  except AgendaError as exc:
    logger.exception("Quick scheduling %s failed", payload.item.id)
    raise _http_error(exc) from exc


@router.post("/schedule/undo")
async def undo_schedule(request: Request, payload: UnscheduleRequest):
  try:
    revision = await _service(request).scheduler.unschedule(payload.item_id, payload.event_id)
  except AgendaError as exc:
    logger.exception("Undo for event %s failed", payload.event_id)
    raise _http_error(exc) from exc
  return {"ok": True, "event_id": payload.event_id, "revision": revision}


@router.post("/items/{item_id}/defer", response_model=SchedulableItem)
async def defer_item(request: Request, item_id: str, payload: DeferRequest):
  if payload.item.id != item_id:
    raise HTTPException(status_code=400, detail="item_id does not match the payload.")
  try:
    return await _service(request).scheduler.defer_item(payload.item, payload.option)
  except AgendaError as exc:
    logger.exception("Deferring %s failed", item_id)
    raise _http_error(exc) from exc


@router.patch("/events/{event_id}/move", response_model=CalendarEvent)
async def move_event(request: Request,
                     event_id: str,
                     payload: MoveEventRequest,
                     context_id: Optional[str] = Query(None)):
  if payload.event.id != event_id:
    raise HTTPException(status_code=400, detail="event_id does not match the payload.")
  try:
    return await _service(request).scheduler.move_event(payload.event,
                                                        payload.target_date,
                                                        payload.target_time,
                                                        new_duration=payload.new_duration,
                                                        context_id=context_id)
  except SchedulingConflict as exc:
    _log_debug(f"[MOVE] conflict for {event_id}: {exc}")
    raise _http_error(exc) from exc
  except AgendaError as exc:
    logger.exception("Moving event %s failed", event_id)
    raise _http_error(exc) from exc


@router.get("/refresh")
def refresh_state(request: Request, seen: Optional[int] = Query(None)):
  trigger = _service(request).refresh
  payload = {"revision": trigger.value}
  if seen is not None:
    payload["stale"] = trigger.is_stale(seen)
  return payload
