from __future__ import annotations

from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from .timeutil import to_minutes


class Priority(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ItemType(str, Enum):
    TASK = "task"
    MILESTONE = "milestone"
    GOAL = "goal"
    PROJECT = "project"
    SOP = "sop"


class EntryKind(str, Enum):
    TASK = "task"
    MILESTONE = "milestone"
    GOAL = "goal"
    PROJECT = "project"
    SOP = "sop"
    EVENT = "event"
    TRANSITION = "transition"
    BUFFER = "buffer"


class Domain(str, Enum):
    WORK = "work"
    FAMILY = "family"
    PERSONAL = "personal"
    HEALTH = "health"
    HOME = "home"
    TRANSITION = "transition"


class TimeStatus(str, Enum):
    UPCOMING = "upcoming"
    CURRENT = "current"
    COMPLETED = "completed"
    OVERDUE = "overdue"


class Energy(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class DeferOption(str, Enum):
    EVENING = "evening"
    TOMORROW = "tomorrow"
    END_OF_WEEK = "end-of-week"
    NEXT_WEEK = "next-week"
    ARCHIVE = "archive"


# -------------------------
# Source records
# -------------------------
class CalendarEvent(BaseModel):
    id: str
    title: str
    date: str  # "YYYY-MM-DD"
    start_time: str  # "HH:MM"
    end_time: str
    duration: int = 0
    type: str = "manual"
    color: str = "#6b7280"
    description: Optional[str] = None
    context_id: Optional[str] = None
    assigned_to: Optional[str] = None
    status: Optional[str] = "scheduled"
    priority: Optional[Priority] = None
    domain: Optional[Domain] = None
    task_id: Optional[str] = None
    sop_id: Optional[str] = None
    goal_id: Optional[str] = None
    milestone_id: Optional[str] = None
    project_id: Optional[str] = None


class SchedulableItem(BaseModel):
    id: str
    type: ItemType
    title: str
    description: Optional[str] = None
    estimated_duration: Optional[int] = None  # minutes
    priority: Priority = Priority.MEDIUM
    due_date: Optional[str] = None
    scheduled_date: Optional[str] = None
    scheduled_time: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    assigned_to: Optional[str] = None
    status: Optional[str] = None
    context_id: Optional[str] = None
    goal_id: Optional[str] = None
    project_id: Optional[str] = None
    milestone_id: Optional[str] = None

    @property
    def is_scheduled(self) -> bool:
        return bool(self.scheduled_date and self.scheduled_time)


class Goal(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    priority: Priority = Priority.MEDIUM
    status: str = "not_started"
    target_date: Optional[str] = None
    assigned_members: List[str] = Field(default_factory=list)
    context_id: Optional[str] = None


class Milestone(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    status: str = "pending"
    target_date: Optional[str] = None
    goal_id: Optional[str] = None
    project_id: Optional[str] = None
    context_id: Optional[str] = None


class Project(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    priority: Priority = Priority.MEDIUM
    status: str = "active"
    target_end_date: Optional[str] = None
    assigned_members: List[str] = Field(default_factory=list)
    goal_id: Optional[str] = None
    context_id: Optional[str] = None


# -------------------------
# Agenda entries
# -------------------------
class Interval(BaseModel):
    start: str
    end: str

    @model_validator(mode="after")
    def _end_after_start(self) -> "Interval":
        if to_minutes(self.end) <= to_minutes(self.start):
            raise ValueError(f"interval end {self.end} must follow start {self.start}")
        return self

    @property
    def start_minutes(self) -> int:
        return to_minutes(self.start)

    @property
    def end_minutes(self) -> int:
        return to_minutes(self.end)


class ScheduleEntry(BaseModel):
    id: str
    kind: EntryKind
    title: str
    description: Optional[str] = None
    interval: Optional[Interval] = None
    date: Optional[str] = None
    domain: Domain
    priority: Priority = Priority.MEDIUM
    status: TimeStatus = TimeStatus.UPCOMING
    energy: Energy = Energy.MEDIUM
    harmony_score: int = Field(ge=0, le=100)
    source: Optional[Union[CalendarEvent, SchedulableItem]] = None
    estimated_duration_minutes: int = 0
    due_date: Optional[str] = None
    assigned_to: Optional[str] = None

    @model_validator(mode="after")
    def _synthetic_entries_have_no_source(self) -> "ScheduleEntry":
        if self.kind in (EntryKind.TRANSITION, EntryKind.BUFFER) and self.source is not None:
            raise ValueError(f"{self.kind.value} entries cannot carry a source")
        return self

    @property
    def source_id(self) -> Optional[str]:
        return self.source.id if self.source is not None else None

    @property
    def is_scheduled(self) -> bool:
        return self.interval is not None


# -------------------------
# Request / response payloads
# -------------------------
class SidebarFilters(BaseModel):
    priority: List[Priority] = Field(default_factory=list)
    assigned_to: List[str] = Field(default_factory=list)
    due_today: bool = False
    overdue: bool = False
    search: str = ""
    item_types: List[EntryKind] = Field(default_factory=list)


class ScheduleRequest(BaseModel):
    item: SchedulableItem
    slot_start: str
    date: str


class QuickScheduleRequest(BaseModel):
    item: SchedulableItem


class UnscheduleRequest(BaseModel):
    event_id: str
    item_id: Optional[str] = None


class DeferRequest(BaseModel):
    item: SchedulableItem
    option: DeferOption


class MoveEventRequest(BaseModel):
    event: CalendarEvent
    target_date: str
    target_time: str
    new_duration: Optional[int] = None

    @field_validator("new_duration")
    @classmethod
    def _positive_duration(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and value <= 0:
            raise ValueError("new_duration must be positive")
        return value


class ScheduleResult(BaseModel):
    event_id: str
    source_id: str
    date: str
    start_time: str
    end_time: str
    revision: int = 0


class SlotSuggestion(BaseModel):
    alternative_date: str
    alternative_time: str


class ConflictReport(BaseModel):
    target_date: str
    target_time: str
    conflicting_events: List[CalendarEvent]
    suggestions: List[SlotSuggestion]


class CalendarDay(BaseModel):
    date: str
    day_name: str
    is_today: bool
    is_weekend: bool
    entries: List[ScheduleEntry]
    time_slots: List[str]


class CalendarWeek(BaseModel):
    week_start: str
    week_end: str
    days: List[CalendarDay]
    total_events: int
    total_duration: int


# -------------------------
# Read views (carry the refresh revision)
# -------------------------
class ReadFailure(BaseModel):
    source: str
    error: str


class DayAgendaView(BaseModel):
    date: str
    entries: List[ScheduleEntry]
    revision: int
    failures: List[ReadFailure] = Field(default_factory=list)


class WeekAgendaView(BaseModel):
    week: CalendarWeek
    revision: int
    failures: List[ReadFailure] = Field(default_factory=list)


class SidebarView(BaseModel):
    entries: List[ScheduleEntry]
    revision: int
    failures: List[ReadFailure] = Field(default_factory=list)
