"""Error taxonomy for the agenda engine.

Read-path errors (``ParseError``, ``FetchFailed``) are isolated per record or
per source and logged. Write-path errors (``ScheduleFailed``,
``SchedulingConflict``) always propagate to the caller.
"""

from __future__ import annotations

from typing import Any, List, Optional


class AgendaError(Exception):
    """Base class for every error raised by this package."""


class ParseError(AgendaError, ValueError):
    """Malformed time string, date, or source record."""


class DayOverflowError(ParseError):
    """Time arithmetic left the [00:00, 24:00] window of a single day."""


class ValidationError(AgendaError, ValueError):
    """Invalid filter combination or malformed item handed to the pipeline."""


class StoreError(AgendaError):
    """A storage collaborator call failed."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class FetchFailed(AgendaError):
    """A read collaborator failed; the caller degrades to an empty list."""

    def __init__(self, source: str, cause: BaseException):
        super().__init__(f"{source} fetch failed: {cause}")
        self.source = source
        self.cause = cause


class ScheduleFailed(AgendaError):
    """A scheduling attempt did not reach DONE.

    ``state`` is the last state reached. When the event was created but the
    source item could not be marked, ``event_id`` is set and ``compensated``
    tells whether the event was deleted again.
    """

    def __init__(self,
                 message: str,
                 state: str,
                 source_id: Optional[str] = None,
                 event_id: Optional[str] = None,
                 compensated: bool = False,
                 cause: Optional[BaseException] = None):
        super().__init__(message)
        self.state = state
        self.source_id = source_id
        self.event_id = event_id
        self.compensated = compensated
        self.cause = cause

    @property
    def dangling_event_id(self) -> Optional[str]:
        if self.event_id and not self.compensated:
            return self.event_id
        return None

    def to_dict(self) -> dict:
        return {
            "message": str(self),
            "state": self.state,
            "source_id": self.source_id,
            "event_id": self.event_id,
            "compensated": self.compensated,
            "dangling_event_id": self.dangling_event_id,
        }


class SchedulingConflict(AgendaError):
    """Moving an event would overlap other events for the same assignee."""

    def __init__(self, report: Any):
        conflicting: List[Any] = list(getattr(report, "conflicting_events", []) or [])
        super().__init__(
            f"Scheduling conflict detected with {len(conflicting)} events")
        self.report = report
