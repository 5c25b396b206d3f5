from __future__ import annotations

from datetime import date
from typing import Callable, Iterable, List

from ..errors import ValidationError
from ..models import ScheduleEntry, SidebarFilters
from ..utils import try_parse_date

Predicate = Callable[[ScheduleEntry], bool]


def validate_filters(filters: SidebarFilters) -> None:
  if filters.due_today and filters.overdue:
    raise ValidationError("due_today and overdue cannot both be set; no item is both.")


def _due(entry: ScheduleEntry):
  return try_parse_date(entry.due_date)


def is_due_today(entry: ScheduleEntry, today: date) -> bool:
  due = _due(entry)
  return due is not None and due == today


def is_overdue(entry: ScheduleEntry, today: date) -> bool:
  due = _due(entry)
  return due is not None and due < today


def _matches_search(entry: ScheduleEntry, needle: str) -> bool:
  if needle in (entry.title or "").lower():
    return True
  return bool(entry.description) and needle in entry.description.lower()


def build_predicates(filters: SidebarFilters, today: date) -> List[Predicate]:
  predicates: List[Predicate] = []
  if filters.priority:
    allowed = set(filters.priority)
    predicates.append(lambda entry: entry.priority in allowed)
  if filters.assigned_to:
    members = set(filters.assigned_to)
    predicates.append(lambda entry: entry.assigned_to is not None
                      and entry.assigned_to in members)
  if filters.item_types:
    kinds = set(filters.item_types)
    predicates.append(lambda entry: entry.kind in kinds)
  if filters.due_today:
    predicates.append(lambda entry: is_due_today(entry, today))
  if filters.overdue:
    predicates.append(lambda entry: is_overdue(entry, today))
  needle = (filters.search or "").lower()
  if needle:
    predicates.append(lambda entry: _matches_search(entry, needle))
  return predicates


def apply_filters(entries: Iterable[ScheduleEntry],
                  filters: SidebarFilters,
                  today: date) -> List[ScheduleEntry]:
  """AND of every active predicate; empty lists and an empty search restrict nothing."""
  validate_filters(filters)
  predicates = build_predicates(filters, today)
  return [entry for entry in entries if all(check(entry) for check in predicates)]
