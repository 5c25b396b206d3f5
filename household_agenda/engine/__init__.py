"""
Agenda engine: normalization, ordering, transitions, scheduling
"""

from .agenda import SortStrategy, build_agenda, rank_items
from .conflict_manager import ConflictManager
from .orchestrator import AgendaService
from .refresh import RefreshTrigger
from .scheduler import DropScheduler, SchedulingState

__all__ = [
    "AgendaService",
    "ConflictManager",
    "DropScheduler",
    "RefreshTrigger",
    "SchedulingState",
    "SortStrategy",
    "build_agenda",
    "rank_items",
]
