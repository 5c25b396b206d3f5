import pytest

from household_agenda.engine.normalizer import (
    active_projects,
    goal_to_item,
    goals_needing_attention,
    milestone_to_item,
    normalize_event,
    normalize_events,
    normalize_items,
    normalize_unscheduled_item,
    open_milestones,
    project_to_item,
)
from household_agenda.errors import ParseError
from household_agenda.models import (
    CalendarEvent,
    Domain,
    Energy,
    EntryKind,
    Goal,
    ItemType,
    Milestone,
    Priority,
    Project,
    TimeStatus,
)
from household_agenda.utils import week_bounds

from tests.factories import NOW, make_event, make_task


def test_normalize_event_tags_the_entry():
    event = make_event("e1", "Team meeting", "09:00", "10:00")
    entry = normalize_event(event, [event], NOW)

    assert entry.kind == EntryKind.EVENT
    assert entry.id == "e1"
    assert entry.date == "2024-05-08"
    assert entry.interval.start == "09:00"
    assert entry.domain == Domain.WORK
    assert entry.status == TimeStatus.CURRENT
    assert entry.energy == Energy.HIGH
    assert entry.estimated_duration_minutes == 60
    assert isinstance(entry.source, CalendarEvent)
    assert entry.source is not event
    assert entry.source_id == "e1"


def test_normalize_event_prefers_stored_domain():
    event = make_event("e1", "Team meeting", domain=Domain.FAMILY)
    assert normalize_event(event, [event], NOW).domain == Domain.FAMILY


def test_normalize_unscheduled_item_defaults():
    item = make_task("t1", tags=["family"])
    entry = normalize_unscheduled_item(item)

    assert entry.id == "unscheduled-t1"
    assert entry.interval is None
    assert entry.is_scheduled is False
    assert entry.harmony_score == 50
    assert entry.status == TimeStatus.UPCOMING
    assert entry.domain == Domain.FAMILY
    assert entry.estimated_duration_minutes == 30
    assert entry.source_id == "t1"


def test_default_duration_follows_item_type():
    goal = make_task("g1", item_type=ItemType.GOAL)
    project = make_task("p1", item_type=ItemType.PROJECT)
    assert normalize_unscheduled_item(goal).estimated_duration_minutes == 60
    assert normalize_unscheduled_item(project).estimated_duration_minutes == 90
    sized = make_task("t2", estimated_duration=45)
    assert normalize_unscheduled_item(sized).estimated_duration_minutes == 45


def test_unscheduled_item_with_garbage_due_date_is_rejected():
    with pytest.raises(ParseError):
        normalize_unscheduled_item(make_task("t1", due_date="next tuesday"))


def test_batch_normalizers_skip_malformed_records():
    good = make_event("e1")
    backwards = make_event("e2", start="10:00", end="09:00")
    garbled = make_event("e3", start="9am", end="10am")
    entries = normalize_events([good, backwards, garbled], NOW)
    assert [entry.id for entry in entries] == ["e1"]

    items = normalize_items([make_task("t1"), make_task("t2", due_date="soon")])
    assert [entry.source_id for entry in items] == ["t1"]


def test_goal_milestone_project_conversions():
    goal = goal_to_item(Goal(id="g1", title="Run a 10k", assigned_members=["sam"]))
    assert goal.title == "Goal: Run a 10k"
    assert goal.type == ItemType.GOAL
    assert goal.estimated_duration == 60
    assert goal.assigned_to == "sam"

    milestone = milestone_to_item(Milestone(id="m1", title="Book venue", goal_id="g1"))
    assert milestone.title == "Milestone: Book venue"
    assert milestone.priority == Priority.HIGH
    assert milestone.estimated_duration == 30
    assert milestone.goal_id == "g1"

    project = project_to_item(Project(id="p1", title="Garage", target_end_date="2024-05-10"))
    assert project.title == "Project: Garage"
    assert project.estimated_duration == 90
    assert project.due_date == "2024-05-10"


def test_attention_filters_respect_status_and_week():
    window = week_bounds(NOW.date())
    goals = [
        Goal(id="g1", title="In week", status="in_progress", target_date="2024-05-09"),
        Goal(id="g2", title="Done", status="completed", target_date="2024-05-09"),
        Goal(id="g3", title="Later", status="not_started", target_date="2024-06-01"),
        Goal(id="g4", title="Undated", status="not_started"),
    ]
    assert [item.id for item in goals_needing_attention(goals, window)] == ["g1"]
    assert len(goals_needing_attention(goals, None)) == 3

    milestones = [
        Milestone(id="m1", title="Open", target_date="2024-05-12"),
        Milestone(id="m2", title="Closed", status="completed", target_date="2024-05-12"),
    ]
    assert [item.id for item in open_milestones(milestones, window)] == ["m1"]

    projects = [
        Project(id="p1", title="Active", target_end_date="2024-05-06"),
        Project(id="p2", title="Paused", status="on_hold", target_end_date="2024-05-06"),
    ]
    assert [item.id for item in active_projects(projects, window)] == ["p1"]
