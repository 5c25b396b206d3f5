import asyncio
from datetime import date

from household_agenda.engine.context_provider import load_day_context, load_sidebar_items, load_week_context
from household_agenda.errors import StoreError
from household_agenda.models import Goal, Milestone, Project
from household_agenda.state import InMemoryStore

from tests.factories import make_event, make_task

DAY = date(2024, 5, 8)


class FlakyStore(InMemoryStore):
    """In-memory store whose named reads fail."""

    def __init__(self, failing=()):
        super().__init__()
        self.failing = set(failing)

    async def get_schedulable_tasks(self, context_id):
        if "tasks" in self.failing:
            raise StoreError("tasks backend down", status=503)
        return await super().get_schedulable_tasks(context_id)

    async def get_goals_by_context(self, context_id):
        if "goals" in self.failing:
            raise StoreError("goals backend down", status=503)
        return await super().get_goals_by_context(context_id)


def test_day_pool_is_due_today_or_inbox():
    store = InMemoryStore()
    store.add_event(make_event("e1"))
    store.add_task(make_task("due", due_date="2024-05-08T18:00:00"))
    store.add_task(make_task("inbox", tags=["inbox"]))
    store.add_task(make_task("tomorrow", due_date="2024-05-09"))
    store.add_task(make_task("done", due_date="2024-05-08", status="completed"))
    store.add_task(make_task("placed", due_date="2024-05-08", scheduled_date="2024-05-08",
                             scheduled_time="11:00"))

    context = asyncio.run(load_day_context(store, "household", DAY))
    assert [event.id for event in context["events"]] == ["e1"]
    assert [item.id for item in context["unscheduled"]] == ["due", "inbox"]
    assert context["failures"] == []


def test_failing_source_degrades_to_empty():
    store = FlakyStore(failing={"tasks"})
    store.add_event(make_event("e1"))
    store.add_task(make_task("due", due_date="2024-05-08"))

    context = asyncio.run(load_day_context(store, "household", DAY))
    assert [event.id for event in context["events"]] == ["e1"]
    assert context["unscheduled"] == []
    assert [failure.source for failure in context["failures"]] == ["tasks"]
    assert isinstance(context["failures"][0].cause, StoreError)


def test_week_context_spans_monday_to_sunday():
    store = InMemoryStore()
    store.add_event(make_event("sun-before", date="2024-05-05"))
    store.add_event(make_event("mon", date="2024-05-06"))
    store.add_event(make_event("sun", date="2024-05-12"))
    store.add_event(make_event("mon-after", date="2024-05-13"))

    context = asyncio.run(load_week_context(store, "household", DAY))
    assert [event.id for event in context["events"]] == ["mon", "sun"]
    assert context["scope"] == {"start_date": "2024-05-06", "end_date": "2024-05-12"}


def test_sidebar_collects_each_source_once():
    store = InMemoryStore()
    store.add_task(make_task("t1", tags=["inbox"]))
    store.add_task(make_task("archived", tags=["inbox", "archived"]))
    store.add_goal(Goal(id="g1", title="Run", status="in_progress", target_date="2024-05-10"))
    store.add_goal(Goal(id="g2", title="Later", target_date="2024-06-10"))
    store.add_milestone(Milestone(id="m1", title="Venue", target_date="2024-05-06"))
    store.add_project(Project(id="p1", title="Garage", target_end_date="2024-05-12"))

    context = asyncio.run(load_sidebar_items(store, "household", DAY))
    assert [item.id for item in context["items"]] == ["t1", "g1", "m1", "p1"]
    assert context["items"][1].title == "Goal: Run"


def test_sidebar_survives_a_failing_source():
    store = FlakyStore(failing={"goals"})
    store.add_task(make_task("t1"))
    store.add_goal(Goal(id="g1", title="Run", target_date="2024-05-10"))

    context = asyncio.run(load_sidebar_items(store, "household", DAY))
    assert [item.id for item in context["items"]] == ["t1"]
    assert [failure.source for failure in context["failures"]] == ["goals"]
