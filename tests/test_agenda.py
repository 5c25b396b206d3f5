from household_agenda.engine.agenda import (
    SortStrategy,
    build_agenda,
    dedupe_entries,
    exclude_scheduled,
    rank_items,
    sort_entries,
)
from household_agenda.engine.normalizer import normalize_event, normalize_items
from household_agenda.engine.transitions import insert_transitions
from household_agenda.models import EntryKind, ItemType, Priority

from tests.factories import NOW, make_event, make_task


def test_chronological_puts_timed_entries_first():
    events = [make_event("late", start="14:00", end="15:00"),
              make_event("early", start="08:00", end="08:30")]
    items = [make_task("a"), make_task("b")]
    agenda = build_agenda(events, items, NOW)
    assert [entry.id for entry in agenda] == ["early", "late", "unscheduled-a", "unscheduled-b"]


def test_chronological_sort_is_stable_for_equal_starts():
    first = make_event("first", "Standup", "09:00", "09:15")
    second = make_event("second", "Call", "09:00", "09:30")
    agenda = build_agenda([first, second], [], NOW)
    assert [entry.id for entry in agenda] == ["first", "second"]
    agenda = build_agenda([second, first], [], NOW)
    assert [entry.id for entry in agenda] == ["second", "first"]


def test_chronological_orders_across_dates():
    monday = make_event("mon", start="15:00", end="16:00", date="2024-05-06")
    tuesday = make_event("tue", start="08:00", end="09:00", date="2024-05-07")
    agenda = build_agenda([tuesday, monday], [], NOW)
    assert [entry.id for entry in agenda] == ["mon", "tue"]


def test_intelligent_ranks_priority_then_due_date():
    items = [
        make_task("undated", priority=Priority.HIGH),
        make_task("soon", priority=Priority.HIGH, due_date="2024-05-09"),
        make_task("overdue", priority=Priority.HIGH, due_date="2024-05-01"),
        make_task("low", priority=Priority.LOW, due_date="2024-05-01"),
        make_task("critical", priority=Priority.CRITICAL),
    ]
    ranked = rank_items(items, NOW)
    assert [entry.source_id for entry in ranked] == [
        "critical", "overdue", "soon", "undated", "low"
    ]


def test_intelligent_breaks_ties_by_kind_then_duration():
    items = [
        make_task("sop", item_type=ItemType.SOP),
        make_task("long", estimated_duration=60),
        make_task("short", estimated_duration=15),
        make_task("goal", item_type=ItemType.GOAL),
    ]
    ranked = rank_items(items, NOW)
    assert [entry.source_id for entry in ranked] == ["short", "long", "goal", "sop"]


def test_intelligent_sort_is_stable_for_equal_keys():
    items = [make_task(name, priority=Priority.HIGH, due_date="2024-05-10", estimated_duration=30)
             for name in ("b", "c", "a")]
    assert [entry.source_id for entry in rank_items(items, NOW)] == ["b", "c", "a"]
    assert [entry.source_id for entry in rank_items(items[::-1], NOW)] == ["a", "c", "b"]


def test_dedupe_keeps_first_per_source():
    event = make_event("e1")
    entries = [normalize_event(event, [event], NOW), normalize_event(event, [event], NOW)]
    entries += normalize_items([make_task("t1"), make_task("t1", title="copy")])
    unique = dedupe_entries(entries)
    assert [entry.id for entry in unique] == ["e1", "unscheduled-t1"]
    assert unique[1].title == "Task t1"


def test_exclude_scheduled():
    items = [make_task("open"),
             make_task("placed", scheduled_date="2024-05-08", scheduled_time="10:00")]
    assert [item.id for item in exclude_scheduled(items)] == ["open"]


def test_sort_entries_does_not_touch_input():
    entries = normalize_items([make_task("b", priority=Priority.LOW), make_task("a")])
    before = [entry.id for entry in entries]
    sort_entries(entries, SortStrategy.INTELLIGENT, today=NOW.date())
    assert [entry.id for entry in entries] == before


def test_day_pipeline_end_to_end():
    events = [
        make_event("e2", "School run", "10:30", "11:00"),
        make_event("e1", "Team meeting", "09:00", "10:00"),
        make_event("broken", "Lunch", "13:00", "12:00"),
    ]
    items = [make_task("t1", tags=["home"])]
    agenda = insert_transitions(build_agenda(events, items, NOW))

    assert [entry.id for entry in agenda] == [
        "e1", "transition-2024-05-08-0", "e2", "unscheduled-t1"
    ]
    timed = [entry for entry in agenda if entry.interval is not None]
    starts = [entry.interval.start_minutes for entry in timed]
    assert starts == sorted(starts)
    assert agenda[1].kind == EntryKind.TRANSITION
    assert agenda[-1].is_scheduled is False


def test_work_event_then_unscheduled_family_task():
    event = make_event("e1", "Team meeting", "09:00", "10:00")
    task = make_task("t1", "Pack lunches", priority=Priority.HIGH, estimated_duration=30,
                     tags=["family"])
    agenda = insert_transitions(build_agenda([event], [task], NOW))

    assert [entry.id for entry in agenda] == ["e1", "unscheduled-t1"]
    assert agenda[0].domain.value == "work"
    assert agenda[1].domain.value == "family"
    assert agenda[1].interval is None
