from household_agenda.engine.conflict_manager import ConflictManager
from household_agenda.models import SlotSuggestion

from tests.factories import make_event


def _events():
    return [
        make_event("e1", "Team meeting", "09:00", "10:00", assigned_to="alice"),
        make_event("e2", "Dentist", "09:30", "10:30", assigned_to="bob"),
    ]


def test_detects_overlap_for_the_same_assignee_only():
    manager = ConflictManager()
    hits = manager.detect_conflicts(_events(), "09:15", 30, assigned_to="alice")
    assert [event.id for event in hits] == ["e1"]
    unassigned = manager.detect_conflicts(_events(), "09:15", 30)
    assert [event.id for event in unassigned] == ["e1", "e2"]


def test_touching_intervals_do_not_conflict():
    manager = ConflictManager()
    assert manager.detect_conflicts(_events(), "10:00", 30, assigned_to="alice") == []
    assert manager.detect_conflicts(_events(), "08:30", 30, assigned_to="alice") == []


def test_excluded_event_is_ignored():
    manager = ConflictManager()
    assert manager.detect_conflicts(_events(), "09:15", 30, assigned_to="alice",
                                    exclude_event_id="e1") == []


def test_suggests_first_free_slots():
    manager = ConflictManager()
    events = [make_event("e1", "Early shift", "05:00", "06:00")]
    suggestions = manager.suggest_alternatives(events, "2024-05-08", "05:30", 30)
    assert [s.alternative_time for s in suggestions] == ["06:00", "06:15", "06:30"]
    assert all(s.alternative_date == "2024-05-08" for s in suggestions)


def test_full_day_falls_back_to_next_day():
    manager = ConflictManager()
    events = [make_event("e1", "Conference", "05:00", "23:00")]
    suggestions = manager.suggest_alternatives(events, "2024-05-08", "09:00", 60)
    assert suggestions == [SlotSuggestion(alternative_date="2024-05-09", alternative_time="09:00")]


def test_check_reports_only_same_day_conflicts():
    manager = ConflictManager()
    events = _events() + [make_event("e3", "Call", "13:00", "14:00", date="2024-05-09")]
    assert manager.check(events, "2024-05-09", "09:15", 30, assigned_to="alice") is None

    report = manager.check(events, "2024-05-08", "09:15", 30, assigned_to="alice")
    assert report is not None
    assert report.target_date == "2024-05-08"
    assert [event.id for event in report.conflicting_events] == ["e1"]
    assert len(report.suggestions) == 3
