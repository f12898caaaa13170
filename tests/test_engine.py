"""Tests für Habit-Verwaltung, Umschalten und Fehlerverhalten der Engine."""

import logging
from datetime import date, datetime, timedelta, timezone
from uuid import UUID, uuid4

import pytest

from habit_tracker.db import PersistenceError
from habit_tracker.models import DEFAULT_HABITS
from habit_tracker.repositories import COMPLETIONS_KEY, HABITS_KEY
from habit_tracker.services import HabitTrackingEngine
from tests.conftest import TODAY


@pytest.mark.unit
class TestHabitRegistry:
    def test_add_habit_sets_id_and_created_date(self, engine, clock):
        h = engine.add_habit("  Meditate ", "🧘", "#AF52DE")
        assert isinstance(h.id, UUID)
        assert h.title == "Meditate"
        assert h.created_date == clock.now()
        assert engine.habits == [h]

    def test_add_habit_persists_habits_blob(self, engine, store):
        engine.add_habit("Read", "📖", "#4F86F7")
        assert store.saves == [HABITS_KEY]
        assert "Read" in store.data[HABITS_KEY]

    def test_insertion_order_is_kept(self, engine):
        titles = ["A", "B", "C"]
        for t in titles:
            engine.add_habit(t, "🎯", "#FF9500")
        assert [h.title for h in engine.habits] == titles

    def test_ids_are_unique(self, engine):
        a = engine.add_habit("A", "🎯", "#FF9500")
        b = engine.add_habit("A", "🎯", "#FF9500")
        assert a.id != b.id

    def test_blank_title_rejected(self, engine, store):
        with pytest.raises(ValueError):
            engine.add_habit("   ", "🎯", "#FF9500")
        assert engine.habits == []
        assert store.saves == []

    def test_get_habit_accepts_string_id(self, engine, habit):
        assert engine.get_habit(str(habit.id)) == habit
        assert engine.get_habit(str(habit.id).upper()) == habit
        assert engine.get_habit("garbage") is None

    def test_update_habit(self, engine, habit):
        updated = engine.update_habit(habit.id, title="Read more", color_tag="#34C759")
        assert updated.title == "Read more"
        assert updated.color_tag == "#34C759"
        assert updated.id == habit.id
        assert updated.created_date == habit.created_date
        assert engine.habits == [updated]

    def test_update_unknown_habit_is_noop(self, engine):
        assert engine.update_habit(uuid4(), title="X") is None

    def test_update_rejects_blank_title(self, engine, habit):
        with pytest.raises(ValueError):
            engine.update_habit(habit.id, title=" ")
        assert engine.get_habit(habit.id).title == "Read"

    def test_ensure_default_habits_only_once(self, engine):
        created = engine.ensure_default_habits()
        assert [h.title for h in created] == [t for t, _, _ in DEFAULT_HABITS]
        assert engine.ensure_default_habits() == []
        assert len(engine.habits) == len(DEFAULT_HABITS)


@pytest.mark.unit
class TestDelete:
    def test_delete_cascades_completions(self, engine, habit):
        engine.toggle_completion(habit.id, TODAY)
        engine.toggle_completion(habit.id, TODAY - timedelta(days=1))
        assert engine.delete_habit(habit.id) is True
        assert engine.habits == []
        assert str(habit.id) not in engine.completion_sets()
        assert engine.current_streak(habit.id) == 0
        assert engine.total_completions(habit.id) == 0

    def test_delete_persists_both_blobs(self, engine, habit, store):
        store.saves.clear()
        engine.delete_habit(habit.id)
        assert sorted(store.saves) == sorted([HABITS_KEY, COMPLETIONS_KEY])

    def test_delete_unknown_is_noop(self, engine, habit, store):
        store.saves.clear()
        assert engine.delete_habit(uuid4()) is False
        assert engine.delete_habit("nope") is False
        assert engine.habits == [habit]
        assert store.saves == []

    def test_delete_clears_selection(self, engine, habit):
        other = engine.add_habit("Walk", "🚶", "#34C759")
        engine.select_habit(habit.id)
        engine.delete_habit(other.id)
        assert engine.selected_habit == habit
        engine.delete_habit(habit.id)
        assert engine.selected_habit is None
        assert engine.session.selected_habit_id is None


@pytest.mark.unit
class TestToggle:
    def test_toggle_marks_and_unmarks(self, engine, habit):
        assert engine.toggle_completion(habit.id, TODAY) is True
        assert engine.is_completed(habit.id, TODAY)
        assert engine.toggle_completion(habit.id, TODAY) is False
        assert not engine.is_completed(habit.id, TODAY)

    def test_double_toggle_restores_previous_state(self, engine, habit):
        engine.toggle_completion(habit.id, TODAY - timedelta(days=3))
        before = engine.completion_sets()
        engine.toggle_completion(habit.id, TODAY)
        engine.toggle_completion(habit.id, TODAY)
        assert engine.completion_sets() == before

    def test_default_day_is_today(self, engine, habit):
        engine.toggle_completion(habit.id)
        assert engine.is_completed_today(habit.id)
        assert engine.completion_dates(habit.id) == [TODAY.isoformat()]

    def test_datetime_is_normalized_to_day(self, engine, habit):
        engine.toggle_completion(habit.id, datetime(2025, 3, 10, 23, 59))
        assert engine.is_completed(habit.id, date(2025, 3, 10))
        engine.toggle_completion(habit.id, datetime(2025, 3, 10, 0, 1))
        assert not engine.is_completed(habit.id, date(2025, 3, 10))

    def test_aware_datetime_uses_local_day(self, engine, habit):
        moment = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)
        engine.toggle_completion(habit.id, moment)
        assert engine.completion_dates(habit.id) == [moment.astimezone().date().isoformat()]

    def test_total_matches_set_size(self, engine, habit):
        days = [TODAY - timedelta(days=d) for d in (0, 1, 1, 5, 9, 5, 5)]
        for d in days:
            engine.toggle_completion(habit.id, d)
        assert engine.total_completions(habit.id) == len(engine.completion_sets()[str(habit.id)])
        assert engine.total_completions(habit.id) == 3

    def test_every_toggle_persists(self, engine, habit, store):
        store.saves.clear()
        engine.toggle_completion(habit.id, TODAY)
        engine.toggle_completion(habit.id, TODAY)
        assert store.saves == [COMPLETIONS_KEY, COMPLETIONS_KEY]

    def test_unknown_habit_is_silent_noop(self, engine, habit, store):
        store.saves.clear()
        assert engine.toggle_completion(uuid4(), TODAY) is False
        assert engine.toggle_completion("garbage", TODAY) is False
        assert store.saves == []
        assert engine.completion_sets() == {}

    def test_session_counts_marks(self, engine, habit):
        engine.toggle_completion(habit.id, TODAY)
        engine.toggle_completion(habit.id, TODAY)
        engine.toggle_completion(habit.id, TODAY - timedelta(days=1))
        assert engine.session.completions_this_session == 2


@pytest.mark.unit
class TestSelection:
    def test_select_and_clear(self, engine, habit):
        assert engine.select_habit(str(habit.id)) is True
        assert engine.selected_habit == habit
        assert engine.session.view_history == [f"detail:{habit.id}"]
        assert engine.select_habit(None) is True
        assert engine.selected_habit is None

    def test_select_unknown_keeps_selection(self, engine, habit):
        engine.select_habit(habit.id)
        assert engine.select_habit(uuid4()) is False
        assert engine.selected_habit == habit


@pytest.mark.unit
class TestPersistenceFailures:
    def test_save_failure_is_logged_and_state_kept(self, engine, habit, store, caplog):
        store.fail_on_save = True
        with caplog.at_level(logging.ERROR, logger="habit_tracker.services"):
            assert engine.toggle_completion(habit.id, TODAY) is True
        assert engine.is_completed(habit.id, TODAY)
        assert isinstance(engine.last_persistence_error, PersistenceError)
        assert "konnte nicht gespeichert werden" in caplog.text

    def test_strict_mode_raises(self, store, clock):
        eng = HabitTrackingEngine.from_store(store, clock=clock, strict_persistence=True)
        store.fail_on_save = True
        with pytest.raises(PersistenceError):
            eng.add_habit("Read", "📖", "#4F86F7")

    def test_load_failure_starts_empty(self, store, clock, caplog):
        store.fail_on_load = True
        with caplog.at_level(logging.ERROR, logger="habit_tracker.services"):
            eng = HabitTrackingEngine.from_store(store, clock=clock)
        assert eng.habits == []
        assert eng.last_persistence_error is not None

    def test_load_failure_strict_raises(self, store, clock):
        store.fail_on_load = True
        with pytest.raises(PersistenceError):
            HabitTrackingEngine.from_store(store, clock=clock, strict_persistence=True)

    def test_store_oserror_on_save_is_reported(self, engine, habit, store):
        store.fail_exc = OSError
        store.fail_on_save = True
        assert engine.toggle_completion(habit.id, TODAY) is True
        assert engine.is_completed(habit.id, TODAY)
        assert isinstance(engine.last_persistence_error, PersistenceError)

    def test_store_oserror_on_load_starts_empty(self, store, clock):
        store.fail_exc = OSError
        store.fail_on_load = True
        eng = HabitTrackingEngine.from_store(store, clock=clock)
        assert eng.habits == []
        assert isinstance(eng.last_persistence_error, PersistenceError)


@pytest.mark.unit
def test_close_ends_session(engine, habit):
    engine.select_habit(habit.id)
    engine.toggle_completion(habit.id, TODAY)
    engine.close()
    assert engine.session.selected_habit_id is None
    assert engine.session.completions_this_session == 0
    assert engine.session.view_history == []
