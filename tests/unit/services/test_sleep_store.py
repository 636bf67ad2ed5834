"""
Tests for the Redux-style sleep store.

Covers the reducer's record bookkeeping, statistics recomputation,
subscriptions, middleware and the re-entrancy guard.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, timedelta, timezone

import pytest

from sleep_diary_app.services.sleep_store import Action, Actions, ActionType, SleepState, SleepStore, sleep_reducer

NOW = datetime(2024, 1, 20, 12, 0)
TODAY = date(2024, 1, 20)


@pytest.fixture
def store(engine) -> SleepStore:
    return SleepStore(engine)


# ============================================================================
# Test reducer
# ============================================================================


class TestSleepReducer:
    """Tests for sleep_reducer."""

    def test_record_added_keeps_newest_first(self, engine, record_factory) -> None:
        older = record_factory(bed_time=datetime(2024, 1, 15, 23, 0))
        newer = record_factory(bed_time=datetime(2024, 1, 17, 23, 0))

        state = sleep_reducer(SleepState(), Actions.record_added(older), engine, now=NOW)
        state = sleep_reducer(state, Actions.record_added(newer), engine, now=NOW)

        assert state.records == (newer, older)
        assert state.total_count == 2
        assert state.last_updated == NOW

    def test_record_added_recomputes_statistics(self, engine, record_factory) -> None:
        state = sleep_reducer(
            SleepState(), Actions.record_added(record_factory(duration_minutes=420)), engine, now=NOW
        )

        assert state.statistics is not None
        assert state.statistics.average_duration == 420
        assert state.statistics.total_days == 1

    def test_record_added_twice_replaces(self, engine, record_factory) -> None:
        record = record_factory(record_id="night-1", quality_score=5)
        edited = record_factory(record_id="night-1", quality_score=9)

        state = sleep_reducer(SleepState(), Actions.record_added(record), engine, now=NOW)
        state = sleep_reducer(state, Actions.record_added(edited), engine, now=NOW)

        assert state.records == (edited,)
        assert state.total_count == 1

    def test_record_added_for_today_sets_today_record(self, engine, record_factory) -> None:
        record = record_factory(bed_time=datetime(2024, 1, 20, 1, 0))

        state = sleep_reducer(SleepState(), Actions.record_added(record), engine, today=TODAY, now=NOW)

        assert state.today_record == record

    def test_record_updated_replaces_and_reorders(self, engine, record_factory) -> None:
        first = record_factory(record_id="a", bed_time=datetime(2024, 1, 17, 23, 0))
        second = record_factory(record_id="b", bed_time=datetime(2024, 1, 16, 23, 0))
        state = sleep_reducer(SleepState(), Actions.records_loaded([first, second]), engine, now=NOW)
        moved = replace(second, bed_time=datetime(2024, 1, 18, 23, 0))

        state = sleep_reducer(state, Actions.record_updated(moved), engine, now=NOW)

        assert [r.id for r in state.records] == ["b", "a"]
        assert state.statistics.end_date == datetime(2024, 1, 18, 23, 0)

    def test_record_updated_refreshes_selection(self, engine, record_factory) -> None:
        record = record_factory(record_id="a", quality_score=5)
        state = sleep_reducer(SleepState(), Actions.records_loaded([record]), engine, now=NOW)
        state = sleep_reducer(state, Actions.record_selected(record), engine, now=NOW)
        edited = record_factory(record_id="a", quality_score=8)

        state = sleep_reducer(state, Actions.record_updated(edited), engine, now=NOW)

        assert state.selected_record == edited

    def test_record_updated_unknown_is_ignored(self, engine, record_factory) -> None:
        state = sleep_reducer(SleepState(), Actions.records_loaded([record_factory(record_id="a")]), engine, now=NOW)

        new_state = sleep_reducer(state, Actions.record_updated(record_factory(record_id="zzz")), engine, now=NOW)

        assert new_state is state

    def test_record_deleted_clears_references(self, engine, record_factory) -> None:
        record = record_factory(record_id="a", bed_time=datetime(2024, 1, 20, 0, 30))
        state = sleep_reducer(SleepState(), Actions.record_added(record), engine, today=TODAY, now=NOW)
        state = sleep_reducer(state, Actions.record_selected(record), engine, now=NOW)

        state = sleep_reducer(state, Actions.record_deleted("a"), engine, now=NOW)

        assert state.records == ()
        assert state.selected_record is None
        assert state.today_record is None
        assert state.statistics is None
        assert state.total_count == 0

    def test_batch_deleted(self, engine, record_factory) -> None:
        records = [record_factory(record_id=f"r{day}", bed_time=datetime(2024, 1, day, 23, 0)) for day in (15, 16, 17)]
        state = sleep_reducer(SleepState(), Actions.records_loaded(records), engine, now=NOW)

        state = sleep_reducer(state, Actions.records_batch_deleted(["r15", "r17", "missing"]), engine, now=NOW)

        assert [r.id for r in state.records] == ["r16"]
        assert state.total_count == 1
        assert state.statistics.total_days == 1

    def test_records_loaded_uses_given_total(self, engine, record_factory) -> None:
        state = sleep_reducer(SleepState(), Actions.records_loaded([record_factory()], total_count=40), engine, now=NOW)

        assert state.total_count == 40

    def test_records_merged_appends_and_dedupes(self, engine, record_factory) -> None:
        a = record_factory(record_id="a", bed_time=datetime(2024, 1, 17, 23, 0))
        b = record_factory(record_id="b", bed_time=datetime(2024, 1, 16, 23, 0))
        c = record_factory(record_id="c", bed_time=datetime(2024, 1, 15, 23, 0))
        state = sleep_reducer(SleepState(), Actions.records_loaded([a, b], total_count=2), engine, now=NOW)

        state = sleep_reducer(state, Actions.records_merged([b, c]), engine, now=NOW)

        assert [r.id for r in state.records] == ["a", "b", "c"]
        assert state.total_count == 3

    def test_selection_does_not_recompute(self, engine, record_factory) -> None:
        state = sleep_reducer(SleepState(), Actions.records_loaded([record_factory()]), engine, now=NOW)

        new_state = sleep_reducer(state, Actions.record_selected(None), engine, now=NOW)

        assert new_state.statistics is state.statistics

    def test_state_reset(self, engine, record_factory) -> None:
        state = sleep_reducer(SleepState(), Actions.records_loaded([record_factory()]), engine, now=NOW)

        assert sleep_reducer(state, Actions.state_reset(), engine, now=NOW) == SleepState()

    def test_same_records_in_different_order_give_same_statistics(self, engine, record_factory) -> None:
        records = [record_factory(bed_time=datetime(2024, 1, day, 23, 0), quality_score=day % 10 + 1) for day in range(10, 16)]

        forward = sleep_reducer(SleepState(), Actions.records_loaded(records), engine, now=NOW)
        backward = sleep_reducer(SleepState(), Actions.records_loaded(reversed(records)), engine, now=NOW)

        assert forward.statistics == backward.statistics

    def test_orders_by_instant_across_offsets(self, engine, record_factory) -> None:
        """Naive and aware bed times sort together; 23:00+09:00 is before 20:00Z."""
        naive = record_factory(bed_time=datetime(2024, 1, 13, 23, 0), record_id="naive")
        tokyo = record_factory(bed_time=datetime(2024, 1, 15, 23, 0, tzinfo=timezone(timedelta(hours=9))), record_id="tokyo")
        utc = record_factory(bed_time=datetime(2024, 1, 15, 20, 0, tzinfo=timezone.utc), record_id="utc")

        state = sleep_reducer(SleepState(), Actions.record_added(naive), engine, now=NOW)
        state = sleep_reducer(state, Actions.record_added(tokyo), engine, now=NOW)
        state = sleep_reducer(state, Actions.record_added(utc), engine, now=NOW)

        assert [r.id for r in state.records] == ["utc", "tokyo", "naive"]
        assert state.statistics.total_days == 3


# ============================================================================
# Test store
# ============================================================================


class TestSleepStore:
    """Tests for SleepStore dispatch, subscriptions and middleware."""

    def test_dispatch_updates_state(self, store, record_factory) -> None:
        record = record_factory()

        store.dispatch(Actions.record_added(record), now=NOW)

        assert store.state.records == (record,)

    def test_subscriber_notified_with_old_and_new(self, store, record_factory) -> None:
        calls = []
        store.subscribe(lambda old, new: calls.append((old, new)))

        store.dispatch(Actions.record_added(record_factory()), now=NOW)

        assert len(calls) == 1
        assert calls[0][0].records == ()
        assert len(calls[0][1].records) == 1

    def test_unsubscribe(self, store, record_factory) -> None:
        calls = []
        unsubscribe = store.subscribe(lambda old, new: calls.append(new))
        unsubscribe()

        store.dispatch(Actions.record_added(record_factory()), now=NOW)

        assert calls == []

    def test_no_notification_when_state_unchanged(self, store) -> None:
        calls = []
        store.subscribe(lambda old, new: calls.append(new))

        store.dispatch(Actions.record_selected(None), now=NOW)

        assert calls == []

    def test_failing_subscriber_does_not_block_others(self, store, record_factory) -> None:
        calls = []

        def broken(old, new):
            raise ValueError("boom")

        store.subscribe(broken)
        store.subscribe(lambda old, new: calls.append(new))

        store.dispatch(Actions.record_added(record_factory()), now=NOW)

        assert len(calls) == 1

    def test_middleware_can_cancel(self, store, record_factory) -> None:
        store.add_middleware(lambda action: None if action.type == ActionType.RECORD_ADDED else action)

        store.dispatch(Actions.record_added(record_factory()), now=NOW)

        assert store.state.records == ()
        assert not store.is_dispatching

    def test_middleware_can_rewrite(self, store, record_factory) -> None:
        store.dispatch(Actions.record_added(record_factory()), now=NOW)
        store.add_middleware(lambda action: Action(type=ActionType.STATE_RESET))
        store.dispatch(Actions.records_loaded([record_factory()]), now=NOW)

        assert store.state == SleepState()

    def test_reentrant_dispatch_raises(self, store, record_factory) -> None:
        errors = []

        def nested(old, new):
            try:
                store.dispatch(Actions.state_reset())
            except RuntimeError as e:
                errors.append(e)

        store.subscribe(nested)
        store.dispatch(Actions.record_added(record_factory()), now=NOW)

        assert len(errors) == 1
        assert not store.is_dispatching

    def test_state_diff_names_changed_fields(self) -> None:
        old = SleepState()
        new = replace(old, total_count=3, last_updated=NOW)

        assert SleepStore._get_state_diff(old, new) == ["total_count", "last_updated"]
