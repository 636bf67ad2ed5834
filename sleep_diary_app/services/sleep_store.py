"""
Redux-style state container for the sleep diary.

This module implements a unidirectional data flow pattern:
    Action -> Dispatch -> Reducer -> New State -> Notify Subscribers

Local edits and storage-confirmed results go through the same reducer, so
there is exactly one place where the in-memory record list changes. Every
action that changes the record set also recomputes statistics through the
engine.

Usage:
    store = SleepStore(engine)
    store.subscribe(my_callback)
    store.dispatch(Actions.record_added(record))
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, fields, replace
from datetime import date, datetime
from enum import StrEnum, auto
from typing import TYPE_CHECKING, Any

from sleep_diary_app.utils.date_range import to_instant

if TYPE_CHECKING:
    from sleep_diary_app.core.dataclasses_record import SleepRecord
    from sleep_diary_app.core.dataclasses_statistics import SleepStatistics
    from sleep_diary_app.core.statistics_engine import StatisticsEngine

logger = logging.getLogger(__name__)


# =============================================================================
# State
# =============================================================================


@dataclass(frozen=True)
class SleepState:
    """Immutable diary state. Records are kept newest bed time first."""

    records: tuple[SleepRecord, ...] = ()
    selected_record: SleepRecord | None = None
    today_record: SleepRecord | None = None
    statistics: SleepStatistics | None = None
    total_count: int = 0
    last_updated: datetime | None = None


# =============================================================================
# Actions
# =============================================================================


class ActionType(StrEnum):
    """All possible action types."""

    RECORD_ADDED = auto()
    RECORD_UPDATED = auto()
    RECORD_DELETED = auto()
    RECORDS_BATCH_DELETED = auto()
    RECORDS_LOADED = auto()
    RECORDS_MERGED = auto()
    RECORD_SELECTED = auto()
    TODAY_RECORD_LOADED = auto()
    STATE_RESET = auto()


@dataclass(frozen=True)
class Action:
    """
    Represents an action that can change state.

    Actions are immutable and describe what happened, not how to update state.
    """

    type: ActionType
    payload: dict[str, Any] | None = None


class Actions:
    """Action creators."""

    @staticmethod
    def record_added(record: SleepRecord) -> Action:
        return Action(type=ActionType.RECORD_ADDED, payload={"record": record})

    @staticmethod
    def record_updated(record: SleepRecord) -> Action:
        return Action(type=ActionType.RECORD_UPDATED, payload={"record": record})

    @staticmethod
    def record_deleted(record_id: str) -> Action:
        return Action(type=ActionType.RECORD_DELETED, payload={"record_id": record_id})

    @staticmethod
    def records_batch_deleted(record_ids: Iterable[str]) -> Action:
        return Action(type=ActionType.RECORDS_BATCH_DELETED, payload={"record_ids": frozenset(record_ids)})

    @staticmethod
    def records_loaded(records: Iterable[SleepRecord], total_count: int | None = None) -> Action:
        """Replace the record list (e.g. after reading a page from storage)."""
        return Action(
            type=ActionType.RECORDS_LOADED,
            payload={"records": tuple(records), "total_count": total_count},
        )

    @staticmethod
    def records_merged(
        records: Iterable[SleepRecord],
        prepend: bool = False,
        total_count: int | None = None,
    ) -> Action:
        """Merge records into the list; incoming versions win on id clashes."""
        return Action(
            type=ActionType.RECORDS_MERGED,
            payload={"records": tuple(records), "prepend": prepend, "total_count": total_count},
        )

    @staticmethod
    def record_selected(record: SleepRecord | None) -> Action:
        return Action(type=ActionType.RECORD_SELECTED, payload={"record": record})

    @staticmethod
    def today_record_loaded(record: SleepRecord | None) -> Action:
        return Action(type=ActionType.TODAY_RECORD_LOADED, payload={"record": record})

    @staticmethod
    def state_reset() -> Action:
        return Action(type=ActionType.STATE_RESET)


# =============================================================================
# Reducer
# =============================================================================


def _newest_first(records: Iterable[SleepRecord]) -> tuple[SleepRecord, ...]:
    return tuple(sorted(records, key=lambda r: to_instant(r.bed_time), reverse=True))


def _with_records(
    state: SleepState,
    records: tuple[SleepRecord, ...],
    engine: StatisticsEngine,
    now: datetime,
    **changes: Any,
) -> SleepState:
    return replace(
        state,
        records=records,
        statistics=engine.recompute(records),
        last_updated=now,
        **changes,
    )


def _same_id(record: SleepRecord | None, record_id: str) -> bool:
    return record is not None and record.id == record_id


def sleep_reducer(
    state: SleepState,
    action: Action,
    engine: StatisticsEngine,
    today: date | None = None,
    now: datetime | None = None,
) -> SleepState:
    """
    Pure state transition.

    Args:
        state: Current state
        action: What happened
        engine: Used to recompute statistics when the record set changes
        today: Calendar day used to maintain today_record
        now: Timestamp stored as last_updated

    """
    now = now or datetime.now()
    today = today or now.date()
    payload = action.payload or {}

    match action.type:
        case ActionType.RECORD_ADDED:
            record: SleepRecord = payload["record"]
            remaining = [r for r in state.records if r.id != record.id]
            replaced = len(remaining) != len(state.records)
            today_record = record if record.bed_time.date() == today else state.today_record
            return _with_records(
                state,
                _newest_first([record, *remaining]),
                engine,
                now,
                total_count=state.total_count if replaced else state.total_count + 1,
                today_record=today_record,
            )

        case ActionType.RECORD_UPDATED:
            record = payload["record"]
            if not any(r.id == record.id for r in state.records):
                logger.debug("Update for record %s not in state; ignored", record.id)
                return state
            records = _newest_first(record if r.id == record.id else r for r in state.records)
            today_record = state.today_record
            if _same_id(today_record, record.id):
                today_record = record if record.bed_time.date() == today else None
            elif record.bed_time.date() == today:
                today_record = record
            return _with_records(
                state,
                records,
                engine,
                now,
                selected_record=record if _same_id(state.selected_record, record.id) else state.selected_record,
                today_record=today_record,
            )

        case ActionType.RECORD_DELETED:
            record_id: str = payload["record_id"]
            records = tuple(r for r in state.records if r.id != record_id)
            removed = len(state.records) - len(records)
            return _with_records(
                state,
                records,
                engine,
                now,
                total_count=max(0, state.total_count - removed),
                selected_record=None if _same_id(state.selected_record, record_id) else state.selected_record,
                today_record=None if _same_id(state.today_record, record_id) else state.today_record,
            )

        case ActionType.RECORDS_BATCH_DELETED:
            record_ids: frozenset[str] = payload["record_ids"]
            records = tuple(r for r in state.records if r.id not in record_ids)
            removed = len(state.records) - len(records)
            selected = state.selected_record
            today_record = state.today_record
            return _with_records(
                state,
                records,
                engine,
                now,
                total_count=max(0, state.total_count - removed),
                selected_record=None if selected is not None and selected.id in record_ids else selected,
                today_record=None if today_record is not None and today_record.id in record_ids else today_record,
            )

        case ActionType.RECORDS_LOADED:
            records = _newest_first(payload["records"])
            total_count = payload.get("total_count")
            return _with_records(
                state,
                records,
                engine,
                now,
                total_count=len(records) if total_count is None else total_count,
            )

        case ActionType.RECORDS_MERGED:
            incoming: tuple[SleepRecord, ...] = payload["records"]
            incoming_ids = {r.id for r in incoming}
            kept = [r for r in state.records if r.id not in incoming_ids]
            added = len(incoming_ids) - (len(state.records) - len(kept))
            merged = [*incoming, *kept] if payload.get("prepend") else [*kept, *incoming]
            total_count = payload.get("total_count")
            return _with_records(
                state,
                _newest_first(merged),
                engine,
                now,
                total_count=state.total_count + added if total_count is None else total_count,
            )

        case ActionType.RECORD_SELECTED:
            return replace(state, selected_record=payload.get("record"))

        case ActionType.TODAY_RECORD_LOADED:
            return replace(state, today_record=payload.get("record"))

        case ActionType.STATE_RESET:
            return SleepState()

        case _:
            logger.warning("Unknown action type: %s", action.type)
            return state


# =============================================================================
# Store
# =============================================================================

StateChangeCallback = Callable[[SleepState, SleepState], None]
UnsubscribeFunction = Callable[[], None]


class SleepStore:
    """
    Holds the diary state and manages subscriptions.

    The store:
    - Holds the single source of truth for diary state
    - Dispatches actions through the reducer
    - Notifies subscribers when state changes
    - Supports middleware that can rewrite or cancel actions
    """

    def __init__(self, engine: StatisticsEngine, initial_state: SleepState | None = None) -> None:
        self._engine = engine
        self._state = initial_state or SleepState()
        self._subscribers: list[StateChangeCallback] = []
        self._middleware: list[Callable[[Action], Action | None]] = []
        self._is_dispatching = False

    @property
    def state(self) -> SleepState:
        """Get current state (read-only)."""
        return self._state

    @property
    def is_dispatching(self) -> bool:
        return self._is_dispatching

    def dispatch(self, action: Action, today: date | None = None, now: datetime | None = None) -> None:
        """Dispatch an action to change state."""
        if self._is_dispatching:
            msg = f"Cannot dispatch {action.type} while a dispatch is in progress."
            raise RuntimeError(msg)

        try:
            self._is_dispatching = True
            logger.info("ACTION DISPATCHED: %s", action.type)

            processed_action: Action | None = action
            for middleware in self._middleware:
                if processed_action is None:
                    return
                processed_action = middleware(processed_action)

            if processed_action is None:
                logger.debug("ACTION CANCELLED: %s", action.type)
                return

            old_state = self._state
            new_state = sleep_reducer(old_state, processed_action, self._engine, today=today, now=now)

            if old_state != new_state:
                self._state = new_state
                logger.debug(
                    "STATE CHANGED: %s | Fields: %s",
                    processed_action.type,
                    ", ".join(self._get_state_diff(old_state, new_state)),
                )
                self._notify_subscribers(old_state, new_state)
            else:
                logger.debug("STATE UNCHANGED: %s", processed_action.type)

        finally:
            self._is_dispatching = False

    def subscribe(self, callback: StateChangeCallback) -> UnsubscribeFunction:
        """Subscribe to state changes; returns a function that unsubscribes."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def add_middleware(self, middleware: Callable[[Action], Action | None]) -> None:
        """
        Add middleware to process actions before they reach the reducer.

        Middleware may return a modified action, or None to cancel it.
        """
        self._middleware.append(middleware)

    def _notify_subscribers(self, old_state: SleepState, new_state: SleepState) -> None:
        for callback in self._subscribers[:]:  # Copy list to allow unsubscribe during iteration
            try:
                callback(old_state, new_state)
            except Exception:
                logger.exception("Error in subscriber callback")

    @staticmethod
    def _get_state_diff(old_state: SleepState, new_state: SleepState) -> list[str]:
        """Names of fields that changed."""
        return [f.name for f in fields(SleepState) if getattr(old_state, f.name) != getattr(new_state, f.name)]
