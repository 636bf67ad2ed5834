"""
Tests for SleepRecordRepository.

Uses a real SQLite file per test through the db_manager fixture.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from sleep_diary_app.core.constants import RecordOrderColumn, SleepTag
from sleep_diary_app.core.exceptions import DataIntegrityError, RecordNotFoundError, ValidationError
from sleep_diary_app.data.repositories.sleep_record_repository import PaginatedResult

# ============================================================================
# Test writes
# ============================================================================


class TestCreateAndGet:
    """Tests for create and get_by_id."""

    def test_round_trip_preserves_fields(self, db_manager, record_factory) -> None:
        bed = datetime(2024, 1, 15, 23, 0)
        record = record_factory(
            bed_time=bed,
            sleep_time=bed + timedelta(minutes=20),
            tags=("caffeine", "noise"),
            notes="Late coffee",
            wake_up_count=1,
            deep_sleep_minutes=90,
        )

        db_manager.records.create(record)
        loaded = db_manager.records.get_by_id(record.id)

        assert loaded == record
        assert loaded.tags == {SleepTag.CAFFEINE, SleepTag.NOISE}

    def test_get_unknown_returns_none(self, db_manager) -> None:
        assert db_manager.records.get_by_id("record_missing") is None

    def test_duplicate_id_is_integrity_error(self, db_manager, record_factory) -> None:
        record = record_factory(record_id="dup")
        db_manager.records.create(record)

        with pytest.raises(DataIntegrityError):
            db_manager.records.create(record)

    def test_exists(self, db_manager, record_factory) -> None:
        record = db_manager.records.create(record_factory())

        assert db_manager.records.exists(record.id)
        assert not db_manager.records.exists("record_other")


class TestUpdateAndDelete:
    """Tests for update, delete and batch_delete."""

    def test_update_overwrites(self, db_manager, record_factory) -> None:
        record = db_manager.records.create(record_factory(record_id="night-1", quality_score=7))
        edited = record_factory(record_id="night-1", quality_score=3)

        db_manager.records.update(edited)

        assert db_manager.records.get_by_id("night-1").quality_score == 3
        assert record.quality_score == 7

    def test_update_unknown_raises(self, db_manager, record_factory) -> None:
        with pytest.raises(RecordNotFoundError):
            db_manager.records.update(record_factory(record_id="ghost"))

    def test_delete(self, db_manager, record_factory) -> None:
        record = db_manager.records.create(record_factory())

        db_manager.records.delete(record.id)

        assert db_manager.records.get_by_id(record.id) is None

    def test_delete_unknown_raises(self, db_manager) -> None:
        with pytest.raises(RecordNotFoundError):
            db_manager.records.delete("ghost")

    def test_delete_malformed_id_raises(self, db_manager) -> None:
        with pytest.raises(ValidationError):
            db_manager.records.delete("'; DROP TABLE sleep_records; --")

    def test_batch_delete_counts_only_existing(self, db_manager, record_factory) -> None:
        first = db_manager.records.create(record_factory(bed_time=datetime(2024, 1, 15, 23, 0)))
        second = db_manager.records.create(record_factory(bed_time=datetime(2024, 1, 16, 23, 0)))
        keep = db_manager.records.create(record_factory(bed_time=datetime(2024, 1, 17, 23, 0)))

        deleted = db_manager.records.batch_delete([first.id, second.id, "ghost"])

        assert deleted == 2
        assert db_manager.records.count() == 1
        assert db_manager.records.exists(keep.id)

    def test_batch_delete_empty(self, db_manager) -> None:
        assert db_manager.records.batch_delete([]) == 0

    def test_delete_all(self, db_manager, record_factory) -> None:
        for day in (15, 16):
            db_manager.records.create(record_factory(bed_time=datetime(2024, 1, day, 23, 0)))

        assert db_manager.records.delete_all() == 2
        assert db_manager.records.count() == 0


# ============================================================================
# Test listing
# ============================================================================


@pytest.fixture
def week_of_records(db_manager, record_factory):
    """Seven nights from Jan 14 to Jan 20, inserted out of order."""
    records = [record_factory(bed_time=datetime(2024, 1, day, 23, 0)) for day in (17, 14, 20, 15, 19, 16, 18)]
    for record in records:
        db_manager.records.create(record)
    return records


class TestListing:
    """Tests for list_all, list_by_range, list_recent and get_today."""

    def test_list_all_newest_first(self, db_manager, week_of_records) -> None:
        result = db_manager.records.list_all(page=1, page_size=3)

        assert isinstance(result, PaginatedResult)
        assert [r.bed_time.day for r in result.items] == [20, 19, 18]
        assert result.total == 7
        assert result.has_more
        assert result.total_pages == 3

    def test_list_all_last_page(self, db_manager, week_of_records) -> None:
        result = db_manager.records.list_all(page=3, page_size=3)

        assert [r.bed_time.day for r in result.items] == [14]
        assert not result.has_more

    def test_list_all_ascending(self, db_manager, week_of_records) -> None:
        result = db_manager.records.list_all(page_size=2, order_by=RecordOrderColumn.WAKE_TIME, descending=False)

        assert [r.bed_time.day for r in result.items] == [14, 15]

    def test_list_all_rejects_unknown_column(self, db_manager) -> None:
        with pytest.raises(ValidationError):
            db_manager.records.list_all(order_by="quality_score; DROP TABLE sleep_records")

    def test_list_all_rejects_bad_page(self, db_manager) -> None:
        with pytest.raises(ValidationError):
            db_manager.records.list_all(page=0)

    def test_list_by_range_oldest_first_inclusive(self, db_manager, week_of_records) -> None:
        records = db_manager.records.list_by_range(datetime(2024, 1, 16, 23, 0), datetime(2024, 1, 18, 23, 0))

        assert [r.bed_time.day for r in records] == [16, 17, 18]

    def test_list_by_range_inverted(self, db_manager) -> None:
        with pytest.raises(ValidationError):
            db_manager.records.list_by_range(datetime(2024, 1, 18), datetime(2024, 1, 16))

    def test_count_in_range(self, db_manager, week_of_records) -> None:
        assert db_manager.records.count(start=datetime(2024, 1, 19)) == 2

    def test_list_recent(self, db_manager, week_of_records) -> None:
        records = db_manager.records.list_recent(limit=2)

        assert [r.bed_time.day for r in records] == [20, 19]

    def test_list_newest_first(self, db_manager, week_of_records) -> None:
        records = db_manager.records.list_newest_first()

        assert [r.bed_time.day for r in records] == [20, 19, 18, 17, 16, 15, 14]

    def test_get_today(self, db_manager, week_of_records) -> None:
        record = db_manager.records.get_today(date(2024, 1, 17))

        assert record is not None
        assert record.bed_time == datetime(2024, 1, 17, 23, 0)

    def test_get_today_without_record(self, db_manager, week_of_records) -> None:
        assert db_manager.records.get_today(date(2024, 2, 1)) is None


# ============================================================================
# Test timezone-aware bed times
# ============================================================================

TOKYO = timezone(timedelta(hours=9))


class TestAwareTimestamps:
    """Range filters and orderings compare instants, not offset text."""

    def test_window_in_another_offset(self, db_manager, record_factory) -> None:
        """23:00+09:00 is 14:00Z, outside a 15:00Z..00:00Z window."""
        record = db_manager.records.create(record_factory(bed_time=datetime(2024, 1, 15, 23, 0, tzinfo=TOKYO)))

        later = db_manager.records.list_by_range(
            datetime(2024, 1, 15, 15, 0, tzinfo=timezone.utc),
            datetime(2024, 1, 16, 0, 0, tzinfo=timezone.utc),
        )
        around = db_manager.records.list_by_range(
            datetime(2024, 1, 15, 13, 0, tzinfo=timezone.utc),
            datetime(2024, 1, 15, 15, 0, tzinfo=timezone.utc),
        )

        assert later == ()
        assert around == (record,)
        assert db_manager.records.count(start=datetime(2024, 1, 15, 15, 0, tzinfo=timezone.utc)) == 0

    def test_offset_is_kept_on_load(self, db_manager, record_factory) -> None:
        record = db_manager.records.create(record_factory(bed_time=datetime(2024, 1, 15, 23, 0, tzinfo=TOKYO)))

        loaded = db_manager.records.get_by_id(record.id)

        assert loaded.bed_time.utcoffset() == timedelta(hours=9)
        assert loaded.bed_time.hour == 23

    def test_newest_first_by_instant(self, db_manager, record_factory) -> None:
        tokyo_night = db_manager.records.create(
            record_factory(bed_time=datetime(2024, 1, 15, 23, 0, tzinfo=TOKYO), record_id="tokyo")
        )
        utc_night = db_manager.records.create(
            record_factory(bed_time=datetime(2024, 1, 15, 20, 0, tzinfo=timezone.utc), record_id="utc")
        )

        records = db_manager.records.list_newest_first()
        page = db_manager.records.list_all(descending=False)

        assert [r.id for r in records] == [utc_night.id, tokyo_night.id]
        assert [r.id for r in page.items] == [tokyo_night.id, utc_night.id]

    def test_naive_and_aware_records_coexist(self, db_manager, record_factory) -> None:
        naive = db_manager.records.create(record_factory(bed_time=datetime(2024, 1, 13, 23, 0), record_id="naive"))
        aware = db_manager.records.create(
            record_factory(bed_time=datetime(2024, 1, 16, 23, 0, tzinfo=timezone.utc), record_id="aware")
        )

        assert [r.id for r in db_manager.records.list_recent(limit=2)] == [aware.id, naive.id]
        assert db_manager.records.count(start=datetime(2024, 1, 16, 0, 0, tzinfo=timezone.utc)) == 1
