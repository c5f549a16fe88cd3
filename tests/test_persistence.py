"""Tests for the persistence layer: database lifecycle, repositories and store."""

from datetime import timedelta

import pytest
from sqlalchemy import inspect

from vacancy_scanner.domain.models import ListingStatus, UserSchedule
from vacancy_scanner.persistence import (
    DatabaseConnectionError,
    DataIntegrityError,
    ListingRepository,
    ListingStore,
    ScheduleRepository,
    close_database,
    get_engine,
    get_session,
    init_database,
)
from vacancy_scanner.persistence.schema import (
    TIMESTAMP_FORMAT,
    _format_datetime,
    _parse_datetime,
)

from tests.helpers import NOW, make_listing


class TestDatabaseInitialization:
    """Test database initialization and lifecycle."""

    def test_init_creates_tables(self, tmp_path):
        db_file = tmp_path / "nested" / "dir" / "scanner.db"

        init_database(f"sqlite:///{db_file}")
        try:
            assert db_file.exists()
            tables = inspect(get_engine()).get_table_names()
            assert "listings" in tables
            assert "user_schedules" in tables
        finally:
            close_database()

    def test_init_is_idempotent(self, tmp_path):
        db_url = f"sqlite:///{tmp_path / 'scanner.db'}"

        init_database(db_url)
        close_database()
        init_database(db_url)
        close_database()

    def test_session_requires_init(self):
        close_database()

        with pytest.raises(DatabaseConnectionError, match="not initialized"):
            with get_session():
                pass

    def test_empty_url_rejected(self):
        with pytest.raises(DatabaseConnectionError):
            init_database("")

    def test_session_rolls_back_on_error(self, database):
        with pytest.raises(RuntimeError):
            with get_session() as session:
                ScheduleRepository(session).save(UserSchedule(user_id=1))
                raise RuntimeError("boom")

        with get_session() as session:
            assert ScheduleRepository(session).get(1) is None


class TestTimestampStorage:
    """Stored timestamps must sort chronologically as strings."""

    def test_format_is_fixed_width(self):
        formatted = _format_datetime(NOW)

        assert formatted == NOW.strftime(TIMESTAMP_FORMAT)
        assert formatted.endswith("Z")

    def test_string_order_matches_time_order(self):
        earlier = _format_datetime(NOW)
        later = _format_datetime(NOW + timedelta(microseconds=1))

        assert earlier < later

    def test_parse_round_trip(self):
        assert _parse_datetime(_format_datetime(NOW)) == NOW
        assert _parse_datetime(None) is None


class TestListingRepository:
    """Test ListingRepository operations."""

    def test_insert_and_find_by_user(self, database):
        with get_session() as session:
            ListingRepository(session).insert_many(
                [
                    make_listing("1", hours_ago=5, loaded_at=NOW),
                    make_listing("2", hours_ago=1, loaded_at=NOW),
                ]
            )

        with get_session() as session:
            records = ListingRepository(session).find_by_user(42)

        assert [record.external_id for record in records] == ["2", "1"]
        assert records[0].employer == "Acme"
        assert records[0].published_at == NOW - timedelta(hours=1)
        assert records[0].status == ListingStatus.NEW

    def test_existing_ids_per_user(self, database):
        with get_session() as session:
            ListingRepository(session).insert_many(
                [
                    make_listing("1", user_id=1, loaded_at=NOW),
                    make_listing("2", user_id=1, loaded_at=NOW),
                    make_listing("1", user_id=2, loaded_at=NOW),
                ]
            )

        with get_session() as session:
            repo = ListingRepository(session)
            assert repo.existing_ids(1) == {"1", "2"}
            assert repo.existing_ids(2) == {"1"}
            assert repo.existing_ids(1, ["2", "3"]) == {"2"}
            assert repo.existing_ids(1, []) == set()
            assert repo.existing_ids(3) == set()

    def test_duplicate_pair_rejected(self, database):
        with get_session() as session:
            ListingRepository(session).insert_many([make_listing("1", loaded_at=NOW)])

        with pytest.raises(DataIntegrityError):
            with get_session() as session:
                ListingRepository(session).insert_many([make_listing("1", loaded_at=NOW)])

    def test_find_undelivered_oldest_first(self, database):
        with get_session() as session:
            ListingRepository(session).insert_many(
                [
                    make_listing("new", hours_ago=1, loaded_at=NOW),
                    make_listing("old", hours_ago=10, loaded_at=NOW),
                    make_listing("sent", hours_ago=20, loaded_at=NOW, delivered=True),
                ]
            )

        with get_session() as session:
            backlog = ListingRepository(session).find_undelivered(42)

        assert [record.external_id for record in backlog] == ["old", "new"]

    def test_mark_delivered(self, database):
        with get_session() as session:
            ListingRepository(session).insert_many(
                [make_listing("1", loaded_at=NOW), make_listing("2", loaded_at=NOW)]
            )

        with get_session() as session:
            changed = ListingRepository(session).mark_delivered(42, ["1", "2", "missing"])

        with get_session() as session:
            repo = ListingRepository(session)
            assert changed == 2
            assert repo.find_undelivered(42) == []
            assert repo.mark_delivered(42, ["1"]) == 0
            assert repo.mark_delivered(42, []) == 0


class TestScheduleRepository:
    """Test ScheduleRepository operations."""

    def test_save_and_get(self, database):
        schedule = UserSchedule(
            user_id=42,
            search_query="java,golang",
            days=3,
            countries=["russia", "belarus"],
            work_types=["remote"],
            auto_update_enabled=True,
            next_due_at=NOW,
        )

        with get_session() as session:
            ScheduleRepository(session).save(schedule)

        with get_session() as session:
            loaded = ScheduleRepository(session).get(42)

        assert loaded.model_dump() == schedule.model_dump()

    def test_save_overwrites(self, database):
        with get_session() as session:
            repo = ScheduleRepository(session)
            repo.save(UserSchedule(user_id=42, search_query="java"))
            repo.save(UserSchedule(user_id=42, search_query="python", countries=[]))

        with get_session() as session:
            loaded = ScheduleRepository(session).get(42)

        assert loaded.search_query == "python"
        assert loaded.countries == []

    def test_get_missing_returns_none(self, database):
        with get_session() as session:
            assert ScheduleRepository(session).get(999) is None

    def test_find_due_selection_and_order(self, database):
        with get_session() as session:
            repo = ScheduleRepository(session)
            repo.save(UserSchedule(user_id=1, auto_update_enabled=True, next_due_at=NOW - timedelta(minutes=1)))
            repo.save(UserSchedule(user_id=2, auto_update_enabled=True, next_due_at=NOW - timedelta(minutes=10)))
            repo.save(UserSchedule(user_id=3, auto_update_enabled=True, next_due_at=None))
            repo.save(UserSchedule(user_id=4, auto_update_enabled=True, next_due_at=NOW + timedelta(minutes=1)))
            repo.save(UserSchedule(user_id=5, auto_update_enabled=False, next_due_at=None))
            repo.save(UserSchedule(user_id=6, auto_update_enabled=True, next_due_at=NOW))

        with get_session() as session:
            due = ScheduleRepository(session).find_due(NOW, limit=10)

        assert [schedule.user_id for schedule in due] == [3, 2, 1, 6]

    def test_find_due_respects_limit(self, database):
        with get_session() as session:
            repo = ScheduleRepository(session)
            for user_id in range(1, 6):
                repo.save(
                    UserSchedule(
                        user_id=user_id,
                        auto_update_enabled=True,
                        next_due_at=NOW - timedelta(minutes=user_id),
                    )
                )

        with get_session() as session:
            due = ScheduleRepository(session).find_due(NOW, limit=2)

        assert [schedule.user_id for schedule in due] == [5, 4]

    def test_reschedule_enabled_user(self, database):
        with get_session() as session:
            ScheduleRepository(session).save(UserSchedule(user_id=42, auto_update_enabled=True))

        next_due = NOW + timedelta(minutes=30)
        with get_session() as session:
            updated = ScheduleRepository(session).reschedule(42, last_run_at=NOW, next_due_at=next_due)

        with get_session() as session:
            loaded = ScheduleRepository(session).get(42)

        assert updated is True
        assert loaded.last_run_at == NOW
        assert loaded.next_due_at == next_due

    def test_reschedule_skips_disabled_user(self, database):
        """A user disabled before the write keeps a null due time."""
        with get_session() as session:
            ScheduleRepository(session).save(UserSchedule(user_id=42, auto_update_enabled=False))

        with get_session() as session:
            updated = ScheduleRepository(session).reschedule(
                42, last_run_at=NOW, next_due_at=NOW + timedelta(minutes=30)
            )

        with get_session() as session:
            loaded = ScheduleRepository(session).get(42)

        assert updated is False
        assert loaded.next_due_at is None
        assert loaded.last_run_at is None


class TestListingStore:
    """Test deduplicating ingestion."""

    def test_persist_new_stamps_records(self, database):
        store = ListingStore(clock=lambda: NOW)
        candidate = make_listing("1", user_id=0, status=ListingStatus.APPLIED, delivered=True)

        inserted = store.persist_new(42, [candidate])

        assert len(inserted) == 1
        assert inserted[0].user_id == 42
        assert inserted[0].loaded_at == NOW
        assert inserted[0].status == ListingStatus.NEW
        assert inserted[0].delivered is False

    def test_persist_new_is_idempotent(self, database):
        store = ListingStore(clock=lambda: NOW)
        candidates = [make_listing("1"), make_listing("2")]

        first = store.persist_new(42, candidates)
        second = store.persist_new(42, candidates)

        assert len(first) == 2
        assert second == []
        with get_session() as session:
            assert len(ListingRepository(session).find_by_user(42)) == 2

    def test_returns_only_unseen(self, database):
        store = ListingStore(clock=lambda: NOW)
        store.persist_new(42, [make_listing("1")])

        inserted = store.persist_new(42, [make_listing("1"), make_listing("2")])

        assert [record.external_id for record in inserted] == ["2"]

    def test_users_are_independent(self, database):
        store = ListingStore(clock=lambda: NOW)

        store.persist_new(1, [make_listing("1")])
        inserted = store.persist_new(2, [make_listing("1")])

        assert [record.user_id for record in inserted] == [2]

    def test_duplicates_within_batch_inserted_once(self, database):
        store = ListingStore(clock=lambda: NOW)

        inserted = store.persist_new(42, [make_listing("1"), make_listing("1", title="Other")])

        assert len(inserted) == 1
        assert inserted[0].title == "Python developer 1"

    def test_empty_candidates(self, database):
        assert ListingStore().persist_new(42, []) == []

    def test_listings_for_user_newest_first(self, database):
        store = ListingStore(clock=lambda: NOW)
        store.persist_new(42, [make_listing("old", hours_ago=5), make_listing("new", hours_ago=1)])
        store.persist_new(7, [make_listing("other")])

        listings = store.listings_for(42)

        assert [record.external_id for record in listings] == ["new", "old"]
        assert store.listings_for(99) == []
