"""Tests for search orchestration shared by scheduled and manual runs."""

from datetime import timedelta
from unittest.mock import Mock

import pytest

from vacancy_scanner.adapters.base import FetchResult
from vacancy_scanner.domain.models import SearchRequest, UserSchedule
from vacancy_scanner.persistence import ListingRepository, ListingStore, get_session
from vacancy_scanner.preferences import PreferenceService
from vacancy_scanner.scheduler import InFlightSet
from vacancy_scanner.search import (
    EffectiveSearch,
    SearchInProgressError,
    SearchOrchestrator,
    filter_excluded,
    split_queries,
)

from tests.helpers import NOW, FakeListingSource, FakeSubscriptions, make_listing, make_schedule


def build_orchestrator(source, subscriptions=None, **kwargs):
    return SearchOrchestrator(
        source=source,
        store=ListingStore(clock=lambda: NOW),
        fanout=kwargs.pop("fanout", Mock()),
        subscriptions=subscriptions or FakeSubscriptions(),
        clock=lambda: NOW,
        **kwargs,
    )


def stored_ids(user_id=42):
    with get_session() as session:
        return {record.external_id for record in ListingRepository(session).find_by_user(user_id)}


# ============================================================================
# Helper Function Tests
# ============================================================================


class TestQueryHelpers:
    """Tests for query splitting and keyword exclusion."""

    def test_split_queries(self):
        assert split_queries("java, golang,,  ,python ") == ["java", "golang", "python"]
        assert split_queries("") == []
        assert split_queries(None) == []

    def test_filter_excluded_case_insensitive(self):
        records = [
            make_listing("1", title="Java Intern"),
            make_listing("2", title="Senior JAVA developer"),
            make_listing("3", title="Go Engineer (Junior)"),
        ]

        kept = filter_excluded(records, "intern, junior")

        assert [record.external_id for record in kept] == ["2"]

    def test_filter_excluded_without_keywords(self):
        records = [make_listing("1")]

        assert filter_excluded(records, None) == records
        assert filter_excluded(records, " , ") == records


class TestEffectiveSearch:
    """Tests for merging a request with stored preferences."""

    def test_request_values_win(self):
        preferences = UserSchedule(
            user_id=42, search_query="java", days=1, exclude_keywords="intern",
            countries=["russia"], work_types=["office"], notify_enabled=True,
        )
        request = SearchRequest(
            query="golang", days=7, exclude_keywords="junior",
            countries=["belarus"], work_types=["remote"], notify=False,
        )

        search = EffectiveSearch.merge(request, preferences)

        assert search.query == "golang"
        assert search.days == 7
        assert search.exclude_keywords == "junior"
        assert search.countries == ["belarus"]
        assert search.work_types == ["remote"]
        assert search.notify is False

    def test_blank_request_values_fall_back(self):
        preferences = UserSchedule(
            user_id=42, search_query="java", days=3, exclude_keywords="intern",
            countries=["russia"], work_types=["remote"], notify_enabled=False,
        )
        request = SearchRequest(query="   ", exclude_keywords="", countries=[], work_types=[])

        search = EffectiveSearch.merge(request, preferences)

        assert search.query == "java"
        assert search.days == 3
        assert search.exclude_keywords == "intern"
        assert search.countries == ["russia"]
        assert search.work_types == ["remote"]
        assert search.notify is False

    def test_request_cannot_enable_notifications(self):
        preferences = UserSchedule(user_id=42, notify_enabled=False)

        search = EffectiveSearch.merge(SearchRequest(notify=True), preferences)

        assert search.notify is False

    def test_no_query_anywhere(self):
        search = EffectiveSearch.merge(SearchRequest(), UserSchedule(user_id=42))

        assert search.query == ""


# ============================================================================
# Orchestrator Tests
# ============================================================================


class TestSearchOrchestratorRun:
    """Tests for SearchOrchestrator.run."""

    def test_merge_exclude_and_cutoff(self, database):
        """Overlapping sub-queries are merged, excluded titles and stale listings dropped."""
        source = FakeListingSource(
            {
                "java": [
                    make_listing("a1", title="Java Intern", hours_ago=0),
                    make_listing("a2", title="Java Backend", hours_ago=0),
                ],
                "golang": [
                    make_listing("a2", title="Java Backend", hours_ago=0),
                    make_listing("a3", title="Go Engineer", hours_ago=48),
                ],
            }
        )
        preferences = make_schedule(search_query="java,golang", exclude_keywords="intern", days=1)

        new_records = build_orchestrator(source).run(SearchRequest(), preferences, 42, "token")

        assert [record.external_id for record in new_records] == ["a2"]
        assert stored_ids() == {"a2"}
        assert [call["query"] for call in source.calls] == ["java", "golang"]

    def test_filters_passed_to_source(self, database):
        source = FakeListingSource()
        preferences = make_schedule(days=3, countries=["russia"], work_types=["remote"])

        build_orchestrator(source).run(SearchRequest(), preferences, 42, "token")

        assert source.calls == [
            {
                "query": "python",
                "lookback_days": 3,
                "location_filters": ["russia"],
                "work_types": ["remote"],
                "user_id": 42,
            }
        ]

    def test_second_run_stores_nothing_new(self, database):
        source = FakeListingSource({"python": [make_listing("1"), make_listing("2")]})
        orchestrator = build_orchestrator(source)

        first = orchestrator.run(SearchRequest(), make_schedule(), 42, "token")
        second = orchestrator.run(SearchRequest(), make_schedule(), 42, "token")

        assert len(first) == 2
        assert second == []

    def test_failing_sub_query_does_not_abort_others(self, database):
        source = FakeListingSource({"golang": [make_listing("g1")]}, failing=["java"])

        new_records = build_orchestrator(source).run(
            SearchRequest(), make_schedule(search_query="java,golang"), 42, "token"
        )

        assert [record.external_id for record in new_records] == ["g1"]

    def test_partial_results_are_kept(self, database):
        source = Mock()
        source.fetch.return_value = FetchResult(
            records=[make_listing("1")], stopped_reason="error", error="HTTP 503"
        )

        new_records = build_orchestrator(source).run(SearchRequest(), make_schedule(), 42, "token")

        assert [record.external_id for record in new_records] == ["1"]

    def test_blank_query_still_notifies_backlog(self, database):
        source = FakeListingSource()
        fanout = Mock()

        new_records = build_orchestrator(source, fanout=fanout).run(
            SearchRequest(), make_schedule(search_query=None), 42, "token"
        )

        assert new_records == []
        assert source.calls == []
        fanout.deliver_unsent.assert_called_once_with(42, "token")

    def test_notify_disabled(self, database):
        fanout = Mock()

        build_orchestrator(FakeListingSource(), fanout=fanout).run(
            SearchRequest(notify=False), make_schedule(), 42, "token"
        )

        fanout.deliver_unsent.assert_not_called()

    def test_user_notification_preference_gates_delivery(self, database):
        fanout = Mock()

        build_orchestrator(FakeListingSource(), fanout=fanout).run(
            SearchRequest(notify=True), make_schedule(notify_enabled=False), 42, "token"
        )

        fanout.deliver_unsent.assert_not_called()

    def test_inactive_subscription_skips_notification(self, database):
        fanout = Mock()
        subscriptions = FakeSubscriptions(active=False)

        build_orchestrator(FakeListingSource(), subscriptions, fanout=fanout).run(
            SearchRequest(), make_schedule(), 42, "token"
        )

        fanout.deliver_unsent.assert_not_called()
        assert subscriptions.status_requests == ["token"]

    def test_records_stored_under_requesting_user(self, database):
        source = FakeListingSource({"python": [make_listing("1", user_id=999)]})

        build_orchestrator(source).run(SearchRequest(), make_schedule(user_id=7), 7, "token")

        assert stored_ids(7) == {"1"}
        assert stored_ids(999) == set()


class TestSearchNow:
    """Tests for manual searches."""

    def test_uses_stored_preferences(self, database):
        preferences = PreferenceService(clock=lambda: NOW)
        preferences.update_preferences(42, search_query="java", days=2)
        source = FakeListingSource({"java": [make_listing("j1")]})
        orchestrator = build_orchestrator(source, preference_service=preferences)

        new_records = orchestrator.search_now(SearchRequest(), "token", 42)

        assert [record.external_id for record in new_records] == ["j1"]
        assert source.calls[0]["lookback_days"] == 2

    def test_creates_default_preferences(self, database):
        preferences = PreferenceService(clock=lambda: NOW)
        source = FakeListingSource({"rust": [make_listing("r1")]})
        orchestrator = build_orchestrator(source, preference_service=preferences)

        orchestrator.search_now(SearchRequest(query="rust"), "token", 42)

        assert preferences.get(42) is not None

    def test_rejected_while_user_in_flight(self, database):
        in_flight = InFlightSet()
        in_flight.try_add(42)
        source = FakeListingSource()
        orchestrator = build_orchestrator(
            source, preference_service=PreferenceService(), in_flight=in_flight
        )

        with pytest.raises(SearchInProgressError) as exc_info:
            orchestrator.search_now(SearchRequest(query="java"), "token", 42)

        assert exc_info.value.user_id == 42
        assert source.calls == []
        assert 42 in in_flight

    def test_releases_in_flight_after_failure(self, database):
        in_flight = InFlightSet()
        source = Mock()
        source.fetch.return_value = FetchResult()
        store = Mock()
        store.persist_new.side_effect = RuntimeError("disk full")
        orchestrator = SearchOrchestrator(
            source=source,
            store=store,
            fanout=Mock(),
            subscriptions=FakeSubscriptions(),
            preference_service=PreferenceService(),
            in_flight=in_flight,
        )

        with pytest.raises(RuntimeError):
            orchestrator.search_now(SearchRequest(query="java"), "token", 42)

        assert 42 not in in_flight

    def test_requires_preference_service(self):
        orchestrator = build_orchestrator(FakeListingSource())

        with pytest.raises(RuntimeError, match="preference service"):
            orchestrator.search_now(SearchRequest(), "token", 42)

    def test_lookback_cutoff_uses_clock(self, database):
        source = FakeListingSource(
            {"python": [make_listing("fresh", hours_ago=23), make_listing("stale", hours_ago=25)]}
        )

        new_records = build_orchestrator(source).run(SearchRequest(), make_schedule(), 42, "token")

        assert [record.external_id for record in new_records] == ["fresh"]
        assert NOW - new_records[0].published_at < timedelta(days=1)
