"""Tests for the daily cost ledger."""

from datetime import date

import pytest

from resilient_ai.reliability.cost_ledger import CostTracker, LEDGER_KEY
from resilient_ai.reliability.errors import AIError, ErrorKind
from resilient_ai.storage.kv_store import InMemoryKeyValueStore
from tests.helpers.fakes import FakeToday


@pytest.fixture
def today():
    return FakeToday(date(2025, 3, 1))


@pytest.fixture
def store():
    return InMemoryKeyValueStore()


@pytest.fixture
def tracker(store, today):
    return CostTracker(store=store, daily_limit=1.0, today=today)


class TestBudgetAdmission:

    def test_allows_within_budget(self, tracker):
        tracker.add_today_cost(0.25)
        tracker.check_cost_limit(0.5)

    def test_equal_to_limit_is_allowed(self, tracker):
        tracker.add_today_cost(0.5)
        tracker.check_cost_limit(0.5)

    def test_over_limit_raises_budget_exceeded(self, tracker):
        tracker.add_today_cost(0.75)

        with pytest.raises(AIError) as exc_info:
            tracker.check_cost_limit(0.5)

        assert exc_info.value.kind == ErrorKind.BUDGET_EXCEEDED
        assert exc_info.value.code == "BUDGET_EXCEEDED"
        assert not exc_info.value.is_retryable

    def test_check_does_not_reserve(self, tracker):
        tracker.check_cost_limit(0.5)
        assert tracker.get_today_cost() == 0.0


class TestLedger:

    def test_accumulates_within_a_day(self, tracker):
        tracker.add_today_cost(0.25)
        total = tracker.add_today_cost(0.5)

        assert total == 0.75
        assert tracker.get_today_cost() == 0.75
        assert tracker.get_remaining_budget() == 0.25
        assert tracker.get_cost_percentage() == 75.0

    def test_resets_on_new_day(self, tracker, today, store):
        tracker.add_today_cost(0.75)
        today.today = date(2025, 3, 2)

        assert tracker.get_today_cost() == 0.0
        tracker.check_cost_limit(1.0)

        tracker.add_today_cost(0.25)
        assert store.get(LEDGER_KEY) == {"date": "2025-03-02", "cost": 0.25}

    def test_near_limit_threshold(self, tracker):
        tracker.add_today_cost(0.75)
        assert not tracker.is_near_limit()

        tracker.add_today_cost(0.0625)
        assert tracker.is_near_limit()

    def test_remaining_budget_never_negative(self, tracker):
        tracker.add_today_cost(1.5)
        assert tracker.get_remaining_budget() == 0.0

    def test_negative_cost_rejected(self, tracker):
        with pytest.raises(ValueError):
            tracker.add_today_cost(-0.1)

    def test_corrupt_entry_reads_as_zero(self, store, today):
        store.set(LEDGER_KEY, {"date": "2025-03-01", "cost": "not a number"})
        tracker = CostTracker(store=store, today=today)

        assert tracker.get_today_cost() == 0.0

    def test_summary(self, tracker):
        tracker.add_today_cost(0.5)

        assert tracker.get_summary() == {
            "today_cost": 0.5,
            "daily_limit": 1.0,
            "remaining_budget": 0.5,
            "cost_percentage": 50.0,
            "near_limit": False,
        }

    def test_invalid_limit(self):
        with pytest.raises(ValueError):
            CostTracker(daily_limit=0)
