"""
Daily cost ledger and pre-flight budget admission control.

The ledger is a single ``{"date": ..., "cost": ...}`` entry in a key-value
store. A stored date other than today reads as zero spend.

Concurrent calls can both pass ``check_cost_limit`` before either reconciles
its actual cost, so the daily limit may be overshot by the cost of the calls
in flight at the same time.
"""

import logging
from datetime import date
from typing import Callable, Dict, Any, Optional

from ..storage.kv_store import KeyValueStore, InMemoryKeyValueStore
from .errors import AIError, ErrorKind

logger = logging.getLogger(__name__)

LEDGER_KEY = "ai-daily-cost"


class CostTracker:
    """Tracks today's AI spend against a daily limit."""

    def __init__(
        self,
        store: Optional[KeyValueStore] = None,
        daily_limit: float = 1.0,
        near_limit_ratio: float = 0.8,
        today: Callable[[], date] = date.today,
        key: str = LEDGER_KEY,
    ):
        if daily_limit <= 0:
            raise ValueError("daily_limit must be positive")
        self.store = store if store is not None else InMemoryKeyValueStore()
        self.daily_limit = daily_limit
        self.near_limit_ratio = near_limit_ratio
        self._today = today
        self._key = key

    def _read_entry(self) -> Dict[str, Any]:
        today = self._today().isoformat()
        entry = self.store.get(self._key)
        if not isinstance(entry, dict) or entry.get("date") != today:
            return {"date": today, "cost": 0.0}
        try:
            cost = float(entry.get("cost", 0.0))
        except (TypeError, ValueError):
            cost = 0.0
        return {"date": today, "cost": cost}

    def get_today_cost(self) -> float:
        return self._read_entry()["cost"]

    def get_daily_limit(self) -> float:
        return self.daily_limit

    def get_remaining_budget(self) -> float:
        return max(0.0, self.daily_limit - self.get_today_cost())

    def get_cost_percentage(self) -> float:
        return (self.get_today_cost() / self.daily_limit) * 100

    def is_near_limit(self) -> bool:
        return self.get_today_cost() >= self.daily_limit * self.near_limit_ratio

    def check_cost_limit(self, estimated_cost: float) -> None:
        """
        Admit a call whose cost is estimated at ``estimated_cost``.

        Raises:
            AIError: kind BUDGET_EXCEEDED if the estimate would push today's
                spend above the daily limit
        """
        current = self.get_today_cost()
        if current + estimated_cost > self.daily_limit:
            logger.warning(
                "Daily AI budget would be exceeded",
                extra={
                    "today_cost": current,
                    "estimated_cost": estimated_cost,
                    "daily_limit": self.daily_limit,
                }
            )
            raise AIError(
                ErrorKind.BUDGET_EXCEEDED,
                f"Daily AI cost limit of ${self.daily_limit:.2f} would be exceeded "
                f"(spent ${current:.4f}, estimated ${estimated_cost:.4f})",
            )

    def add_today_cost(self, actual_cost: float) -> float:
        """Add measured spend to today's ledger and return the new total."""
        if actual_cost < 0:
            raise ValueError("actual_cost must not be negative")
        entry = self._read_entry()
        entry["cost"] = entry["cost"] + actual_cost
        self.store.set(self._key, entry)

        if self.is_near_limit():
            logger.warning(
                "Daily AI cost near limit",
                extra={
                    "today_cost": entry["cost"],
                    "daily_limit": self.daily_limit,
                    "percentage": self.get_cost_percentage(),
                }
            )
        return entry["cost"]

    def get_summary(self) -> Dict[str, Any]:
        return {
            "today_cost": self.get_today_cost(),
            "daily_limit": self.daily_limit,
            "remaining_budget": self.get_remaining_budget(),
            "cost_percentage": self.get_cost_percentage(),
            "near_limit": self.is_near_limit(),
        }
