"""Content-addressed LRU cache for idempotent generation calls."""

from __future__ import annotations

import hashlib
import json
import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    key: str
    value: Any
    created_at: float
    expires_at: float
    hits: int = 0

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class ResponseCache:
    """
    Fixed-capacity LRU cache with passive TTL expiry.

    Expired entries are dropped when read; ``cleanup_expired`` sweeps the
    rest on demand.
    """

    def __init__(
        self,
        max_size: int = 100,
        ttl_seconds: float = 300.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.max_size = max_size
        self.ttl = ttl_seconds
        self._clock = clock
        self._store: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    @staticmethod
    def generate_key(prompt: str, options: Optional[Mapping[str, Any]] = None) -> str:
        """Deterministic key over the stripped prompt and non-None options."""
        normalized_options = {
            k: v for k, v in sorted((options or {}).items()) if v is not None
        }
        payload = json.dumps(
            {"prompt": prompt.strip(), "options": normalized_options},
            sort_keys=True,
            separators=(",", ":"),
            default=str,
        )
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()

    def get(self, key: str) -> Optional[Any]:
        entry = self._store.get(key)
        if entry is None:
            self.misses += 1
            return None

        if entry.is_expired(self._clock()):
            self._store.pop(key, None)
            self.misses += 1
            return None

        self._store.move_to_end(key)
        entry.hits += 1
        self.hits += 1
        logger.debug("AI response cache hit", extra={"cache_key": key[:12]})
        return entry.value

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        now = self._clock()
        if key in self._store:
            self._store.pop(key)
        elif len(self._store) >= self.max_size:
            evicted_key, _ = self._store.popitem(last=False)
            self.evictions += 1
            logger.debug("AI response cache eviction", extra={"cache_key": evicted_key[:12]})

        self._store[key] = CacheEntry(
            key=key,
            value=value,
            created_at=now,
            expires_at=now + (self.ttl if ttl is None else ttl),
        )

    def cleanup_expired(self) -> int:
        now = self._clock()
        expired = [k for k, entry in self._store.items() if entry.is_expired(now)]
        for k in expired:
            self._store.pop(k, None)
        return len(expired)

    def clear(self) -> None:
        self._store.clear()

    def __len__(self) -> int:
        return len(self._store)

    def get_stats(self) -> Dict[str, Any]:
        lookups = self.hits + self.misses
        return {
            "size": len(self._store),
            "max_size": self.max_size,
            "ttl": self.ttl,
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
            "hit_rate": self.hits / lookups if lookups else 0.0,
        }
