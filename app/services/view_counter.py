"""
View / Interest Counter
View counts are deduplicated per (property, client IP) inside a time window;
interest counts go up on every inquiry.
"""
from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
import time
from typing import Callable, Dict, Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import NotFound
from app.models.property import Property

logger = logging.getLogger(__name__)


# ── Dedup cache ────────────────────────────────────────────────────────────────

class ViewDedupCache(ABC):
    """Decides whether a view key should be counted again."""

    @abstractmethod
    def should_count(self, key: str, now: Optional[float] = None) -> bool:
        ...

    @abstractmethod
    def record_seen(self, key: str, now: Optional[float] = None) -> None:
        ...


class InMemoryViewDedupCache(ViewDedupCache):
    """
    Process-local TTL map {key: last counted time}.

    Not shared between workers: several instances under-deduplicate, which only
    makes the counter slightly generous.
    """

    def __init__(
        self,
        window_seconds: float = 3600,
        max_entries: int = 1000,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.window_seconds = window_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._seen: Dict[str, float] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._seen)

    def should_count(self, key: str, now: Optional[float] = None) -> bool:
        now = self._clock() if now is None else now
        with self._lock:
            last = self._seen.get(key)
        return last is None or now - last >= self.window_seconds

    def record_seen(self, key: str, now: Optional[float] = None) -> None:
        now = self._clock() if now is None else now
        with self._lock:
            self._seen[key] = now
            if len(self._seen) > self.max_entries:
                self._sweep(now)

    def _sweep(self, now: float) -> None:
        # Caller holds the lock
        expired = [k for k, t in self._seen.items() if now - t >= self.window_seconds]
        for key in expired:
            del self._seen[key]
        logger.debug(f"[views] swept {len(expired)} expired entries, {len(self._seen)} left")

    def clear(self) -> None:
        with self._lock:
            self._seen.clear()


_default_cache = InMemoryViewDedupCache(
    window_seconds=settings.VIEW_DEDUP_WINDOW_SECONDS,
    max_entries=settings.VIEW_CACHE_MAX_ENTRIES,
)


def get_view_cache() -> ViewDedupCache:
    """FastAPI dependency; override it to plug in a shared cache."""
    return _default_cache


# ── Counter service ────────────────────────────────────────────────────────────

class PropertyCounterService:
    def __init__(self, db: Session, cache: Optional[ViewDedupCache] = None):
        self.db = db
        self.cache = cache if cache is not None else _default_cache

    def _current_count(self, property_id: int, column):
        row = (
            self.db.query(Property.id, column)
            .filter(Property.id == property_id, Property.deleted_at.is_(None))
            .first()
        )
        if row is None:
            raise NotFound(f"Property {property_id} not found")
        return row[1]

    def _increment(self, property_id: int, column) -> int:
        # Atomic UPDATE ... SET col = col + 1; no read-modify-write in Python
        self.db.query(Property).filter(Property.id == property_id).update(
            {column: column + 1}, synchronize_session=False
        )
        self.db.commit()
        return self._current_count(property_id, column)

    def increment_view_count(self, property_id: int, client_ip: str) -> dict:
        current = self._current_count(property_id, Property.view_count)
        key = f"{property_id}_{client_ip}"

        if not self.cache.should_count(key):
            return {
                "message": "View already counted recently",
                "view_count": current,
                "counted": False,
            }

        view_count = self._increment(property_id, Property.view_count)
        self.cache.record_seen(key)
        logger.debug(f"[views] property {property_id} viewed by {client_ip}: {view_count}")
        return {
            "message": "View count incremented",
            "view_count": view_count,
            "counted": True,
        }

    def increment_interested_count(self, property_id: int) -> dict:
        self._current_count(property_id, Property.interested_count)
        interested_count = self._increment(property_id, Property.interested_count)
        logger.info(f"[views] property {property_id} interest count now {interested_count}")
        return {
            "message": "Interested count incremented",
            "property_id": property_id,
            "interested_count": interested_count,
        }
