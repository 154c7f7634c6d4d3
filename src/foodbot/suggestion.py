"""Suggestion cache — one memoized random pick from the catalog, valid for a TTL."""

from __future__ import annotations

import logging
import random
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from foodbot.catalog import CatalogManager
    from foodbot.storage import DocumentStore

logger = logging.getLogger(__name__)

DEFAULT_TTL = timedelta(hours=12)

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(ts: datetime) -> str:
    """ISO-8601 in UTC with millisecond precision, e.g. 2024-05-01T12:00:00.000Z."""
    ts = ts.astimezone(timezone.utc)
    return ts.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(raw: str) -> datetime:
    """Inverse of format_timestamp. Naive values are read as UTC."""
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    ts = datetime.fromisoformat(raw)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


@dataclass(frozen=True)
class CachedSuggestion:
    food: str
    timestamp: datetime

    def is_fresh(self, now: datetime, ttl: timedelta) -> bool:
        return now - self.timestamp < ttl

    def to_document(self) -> dict:
        return {"food": self.food, "timestamp": format_timestamp(self.timestamp)}


class SuggestionCache:
    """TTL-based memoized selection over the catalog.

    At most one entry exists. ``clear()`` and ``force_new`` are the escape
    hatches; removal of the cached food from the catalog clears it too.
    """

    def __init__(
        self,
        store: DocumentStore,
        path: Path,
        ttl: timedelta = DEFAULT_TTL,
        clock: Clock = utcnow,
        rng: random.Random | None = None,
    ) -> None:
        self._store = store
        self.path = path
        self.ttl = ttl
        self._clock = clock
        self._rng = rng or random.Random()

    def current(self) -> CachedSuggestion | None:
        """The stored entry regardless of age, or None if absent or corrupt."""
        if not self._store.exists(self.path):
            return None

        data = self._store.load_json(self.path, {})
        if not isinstance(data, dict):
            logger.warning("Ignoring suggestion cache with unexpected shape: %r", data)
            return None

        food = data.get("food")
        raw_ts = data.get("timestamp")
        if not isinstance(food, str) or not food or not isinstance(raw_ts, str):
            if data:
                logger.warning("Ignoring incomplete suggestion cache: %r", data)
            return None

        try:
            timestamp = parse_timestamp(raw_ts)
        except ValueError:
            logger.warning("Ignoring suggestion cache with bad timestamp: %r", raw_ts)
            return None
        return CachedSuggestion(food=food, timestamp=timestamp)

    def get_or_select(self, catalog: CatalogManager, force_new: bool = False) -> str | None:
        """Return the cached food while fresh, otherwise pick and cache a new one."""
        now = self._clock()

        if not force_new:
            cached = self.current()
            if cached and cached.is_fresh(now, self.ttl):
                logger.info("Returning cached food: %s", cached.food)
                return cached.food

        foods = catalog.load_all()
        if not foods:
            return None

        food = self._rng.choice(foods)
        self._store.save_json(self.path, CachedSuggestion(food, now).to_document())
        logger.info("Selected new random food: %s", food)
        return food

    def clear(self) -> bool:
        """Drop the cached suggestion. Returns False if there was none."""
        removed = self._store.delete(self.path)
        if removed:
            logger.info("Food cache cleared")
        return removed

    def on_items_removed(self, items: Iterable[str]) -> None:
        """Catalog listener: clear the cache if the cached food was removed."""
        cached = self.current()
        if not cached:
            return
        cached_lower = cached.food.lower()
        if any(item.lower() == cached_lower for item in items):
            self.clear()
            logger.info("Cleared food cache as removed food was currently cached")
