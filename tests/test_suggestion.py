"""Tests for the TTL suggestion cache."""

from __future__ import annotations

import json
import random
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from foodbot.catalog import CatalogManager
from foodbot.storage import FileDocumentStore
from foodbot.suggestion import (
    CachedSuggestion,
    SuggestionCache,
    format_timestamp,
    parse_timestamp,
)

T0 = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime = T0) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def catalog(tmp_path: Path) -> CatalogManager:
    store = FileDocumentStore()
    path = tmp_path / "foods.txt"
    store.save_lines(path, ["Pho", "Bun Cha", "Com Tam", "Banh Mi", "Hu Tieu"])
    return CatalogManager(store, path)


@pytest.fixture
def cache(tmp_path: Path, clock: FakeClock) -> SuggestionCache:
    return SuggestionCache(
        FileDocumentStore(), tmp_path / "food_cache.json", clock=clock, rng=random.Random(7)
    )


class TestTimestamps:
    def test_format(self):
        assert format_timestamp(T0) == "2024-05-01T12:00:00.000Z"

    def test_parse_z_suffix(self):
        assert parse_timestamp("2024-05-01T12:00:00.000Z") == T0

    def test_parse_naive_is_utc(self):
        assert parse_timestamp("2024-05-01T12:00:00") == T0


class TestGetOrSelect:
    def test_same_item_within_ttl(self, cache, catalog, clock):
        first = cache.get_or_select(catalog)
        clock.advance(hours=11, minutes=59)
        assert cache.get_or_select(catalog) == first

    def test_fresh_cache_does_not_touch_catalog(self, cache, catalog):
        first = cache.get_or_select(catalog)
        catalog.path.unlink()
        assert cache.get_or_select(catalog) == first

    def test_stale_after_ttl(self, cache, catalog, clock):
        cache.get_or_select(catalog)
        clock.advance(hours=12)
        cache.get_or_select(catalog)
        assert cache.current().timestamp == clock.now

    def test_force_new_resets_window(self, cache, catalog, clock):
        cache.get_or_select(catalog)
        clock.advance(hours=3)
        forced = cache.get_or_select(catalog, force_new=True)
        entry = cache.current()
        assert entry.food == forced
        assert entry.timestamp == clock.now

    def test_force_new_can_change_item(self, cache, catalog):
        seen = {cache.get_or_select(catalog, force_new=True) for _ in range(50)}
        assert len(seen) > 1

    def test_empty_catalog_returns_none(self, cache, tmp_path: Path):
        empty = CatalogManager(FileDocumentStore(), tmp_path / "none.txt")
        assert cache.get_or_select(empty) is None
        assert not cache.path.exists()

    def test_persisted_document_shape(self, cache, catalog):
        food = cache.get_or_select(catalog)
        data = json.loads(cache.path.read_text(encoding="utf-8"))
        assert data == {"food": food, "timestamp": "2024-05-01T12:00:00.000Z"}

    def test_selection_from_catalog(self, cache, catalog):
        assert cache.get_or_select(catalog) in catalog.load_all()


class TestCorruptCache:
    def test_malformed_json(self, cache, catalog):
        cache.path.write_text("{{{", encoding="utf-8")
        assert cache.current() is None
        food = cache.get_or_select(catalog)
        assert food in catalog.load_all()
        assert cache.current().food == food

    def test_wrong_shape(self, cache):
        cache.path.write_text('["Pho"]', encoding="utf-8")
        assert cache.current() is None

    def test_bad_timestamp(self, cache):
        cache.path.write_text('{"food": "Pho", "timestamp": "yesterday"}', encoding="utf-8")
        assert cache.current() is None

    def test_missing_food(self, cache):
        cache.path.write_text('{"timestamp": "2024-05-01T12:00:00.000Z"}', encoding="utf-8")
        assert cache.current() is None


class TestClear:
    def test_clear(self, cache, catalog):
        cache.get_or_select(catalog)
        assert cache.clear() is True
        assert cache.current() is None

    def test_clear_is_idempotent(self, cache):
        assert cache.clear() is False
        assert cache.clear() is False


class TestRemovalListener:
    def test_clears_when_cached_food_removed(self, cache):
        cache._store.save_json(cache.path, CachedSuggestion("Pho", T0).to_document())
        cache.on_items_removed(["PHO"])
        assert cache.current() is None

    def test_keeps_unrelated(self, cache):
        cache._store.save_json(cache.path, CachedSuggestion("Pho", T0).to_document())
        cache.on_items_removed(["Pho Bo"])
        assert cache.current().food == "Pho"
