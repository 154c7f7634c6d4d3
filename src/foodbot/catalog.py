"""Catalog manager — the food list, one item per line.

Items are displayed sorted, and index-based removal addresses that sorted
order. Removals are broadcast to listeners (the suggestion cache subscribes).
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING

from foodbot.results import OperationResult

if TYPE_CHECKING:
    from foodbot.storage import DocumentStore

logger = logging.getLogger(__name__)

EMPTY_LIST_TEXT = "No foods available in the list."
MAX_SUGGESTIONS = 5

RemovalListener = Callable[[list[str]], None]


class CatalogManager:
    """Read/write access to the catalog file."""

    def __init__(self, store: DocumentStore, path: Path) -> None:
        self._store = store
        self.path = path
        self._listeners: list[RemovalListener] = []

    def subscribe(self, listener: RemovalListener) -> None:
        """Register a callback invoked with the items removed by each removal."""
        self._listeners.append(listener)

    def _emit_removed(self, items: list[str]) -> None:
        # The removal is already committed at this point.
        for listener in self._listeners:
            try:
                listener(items)
            except Exception as e:
                logger.error("Removal listener %r failed: %s", listener, e)

    # ── Reads ────────────────────────────────────────────────

    def load_all(self) -> list[str]:
        """All items in stored order. Duplicates are kept."""
        foods = self._store.load_lines(self.path)
        logger.debug("Loaded %d foods from %s", len(foods), self.path)
        return foods

    def sorted_items(self) -> list[str]:
        return sorted(self.load_all())

    def list_formatted(self, numbered: bool = False) -> str:
        foods = self.sorted_items()
        if not foods:
            return EMPTY_LIST_TEXT
        if numbered:
            return "\n".join(f"{i}. {food}" for i, food in enumerate(foods, start=1))
        return "\n".join(f"• {food}" for food in foods)

    # ── Mutations ────────────────────────────────────────────

    def add(self, text: str) -> bool:
        """Append a food. False if empty, multi-line, already present (case-sensitive)
        or unwritable.
        """
        food = text.strip()
        if not food:
            return False
        if len(food.splitlines()) > 1:
            logger.info("Rejected multi-line food %r", food)
            return False

        if food in self.load_all():
            logger.info("Food '%s' already exists in the list", food)
            return False

        try:
            self._store.append_line(self.path, food)
        except OSError as e:
            logger.error("Error adding food to list: %s", e)
            return False

        logger.info("Added new food '%s' to the list", food)
        return True

    def remove_by_index(self, index: int) -> OperationResult:
        """Remove the item at a 1-based position of the sorted list.

        The file is rewritten in sorted order as a side effect.
        """
        foods = self.sorted_items()
        if not foods:
            return OperationResult.fail("Food list is empty")

        if not 1 <= index <= len(foods):
            return OperationResult.fail(
                f"Invalid index. Please use a number between 1 and {len(foods)}"
            )

        removed = foods.pop(index - 1)
        try:
            self._store.save_lines(self.path, foods)
        except OSError as e:
            logger.error("Error removing food from list: %s", e)
            return OperationResult.fail(f"Error removing food: {e}")

        logger.info("Removed food '%s' from the list (index %d)", removed, index)
        self._emit_removed([removed])
        return OperationResult.ok(f"Removed '{removed}' from the food list")

    def remove_by_value(self, text: str) -> OperationResult:
        """Remove every case-insensitive exact match.

        Without an exact match nothing is removed; substring matches are
        offered as suggestions instead.
        """
        food = text.strip()
        if not food:
            return OperationResult.fail("Please specify a food to remove")

        foods = self.load_all()
        if not foods:
            return OperationResult.fail("Food list is empty")

        needle = food.lower()
        matches = [f for f in foods if f.lower() == needle]

        if not matches:
            partial = [f for f in foods if needle in f.lower()]
            if partial:
                shown = ", ".join(f"'{m}'" for m in partial[:MAX_SUGGESTIONS])
                more = ""
                if len(partial) > MAX_SUGGESTIONS:
                    more = f" (and {len(partial) - MAX_SUGGESTIONS} more)"
                return OperationResult.fail(
                    f"Food '{food}' not found exactly. Did you mean one of: {shown}{more}"
                )
            return OperationResult.fail(f"Food '{food}' not found in the list")

        remaining = [f for f in foods if f.lower() != needle]
        try:
            self._store.save_lines(self.path, remaining)
        except OSError as e:
            logger.error("Error removing food from list: %s", e)
            return OperationResult.fail(f"Error removing food: {e}")

        logger.info("Removed food '%s' from the list", matches[0])
        self._emit_removed(matches)

        if len(matches) > 1:
            return OperationResult.ok(f"Removed {len(matches)} items matching '{food}'")
        return OperationResult.ok(f"Removed '{matches[0]}' from the food list")
