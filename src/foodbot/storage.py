"""Durable document store — flat JSON and line-delimited files.

Loads never fail: a missing or malformed document comes back as the caller's
default and a warning is logged. Saves rewrite the whole document through a
temp file + rename and raise ``OSError`` if the disk refuses.
"""

from __future__ import annotations

import copy
import json
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class DocumentStore(Protocol):
    """Protocol for the load/save-by-path repository."""

    def exists(self, path: Path) -> bool: ...

    def load_json(self, path: Path, default: Any) -> Any: ...

    def save_json(self, path: Path, document: Any) -> None: ...

    def load_lines(self, path: Path) -> list[str]: ...

    def save_lines(self, path: Path, lines: list[str]) -> None: ...

    def append_line(self, path: Path, line: str) -> None: ...

    def delete(self, path: Path) -> bool: ...


def dump_json(document: Any) -> str:
    """Pretty-print a document. Stable for a given value."""
    return json.dumps(document, indent=2, ensure_ascii=False) + "\n"


def split_lines(text: str) -> list[str]:
    """One item per line, trimmed, blank lines dropped."""
    return [line.strip() for line in text.splitlines() if line.strip()]


class _TextDocumentStore(ABC):
    """Shared parsing on top of raw text read/write primitives."""

    @abstractmethod
    def _read_text(self, path: Path) -> str | None: ...

    @abstractmethod
    def _write_text(self, path: Path, text: str) -> None: ...

    @abstractmethod
    def _append_text(self, path: Path, text: str) -> None: ...

    @abstractmethod
    def _remove(self, path: Path) -> bool: ...

    def exists(self, path: Path) -> bool:
        return self._read_text(path) is not None

    # ── JSON documents ───────────────────────────────────────

    def load_json(self, path: Path, default: Any) -> Any:
        try:
            text = self._read_text(path)
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Could not read %s: %s", path, e)
            return copy.deepcopy(default)

        if text is None:
            logger.warning("Document not found: %s", path)
            return copy.deepcopy(default)

        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            logger.warning("Malformed JSON in %s, treating as empty: %s", path, e)
            return copy.deepcopy(default)

    def save_json(self, path: Path, document: Any) -> None:
        self._write_text(path, dump_json(document))

    # ── Line-delimited documents ─────────────────────────────

    def load_lines(self, path: Path) -> list[str]:
        try:
            text = self._read_text(path)
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Could not read %s: %s", path, e)
            return []

        if text is None:
            logger.warning("Document not found: %s", path)
            return []
        return split_lines(text)

    def save_lines(self, path: Path, lines: list[str]) -> None:
        self._write_text(path, "".join(f"{line}\n" for line in lines))

    def append_line(self, path: Path, line: str) -> None:
        self._append_text(path, f"{line}\n")

    def delete(self, path: Path) -> bool:
        return self._remove(path)


class FileDocumentStore(_TextDocumentStore):
    """Documents as UTF-8 files on the local filesystem."""

    def exists(self, path: Path) -> bool:
        return path.exists()

    def _read_text(self, path: Path) -> str | None:
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def _write_text(self, path: Path, text: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(path.suffix + ".tmp")
        try:
            tmp.write_text(text, encoding="utf-8")
            tmp.replace(path)
        finally:
            if tmp.exists():
                tmp.unlink()

    def _append_text(self, path: Path, text: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        prefix = ""
        if path.exists() and path.stat().st_size > 0:
            with path.open("rb") as f:
                f.seek(-1, os.SEEK_END)
                if f.read(1) != b"\n":
                    prefix = "\n"
        with path.open("a", encoding="utf-8") as f:
            f.write(prefix + text)

    def _remove(self, path: Path) -> bool:
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        return True


class MemoryDocumentStore(_TextDocumentStore):
    """In-memory store for tests. Same serialization as the file store."""

    def __init__(self, documents: dict[Path, str] | None = None) -> None:
        self.documents: dict[Path, str] = dict(documents or {})

    def _read_text(self, path: Path) -> str | None:
        return self.documents.get(Path(path))

    def _write_text(self, path: Path, text: str) -> None:
        self.documents[Path(path)] = text

    def _append_text(self, path: Path, text: str) -> None:
        existing = self.documents.get(Path(path), "")
        if existing and not existing.endswith("\n"):
            existing += "\n"
        self.documents[Path(path)] = existing + text

    def _remove(self, path: Path) -> bool:
        return self.documents.pop(Path(path), None) is not None
