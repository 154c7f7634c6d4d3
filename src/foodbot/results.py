"""Outcome type shared by the catalog and role registry."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class OperationResult:
    """A mutation outcome with a user-facing message.

    The message is relayed verbatim by connectors.
    """

    success: bool
    message: str

    @classmethod
    def ok(cls, message: str) -> OperationResult:
        return cls(True, message)

    @classmethod
    def fail(cls, message: str) -> OperationResult:
        return cls(False, message)
