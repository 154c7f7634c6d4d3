"""Role registry — privileged (admin) and restricted usernames.

Invariant: a username is never in both sets. ``add`` moves a user out of the
opposing set before adding them, and rolls that back if the second write
fails. Seed admins are configuration: merged on every load, never removable,
never restrictable.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from foodbot.results import OperationResult

if TYPE_CHECKING:
    from foodbot.storage import DocumentStore

logger = logging.getLogger(__name__)


class Role(str, Enum):
    PRIVILEGED = "privileged"
    RESTRICTED = "restricted"

    @property
    def opposite(self) -> Role:
        return Role.RESTRICTED if self is Role.PRIVILEGED else Role.PRIVILEGED


# (added, already member, removed, not a member)
_MESSAGES = {
    Role.PRIVILEGED: (
        "@{} is now an admin",
        "@{} is already an admin",
        "@{} is no longer an admin",
        "@{} is not an admin",
    ),
    Role.RESTRICTED: (
        "@{} has been restricted",
        "@{} is already restricted",
        "@{} has been unrestricted",
        "@{} is not restricted",
    ),
}


def normalize_username(username: str | None) -> str:
    """Trim, drop one leading '@', lowercase."""
    if not username:
        return ""
    name = username.strip()
    if name.startswith("@"):
        name = name[1:]
    return name.strip().lower()


def _unique(names: Iterable) -> list[str]:
    seen: list[str] = []
    for raw in names:
        if not isinstance(raw, str):
            continue
        name = normalize_username(raw)
        if name and name not in seen:
            seen.append(name)
    return seen


class RoleRegistry:
    """Two persisted username sets with mutual exclusion."""

    def __init__(
        self,
        store: DocumentStore,
        admins_path: Path,
        restricted_path: Path,
        seed_admins: Iterable[str] = (),
        seed_restricted: Iterable[str] = (),
    ) -> None:
        self._store = store
        self._paths = {Role.PRIVILEGED: admins_path, Role.RESTRICTED: restricted_path}
        self.seed_admins: tuple[str, ...] = tuple(_unique(seed_admins))
        self.seed_restricted: tuple[str, ...] = tuple(
            name for name in _unique(seed_restricted) if name not in self.seed_admins
        )

    # ── Persistence ──────────────────────────────────────────

    def _read(self, role: Role) -> list[str]:
        """Persisted members only (no seed merge)."""
        path = self._paths[role]
        data = self._store.load_json(path, [])
        if not isinstance(data, list):
            logger.warning("Expected a JSON array in %s, treating as empty", path)
            return []
        return _unique(data)

    def _write(self, role: Role, members: list[str]) -> None:
        if role is Role.PRIVILEGED:
            members = [m for m in members if m not in self.seed_admins]
        self._store.save_json(self._paths[role], members)

    # ── Queries ──────────────────────────────────────────────

    def load(self, role: Role) -> list[str]:
        if role is Role.PRIVILEGED:
            return _unique([*self.seed_admins, *self._read(role)])

        path = self._paths[role]
        if not self._store.exists(path):
            admins = self.load(Role.PRIVILEGED)
            members = [name for name in self.seed_restricted if name not in admins]
            try:
                self._store.save_json(path, members)
                logger.info("Initialized %s with %d legacy entries", path, len(members))
            except OSError as e:
                logger.error("Could not initialize %s: %s", path, e)
            return members
        return self._read(role)

    def list_all(self, role: Role) -> list[str]:
        return self.load(role)

    def is_member(self, role: Role, username: str | None) -> bool:
        name = normalize_username(username)
        if not name:
            return False
        return name in self.load(role)

    def is_seed_admin(self, username: str | None) -> bool:
        return normalize_username(username) in self.seed_admins

    # ── Mutations ────────────────────────────────────────────

    def add(self, role: Role, username: str | None) -> OperationResult:
        """Add a user to ``role``, moving them out of the opposing set."""
        name = normalize_username(username)
        added_msg, already_msg, _, _ = _MESSAGES[role]
        if not name:
            return OperationResult.fail("Username cannot be empty")

        members = self.load(role)
        if name in members:
            return OperationResult.fail(already_msg.format(name))

        if role is Role.RESTRICTED and name in self.seed_admins:
            return OperationResult.fail(f"@{name} is a built-in admin and cannot be restricted")

        opposite = role.opposite
        opposing = self.load(opposite)
        moved = name in opposing

        try:
            if moved:
                self._write(opposite, [m for m in opposing if m != name])
            try:
                self._write(role, [*members, name])
            except OSError:
                if moved:
                    self._write(opposite, opposing)
                raise
        except OSError as e:
            logger.error("Error adding %s to %s: %s", name, role.value, e)
            return OperationResult.fail(f"Could not update {role.value} users: {e}")

        logger.info("Added %s to %s users", name, role.value)
        message = added_msg.format(name)
        if moved:
            message += f" (removed from {opposite.value} users)"
        return OperationResult.ok(message)

    def remove(self, role: Role, username: str | None) -> OperationResult:
        name = normalize_username(username)
        _, _, removed_msg, missing_msg = _MESSAGES[role]
        if not name:
            return OperationResult.fail("Username cannot be empty")

        if role is Role.PRIVILEGED and name in self.seed_admins:
            return OperationResult.fail(f"@{name} is a built-in admin and cannot be removed")

        members = self.load(role)
        if name not in members:
            return OperationResult.fail(missing_msg.format(name))

        try:
            self._write(role, [m for m in members if m != name])
        except OSError as e:
            logger.error("Error removing %s from %s: %s", name, role.value, e)
            return OperationResult.fail(f"Could not update {role.value} users: {e}")

        logger.info("Removed %s from %s users", name, role.value)
        return OperationResult.ok(removed_msg.format(name))
