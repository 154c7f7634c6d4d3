"""FoodBot dispatcher — the boundary between chat connectors and the state core.

Responsibilities:
1. Build the state components (catalog, suggestion cache, role registry)
   and wire the catalog's removal events into the cache
2. Parse `/command args` text from any connector
3. Gate commands: restricted users are turned away, admin commands need an admin
4. Call the core and format its results as replies
5. Serialize command handling so no two read-modify-write cycles overlap
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Callable
from datetime import timedelta
from typing import TYPE_CHECKING

from foodbot.catalog import CatalogManager
from foodbot.config import BotConfig
from foodbot.connectors.base import IncomingMessage, Reply, split_text
from foodbot.roles import Role, RoleRegistry
from foodbot.storage import FileDocumentStore
from foodbot.suggestion import SuggestionCache, utcnow

if TYPE_CHECKING:
    import random

    from foodbot.connectors.base import Connector
    from foodbot.storage import DocumentStore
    from foodbot.suggestion import Clock

logger = logging.getLogger(__name__)

_COMMAND_RE = re.compile(r"^/(\w+)(?:@\w+)?(?:\s+(.*))?$")
_INDEX_RE = re.compile(r"[+-]?\d+")

NO_FOODS_TEXT = "No foods available. Please import a food list first."
NOT_ADMIN_TEXT = "Sorry, this command is only available to admins."
STORAGE_ERROR_TEXT = "Storage error, please try again later."

COMMON_COMMANDS = (
    "/food - Get a random food suggestion\n"
    "/newfood - Force a new food suggestion\n"
    "/foodlist - Show all foods in the list\n"
    "/help - Show all available commands"
)

ADMIN_COMMANDS = (
    "/clearfood - Clear current food suggestion\n"
    "/addfood - Add a new food to the list\n"
    "/removefood - Remove a food from the list (by number or name)\n"
    "/addadmin @username - Add a new admin\n"
    "/removeadmin @username - Remove an admin\n"
    "/listadmins - List all admins\n"
    "/restrict @username - Restrict a user\n"
    "/unrestrict @username - Unrestrict a user\n"
    "/listrestricted - List all restricted users"
)

CommandHandler = Callable[[IncomingMessage, str], "list[Reply]"]


def parse_command(text: str) -> tuple[str, str] | None:
    """Split '/name@bot args' into (name, args). None for non-commands.

    Only the first line is read; anything after a line break is ignored.
    """
    lines = text.strip().splitlines()
    if not lines:
        return None
    match = _COMMAND_RE.match(lines[0].strip())
    if not match:
        return None
    return match.group(1).lower(), (match.group(2) or "").strip()


def _unquote(text: str) -> str:
    if len(text) >= 2 and text[0] == text[-1] and text[0] in "\"'":
        return text[1:-1].strip()
    return text


def _escape_markdown(text: str) -> str:
    return re.sub(r"([_*`\[])", r"\\\1", text)


class FoodBot:
    """Core dispatcher — routes chat commands to the state managers."""

    def __init__(
        self,
        config: BotConfig,
        store: DocumentStore | None = None,
        clock: Clock = utcnow,
        rng: random.Random | None = None,
    ) -> None:
        self.config = config
        store = store or FileDocumentStore()
        paths = config.storage

        self.catalog = CatalogManager(store, paths.food_list_path)
        self.suggestions = SuggestionCache(
            store,
            paths.food_cache_path,
            ttl=timedelta(hours=config.cache_ttl_hours),
            clock=clock,
            rng=rng,
        )
        self.catalog.subscribe(self.suggestions.on_items_removed)
        self.roles = RoleRegistry(
            store,
            paths.admins_path,
            paths.restricted_path,
            seed_admins=config.roles.seed_admins,
            seed_restricted=config.roles.seed_restricted,
        )

        self._connectors: list[Connector] = []
        self._lock = asyncio.Lock()

        # name -> (handler, admin only)
        self._commands: dict[str, tuple[CommandHandler, bool]] = {
            "start": (self._cmd_start, False),
            "help": (self._cmd_help, False),
            "food": (self._cmd_food, False),
            "newfood": (self._cmd_newfood, False),
            "foodlist": (self._cmd_foodlist, False),
            "clearfood": (self._cmd_clearfood, True),
            "addfood": (self._cmd_addfood, True),
            "removefood": (self._cmd_removefood, True),
            "addadmin": (self._role_adder(Role.PRIVILEGED, "addadmin"), True),
            "removeadmin": (self._role_remover(Role.PRIVILEGED, "removeadmin"), True),
            "listadmins": (self._cmd_listadmins, True),
            "restrict": (self._role_adder(Role.RESTRICTED, "restrict"), True),
            "unrestrict": (self._role_remover(Role.RESTRICTED, "unrestrict"), True),
            "listrestricted": (self._cmd_listrestricted, True),
        }

    # ── Connector management ─────────────────────────────────

    def add_connector(self, connector: Connector) -> None:
        self._connectors.append(connector)
        logger.info("Registered connector: %s", connector.name)

    # ── Message handling (the core loop) ─────────────────────

    async def handle_message(self, msg: IncomingMessage) -> list[Reply]:
        """Process an incoming message — the main entry point for all connectors."""
        async with self._lock:
            return self._dispatch(msg)

    def _dispatch(self, msg: IncomingMessage) -> list[Reply]:
        parsed = parse_command(msg.text)
        if not parsed:
            return []
        name, args = parsed
        entry = self._commands.get(name)
        if not entry:
            return []
        handler, admin_only = entry

        logger.info("/%s from %s (%s)", name, msg.sender or "<no username>", msg.connector_name)

        try:
            if admin_only:
                if not self.is_admin(msg.sender):
                    return [Reply(NOT_ADMIN_TEXT)]
            elif self.is_restricted(msg.sender):
                logger.info("User %s is restricted", msg.sender)
                return [Reply(self.config.restricted_message)]
            return handler(msg, args)
        except OSError as e:
            logger.error("Storage error while handling /%s: %s", name, e)
            return [Reply(STORAGE_ERROR_TEXT)]

    def is_admin(self, username: str | None) -> bool:
        return self.roles.is_member(Role.PRIVILEGED, username)

    def is_restricted(self, username: str | None) -> bool:
        return self.roles.is_member(Role.RESTRICTED, username)

    # ── Everyone ─────────────────────────────────────────────

    def _cmd_start(self, msg: IncomingMessage, args: str) -> list[Reply]:
        first_name = _escape_markdown(msg.metadata.get("first_name") or "User")
        text = f"Hi {first_name}! I am your Food and Foodlist Bot.\n\n"
        text += f"*Commands:*\n{COMMON_COMMANDS}"
        if self.is_admin(msg.sender):
            text += f"\n\n👑 *Admin Commands:*\n{ADMIN_COMMANDS}"
        return [Reply(text, parse_mode="Markdown")]

    def _cmd_help(self, msg: IncomingMessage, args: str) -> list[Reply]:
        text = f"📖 *Available Commands:*\n\n*Food Commands:*\n{COMMON_COMMANDS}"
        if self.is_admin(msg.sender):
            text += f"\n\n👑 *Admin Commands:*\n{ADMIN_COMMANDS}"
        return [Reply(text, parse_mode="Markdown")]

    def _cmd_food(self, msg: IncomingMessage, args: str) -> list[Reply]:
        food = self.suggestions.get_or_select(self.catalog)
        if not food:
            return [Reply(NO_FOODS_TEXT)]
        return [Reply(f"🍽️ Random food suggestion: {food}")]

    def _cmd_newfood(self, msg: IncomingMessage, args: str) -> list[Reply]:
        food = self.suggestions.get_or_select(self.catalog, force_new=True)
        if not food:
            return [Reply(NO_FOODS_TEXT)]
        return [Reply(f"🍽️ New food suggestion: {food}")]

    def _cmd_foodlist(self, msg: IncomingMessage, args: str) -> list[Reply]:
        text = self.catalog.list_formatted(numbered=True)
        chunks = split_text(text, self.config.chunk_size)
        if len(chunks) == 1:
            return [Reply(f"🍽️ Food List:\n\n{text}")]

        replies = [Reply(f"🍽️ Food List (Part 1/{len(chunks)}):\n\n{chunks[0]}")]
        replies.extend(Reply(chunk) for chunk in chunks[1:])
        return replies

    # ── Admin: catalog ───────────────────────────────────────

    def _cmd_clearfood(self, msg: IncomingMessage, args: str) -> list[Reply]:
        self.suggestions.clear()
        return [Reply("Food suggestion cleared! Use /food or /newfood to get a new suggestion.")]

    def _cmd_addfood(self, msg: IncomingMessage, args: str) -> list[Reply]:
        food = _unquote(args)
        if not food:
            return [Reply('Please specify a food to add, e.g. /addfood "Fried Rice"')]
        if self.catalog.add(food):
            return [Reply(f'Added "{food}" to the food list!')]
        return [Reply(f'"{food}" already exists in the food list or could not be added.')]

    def _cmd_removefood(self, msg: IncomingMessage, args: str) -> list[Reply]:
        target = _unquote(args)
        if not target:
            return [
                Reply(
                    "Please specify the index of the food to remove, e.g. /removefood 5\n"
                    "Use /foodlist to see the numbered list."
                )
            ]
        if _INDEX_RE.fullmatch(target):
            result = self.catalog.remove_by_index(int(target))
        else:
            result = self.catalog.remove_by_value(target)
        return [Reply(result.message)]

    # ── Admin: roles ─────────────────────────────────────────

    def _role_adder(self, role: Role, command: str) -> CommandHandler:
        def handler(msg: IncomingMessage, args: str) -> list[Reply]:
            if not args:
                return [Reply(f"Please specify a username, e.g. /{command} @username")]
            return [Reply(self.roles.add(role, args.split()[0]).message)]

        return handler

    def _role_remover(self, role: Role, command: str) -> CommandHandler:
        def handler(msg: IncomingMessage, args: str) -> list[Reply]:
            if not args:
                return [Reply(f"Please specify a username, e.g. /{command} @username")]
            return [Reply(self.roles.remove(role, args.split()[0]).message)]

        return handler

    def _format_users(self, title: str, users: list[str], empty: str) -> list[Reply]:
        text = f"{title}\n\n"
        if users:
            text += "\n".join(f"• @{_escape_markdown(u)}" for u in users)
        else:
            text += empty
        return [Reply(text, parse_mode="Markdown")]

    def _cmd_listadmins(self, msg: IncomingMessage, args: str) -> list[Reply]:
        return self._format_users(
            "👑 *Admin List:*", self.roles.list_all(Role.PRIVILEGED), "_No admins configured_"
        )

    def _cmd_listrestricted(self, msg: IncomingMessage, args: str) -> list[Reply]:
        return self._format_users(
            "🚫 *Restricted Users:*",
            self.roles.list_all(Role.RESTRICTED),
            "_No restricted users_",
        )

    # ── Lifecycle ─────────────────────────────────────────────

    async def start(self) -> None:
        """Start all connectors (each listens for messages)."""
        if not self._connectors:
            raise RuntimeError("No connectors registered. Call add_connector() first.")
        if not self.roles.seed_admins and not self.roles.list_all(Role.PRIVILEGED):
            logger.warning("No admins configured; admin commands are unusable")

        tasks = [connector.start(self.handle_message) for connector in self._connectors]
        await asyncio.gather(*tasks)

    async def stop(self) -> None:
        """Gracefully stop all connectors."""
        for connector in self._connectors:
            await connector.stop()
