"""Local CLI REPL connector for development and testing."""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import TYPE_CHECKING

from foodbot.connectors.base import IncomingMessage

if TYPE_CHECKING:
    from foodbot.connectors.base import MessageHandler, Reply

logger = logging.getLogger(__name__)

_CLI_CHAT_ID = "cli"


class CLIConnector:
    """Interactive REPL connector — reads commands from stdin, writes replies to stdout."""

    def __init__(self, username: str = "user") -> None:
        self._username = username.lstrip("@")
        self._running = False

    @property
    def name(self) -> str:
        return "cli"

    async def start(self, handler: MessageHandler) -> None:
        self._running = True
        loop = asyncio.get_event_loop()

        print(f"Food Bot (as @{self._username}; type 'exit' or Ctrl+C to quit)")
        print("-" * 48)

        while self._running:
            try:
                line = await loop.run_in_executor(None, self._read_input)
            except (EOFError, KeyboardInterrupt):
                print("\nBye!")
                break

            if line is None or line.strip().lower() in ("exit", "quit"):
                print("Bye!")
                break

            text = line.strip()
            if not text:
                continue

            msg = IncomingMessage(
                text=text,
                chat_id=_CLI_CHAT_ID,
                sender=self._username,
                connector_name=self.name,
                metadata={"first_name": self._username},
            )

            replies = await handler(msg)
            if not replies:
                print("(no reply; try /help)")
                continue
            await self.reply(_CLI_CHAT_ID, replies)

    def _read_input(self) -> str | None:
        try:
            sys.stdout.write("\nYou: ")
            sys.stdout.flush()
            raw = sys.stdin.buffer.readline()
            if not raw:
                return None
            return raw.decode("utf-8", errors="replace").rstrip("\n")
        except EOFError:
            return None

    async def stop(self) -> None:
        self._running = False

    async def reply(self, chat_id: str, replies: list[Reply]) -> None:
        for r in replies:
            print(f"\nBot: {r.text}")
