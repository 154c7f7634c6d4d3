"""Connector protocol and shared types."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Coroutine, Protocol, runtime_checkable


@dataclass
class IncomingMessage:
    """A message received from any connector."""

    text: str
    chat_id: str
    sender: str = ""  # username, without '@'; empty if the user has none
    connector_name: str = ""
    metadata: dict = field(default_factory=dict)


@dataclass
class Reply:
    """One outgoing chat message."""

    text: str
    parse_mode: str | None = None


# Callback type: core.FoodBot.handle_message
MessageHandler = Callable[[IncomingMessage], Coroutine[None, None, "list[Reply]"]]


def split_text(text: str, limit: int) -> list[str]:
    """Cut text into pieces of at most ``limit`` characters."""
    if len(text) <= limit:
        return [text]
    return [text[i : i + limit] for i in range(0, len(text), limit)]


@runtime_checkable
class Connector(Protocol):
    """Protocol that all chat connectors must implement."""

    @property
    def name(self) -> str: ...

    async def start(self, handler: MessageHandler) -> None:
        """Start listening for messages. Call handler for each incoming message."""
        ...

    async def stop(self) -> None:
        """Gracefully stop the connector."""
        ...

    async def reply(self, chat_id: str, replies: list[Reply]) -> None:
        """Send replies back to the given chat, in order."""
        ...
