"""Telegram Bot API connector.

Long-polls getUpdates, sends replies via sendMessage. Uses aiohttp directly;
no Telegram SDK is needed for the handful of calls involved.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

import aiohttp

from foodbot.connectors.base import IncomingMessage

if TYPE_CHECKING:
    from foodbot.config import TelegramConfig
    from foodbot.connectors.base import MessageHandler, Reply

logger = logging.getLogger(__name__)


class TelegramAPIError(Exception):
    """The Bot API answered with ok=false."""


class TelegramConnector:
    """Telegram long-polling connector."""

    def __init__(
        self,
        config: TelegramConfig,
        session: aiohttp.ClientSession | None = None,
        retry_delay: float = 5.0,
    ) -> None:
        if not config.token:
            raise ValueError("Telegram connector requires a bot token (TELEGRAM_BOT_TOKEN)")
        self._config = config
        self._session = session
        self._owns_session = session is None
        self._handler: MessageHandler | None = None
        self._offset = 0
        self._running = False
        self._retry_delay = retry_delay

    @property
    def name(self) -> str:
        return "telegram"

    def _url(self, method: str) -> str:
        return f"{self._config.api_base}/bot{self._config.token}/{method}"

    async def _call(self, method: str, payload: dict) -> Any:
        async with self._session.post(self._url(method), json=payload) as resp:
            data = await resp.json()
        if not data.get("ok"):
            raise TelegramAPIError(f"{method}: {data.get('description', 'unknown error')}")
        return data.get("result")

    # ── Polling loop ─────────────────────────────────────────

    async def start(self, handler: MessageHandler) -> None:
        self._handler = handler
        self._running = True
        if self._session is None:
            timeout = aiohttp.ClientTimeout(total=self._config.poll_timeout + 10)
            self._session = aiohttp.ClientSession(timeout=timeout)

        logger.info("Telegram polling started")
        try:
            while self._running:
                try:
                    updates = await self._get_updates()
                except (aiohttp.ClientError, asyncio.TimeoutError, TelegramAPIError) as e:
                    logger.error("Polling error: %s", e)
                    await asyncio.sleep(self._retry_delay)
                    continue

                for update in updates:
                    await self._process_update(update)
        finally:
            await self._close_session()

    async def _get_updates(self) -> list[dict]:
        result = await self._call(
            "getUpdates",
            {
                "offset": self._offset,
                "timeout": self._config.poll_timeout,
                "allowed_updates": ["message"],
            },
        )
        return result or []

    async def _process_update(self, update: dict) -> None:
        self._offset = max(self._offset, int(update.get("update_id", 0)) + 1)
        msg = self.parse_update(update)
        if msg is None:
            return
        try:
            replies = await self._handler(msg)
            await self.reply(msg.chat_id, replies)
        except Exception as e:
            logger.error("Error processing telegram update %s: %s", update.get("update_id"), e)

    @staticmethod
    def parse_update(update: dict) -> IncomingMessage | None:
        """Turn a getUpdates entry into an IncomingMessage. None if it has no text."""
        message = update.get("message") or {}
        text = (message.get("text") or "").strip()
        chat = message.get("chat") or {}
        if not text or "id" not in chat:
            return None

        user = message.get("from") or {}
        return IncomingMessage(
            text=text,
            chat_id=str(chat["id"]),
            sender=user.get("username") or "",
            connector_name="telegram",
            metadata={
                "user_id": user.get("id"),
                "first_name": user.get("first_name") or "",
                "message_id": message.get("message_id"),
            },
        )

    async def _close_session(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    async def stop(self) -> None:
        self._running = False
        logger.info("Telegram polling stopped")

    async def reply(self, chat_id: str, replies: list[Reply]) -> None:
        """Send replies in order. Failures are logged, not raised."""
        for r in replies:
            payload: dict[str, Any] = {"chat_id": chat_id, "text": r.text}
            if r.parse_mode:
                payload["parse_mode"] = r.parse_mode
            try:
                await self._call("sendMessage", payload)
            except (aiohttp.ClientError, asyncio.TimeoutError, TelegramAPIError) as e:
                logger.error("Telegram reply failed: %s", e)
