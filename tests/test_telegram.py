"""Tests for the Telegram connector (mocked aiohttp session)."""

import pytest
from unittest.mock import AsyncMock, MagicMock

from foodbot.config import TelegramConfig
from foodbot.connectors.base import Reply, split_text
from foodbot.connectors.telegram import TelegramConnector


def _session(*payloads: dict) -> MagicMock:
    """A fake ClientSession whose post() yields the given JSON bodies in order."""
    session = MagicMock()
    responses = []
    for payload in payloads:
        resp = MagicMock()
        resp.json = AsyncMock(return_value=payload)
        ctx = MagicMock()
        ctx.__aenter__ = AsyncMock(return_value=resp)
        ctx.__aexit__ = AsyncMock(return_value=False)
        responses.append(ctx)
    session.post.side_effect = responses
    return session


@pytest.fixture
def config() -> TelegramConfig:
    return TelegramConfig(token="123:abc", api_base="https://api.test")


class TestSplitText:
    def test_short_text_untouched(self):
        assert split_text("abc", 10) == ["abc"]

    def test_split(self):
        assert split_text("abcdefg", 3) == ["abc", "def", "g"]


class TestParseUpdate:
    def test_text_message(self):
        msg = TelegramConnector.parse_update(
            {
                "update_id": 10,
                "message": {
                    "message_id": 5,
                    "text": " /food ",
                    "chat": {"id": -100},
                    "from": {"id": 42, "username": "alice", "first_name": "Alice"},
                },
            }
        )
        assert msg.text == "/food"
        assert msg.chat_id == "-100"
        assert msg.sender == "alice"
        assert msg.connector_name == "telegram"
        assert msg.metadata["first_name"] == "Alice"

    def test_user_without_username(self):
        msg = TelegramConnector.parse_update(
            {"message": {"text": "/food", "chat": {"id": 1}, "from": {"id": 2}}}
        )
        assert msg.sender == ""

    def test_non_text_ignored(self):
        assert TelegramConnector.parse_update({"message": {"chat": {"id": 1}}}) is None
        assert TelegramConnector.parse_update({"edited_message": {}}) is None


class TestConnector:
    def test_requires_token(self):
        with pytest.raises(ValueError):
            TelegramConnector(TelegramConfig())

    @pytest.mark.asyncio
    async def test_reply_sends_each_message(self, config: TelegramConfig):
        session = _session({"ok": True, "result": {}}, {"ok": True, "result": {}})
        connector = TelegramConnector(config, session=session)

        await connector.reply("7", [Reply("one"), Reply("*two*", parse_mode="Markdown")])

        calls = session.post.call_args_list
        assert calls[0].args[0] == "https://api.test/bot123:abc/sendMessage"
        assert calls[0].kwargs["json"] == {"chat_id": "7", "text": "one"}
        assert calls[1].kwargs["json"]["parse_mode"] == "Markdown"

    @pytest.mark.asyncio
    async def test_reply_failure_is_logged(self, config: TelegramConfig, caplog):
        session = _session({"ok": False, "description": "Bad Request: chat not found"})
        connector = TelegramConnector(config, session=session)

        await connector.reply("7", [Reply("hi")])
        assert "chat not found" in caplog.text

    @pytest.mark.asyncio
    async def test_process_update_advances_offset_and_replies(self, config: TelegramConfig):
        session = _session({"ok": True, "result": {}})
        connector = TelegramConnector(config, session=session)
        connector._handler = AsyncMock(return_value=[Reply("🍽️ Random food suggestion: Pho")])

        await connector._process_update(
            {"update_id": 99, "message": {"text": "/food", "chat": {"id": 3}, "from": {}}}
        )

        assert connector._offset == 100
        connector._handler.assert_awaited_once()
        assert session.post.call_args.kwargs["json"]["text"].endswith("Pho")

    @pytest.mark.asyncio
    async def test_get_updates(self, config: TelegramConfig):
        session = _session({"ok": True, "result": [{"update_id": 1}]})
        connector = TelegramConnector(config, session=session)

        assert await connector._get_updates() == [{"update_id": 1}]
        payload = session.post.call_args.kwargs["json"]
        assert payload["offset"] == 0
        assert payload["timeout"] == config.poll_timeout
