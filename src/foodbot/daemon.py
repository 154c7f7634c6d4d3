"""Daemon process — always-on mode for production.

Usage: python -m foodbot serve

Manages:
- Connector lifecycle (Telegram long polling)
- PID file (prevent duplicate instances)
- Graceful shutdown (SIGTERM/SIGINT)
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
import sys

from foodbot.config import BotConfig, load_config
from foodbot.core import FoodBot

logger = logging.getLogger(__name__)


class FoodBotDaemon:
    """Always-on daemon process."""

    def __init__(self, config: BotConfig | None = None) -> None:
        self.config = config or load_config()
        self._shutdown_event = asyncio.Event()

    # ── PID file management ──────────────────────────────────

    def _write_pid(self) -> None:
        self.config.pid_file.parent.mkdir(parents=True, exist_ok=True)
        self.config.pid_file.write_text(str(os.getpid()))
        logger.info("PID file written: %s (pid=%d)", self.config.pid_file, os.getpid())

    def _remove_pid(self) -> None:
        if self.config.pid_file.exists():
            self.config.pid_file.unlink()

    def _check_existing(self) -> None:
        if not self.config.pid_file.exists():
            return
        try:
            pid = int(self.config.pid_file.read_text().strip())
            os.kill(pid, 0)  # Check if process exists
            print(f"Food bot already running (pid={pid}). Exiting.", file=sys.stderr)
            sys.exit(1)
        except (ProcessLookupError, ValueError):
            # Stale PID file — remove it
            self._remove_pid()

    # ── Signal handling ──────────────────────────────────────

    def _setup_signals(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, self._handle_signal, sig)

    def _handle_signal(self, sig: signal.Signals) -> None:
        logger.info("Received %s, shutting down...", sig.name)
        self._shutdown_event.set()

    # ── Build components ─────────────────────────────────────

    def build_bot(self) -> FoodBot:
        return FoodBot(self.config)

    def _build_connectors(self, bot: FoodBot) -> None:
        if not self.config.telegram.token:
            logger.error("TELEGRAM_BOT_TOKEN is not set; no connector to run")
            return
        from foodbot.connectors.telegram import TelegramConnector

        bot.add_connector(TelegramConnector(self.config.telegram))

    # ── Main run loop ────────────────────────────────────────

    async def run(self) -> None:
        self._check_existing()
        self._write_pid()
        self._setup_signals()

        bot = self.build_bot()
        self._build_connectors(bot)

        logger.info("Food bot daemon starting (data_dir=%s)", self.config.storage.data_dir)

        bot_task = asyncio.create_task(bot.start())
        shutdown_task = asyncio.create_task(self._shutdown_event.wait())
        try:
            await asyncio.wait({bot_task, shutdown_task}, return_when=asyncio.FIRST_COMPLETED)
            if bot_task.done() and not bot_task.cancelled() and bot_task.exception():
                logger.error("Food bot stopped with error: %s", bot_task.exception())
        finally:
            await bot.stop()
            for task in (bot_task, shutdown_task):
                task.cancel()
            await asyncio.gather(bot_task, shutdown_task, return_exceptions=True)
            self._remove_pid()
            logger.info("Food bot daemon stopped.")
