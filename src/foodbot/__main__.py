"""Entry point: python -m foodbot [chat|serve]

- No args / "chat": Interactive CLI REPL (development/testing)
- "serve":          Daemon mode (production, Telegram connector)
"""

from __future__ import annotations

import asyncio
import logging
import os
import sys

from foodbot.config import load_config


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _run_cli() -> None:
    """Interactive CLI REPL mode."""
    config = load_config()
    _setup_logging(config.log_level)

    from foodbot.connectors.cli import CLIConnector
    from foodbot.daemon import FoodBotDaemon

    bot = FoodBotDaemon(config).build_bot()

    default_user = config.roles.seed_admins[0] if config.roles.seed_admins else "user"
    bot.add_connector(CLIConnector(username=os.getenv("FOODBOT_CLI_USER", default_user)))

    try:
        asyncio.run(bot.start())
    except KeyboardInterrupt:
        pass


def _run_serve() -> None:
    """Daemon mode — Telegram connector."""
    config = load_config()
    _setup_logging(config.log_level)

    from foodbot.daemon import FoodBotDaemon

    daemon = FoodBotDaemon(config)
    asyncio.run(daemon.run())


def main() -> None:
    cmd = sys.argv[1] if len(sys.argv) > 1 else "chat"

    if cmd in ("chat", "repl"):
        _run_cli()
    elif cmd == "serve":
        _run_serve()
    else:
        print("Usage: python -m foodbot [chat|serve]")
        print("  chat   — Interactive CLI REPL (default)")
        print("  serve  — Daemon mode with the Telegram connector")
        sys.exit(1)


if __name__ == "__main__":
    main()
