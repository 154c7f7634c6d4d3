"""Configuration loading from environment variables and foodbot.toml."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib
from pathlib import Path

_DEFAULT_DATA_DIR = Path.home() / ".foodbot" / "data"
_CONFIG_FILENAME = "foodbot.toml"

LEGACY_RESTRICTED_USERS = ["phuongtung99"]
DEFAULT_RESTRICTED_MESSAGE = "Bạn cần nạp VIP để thực hiện lệnh này"


@dataclass
class TelegramConfig:
    """Telegram Bot API connector configuration."""

    token: str = ""
    poll_timeout: int = 30
    api_base: str = "https://api.telegram.org"


@dataclass
class StorageConfig:
    """Where each document lives. Unset paths derive from data_dir."""

    data_dir: Path = _DEFAULT_DATA_DIR
    food_list_path: Path | None = None
    food_cache_path: Path | None = None
    admins_path: Path | None = None
    restricted_path: Path | None = None

    def __post_init__(self) -> None:
        self.data_dir = Path(self.data_dir)
        if self.food_list_path is None:
            self.food_list_path = self.data_dir / "foods.txt"
        if self.food_cache_path is None:
            self.food_cache_path = self.data_dir / "food_cache.json"
        if self.admins_path is None:
            self.admins_path = self.data_dir / "admins.json"
        if self.restricted_path is None:
            self.restricted_path = self.data_dir / "restricted_users.json"


@dataclass
class RolesConfig:
    """Built-in role seeds."""

    seed_admins: list[str] = field(default_factory=list)
    seed_restricted: list[str] = field(default_factory=lambda: list(LEGACY_RESTRICTED_USERS))


@dataclass
class BotConfig:
    """Top-level foodbot configuration."""

    telegram: TelegramConfig = field(default_factory=TelegramConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    roles: RolesConfig = field(default_factory=RolesConfig)
    cache_ttl_hours: float = 12
    chunk_size: int = 4000
    restricted_message: str = DEFAULT_RESTRICTED_MESSAGE
    pid_file: Path = Path.home() / ".foodbot" / "foodbot.pid"
    log_level: str = "INFO"


def _optional_path(value: str | None) -> Path | None:
    return Path(value).expanduser() if value else None


def _split_names(value: str) -> list[str]:
    return [name.strip() for name in value.split(",") if name.strip()]


def load_config(config_path: Path | None = None) -> BotConfig:
    """Load configuration from environment variables and optional foodbot.toml.

    Priority: environment variables > foodbot.toml > defaults.
    """
    file_data: dict = {}
    if config_path and config_path.exists():
        file_data = tomllib.loads(config_path.read_text())
    else:
        # Search current dir and ~/.foodbot/
        for candidate in [Path.cwd() / _CONFIG_FILENAME, Path.home() / ".foodbot" / _CONFIG_FILENAME]:
            if candidate.exists():
                file_data = tomllib.loads(candidate.read_text())
                break

    telegram_data = file_data.get("telegram", {})
    storage_data = file_data.get("storage", {})
    roles_data = file_data.get("roles", {})

    seed_admins = roles_data.get("seed_admins", [])
    if os.getenv("FOODBOT_ADMINS"):
        seed_admins = _split_names(os.environ["FOODBOT_ADMINS"])

    data_dir = os.getenv("FOODBOT_DATA_DIR", storage_data.get("data_dir"))

    config = BotConfig(
        telegram=TelegramConfig(
            token=os.getenv("TELEGRAM_BOT_TOKEN", telegram_data.get("token", "")),
            poll_timeout=int(telegram_data.get("poll_timeout", 30)),
            api_base=telegram_data.get("api_base", "https://api.telegram.org"),
        ),
        storage=StorageConfig(
            data_dir=Path(data_dir).expanduser() if data_dir else _DEFAULT_DATA_DIR,
            food_list_path=_optional_path(storage_data.get("food_list_path")),
            food_cache_path=_optional_path(storage_data.get("food_cache_path")),
            admins_path=_optional_path(storage_data.get("admins_path")),
            restricted_path=_optional_path(storage_data.get("restricted_path")),
        ),
        roles=RolesConfig(
            seed_admins=list(seed_admins),
            seed_restricted=list(roles_data.get("seed_restricted", LEGACY_RESTRICTED_USERS)),
        ),
        cache_ttl_hours=float(
            os.getenv("FOODBOT_CACHE_TTL_HOURS", file_data.get("cache_ttl_hours", 12))
        ),
        chunk_size=int(file_data.get("chunk_size", 4000)),
        restricted_message=file_data.get("restricted_message", DEFAULT_RESTRICTED_MESSAGE),
        log_level=os.getenv("FOODBOT_LOG_LEVEL", file_data.get("log_level", "INFO")),
    )
    return config
