"""Tests for configuration loading."""

import pytest
from pathlib import Path

from foodbot.config import DEFAULT_RESTRICTED_MESSAGE, load_config

_ENV_KEYS = [
    "TELEGRAM_BOT_TOKEN",
    "FOODBOT_DATA_DIR",
    "FOODBOT_ADMINS",
    "FOODBOT_CACHE_TTL_HOURS",
    "FOODBOT_LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def clean_env(tmp_path: Path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


class TestConfig:
    def test_defaults(self):
        config = load_config()
        assert config.telegram.token == ""
        assert config.cache_ttl_hours == 12
        assert config.chunk_size == 4000
        assert config.roles.seed_admins == []
        assert config.roles.seed_restricted == ["phuongtung99"]
        assert config.restricted_message == DEFAULT_RESTRICTED_MESSAGE
        assert config.storage.food_list_path.name == "foods.txt"

    def test_paths_derive_from_data_dir(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("FOODBOT_DATA_DIR", str(tmp_path / "state"))
        config = load_config()
        storage = config.storage
        assert storage.data_dir == tmp_path / "state"
        assert storage.food_list_path == tmp_path / "state" / "foods.txt"
        assert storage.food_cache_path == tmp_path / "state" / "food_cache.json"
        assert storage.admins_path == tmp_path / "state" / "admins.json"
        assert storage.restricted_path == tmp_path / "state" / "restricted_users.json"

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("TELEGRAM_BOT_TOKEN", "123:abc")
        monkeypatch.setenv("FOODBOT_ADMINS", "@alice, bob ,")
        monkeypatch.setenv("FOODBOT_CACHE_TTL_HOURS", "6")

        config = load_config()
        assert config.telegram.token == "123:abc"
        assert config.roles.seed_admins == ["@alice", "bob"]
        assert config.cache_ttl_hours == 6

    def test_toml_file(self, tmp_path: Path):
        toml_path = tmp_path / "foodbot.toml"
        toml_path.write_text("""
cache_ttl_hours = 2
chunk_size = 100

[telegram]
token = "from-file"
poll_timeout = 10

[storage]
data_dir = "/srv/foodbot"
food_list_path = "/srv/menu.txt"

[roles]
seed_admins = ["chef"]
seed_restricted = []
""")
        config = load_config(toml_path)
        assert config.telegram.token == "from-file"
        assert config.telegram.poll_timeout == 10
        assert config.cache_ttl_hours == 2
        assert config.chunk_size == 100
        assert config.storage.food_list_path == Path("/srv/menu.txt")
        assert config.storage.admins_path == Path("/srv/foodbot/admins.json")
        assert config.roles.seed_admins == ["chef"]
        assert config.roles.seed_restricted == []

    def test_toml_discovered_in_cwd(self, tmp_path: Path):
        (tmp_path / "foodbot.toml").write_text('log_level = "DEBUG"\n')
        assert load_config().log_level == "DEBUG"

    def test_env_overrides_toml(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("TELEGRAM_BOT_TOKEN", "from-env")

        toml_path = tmp_path / "foodbot.toml"
        toml_path.write_text("""
[telegram]
token = "from-file"
""")
        config = load_config(toml_path)
        assert config.telegram.token == "from-env"  # env wins
