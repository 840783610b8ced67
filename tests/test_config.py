"""
tests/test_config.py - environment-driven configuration.
"""

import pytest

import config
from config import TournamentPolicy, load_config, load_policy

POLICY_VARS = ("TOURNAMENT_MAX_ROUNDS", "TOURNAMENT_FINAL_FIELD_SIZE", "TOURNAMENT_DEFAULT_MAX_PLAYERS")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.setattr(config, "_maybe_load_env_file", lambda: None)
    for var in POLICY_VARS + ("DISCORD_TOKEN", "STORE_BACKEND", "DEV_GUILD_ID", "DB_NAME", "DB_POOL_MIN", "DB_POOL_MAX"):
        monkeypatch.delenv(var, raising=False)


def test_policy_defaults():
    assert load_policy() == TournamentPolicy(max_rounds=3, final_field_size=2, default_max_players=16)


def test_policy_overrides(monkeypatch):
    monkeypatch.setenv("TOURNAMENT_MAX_ROUNDS", "5")
    monkeypatch.setenv("TOURNAMENT_FINAL_FIELD_SIZE", " 4 ")
    monkeypatch.setenv("TOURNAMENT_DEFAULT_MAX_PLAYERS", "32")

    assert load_policy() == TournamentPolicy(max_rounds=5, final_field_size=4, default_max_players=32)


@pytest.mark.parametrize(
    "var, value",
    [
        ("TOURNAMENT_MAX_ROUNDS", "0"),
        ("TOURNAMENT_MAX_ROUNDS", "three"),
        ("TOURNAMENT_FINAL_FIELD_SIZE", "0"),
        ("TOURNAMENT_DEFAULT_MAX_PLAYERS", "1"),
    ],
)
def test_policy_rejects_bad_values(monkeypatch, var, value):
    monkeypatch.setenv(var, value)

    with pytest.raises(ValueError):
        load_policy()


def test_missing_token():
    with pytest.raises(RuntimeError):
        load_config()


def test_config_defaults(monkeypatch):
    monkeypatch.setenv("DISCORD_TOKEN", "abc")

    cfg = load_config()

    assert cfg.token == "abc"
    assert cfg.store_backend == "mysql"
    assert cfg.dev_guild_id is None
    assert cfg.mysql.database == "tournament_engine"
    assert cfg.policy == TournamentPolicy()


def test_memory_backend_and_guild(monkeypatch):
    monkeypatch.setenv("DISCORD_TOKEN", "abc")
    monkeypatch.setenv("STORE_BACKEND", "Memory")
    monkeypatch.setenv("DEV_GUILD_ID", "1234")

    cfg = load_config()

    assert cfg.store_backend == "memory"
    assert cfg.dev_guild_id == 1234


def test_unknown_backend(monkeypatch):
    monkeypatch.setenv("DISCORD_TOKEN", "abc")
    monkeypatch.setenv("STORE_BACKEND", "sqlite")

    with pytest.raises(ValueError):
        load_config()


def test_pool_bounds(monkeypatch):
    monkeypatch.setenv("DISCORD_TOKEN", "abc")
    monkeypatch.setenv("DB_POOL_MIN", "4")
    monkeypatch.setenv("DB_POOL_MAX", "2")

    with pytest.raises(ValueError):
        load_config()
