# config.py
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

DEFAULT_MAX_ROUNDS = 3
DEFAULT_FINAL_FIELD_SIZE = 2
DEFAULT_MAX_PLAYERS = 16

STORE_BACKENDS = ("mysql", "memory")


def _maybe_load_env_file() -> None:
    """
    Load .env from the project root (same folder as this config.py).
    Never overwrites already-set environment variables.
    """
    dotenv_path = Path(__file__).resolve().parent / ".env"
    if dotenv_path.exists():
        load_dotenv(dotenv_path=dotenv_path, override=False)


@dataclass(frozen=True)
class MySqlConfig:
    host: str
    port: int
    user: str
    password: str
    database: str
    minsize: int = 1
    maxsize: int = 5
    connect_timeout: int = 10


@dataclass(frozen=True)
class TournamentPolicy:
    """
    When a completed round ends the tournament instead of producing another one:
    after round `max_rounds`, or once the field is `final_field_size` players or fewer.
    """

    max_rounds: int = DEFAULT_MAX_ROUNDS
    final_field_size: int = DEFAULT_FINAL_FIELD_SIZE
    default_max_players: int = DEFAULT_MAX_PLAYERS


@dataclass(frozen=True)
class BotConfig:
    token: str
    dev_guild_id: int | None
    command_prefix: str
    log_level: str
    store_backend: str
    mysql: MySqlConfig
    policy: TournamentPolicy


def _getenv(name: str, default: str | None = None) -> str | None:
    v = os.getenv(name)
    if v is None:
        return default
    v = v.strip()
    return v if v else default


def _int_or_none(value: str | None, var_name: str) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError as e:
        raise ValueError(f"{var_name} must be an integer, got: {value!r}") from e


def _int(value: str | None, var_name: str, default: int) -> int:
    if value is None:
        return default
    try:
        return int(value)
    except ValueError as e:
        raise ValueError(f"{var_name} must be an integer, got: {value!r}") from e


def load_policy() -> TournamentPolicy:
    max_rounds = _int(_getenv("TOURNAMENT_MAX_ROUNDS"), "TOURNAMENT_MAX_ROUNDS", DEFAULT_MAX_ROUNDS)
    final_field = _int(_getenv("TOURNAMENT_FINAL_FIELD_SIZE"), "TOURNAMENT_FINAL_FIELD_SIZE", DEFAULT_FINAL_FIELD_SIZE)
    max_players = _int(_getenv("TOURNAMENT_DEFAULT_MAX_PLAYERS"), "TOURNAMENT_DEFAULT_MAX_PLAYERS", DEFAULT_MAX_PLAYERS)

    if max_rounds < 1:
        raise ValueError("TOURNAMENT_MAX_ROUNDS must be >= 1")
    if final_field < 1:
        raise ValueError("TOURNAMENT_FINAL_FIELD_SIZE must be >= 1")
    if max_players < 2:
        raise ValueError("TOURNAMENT_DEFAULT_MAX_PLAYERS must be >= 2")

    return TournamentPolicy(
        max_rounds=max_rounds,
        final_field_size=final_field,
        default_max_players=max_players,
    )


def load_config() -> BotConfig:
    _maybe_load_env_file()

    token = (_getenv("DISCORD_TOKEN") or "").strip()
    if not token:
        raise RuntimeError("Missing DISCORD_TOKEN environment variable.")

    dev_guild_id = _int_or_none(_getenv("DEV_GUILD_ID"), "DEV_GUILD_ID")

    store_backend = (_getenv("STORE_BACKEND", "mysql") or "mysql").lower()
    if store_backend not in STORE_BACKENDS:
        raise ValueError(f"STORE_BACKEND must be one of {', '.join(STORE_BACKENDS)}, got: {store_backend!r}")

    host = _getenv("DB_HOST", "127.0.0.1") or "127.0.0.1"
    port = _int(_getenv("DB_PORT"), "DB_PORT", 3306)
    user = _getenv("DB_USER", "root") or "root"
    password = _getenv("DB_PASSWORD", "") or ""
    database = _getenv("DB_NAME", "tournament_engine") or "tournament_engine"

    minsize = _int(_getenv("DB_POOL_MIN"), "DB_POOL_MIN", 1)
    maxsize = _int(_getenv("DB_POOL_MAX"), "DB_POOL_MAX", 5)
    connect_timeout = _int(_getenv("DB_CONNECT_TIMEOUT"), "DB_CONNECT_TIMEOUT", 10)

    if minsize < 1:
        raise ValueError("DB_POOL_MIN must be >= 1")
    if maxsize < minsize:
        raise ValueError("DB_POOL_MAX must be >= DB_POOL_MIN")

    return BotConfig(
        token=token,
        dev_guild_id=dev_guild_id,
        command_prefix=_getenv("COMMAND_PREFIX", "!") or "!",
        log_level=(_getenv("LOG_LEVEL", "INFO") or "INFO").upper(),
        store_backend=store_backend,
        mysql=MySqlConfig(
            host=host,
            port=port,
            user=user,
            password=password,
            database=database,
            minsize=minsize,
            maxsize=maxsize,
            connect_timeout=connect_timeout,
        ),
        policy=load_policy(),
    )
