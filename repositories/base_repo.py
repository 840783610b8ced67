# repositories/base_repo.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Mapping, Sequence, TypeVar

import aiomysql

from db.pool import DbPool
from db.tx import get_cursor, storage_errors, transaction

T = TypeVar("T")


def to_db_time(v: datetime | None) -> datetime | None:
    """DATETIME(6) columns hold naive UTC."""
    if v is None:
        return None
    if v.tzinfo is not None:
        v = v.astimezone(timezone.utc).replace(tzinfo=None)
    return v


def from_db_time(v: Any) -> datetime | None:
    if v is None:
        return None
    if isinstance(v, datetime) and v.tzinfo is None:
        return v.replace(tzinfo=timezone.utc)
    return v


def opt_int(v: Any) -> int | None:
    return int(v) if v is not None else None


class BaseRepo:
    """
    Base repository with small helpers to keep concrete repos readable.
    Repos hold no business rules and no Discord logic; every driver error leaves here as StorageError.
    """

    def __init__(self, db: DbPool) -> None:
        self._db = db

    @property
    def pool(self) -> aiomysql.Pool:
        return self._db.pool

    async def fetch_one(self, sql: str, params: Sequence[Any] | None = None) -> Mapping[str, Any] | None:
        async with storage_errors("fetch_one"):
            async with get_cursor(self.pool, dict_rows=True) as cur:
                await cur.execute(sql, params or ())
                return await cur.fetchone()

    async def fetch_all(self, sql: str, params: Sequence[Any] | None = None) -> list[Mapping[str, Any]]:
        async with storage_errors("fetch_all"):
            async with get_cursor(self.pool, dict_rows=True) as cur:
                await cur.execute(sql, params or ())
                rows = await cur.fetchall()
                return list(rows or [])

    async def execute(self, sql: str, params: Sequence[Any] | None = None) -> int:
        async with storage_errors("execute"):
            async with transaction(self.pool, dict_rows=False) as (_conn, cur):
                await cur.execute(sql, params or ())
                return cur.rowcount

    async def in_tx(self, what: str, fn: Callable[[aiomysql.Cursor], Awaitable[T]]) -> T:
        """
        Run a function inside one transaction. The function receives a DictCursor.
        """
        async with storage_errors(what):
            async with transaction(self.pool, dict_rows=True) as (_conn, cur):
                return await fn(cur)
