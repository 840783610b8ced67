# db/tx.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Tuple

import aiomysql

from domain.errors import StorageError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def storage_errors(what: str) -> AsyncIterator[None]:
    """
    Turns driver errors into StorageError so callers only deal with the domain taxonomy.
    """
    try:
        yield
    except aiomysql.Error as e:
        logger.exception("Storage failure during %s", what)
        raise StorageError(f"Storage failure during {what}: {e}") from e


@asynccontextmanager
async def get_cursor(
    pool: aiomysql.Pool, *, dict_rows: bool = True
) -> AsyncIterator[aiomysql.Cursor]:
    """
    Cursor on an autocommit connection (DictCursor by default).
    """
    cursor_cls = aiomysql.DictCursor if dict_rows else aiomysql.Cursor
    async with pool.acquire() as conn:
        async with conn.cursor(cursor_cls) as cur:
            yield cur


@asynccontextmanager
async def transaction(
    pool: aiomysql.Pool, *, dict_rows: bool = True
) -> AsyncIterator[Tuple[aiomysql.Connection, aiomysql.Cursor]]:
    """
    Runs statements inside a transaction.
    - Commits on success
    - Rolls back on any exception

    Usage:
        async with transaction(pool) as (conn, cur):
            await cur.execute(...)
    """
    cursor_cls = aiomysql.DictCursor if dict_rows else aiomysql.Cursor

    async with pool.acquire() as conn:
        await conn.begin()
        try:
            async with conn.cursor(cursor_cls) as cur:
                yield conn, cur
            await conn.commit()
        except BaseException:
            await conn.rollback()
            raise
