"""
Shared fixtures: every test runs the real services against a fresh in-memory store.
"""

import asyncio
import inspect

import pytest

from config import TournamentPolicy
from repositories.memory_store import InMemoryStore
from services.tournament_service import TournamentService


class YieldingStore:
    """
    Wraps a store so every call yields to the event loop first.
    Without this the in-memory store never suspends and concurrent requests cannot interleave.
    """

    def __init__(self, inner):
        self._inner = inner

    def __getattr__(self, name):
        target = getattr(self._inner, name)
        if not inspect.iscoroutinefunction(target):
            return target

        async def _call(*args, **kwargs):
            await asyncio.sleep(0)
            result = await target(*args, **kwargs)
            await asyncio.sleep(0)
            return result

        return _call


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def policy():
    return TournamentPolicy()


@pytest.fixture
def service(store, policy):
    return TournamentService(store, policy=policy)


@pytest.fixture
def players(store):
    """players("A", "B") -> account ids, with display names set."""

    async def _make(*names):
        ids = []
        for name in names:
            snowflake = 5000 + len(store._accounts)
            ids.append(await store.upsert_discord_account(discord_user_id=snowflake, display_name=name))
        return ids

    return _make


@pytest.fixture
def open_tournament(service, players):
    """Creates a tournament registered by the given names (first one creates it)."""

    async def _make(*names, max_players=16, svc=None):
        svc = svc or service
        ids = await players(*names)
        tournament_id = await svc.create_tournament(
            actor_id=ids[0], name="Spring Cup", game_mode="classic", max_players=max_players
        )
        for user_id in ids[1:]:
            await svc.register_participant(tournament_id=tournament_id, user_id=user_id)
        return tournament_id, ids

    return _make
