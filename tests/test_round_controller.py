"""
tests/test_round_controller.py - round completion, termination, races and retries.
"""

import asyncio

import pytest

from config import TournamentPolicy
from domain.enums import TournamentStatus
from domain.errors import StorageError, TournamentNotFoundError, TournamentStateError
from domain.models import Standing
from services.round_controller import RoundController
from services.tournament_service import TournamentService
from tests.conftest import YieldingStore


class FailingAdvanceStore:
    """Delegates to a real store but fails the first `failures` advance_round calls."""

    def __init__(self, inner, failures=1):
        self._inner = inner
        self.failures = failures

    async def advance_round(self, **kwargs):
        if self.failures > 0:
            self.failures -= 1
            raise StorageError("advance_round failed: connection lost")
        return await self._inner.advance_round(**kwargs)

    def __getattr__(self, name):
        return getattr(self._inner, name)


def _standings(n):
    return [Standing(user_id=i, username=f"P{i}", rank=i) for i in range(1, n + 1)]


async def _report(service, tournament_id, match, s1, s2):
    return await service.record_match_result(
        tournament_id=tournament_id, match_id=match.match_id, player1_score=s1, player2_score=s2
    )


def test_should_terminate(store):
    rc = RoundController(store, policy=TournamentPolicy(max_rounds=3, final_field_size=2))

    assert rc.should_terminate(3, _standings(8)) is True
    assert rc.should_terminate(1, _standings(2)) is True
    assert rc.should_terminate(1, _standings(1)) is True
    assert rc.should_terminate(2, _standings(3)) is False


async def test_no_advance_while_matches_pending(service, open_tournament):
    tid, _ = await open_tournament("A", "B", "C", "D")
    m1, _ = await service.start_tournament(tournament_id=tid)

    outcome = await _report(service, tid, m1, 1, 0)

    assert outcome.next_round_created is False
    assert outcome.tournament_finished is False
    assert (await service.get_tournament(tournament_id=tid)).current_round == 1
    assert await service.list_matches(tournament_id=tid, round_no=2) == []


async def test_concurrent_last_results_advance_once(store, open_tournament):
    svc = TournamentService(YieldingStore(store))
    tid, _ = await open_tournament("A", "B", "C", "D", svc=svc)
    m1, m2 = await svc.start_tournament(tournament_id=tid)

    outcomes = await asyncio.gather(_report(svc, tid, m1, 1, 0), _report(svc, tid, m2, 1, 0))

    assert any(o.next_round_created for o in outcomes)
    assert not any(o.tournament_finished for o in outcomes)
    assert (await store.get_tournament(tournament_id=tid)).current_round == 2
    assert len(await store.list_matches(tournament_id=tid, round_no=2)) == 2
    assert await store.list_matches(tournament_id=tid, round_no=3) == []


async def test_separate_controllers_race_on_the_store_claim(store, open_tournament):
    shared = YieldingStore(store)
    svc1 = TournamentService(shared)
    svc2 = TournamentService(shared)
    tid, _ = await open_tournament("A", "B", "C", "D", "E", "F", svc=svc1)
    m1, m2, m3 = await svc1.start_tournament(tournament_id=tid)
    await _report(svc1, tid, m1, 2, 0)

    await asyncio.gather(_report(svc1, tid, m2, 1, 0), _report(svc2, tid, m3, 0, 1))

    # six players: winners 3 -> one pair + crossover, losers 3 -> one pair after the crossover
    round2 = await store.list_matches(tournament_id=tid, round_no=2)
    assert len(round2) == 3
    booked = [p for m in round2 for p in (m.player1_id, m.player2_id)]
    assert len(booked) == len(set(booked)) == 6
    assert (await store.get_tournament(tournament_id=tid)).current_round == 2


async def test_concurrent_final_results_finish_once(store, open_tournament):
    svc = TournamentService(YieldingStore(store), policy=TournamentPolicy(max_rounds=1))
    tid, (a, b, c, d) = await open_tournament("A", "B", "C", "D", svc=svc)
    m1, m2 = await svc.start_tournament(tournament_id=tid)

    outcomes = await asyncio.gather(_report(svc, tid, m1, 5, 0), _report(svc, tid, m2, 1, 0))

    assert any(o.tournament_finished for o in outcomes)
    assert not any(o.next_round_created for o in outcomes)
    t = await store.get_tournament(tournament_id=tid)
    assert t.status == TournamentStatus.FINISHED
    assert t.winner_id == a
    assert await store.list_matches(tournament_id=tid, round_no=2) == []


async def test_storage_failure_keeps_result_and_resume_recovers(store, open_tournament):
    flaky = FailingAdvanceStore(store)
    svc = TournamentService(flaky)
    tid, _ = await open_tournament("A", "B", "C", "D", svc=svc)
    m1, m2 = await svc.start_tournament(tournament_id=tid)
    await _report(svc, tid, m1, 1, 0)

    with pytest.raises(StorageError):
        await _report(svc, tid, m2, 0, 1)

    # the result is kept, the round is not advanced
    stored = await store.get_match(match_id=m2.match_id)
    assert stored.is_finished
    assert stored.winner_id == m2.player2_id
    t = await store.get_tournament(tournament_id=tid)
    assert t.current_round == 1
    assert await store.list_matches(tournament_id=tid, round_no=2) == []

    outcome = await svc.resume_tournament(tournament_id=tid)

    assert outcome.next_round_created is True
    assert (await store.get_tournament(tournament_id=tid)).current_round == 2
    assert len(await store.list_matches(tournament_id=tid, round_no=2)) == 2

    # resuming again is a no-op while round 2 is pending
    again = await svc.resume_tournament(tournament_id=tid)
    assert again.next_round_created is False
    assert len(await store.list_matches(tournament_id=tid, round_no=2)) == 2


async def test_resume_states(service, open_tournament):
    tid, _ = await open_tournament("A", "B")

    with pytest.raises(TournamentStateError):
        await service.resume_tournament(tournament_id=tid)
    with pytest.raises(TournamentNotFoundError):
        await service.resume_tournament(tournament_id=777)

    (match,) = await service.start_tournament(tournament_id=tid)
    pending = await service.resume_tournament(tournament_id=tid)
    assert pending.next_round_created is False and pending.tournament_finished is False

    await _report(service, tid, match, 1, 0)
    done = await service.resume_tournament(tournament_id=tid)
    assert done.tournament_finished is True


async def test_empty_round_is_complete_on_arrival(service, open_tournament, monkeypatch):
    monkeypatch.setattr("services.round_controller.pair_ladder_from_standings", lambda standings, round_no: [])
    tid, (a, b, c, d, e) = await open_tournament("A", "B", "C", "D", "E")
    m1, m2, _bye = await service.start_tournament(tournament_id=tid)
    await _report(service, tid, m1, 1, 0)

    outcome = await _report(service, tid, m2, 1, 0)

    # rounds 2 and 3 are empty; round 3 hits max_rounds
    assert outcome.next_round_created is True
    assert outcome.tournament_finished is True
    t = await service.get_tournament(tournament_id=tid)
    assert t.status == TournamentStatus.FINISHED
    assert t.current_round == 3
    assert t.winner_id == a


async def test_finished_tournament_releases_its_lock(store, open_tournament):
    rounds = RoundController(store)
    svc = TournamentService(store, round_controller=rounds)
    tid, _ = await open_tournament("A", "B", svc=svc)
    (match,) = await svc.start_tournament(tournament_id=tid)

    outcome = await _report(svc, tid, match, 2, 0)

    assert outcome.tournament_finished is True
    assert tid not in rounds._locks
