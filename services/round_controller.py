# services/round_controller.py
from __future__ import annotations

import asyncio
import logging
from typing import Optional, Sequence

from config import TournamentPolicy
from domain.enums import TournamentStatus
from domain.errors import TournamentNotFoundError, TournamentStateError
from domain.models import RoundOutcome, Standing
from repositories.ports import TournamentStore
from services.pairing_service import pair_ladder_from_standings
from services.standings_service import StandingsService

logger = logging.getLogger(__name__)


class RoundController:
    """
    Decides what happens when a round may have completed:
      - round still has pending matches -> nothing
      - termination policy met          -> finish tournament, winner = standings[0]
      - otherwise                       -> ladder-pair the next round and persist it

    Each decision is taken under a per-tournament lock and applied through a store claim
    (compare-and-set on current_round), so a (tournament, round) advances at most once even
    when several result submissions race. A caller that loses the claim reports the state
    the winner left behind.
    """

    def __init__(
        self,
        store: TournamentStore,
        *,
        policy: Optional[TournamentPolicy] = None,
        standings: Optional[StandingsService] = None,
    ) -> None:
        self._store = store
        self._policy = policy or TournamentPolicy()
        self._standings = standings or StandingsService(store)
        self._locks: dict[int, asyncio.Lock] = {}

    @property
    def policy(self) -> TournamentPolicy:
        return self._policy

    # -------------------------
    # Public API
    # -------------------------

    async def on_match_finished(self, *, tournament_id: int, round_no: int) -> RoundOutcome:
        async with self._lock_for(tournament_id):
            return await self._settle(tournament_id, round_no)

    async def resume(self, *, tournament_id: int) -> RoundOutcome:
        """
        Re-runs the completion check for the current round. This is the retry path when a
        previous advance failed after its match result was already stored.
        """
        async with self._lock_for(tournament_id):
            t = await self._store.get_tournament(tournament_id=tournament_id)
            if t is None:
                raise TournamentNotFoundError(f"Tournament not found: {tournament_id}")
            if t.status == TournamentStatus.FINISHED:
                return RoundOutcome(next_round_created=False, tournament_finished=True)
            if t.status == TournamentStatus.REGISTRATION:
                raise TournamentStateError(f"Tournament {tournament_id} has not started yet.")
            return await self._settle(tournament_id, t.current_round)

    def should_terminate(self, round_no: int, standings: Sequence[Standing]) -> bool:
        return round_no >= self._policy.max_rounds or len(standings) <= self._policy.final_field_size

    def forget(self, tournament_id: int) -> None:
        self._locks.pop(tournament_id, None)

    # -------------------------
    # Internals
    # -------------------------

    def _lock_for(self, tournament_id: int) -> asyncio.Lock:
        lock = self._locks.get(tournament_id)
        if lock is None:
            lock = self._locks[tournament_id] = asyncio.Lock()
        return lock

    async def _settle(self, tournament_id: int, round_no: int) -> RoundOutcome:
        created = False

        # loops only when an advance produced an empty round, which is complete on arrival
        while True:
            pending = await self._store.count_pending_matches(tournament_id=tournament_id, round_no=round_no)
            if pending > 0:
                return RoundOutcome(next_round_created=created, tournament_finished=False)

            t = await self._store.get_tournament(tournament_id=tournament_id)
            if t is None:
                raise TournamentNotFoundError(f"Tournament not found: {tournament_id}")
            if t.status == TournamentStatus.FINISHED:
                return RoundOutcome(next_round_created=created, tournament_finished=True)
            if t.status != TournamentStatus.ONGOING:
                raise TournamentStateError(f"Tournament {tournament_id} is not ongoing (status '{t.status.value}').")
            if t.current_round != round_no:
                return self._already_settled(t.current_round, round_no)

            standings = await self._standings.compute(tournament_id=tournament_id)

            if self.should_terminate(round_no, standings):
                if not standings:
                    raise TournamentStateError(f"Tournament {tournament_id} has no participants to crown.")
                winner_id = standings[0].user_id
                claimed = await self._store.finish_tournament(
                    tournament_id=tournament_id, at_round=round_no, winner_id=winner_id
                )
                if not claimed:
                    return await self._observed(tournament_id, round_no)
                logger.info(
                    "Tournament %s finished after round %s; winner=%s", tournament_id, round_no, winner_id
                )
                # finished tournaments keep no lock
                self.forget(tournament_id)
                return RoundOutcome(next_round_created=created, tournament_finished=True)

            next_round = round_no + 1
            matches = pair_ladder_from_standings(standings, next_round)
            claimed = await self._store.advance_round(
                tournament_id=tournament_id, from_round=round_no, matches=matches
            )
            if not claimed:
                return await self._observed(tournament_id, round_no)

            logger.info("Tournament %s: round %s created with %d matches", tournament_id, next_round, len(matches))
            created = True
            if matches:
                return RoundOutcome(next_round_created=True, tournament_finished=False)
            round_no = next_round

    async def _observed(self, tournament_id: int, round_no: int) -> RoundOutcome:
        t = await self._store.get_tournament(tournament_id=tournament_id)
        if t is None:
            raise TournamentNotFoundError(f"Tournament not found: {tournament_id}")
        if t.status == TournamentStatus.FINISHED:
            return RoundOutcome(next_round_created=False, tournament_finished=True)
        return self._already_settled(t.current_round, round_no)

    @staticmethod
    def _already_settled(current_round: int, round_no: int) -> RoundOutcome:
        return RoundOutcome(next_round_created=current_round > round_no, tournament_finished=False)
