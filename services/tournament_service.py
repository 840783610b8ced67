# services/tournament_service.py
from __future__ import annotations

import logging
from typing import Any, Optional

from config import TournamentPolicy
from domain.enums import JoinResult, MatchSource, TournamentStatus
from domain.errors import (
    AlreadyRegisteredError,
    MatchNotFoundError,
    MatchNotPendingError,
    MissingScoresError,
    ParticipantNotFoundError,
    TournamentFinishedError,
    TournamentFullError,
    TournamentNotFoundError,
    TournamentStateError,
    ValidationError,
)
from domain.models import (
    BracketSnapshot,
    Match,
    MatchResultOutcome,
    Participant,
    RoundOutcome,
    Standing,
    Tournament,
    utcnow,
)
from repositories.ports import TournamentStore
from services.pairing_service import pair_elimination
from services.round_controller import RoundController
from services.standings_service import StandingsService, compute_standings

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 128
MAX_GAME_MODE_LENGTH = 64
START_ATTEMPTS = 3


def _score(value: Any, label: str) -> int:
    if value is None:
        raise MissingScoresError(f"{label} is required.")
    # bool is an int subclass; True is not a score
    if isinstance(value, bool) or not isinstance(value, int):
        raise MissingScoresError(f"{label} must be an integer, got: {value!r}")
    if value < 0:
        raise MissingScoresError(f"{label} must be >= 0, got: {value}")
    return value


def _max_players(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"max_players must be an integer, got: {value!r}")
    if value < 2:
        raise ValidationError("max_players must be >= 2")
    return value


class TournamentService:
    """
    Tournament lifecycle: registration -> ongoing -> finished.

      - create / register / leave while registration is open
      - start: first round via elimination pairing
      - record results; the RoundController takes it from there
      - read projections: bracket, standings, listings
    """

    def __init__(
        self,
        store: TournamentStore,
        *,
        policy: Optional[TournamentPolicy] = None,
        round_controller: Optional[RoundController] = None,
    ) -> None:
        self._store = store
        self._policy = policy or TournamentPolicy()
        self._standings = StandingsService(store)
        self._rounds = round_controller or RoundController(store, policy=self._policy, standings=self._standings)

    # -------------------------
    # Lifecycle
    # -------------------------

    async def create_tournament(
        self,
        *,
        actor_id: Optional[int],
        name: str,
        game_mode: str,
        max_players: Optional[int] = None,
    ) -> int:
        if actor_id is None:
            raise ValidationError("Creating a tournament requires an authenticated user.")

        name = (name or "").strip()
        if not name:
            raise ValidationError("Tournament name is required.")
        if len(name) > MAX_NAME_LENGTH:
            raise ValidationError(f"Tournament name must be at most {MAX_NAME_LENGTH} characters.")

        game_mode = (game_mode or "").strip()
        if not game_mode:
            raise ValidationError("Game mode is required.")
        if len(game_mode) > MAX_GAME_MODE_LENGTH:
            raise ValidationError(f"Game mode must be at most {MAX_GAME_MODE_LENGTH} characters.")

        max_players = self._policy.default_max_players if max_players is None else _max_players(max_players)

        tournament_id = await self._store.create_tournament(
            name=name,
            game_mode=game_mode,
            max_players=max_players,
            created_by=int(actor_id),
        )
        logger.info("Tournament %s created by %s (%s, max %s)", tournament_id, actor_id, game_mode, max_players)
        return tournament_id

    async def register_participant(self, *, tournament_id: int, user_id: int) -> None:
        # the store applies the duplicate, cap and status rules together with the insert
        result = await self._store.add_participant(tournament_id=tournament_id, user_id=user_id)
        if result == JoinResult.ADDED:
            return
        if result == JoinResult.DUPLICATE:
            raise AlreadyRegisteredError(f"User {user_id} is already registered for tournament {tournament_id}.")
        t = await self.get_tournament(tournament_id=tournament_id)
        if result == JoinResult.FULL:
            raise TournamentFullError(f"Tournament is full ({t.max_players} max players).")
        raise TournamentFinishedError(f"Tournament {tournament_id} is finished.")

    async def leave_tournament(self, *, tournament_id: int, user_id: int) -> None:
        removed = await self._store.remove_participant(tournament_id=tournament_id, user_id=user_id)
        if removed:
            return
        t = await self.get_tournament(tournament_id=tournament_id)
        if t.status != TournamentStatus.REGISTRATION:
            raise TournamentStateError(f"Cannot leave after the tournament started (status '{t.status.value}').")
        raise ParticipantNotFoundError(f"User {user_id} is not registered for tournament {tournament_id}.")

    async def start_tournament(self, *, tournament_id: int) -> list[Match]:
        """
        Closes registration and creates round 1. Returns the round 1 matches (byes included).

        The store only accepts the pairing if the roster it was built from is still the
        registered one; a join or leave in between means pairing again.
        """
        for _attempt in range(START_ATTEMPTS):
            t = await self.get_tournament(tournament_id=tournament_id)
            if t.status != TournamentStatus.REGISTRATION:
                raise TournamentStateError(f"Cannot start tournament from status '{t.status.value}'.")

            roster = [p.user_id for p in await self._store.list_participants(tournament_id=tournament_id)]
            if len(roster) < 2:
                raise TournamentStateError("Need at least 2 participants to start.")

            matches = pair_elimination(roster, 1)
            started = await self._store.start_tournament(tournament_id=tournament_id, roster=roster, matches=matches)
            if started:
                logger.info("Tournament %s started with %d players", tournament_id, len(roster))
                return await self._store.list_matches(tournament_id=tournament_id, round_no=1)

            logger.info("Tournament %s: registrations changed while starting, pairing again", tournament_id)

        raise TournamentStateError(f"Registrations for tournament {tournament_id} kept changing; try starting again.")

    async def record_match_result(
        self,
        *,
        tournament_id: int,
        match_id: int,
        player1_score: Any,
        player2_score: Any,
        source: MatchSource = MatchSource.PLAYED,
    ) -> MatchResultOutcome:
        s1 = _score(player1_score, "player1_score")
        s2 = _score(player2_score, "player2_score")

        await self.get_tournament(tournament_id=tournament_id)

        m = await self._store.get_match(match_id=match_id)
        if m is None or m.tournament_id != tournament_id:
            raise MatchNotFoundError(f"Match {match_id} not found in tournament {tournament_id}.")
        if not m.is_pending:
            raise MatchNotPendingError(f"Match {match_id} is already {m.status.value}.")
        if m.is_bye:
            # byes are created finished; a pending one would mean corrupted data
            raise MatchNotPendingError(f"Match {match_id} is a bye.")

        if s1 > s2:
            winner_id: Optional[int] = m.player1_id
        elif s2 > s1:
            winner_id = m.player2_id
        else:
            winner_id = None

        updated = await self._store.finish_match(
            match_id=match_id,
            player1_score=s1,
            player2_score=s2,
            winner_id=winner_id,
            source=MatchSource(source),
            played_at=utcnow(),
        )
        if not updated:
            raise MatchNotPendingError(f"Match {match_id} was already reported.")

        outcome = await self._rounds.on_match_finished(tournament_id=tournament_id, round_no=m.round)
        return MatchResultOutcome(
            match_id=match_id,
            winner_id=winner_id,
            next_round_created=outcome.next_round_created,
            tournament_finished=outcome.tournament_finished,
        )

    async def resume_tournament(self, *, tournament_id: int) -> RoundOutcome:
        return await self._rounds.resume(tournament_id=tournament_id)

    async def delete_tournament(self, *, tournament_id: int) -> None:
        deleted = await self._store.delete_tournament(tournament_id=tournament_id)
        if not deleted:
            raise TournamentNotFoundError(f"Tournament not found: {tournament_id}")
        self._rounds.forget(tournament_id)
        logger.info("Tournament %s deleted", tournament_id)

    # -------------------------
    # Reads
    # -------------------------

    async def get_tournament(self, *, tournament_id: int) -> Tournament:
        t = await self._store.get_tournament(tournament_id=tournament_id)
        if t is None:
            raise TournamentNotFoundError(f"Tournament not found: {tournament_id}")
        return t

    async def list_tournaments(self, *, status: Optional[TournamentStatus] = None) -> list[Tournament]:
        return await self._store.list_tournaments(status=status)

    async def list_participants(self, *, tournament_id: int) -> list[Participant]:
        await self.get_tournament(tournament_id=tournament_id)
        return await self._store.list_participants(tournament_id=tournament_id)

    async def list_matches(self, *, tournament_id: int, round_no: Optional[int] = None) -> list[Match]:
        await self.get_tournament(tournament_id=tournament_id)
        return await self._store.list_matches(tournament_id=tournament_id, round_no=round_no)

    async def get_standings(self, *, tournament_id: int) -> list[Standing]:
        return await self._standings.get_standings(tournament_id=tournament_id)

    async def get_bracket(self, *, tournament_id: int) -> BracketSnapshot:
        t = await self.get_tournament(tournament_id=tournament_id)
        participants = await self._store.list_participants(tournament_id=tournament_id)
        matches = await self._store.list_matches(tournament_id=tournament_id)

        current_round = max((m.round for m in matches), default=0)
        return BracketSnapshot(
            tournament=t,
            participants=participants,
            standings=compute_standings(tournament_id, participants, matches),
            current_round=current_round,
            current_matches=[m for m in matches if m.round == current_round],
        )
