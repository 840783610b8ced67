# repositories/memory_store.py
from __future__ import annotations

import itertools
from dataclasses import replace
from datetime import datetime
from typing import Any, Mapping, Optional, Sequence

from domain.enums import JoinResult, MatchSource, MatchStatus, ParticipantStatus, TournamentStatus
from domain.models import Match, NewMatch, Participant, Tournament, utcnow


class InMemoryStore:
    """
    Process-local TournamentStore + AccountStore.

    Every method body runs without awaiting, so on a single event loop each call is atomic;
    that is what makes the round claims compare-and-set here.
    """

    def __init__(self) -> None:
        self._tournament_ids = itertools.count(1)
        self._match_ids = itertools.count(1)
        self._account_ids = itertools.count(1)

        self._tournaments: dict[int, Tournament] = {}
        # insertion order of the inner dict is registration order
        self._participants: dict[int, dict[int, Participant]] = {}
        self._matches: dict[int, Match] = {}
        self._accounts: dict[int, dict[str, Any]] = {}  # discord_user_id -> row

    # -------------------------
    # Accounts
    # -------------------------

    async def upsert_discord_account(self, *, discord_user_id: int, display_name: str | None) -> int:
        snowflake = int(discord_user_id)
        row = self._accounts.get(snowflake)
        name = (display_name or str(snowflake))[:128]
        if row is None:
            row = {"account_id": next(self._account_ids), "discord_user_id": snowflake, "display_name": name}
            self._accounts[snowflake] = row
        else:
            row["display_name"] = name
        return int(row["account_id"])

    async def resolve_account(self, *, discord_user_id: int) -> Mapping[str, Any] | None:
        row = self._accounts.get(int(discord_user_id))
        return dict(row) if row else None

    async def discord_ids_for(self, *, account_ids: list[int]) -> dict[int, int]:
        wanted = {int(a) for a in account_ids}
        return {
            int(r["account_id"]): int(r["discord_user_id"])
            for r in self._accounts.values()
            if int(r["account_id"]) in wanted
        }

    def _display_name(self, account_id: int) -> str:
        for r in self._accounts.values():
            if r["account_id"] == account_id:
                return str(r["display_name"])
        return str(account_id)

    # -------------------------
    # Tournaments
    # -------------------------

    async def create_tournament(
        self,
        *,
        name: str,
        game_mode: str,
        max_players: int,
        created_by: int,
    ) -> int:
        tournament_id = next(self._tournament_ids)
        now = utcnow()
        self._tournaments[tournament_id] = Tournament(
            tournament_id=tournament_id,
            name=name,
            game_mode=game_mode,
            status=TournamentStatus.REGISTRATION,
            max_players=max_players,
            created_by=created_by,
            created_at=now,
        )
        self._participants[tournament_id] = {
            created_by: Participant(tournament_id=tournament_id, user_id=created_by, username="", joined_at=now)
        }
        return tournament_id

    async def get_tournament(self, *, tournament_id: int) -> Optional[Tournament]:
        return self._tournaments.get(tournament_id)

    async def list_tournaments(self, *, status: Optional[TournamentStatus] = None) -> list[Tournament]:
        out = [t for t in self._tournaments.values() if status is None or t.status == TournamentStatus(status)]
        out.sort(key=lambda t: t.tournament_id, reverse=True)
        return out

    async def delete_tournament(self, *, tournament_id: int) -> bool:
        for match_id in [m.match_id for m in self._matches.values() if m.tournament_id == tournament_id]:
            del self._matches[match_id]
        self._participants.pop(tournament_id, None)
        return self._tournaments.pop(tournament_id, None) is not None

    # -------------------------
    # Participants
    # -------------------------

    async def add_participant(self, *, tournament_id: int, user_id: int) -> JoinResult:
        t = self._tournaments.get(tournament_id)
        if t is None or t.status == TournamentStatus.FINISHED:
            return JoinResult.CLOSED
        regs = self._participants.setdefault(tournament_id, {})
        if user_id in regs:
            return JoinResult.DUPLICATE
        if len(regs) >= t.max_players:
            return JoinResult.FULL
        regs[user_id] = Participant(tournament_id=tournament_id, user_id=user_id, username="", joined_at=utcnow())
        return JoinResult.ADDED

    async def remove_participant(self, *, tournament_id: int, user_id: int) -> bool:
        t = self._tournaments.get(tournament_id)
        if t is None or t.status != TournamentStatus.REGISTRATION:
            return False
        regs = self._participants.get(tournament_id, {})
        return regs.pop(user_id, None) is not None

    async def list_participants(self, *, tournament_id: int) -> list[Participant]:
        regs = self._participants.get(tournament_id, {})
        return [replace(p, username=self._display_name(p.user_id)) for p in regs.values()]

    # -------------------------
    # Matches
    # -------------------------

    async def get_match(self, *, match_id: int) -> Optional[Match]:
        return self._matches.get(match_id)

    async def list_matches(self, *, tournament_id: int, round_no: Optional[int] = None) -> list[Match]:
        out = [
            m
            for m in self._matches.values()
            if m.tournament_id == tournament_id and (round_no is None or m.round == round_no)
        ]
        out.sort(key=lambda m: (m.round, m.match_id))
        return out

    async def count_pending_matches(self, *, tournament_id: int, round_no: int) -> int:
        return sum(
            1
            for m in self._matches.values()
            if m.tournament_id == tournament_id and m.round == round_no and m.is_pending
        )

    async def finish_match(
        self,
        *,
        match_id: int,
        player1_score: int,
        player2_score: int,
        winner_id: Optional[int],
        source: MatchSource,
        played_at: datetime,
    ) -> bool:
        m = self._matches.get(match_id)
        if m is None or not m.is_pending:
            return False
        self._matches[match_id] = replace(
            m,
            status=MatchStatus.FINISHED,
            player1_score=player1_score,
            player2_score=player2_score,
            winner_id=winner_id,
            source=MatchSource(source),
            played_at=played_at,
        )
        return True

    # -------------------------
    # Round claims
    # -------------------------

    async def start_tournament(
        self, *, tournament_id: int, roster: Sequence[int], matches: Sequence[NewMatch]
    ) -> bool:
        t = self._tournaments.get(tournament_id)
        if t is None or t.status != TournamentStatus.REGISTRATION or t.current_round != 0:
            return False
        if list(self._participants.get(tournament_id, {})) != list(roster):
            return False
        self._tournaments[tournament_id] = replace(
            t, status=TournamentStatus.ONGOING, current_round=1, started_at=utcnow()
        )
        self._insert_matches(tournament_id, matches)
        return True

    async def advance_round(
        self,
        *,
        tournament_id: int,
        from_round: int,
        matches: Sequence[NewMatch],
    ) -> bool:
        t = self._tournaments.get(tournament_id)
        if t is None or t.status != TournamentStatus.ONGOING or t.current_round != from_round:
            return False
        self._tournaments[tournament_id] = replace(t, current_round=from_round + 1)
        self._insert_matches(tournament_id, matches)
        return True

    async def finish_tournament(self, *, tournament_id: int, at_round: int, winner_id: int) -> bool:
        t = self._tournaments.get(tournament_id)
        if t is None or t.status != TournamentStatus.ONGOING or t.current_round != at_round:
            return False
        self._tournaments[tournament_id] = replace(
            t, status=TournamentStatus.FINISHED, winner_id=winner_id, finished_at=utcnow()
        )
        regs = self._participants.get(tournament_id, {})
        for user_id, p in regs.items():
            status = ParticipantStatus.WINNER if user_id == winner_id else ParticipantStatus.ELIMINATED
            regs[user_id] = replace(p, status=status)
        return True

    def _insert_matches(self, tournament_id: int, matches: Sequence[NewMatch]) -> None:
        for nm in matches:
            match_id = next(self._match_ids)
            self._matches[match_id] = Match(
                match_id=match_id,
                tournament_id=tournament_id,
                player1_id=nm.player1_id,
                player2_id=nm.player2_id,
                round=nm.round,
                phase=nm.phase,
                status=nm.status,
                player1_score=nm.player1_score,
                player2_score=nm.player2_score,
                winner_id=nm.winner_id,
                source=nm.source,
                played_at=nm.played_at,
            )
