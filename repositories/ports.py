# repositories/ports.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, Optional, Protocol, Sequence

from domain.enums import JoinResult, MatchSource, TournamentStatus
from domain.models import Match, NewMatch, Participant, Tournament


class TournamentStore(Protocol):
    """
    Persistence port used by TournamentService and RoundController.

    The three state-changing round operations (start_tournament, advance_round,
    finish_tournament) are compare-and-set claims: each applies atomically together
    with its match rows, or not at all, and returns False when another caller got there first.
    """

    # tournaments
    async def create_tournament(
        self, *, name: str, game_mode: str, max_players: int, created_by: int
    ) -> int: ...

    async def get_tournament(self, *, tournament_id: int) -> Optional[Tournament]: ...

    async def list_tournaments(self, *, status: Optional[TournamentStatus] = None) -> list[Tournament]: ...

    async def delete_tournament(self, *, tournament_id: int) -> bool: ...

    # participants
    async def add_participant(self, *, tournament_id: int, user_id: int) -> JoinResult:
        """Duplicate, cap and status checks happen atomically with the insert."""
        ...

    async def remove_participant(self, *, tournament_id: int, user_id: int) -> bool:
        """Deletes only while the tournament is still in registration."""
        ...

    async def list_participants(self, *, tournament_id: int) -> list[Participant]: ...

    # matches
    async def get_match(self, *, match_id: int) -> Optional[Match]: ...

    async def list_matches(self, *, tournament_id: int, round_no: Optional[int] = None) -> list[Match]: ...

    async def count_pending_matches(self, *, tournament_id: int, round_no: int) -> int: ...

    async def finish_match(
        self,
        *,
        match_id: int,
        player1_score: int,
        player2_score: int,
        winner_id: Optional[int],
        source: MatchSource,
        played_at: datetime,
    ) -> bool: ...

    # round claims
    async def start_tournament(
        self, *, tournament_id: int, roster: Sequence[int], matches: Sequence[NewMatch]
    ) -> bool:
        """Also returns False when the registered players no longer equal `roster`."""
        ...

    async def advance_round(
        self, *, tournament_id: int, from_round: int, matches: Sequence[NewMatch]
    ) -> bool: ...

    async def finish_tournament(self, *, tournament_id: int, at_round: int, winner_id: int) -> bool: ...


class AccountStore(Protocol):
    """
    Maps chat-platform users to the account ids the engine uses as player ids.
    """

    async def upsert_discord_account(self, *, discord_user_id: int, display_name: str | None) -> int: ...

    async def resolve_account(self, *, discord_user_id: int) -> Mapping[str, Any] | None: ...

    async def discord_ids_for(self, *, account_ids: list[int]) -> dict[int, int]: ...
