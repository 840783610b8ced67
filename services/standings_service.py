# services/standings_service.py
from __future__ import annotations

from dataclasses import replace
from typing import Iterable, Sequence

from domain.errors import TournamentNotFoundError
from domain.models import POINTS_PER_WIN, Match, Participant, Standing
from repositories.ports import TournamentStore


def compute_standings(
    tournament_id: int,
    participants: Sequence[Participant],
    matches: Iterable[Match],
) -> list[Standing]:
    """
    Ranked standings from recorded results.

    Only finished matches of this tournament count. Sort key is points desc, then
    total score desc; anything still tied keeps registration order (stable sort).
    Ranks are 1..n with no sharing.
    """
    finished = [m for m in matches if m.tournament_id == tournament_id and m.is_finished]

    rows: list[Standing] = []
    for p in participants:
        mine = [m for m in finished if m.involves(p.user_id)]
        wins = sum(1 for m in mine if m.winner_id == p.user_id)
        losses = sum(1 for m in mine if m.winner_id is not None and m.winner_id != p.user_id)
        rows.append(
            Standing(
                user_id=p.user_id,
                username=p.username,
                wins=wins,
                losses=losses,
                points=wins * POINTS_PER_WIN,
                total_score=sum(m.score_of(p.user_id) for m in mine),
            )
        )

    rows.sort(key=lambda s: (-s.points, -s.total_score))
    return [replace(s, rank=i) for i, s in enumerate(rows, start=1)]


class StandingsService:
    """
    Loads participants + matches from the store and runs compute_standings.
    Nothing is cached; callers get a fresh table every time.
    """

    def __init__(self, store: TournamentStore) -> None:
        self._store = store

    async def get_standings(self, *, tournament_id: int) -> list[Standing]:
        t = await self._store.get_tournament(tournament_id=tournament_id)
        if t is None:
            raise TournamentNotFoundError(f"Tournament not found: {tournament_id}")
        return await self.compute(tournament_id=tournament_id)

    async def compute(self, *, tournament_id: int) -> list[Standing]:
        participants = await self._store.list_participants(tournament_id=tournament_id)
        matches = await self._store.list_matches(tournament_id=tournament_id)
        return compute_standings(tournament_id, participants, matches)
