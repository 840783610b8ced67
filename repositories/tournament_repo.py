# repositories/tournament_repo.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, Optional, Sequence

import aiomysql

from domain.enums import JoinResult, MatchPhase, MatchSource, MatchStatus, ParticipantStatus, TournamentStatus
from domain.models import Match, NewMatch, Participant, Tournament
from repositories.base_repo import BaseRepo, from_db_time, opt_int, to_db_time

_INSERT_MATCH_SQL = """
    INSERT INTO tournament_match
      (tournament_id, player1_id, player2_id, player1_score, player2_score,
       winner_id, round_no, phase, status, source, played_at)
    VALUES
      (%s, %s, %s, %s, %s,
       %s, %s, %s, %s, %s, %s);
"""


def _tournament_from_row(r: Mapping[str, Any]) -> Tournament:
    return Tournament(
        tournament_id=int(r["tournament_id"]),
        name=str(r["name"]),
        game_mode=str(r["game_mode"]),
        status=TournamentStatus(str(r["status"])),
        max_players=int(r["max_players"]),
        current_round=int(r["current_round"] or 0),
        winner_id=opt_int(r.get("winner_id")),
        created_by=opt_int(r.get("created_by")),
        created_at=from_db_time(r.get("created_at")),
        started_at=from_db_time(r.get("started_at")),
        finished_at=from_db_time(r.get("finished_at")),
    )


def _participant_from_row(r: Mapping[str, Any]) -> Participant:
    return Participant(
        tournament_id=int(r["tournament_id"]),
        user_id=int(r["user_id"]),
        username=str(r.get("display_name") or r["user_id"]),
        status=ParticipantStatus(str(r["status"])),
        joined_at=from_db_time(r.get("joined_at")),
    )


def _match_from_row(r: Mapping[str, Any]) -> Match:
    return Match(
        match_id=int(r["match_id"]),
        tournament_id=int(r["tournament_id"]),
        player1_id=int(r["player1_id"]),
        player2_id=opt_int(r.get("player2_id")),
        round=int(r["round_no"]),
        phase=MatchPhase.parse(str(r["phase"])),
        status=MatchStatus(str(r["status"])),
        player1_score=opt_int(r.get("player1_score")),
        player2_score=opt_int(r.get("player2_score")),
        winner_id=opt_int(r.get("winner_id")),
        source=MatchSource(str(r.get("source") or "played")),
        played_at=from_db_time(r.get("played_at")),
    )


def _match_params(tournament_id: int, m: NewMatch) -> tuple:
    return (
        tournament_id,
        m.player1_id,
        m.player2_id,
        m.player1_score,
        m.player2_score,
        m.winner_id,
        m.round,
        m.phase.value,
        m.status.value,
        m.source.value,
        to_db_time(m.played_at),
    )


class TournamentRepo(BaseRepo):
    """
    MySQL implementation of repositories.ports.TournamentStore.
    """

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
        async def _create(cur: aiomysql.Cursor) -> int:
            await cur.execute(
                """
                INSERT INTO tournament (name, game_mode, max_players, created_by)
                VALUES (%s, %s, %s, %s);
                """,
                (name, game_mode, max_players, created_by),
            )
            tournament_id = int(cur.lastrowid)
            # the creator is always the first participant
            await cur.execute(
                "INSERT INTO tournament_participant (tournament_id, user_id) VALUES (%s, %s);",
                (tournament_id, created_by),
            )
            return tournament_id

        return await self.in_tx("create_tournament", _create)

    async def get_tournament(self, *, tournament_id: int) -> Optional[Tournament]:
        row = await self.fetch_one(
            "SELECT * FROM tournament WHERE tournament_id=%s;",
            (tournament_id,),
        )
        return _tournament_from_row(row) if row else None

    async def list_tournaments(self, *, status: Optional[TournamentStatus] = None) -> list[Tournament]:
        if status is None:
            rows = await self.fetch_all("SELECT * FROM tournament ORDER BY created_at DESC, tournament_id DESC;")
        else:
            rows = await self.fetch_all(
                "SELECT * FROM tournament WHERE status=%s ORDER BY created_at DESC, tournament_id DESC;",
                (TournamentStatus(status).value,),
            )
        return [_tournament_from_row(r) for r in rows]

    async def delete_tournament(self, *, tournament_id: int) -> bool:
        async def _delete(cur: aiomysql.Cursor) -> bool:
            await cur.execute("DELETE FROM tournament_match WHERE tournament_id=%s;", (tournament_id,))
            await cur.execute("DELETE FROM tournament_participant WHERE tournament_id=%s;", (tournament_id,))
            await cur.execute("DELETE FROM tournament WHERE tournament_id=%s;", (tournament_id,))
            return cur.rowcount > 0

        return await self.in_tx("delete_tournament", _delete)

    # -------------------------
    # Participants
    # -------------------------

    async def _lock_tournament(self, cur: aiomysql.Cursor, tournament_id: int) -> Optional[Mapping[str, Any]]:
        # row lock serializes joins, leaves and the start claim of one tournament
        await cur.execute(
            "SELECT status, max_players, current_round FROM tournament WHERE tournament_id=%s FOR UPDATE;",
            (tournament_id,),
        )
        return await cur.fetchone()

    async def add_participant(self, *, tournament_id: int, user_id: int) -> JoinResult:
        async def _add(cur: aiomysql.Cursor) -> JoinResult:
            t = await self._lock_tournament(cur, tournament_id)
            if t is None or t["status"] == TournamentStatus.FINISHED.value:
                return JoinResult.CLOSED

            await cur.execute(
                """
                SELECT COUNT(*) AS n, COALESCE(SUM(user_id=%s), 0) AS mine
                FROM tournament_participant
                WHERE tournament_id=%s;
                """,
                (user_id, tournament_id),
            )
            row = await cur.fetchone()
            if int(row["mine"]):
                return JoinResult.DUPLICATE
            if int(row["n"]) >= int(t["max_players"]):
                return JoinResult.FULL

            await cur.execute(
                "INSERT INTO tournament_participant (tournament_id, user_id) VALUES (%s, %s);",
                (tournament_id, user_id),
            )
            return JoinResult.ADDED

        return await self.in_tx("add_participant", _add)

    async def remove_participant(self, *, tournament_id: int, user_id: int) -> bool:
        async def _remove(cur: aiomysql.Cursor) -> bool:
            t = await self._lock_tournament(cur, tournament_id)
            if t is None or t["status"] != TournamentStatus.REGISTRATION.value:
                return False
            await cur.execute(
                "DELETE FROM tournament_participant WHERE tournament_id=%s AND user_id=%s;",
                (tournament_id, user_id),
            )
            return cur.rowcount > 0

        return await self.in_tx("remove_participant", _remove)

    async def _participant_ids(self, cur: aiomysql.Cursor, tournament_id: int) -> list[int]:
        await cur.execute(
            "SELECT user_id FROM tournament_participant WHERE tournament_id=%s ORDER BY seq ASC;",
            (tournament_id,),
        )
        return [int(r["user_id"]) for r in await cur.fetchall()]

    async def list_participants(self, *, tournament_id: int) -> list[Participant]:
        rows = await self.fetch_all(
            """
            SELECT tp.tournament_id, tp.user_id, tp.status, tp.joined_at, pa.display_name
            FROM tournament_participant tp
            LEFT JOIN player_account pa ON pa.account_id = tp.user_id
            WHERE tp.tournament_id=%s
            ORDER BY tp.seq ASC;
            """,
            (tournament_id,),
        )
        return [_participant_from_row(r) for r in rows]

    # -------------------------
    # Matches
    # -------------------------

    async def get_match(self, *, match_id: int) -> Optional[Match]:
        row = await self.fetch_one("SELECT * FROM tournament_match WHERE match_id=%s;", (match_id,))
        return _match_from_row(row) if row else None

    async def list_matches(self, *, tournament_id: int, round_no: Optional[int] = None) -> list[Match]:
        if round_no is None:
            rows = await self.fetch_all(
                "SELECT * FROM tournament_match WHERE tournament_id=%s ORDER BY round_no ASC, match_id ASC;",
                (tournament_id,),
            )
        else:
            rows = await self.fetch_all(
                """
                SELECT * FROM tournament_match
                WHERE tournament_id=%s AND round_no=%s
                ORDER BY match_id ASC;
                """,
                (tournament_id, round_no),
            )
        return [_match_from_row(r) for r in rows]

    async def count_pending_matches(self, *, tournament_id: int, round_no: int) -> int:
        row = await self.fetch_one(
            """
            SELECT COUNT(*) AS n
            FROM tournament_match
            WHERE tournament_id=%s AND round_no=%s AND status='pending';
            """,
            (tournament_id, round_no),
        )
        return int(row["n"]) if row else 0

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
        n = await self.execute(
            """
            UPDATE tournament_match
            SET status='finished',
                player1_score=%s,
                player2_score=%s,
                winner_id=%s,
                source=%s,
                played_at=%s
            WHERE match_id=%s
              AND status='pending';
            """,
            (player1_score, player2_score, winner_id, MatchSource(source).value, to_db_time(played_at), match_id),
        )
        return n > 0

    # -------------------------
    # Round claims (compare-and-set + rows in one transaction)
    # -------------------------

    async def start_tournament(
        self, *, tournament_id: int, roster: Sequence[int], matches: Sequence[NewMatch]
    ) -> bool:
        async def _start(cur: aiomysql.Cursor) -> bool:
            t = await self._lock_tournament(cur, tournament_id)
            if t is None or t["status"] != TournamentStatus.REGISTRATION.value:
                return False
            if await self._participant_ids(cur, tournament_id) != list(roster):
                return False
            await cur.execute(
                """
                UPDATE tournament
                SET status='ongoing', current_round=1, started_at=NOW(6), updated_at=NOW(6)
                WHERE tournament_id=%s AND status='registration' AND current_round=0;
                """,
                (tournament_id,),
            )
            if cur.rowcount != 1:
                return False
            await self._insert_matches(cur, tournament_id, matches)
            return True

        return await self.in_tx("start_tournament", _start)

    async def advance_round(
        self,
        *,
        tournament_id: int,
        from_round: int,
        matches: Sequence[NewMatch],
    ) -> bool:
        async def _advance(cur: aiomysql.Cursor) -> bool:
            await cur.execute(
                """
                UPDATE tournament
                SET current_round=%s, updated_at=NOW(6)
                WHERE tournament_id=%s AND status='ongoing' AND current_round=%s;
                """,
                (from_round + 1, tournament_id, from_round),
            )
            if cur.rowcount != 1:
                return False
            await self._insert_matches(cur, tournament_id, matches)
            return True

        return await self.in_tx("advance_round", _advance)

    async def finish_tournament(self, *, tournament_id: int, at_round: int, winner_id: int) -> bool:
        async def _finish(cur: aiomysql.Cursor) -> bool:
            await cur.execute(
                """
                UPDATE tournament
                SET status='finished', winner_id=%s, finished_at=NOW(6), updated_at=NOW(6)
                WHERE tournament_id=%s AND status='ongoing' AND current_round=%s;
                """,
                (winner_id, tournament_id, at_round),
            )
            if cur.rowcount != 1:
                return False
            await cur.execute(
                """
                UPDATE tournament_participant
                SET status = CASE WHEN user_id=%s THEN 'winner' ELSE 'eliminated' END
                WHERE tournament_id=%s;
                """,
                (winner_id, tournament_id),
            )
            return True

        return await self.in_tx("finish_tournament", _finish)

    async def _insert_matches(self, cur: aiomysql.Cursor, tournament_id: int, matches: Sequence[NewMatch]) -> None:
        if not matches:
            return
        await cur.executemany(_INSERT_MATCH_SQL, [_match_params(tournament_id, m) for m in matches])
