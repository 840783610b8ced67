from __future__ import annotations

import os, sys
from dataclasses import asdict
from uuid import uuid4

HERE = os.path.dirname(__file__)
ROOT = os.path.abspath(os.path.join(HERE, "..", ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

import asyncio
from config import load_config
from db.pool import DbPool, MySqlPoolConfig
from repositories.identity_repo import IdentityRepo
from repositories.tournament_repo import TournamentRepo
from services.tournament_service import TournamentService

async def main() -> None:
    cfg = load_config()

    run_id = os.getenv("SMOKE_RUN_ID") or f"smk_{uuid4().hex[:10]}"
    players = int(os.getenv("SMOKE_PLAYERS") or "5")

    db = DbPool()
    await db.start(MySqlPoolConfig(**asdict(cfg.mysql)))
    await db.ensure_schema()

    ident = IdentityRepo(db)
    service = TournamentService(TournamentRepo(db), policy=cfg.policy)

    account_ids: list[int] = []
    for i in range(players):
        acct = await ident.upsert_discord_account(
            discord_user_id=930000000000000000 + i,
            display_name=f"SMOKE_P{i+1}_{run_id}",
        )
        account_ids.append(acct)

    tournament_id = await service.create_tournament(
        actor_id=account_ids[0],
        name=f"SMOKE_TOURNAMENT_{run_id}",
        game_mode="smoke",
        max_players=players,
    )
    for acct in account_ids[1:]:
        await service.register_participant(tournament_id=tournament_id, user_id=acct)

    await service.start_tournament(tournament_id=tournament_id)

    # player1 always wins 3-1 until the tournament is decided
    reported = 0
    while True:
        t = await service.get_tournament(tournament_id=tournament_id)
        if t.is_finished:
            break
        snapshot = await service.get_bracket(tournament_id=tournament_id)
        pending = [m for m in snapshot.current_matches if m.is_pending]
        assert pending, f"round {snapshot.current_round} has no pending matches but the tournament is open"
        for m in pending:
            await service.record_match_result(
                tournament_id=tournament_id, match_id=m.match_id, player1_score=3, player2_score=1
            )
            reported += 1

    standings = await service.get_standings(tournament_id=tournament_id)
    assert standings[0].user_id == t.winner_id

    if os.getenv("SMOKE_KEEP") != "1":
        await service.delete_tournament(tournament_id=tournament_id)

    await db.close()
    print(
        f"OK: tournament smoke passed. run_id={run_id} tournament_id={tournament_id} "
        f"rounds={t.current_round} reported={reported} winner={t.winner_id}"
    )

if __name__ == "__main__":
    asyncio.run(main())
