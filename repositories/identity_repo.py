# repositories/identity_repo.py
from __future__ import annotations

from typing import Any, Mapping

from repositories.base_repo import BaseRepo


class IdentityRepo(BaseRepo):
    """
    Discord users -> player_account rows.

    account_id is the player id everywhere in the engine (participants, matches, winners).
    The Discord snowflake stays in discord_user_id and is only used for lookups.
    """

    async def upsert_discord_account(self, *, discord_user_id: int, display_name: str | None) -> int:
        snowflake = int(discord_user_id)

        await self.execute(
            """
            INSERT INTO player_account (discord_user_id, display_name, first_seen_at, last_seen_at)
            VALUES (%s, %s, NOW(6), NOW(6))
            ON DUPLICATE KEY UPDATE
              display_name = VALUES(display_name),
              last_seen_at = NOW(6);
            """,
            (snowflake, (display_name or str(snowflake))[:128]),
        )

        row = await self.fetch_one(
            "SELECT account_id FROM player_account WHERE discord_user_id=%s;",
            (snowflake,),
        )
        if not row:
            raise RuntimeError("Failed to resolve account_id after upsert_discord_account()")
        return int(row["account_id"])

    async def resolve_account(self, *, discord_user_id: int) -> Mapping[str, Any] | None:
        return await self.fetch_one(
            """
            SELECT account_id, discord_user_id, display_name
            FROM player_account
            WHERE discord_user_id=%s;
            """,
            (int(discord_user_id),),
        )

    async def discord_ids_for(self, *, account_ids: list[int]) -> dict[int, int]:
        """account_id -> discord_user_id, for mentions."""
        if not account_ids:
            return {}
        placeholders = ",".join(["%s"] * len(account_ids))
        rows = await self.fetch_all(
            f"SELECT account_id, discord_user_id FROM player_account WHERE account_id IN ({placeholders});",
            tuple(int(a) for a in account_ids),
        )
        return {int(r["account_id"]): int(r["discord_user_id"]) for r in rows}
