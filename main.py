# main.py
from __future__ import annotations

import asyncio
import logging
import signal
from dataclasses import asdict
from typing import Optional

import discord
from discord.ext import commands

from config import load_config
from db.pool import DbPool, MySqlPoolConfig

from repositories.identity_repo import IdentityRepo
from repositories.memory_store import InMemoryStore
from repositories.ports import AccountStore, TournamentStore
from repositories.tournament_repo import TournamentRepo

from services.round_controller import RoundController
from services.tournament_service import TournamentService

from renderers.embeds import Embeds
from renderers.bracket_view import BracketView
from renderers.standings_view import StandingsView

from cogs.tournament_cog import setup as setup_tournament_cog


class TournamentBot(commands.Bot):
    def __init__(self) -> None:
        self.cfg = load_config()

        intents = discord.Intents.default()
        super().__init__(
            command_prefix=self.cfg.command_prefix,
            intents=intents,
            allowed_mentions=discord.AllowedMentions(users=True, everyone=False, roles=False),
        )

        self.db: Optional[DbPool] = None

    async def _build_stores(self) -> tuple[TournamentStore, AccountStore]:
        if self.cfg.store_backend == "memory":
            logging.warning("Using the in-memory store; tournaments are lost on restart.")
            store = InMemoryStore()
            return store, store

        self.db = DbPool()
        await self.db.start(MySqlPoolConfig(**asdict(self.cfg.mysql)))
        await self.db.ensure_schema()
        return TournamentRepo(self.db), IdentityRepo(self.db)

    async def setup_hook(self) -> None:
        logging.info("Starting setup_hook...")

        # --- Stores ---
        store, accounts = await self._build_stores()

        # --- Services ---
        rounds = RoundController(store, policy=self.cfg.policy)
        tournaments = TournamentService(store, policy=self.cfg.policy, round_controller=rounds)
        logging.info(
            "Progression policy: max_rounds=%s final_field_size=%s",
            self.cfg.policy.max_rounds,
            self.cfg.policy.final_field_size,
        )

        # --- Cogs ---
        await setup_tournament_cog(
            self,
            accounts=accounts,
            tournaments=tournaments,
            embeds=Embeds(),
            bracket_view=BracketView(),
            standings_view=StandingsView(),
        )

        # --- Slash sync ---
        if self.cfg.dev_guild_id:
            guild = discord.Object(id=self.cfg.dev_guild_id)
            self.tree.copy_global_to(guild=guild)
            await self.tree.sync(guild=guild)
            logging.info("Slash commands synced to DEV guild %s", self.cfg.dev_guild_id)
        else:
            await self.tree.sync()
            logging.info("Slash commands synced globally")

        logging.info("setup_hook complete.")

    async def close(self) -> None:
        try:
            await super().close()
        finally:
            if self.db:
                await self.db.close()
                self.db = None


async def _run_bot() -> None:
    cfg = load_config()

    logging.basicConfig(
        level=getattr(logging, cfg.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    bot = TournamentBot()

    loop = asyncio.get_running_loop()
    stop_event = asyncio.Event()

    def _request_stop(*_args) -> None:
        stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _request_stop)
        except NotImplementedError:
            pass

    async with bot:
        runner = asyncio.create_task(bot.start(cfg.token))
        await stop_event.wait()
        await bot.close()
        await runner


def main() -> None:
    asyncio.run(_run_bot())


if __name__ == "__main__":
    main()
