# cogs/tournament_cog.py
from __future__ import annotations

from typing import Optional

import discord
from discord import app_commands
from discord.ext import commands

from domain.enums import MatchSource, TournamentStatus
from domain.errors import TournamentError
from renderers.bracket_view import BracketView
from renderers.embeds import Embeds
from renderers.standings_view import StandingsOptions, StandingsView
from repositories.ports import AccountStore
from services.tournament_service import TournamentService


class TournamentCog(commands.Cog):
    tournament = app_commands.Group(name="tournament", description="Create, join and run tournaments.")

    def __init__(
        self,
        bot: commands.Bot,
        *,
        accounts: AccountStore,
        tournaments: TournamentService,
        embeds: Embeds,
        bracket_view: BracketView,
        standings_view: StandingsView,
    ) -> None:
        self.bot = bot
        self.accounts = accounts
        self.tournaments = tournaments
        self.embeds = embeds
        self.bracket_view = bracket_view
        self.standings_view = standings_view

    # -----------------------------
    # Helpers
    # -----------------------------

    async def _ensure_account_id(self, member: discord.abc.User) -> int:
        return await self.accounts.upsert_discord_account(
            discord_user_id=member.id,
            display_name=getattr(member, "display_name", None) or getattr(member, "name", None),
        )

    def _can_manage(self, interaction: discord.Interaction) -> bool:
        if not interaction.guild:
            return False
        if isinstance(interaction.user, discord.Member):
            return interaction.user.guild_permissions.manage_guild or interaction.user.guild_permissions.manage_channels
        return False

    async def _can_run(self, interaction: discord.Interaction, tournament_id: int) -> bool:
        """Managers, or whoever created the tournament."""
        if self._can_manage(interaction):
            return True
        t = await self.tournaments.get_tournament(tournament_id=tournament_id)
        acct = await self._ensure_account_id(interaction.user)
        return t.created_by == acct

    async def _send_error(self, interaction: discord.Interaction, exc: TournamentError, *, ephemeral: bool) -> None:
        await interaction.followup.send(embed=self.embeds.for_error(exc), ephemeral=ephemeral)

    # -----------------------------
    # Commands
    # -----------------------------

    @tournament.command(name="create", description="Create a tournament. You are registered automatically.")
    @app_commands.describe(
        name="Tournament name",
        game_mode="Game mode tag (e.g. classic, speed)",
        max_players="Max players (default 16)",
    )
    async def create(
        self,
        interaction: discord.Interaction,
        name: str,
        game_mode: str,
        max_players: Optional[app_commands.Range[int, 2, 256]] = None,
    ) -> None:
        await interaction.response.defer(ephemeral=False)

        try:
            actor = await self._ensure_account_id(interaction.user)
            tournament_id = await self.tournaments.create_tournament(
                actor_id=actor,
                name=name,
                game_mode=game_mode,
                max_players=max_players,
            )
            t = await self.tournaments.get_tournament(tournament_id=tournament_id)
        except TournamentError as ex:
            await self._send_error(interaction, ex, ephemeral=True)
            return

        e = self.embeds.success(
            title="Tournament created",
            description=(
                f"**ID:** `{t.tournament_id}`\n**Name:** {t.name}\n**Mode:** {t.game_mode}\n"
                f"**Max players:** {t.max_players}\n\n"
                f"Join with `/tournament join tournament_id:{t.tournament_id}`"
            ),
        )
        await interaction.followup.send(embed=e)

    @tournament.command(name="join", description="Register for a tournament.")
    async def join(self, interaction: discord.Interaction, tournament_id: int) -> None:
        await interaction.response.defer(ephemeral=True)

        try:
            acct = await self._ensure_account_id(interaction.user)
            await self.tournaments.register_participant(tournament_id=tournament_id, user_id=acct)
        except TournamentError as ex:
            await self._send_error(interaction, ex, ephemeral=True)
            return

        e = self.embeds.success(title="Registered", description=f"You are registered for tournament `{tournament_id}`.")
        await interaction.followup.send(embed=e, ephemeral=True)

    @tournament.command(name="leave", description="Leave a tournament before it starts.")
    async def leave(self, interaction: discord.Interaction, tournament_id: int) -> None:
        await interaction.response.defer(ephemeral=True)

        try:
            acct = await self._ensure_account_id(interaction.user)
            await self.tournaments.leave_tournament(tournament_id=tournament_id, user_id=acct)
        except TournamentError as ex:
            await self._send_error(interaction, ex, ephemeral=True)
            return

        e = self.embeds.success(title="Left", description=f"You have left tournament `{tournament_id}`.")
        await interaction.followup.send(embed=e, ephemeral=True)

    @tournament.command(name="start", description="Close registration and generate round 1.")
    async def start(self, interaction: discord.Interaction, tournament_id: int) -> None:
        await interaction.response.defer(ephemeral=False)

        try:
            if not await self._can_run(interaction, tournament_id):
                await interaction.followup.send(
                    embed=self.embeds.warning(title="Not allowed", description="Only the creator or a manager can start it."),
                    ephemeral=True,
                )
                return
            await self.tournaments.start_tournament(tournament_id=tournament_id)
            snapshot = await self.tournaments.get_bracket(tournament_id=tournament_id)
        except TournamentError as ex:
            await self._send_error(interaction, ex, ephemeral=True)
            return

        await interaction.followup.send(
            embed=self.embeds.success(title="Tournament started", description=f"Round 1 is live for tournament `{tournament_id}`.")
        )
        await interaction.followup.send(content=self.bracket_view.render(snapshot))

    @tournament.command(name="report", description="Report the final score of a match.")
    @app_commands.describe(
        tournament_id="Tournament ID",
        match_id="Match number shown as #id in /tournament bracket",
        player1_score="Score of the player listed first",
        player2_score="Score of the player listed second",
    )
    async def report(
        self,
        interaction: discord.Interaction,
        tournament_id: int,
        match_id: int,
        player1_score: app_commands.Range[int, 0, 999],
        player2_score: app_commands.Range[int, 0, 999],
    ) -> None:
        await interaction.response.defer(ephemeral=False)

        try:
            reporter = await self._ensure_account_id(interaction.user)
            matches = await self.tournaments.list_matches(tournament_id=tournament_id)
            m = next((x for x in matches if x.match_id == match_id), None)
            if m is not None and not m.involves(reporter) and not self._can_manage(interaction):
                await interaction.followup.send(
                    embed=self.embeds.warning(title="Not allowed", description="Only the two players or a manager can report this match."),
                    ephemeral=True,
                )
                return

            outcome = await self.tournaments.record_match_result(
                tournament_id=tournament_id,
                match_id=match_id,
                player1_score=int(player1_score),
                player2_score=int(player2_score),
                source=MatchSource.MANUAL,
            )
        except TournamentError as ex:
            await self._send_error(interaction, ex, ephemeral=True)
            return

        lines = [f"Recorded match `#{match_id}`: **{int(player1_score)}-{int(player2_score)}**."]
        if outcome.winner_id is None:
            lines.append("It's a draw.")
        if outcome.tournament_finished:
            t = await self.tournaments.get_tournament(tournament_id=tournament_id)
            champ = await self._mention_account(t.winner_id)
            lines.append(f"Tournament finished. Winner: {champ}")
        elif outcome.next_round_created:
            lines.append(f"Round complete. Next round is up: `/tournament bracket tournament_id:{tournament_id}`")

        await interaction.followup.send(embed=self.embeds.success(title="Match recorded", description="\n".join(lines)))

    @tournament.command(name="bracket", description="Show the current round (or every round).")
    async def bracket(self, interaction: discord.Interaction, tournament_id: int, all_rounds: bool = False) -> None:
        await interaction.response.defer(ephemeral=False)

        try:
            snapshot = await self.tournaments.get_bracket(tournament_id=tournament_id)
            matches = await self.tournaments.list_matches(tournament_id=tournament_id) if all_rounds else None
        except TournamentError as ex:
            await self._send_error(interaction, ex, ephemeral=True)
            return

        await interaction.followup.send(content=self.bracket_view.render(snapshot, matches=matches))

    @tournament.command(name="standings", description="Show the standings table.")
    async def standings(self, interaction: discord.Interaction, tournament_id: int) -> None:
        await interaction.response.defer(ephemeral=False)

        try:
            t = await self.tournaments.get_tournament(tournament_id=tournament_id)
            rows = await self.tournaments.get_standings(tournament_id=tournament_id)
        except TournamentError as ex:
            await self._send_error(interaction, ex, ephemeral=True)
            return

        title = f"{t.name} final standings" if t.is_finished else f"{t.name} standings"
        await interaction.followup.send(content=self.standings_view.render(rows, opts=StandingsOptions(title=title)))

    @tournament.command(name="list", description="List tournaments.")
    @app_commands.choices(
        status=[
            app_commands.Choice(name="Registration", value="registration"),
            app_commands.Choice(name="Ongoing", value="ongoing"),
            app_commands.Choice(name="Finished", value="finished"),
        ]
    )
    async def list_(self, interaction: discord.Interaction, status: Optional[app_commands.Choice[str]] = None) -> None:
        await interaction.response.defer(ephemeral=True)

        try:
            rows = await self.tournaments.list_tournaments(status=TournamentStatus(status.value) if status else None)
        except TournamentError as ex:
            await self._send_error(interaction, ex, ephemeral=True)
            return

        if not rows:
            await interaction.followup.send(embed=self.embeds.info(title="Tournaments", description="None yet."), ephemeral=True)
            return

        desc = "\n".join(f"`{t.tournament_id}` **{t.name}** ({t.game_mode}) - {t.status.value}" for t in rows[:25])
        await interaction.followup.send(embed=self.embeds.info(title="Tournaments", description=desc), ephemeral=True)

    @tournament.command(name="resume", description="Retry advancing a tournament whose round is complete.")
    async def resume(self, interaction: discord.Interaction, tournament_id: int) -> None:
        if not self._can_manage(interaction):
            await interaction.response.send_message("Missing permission to manage tournaments here.", ephemeral=True)
            return
        await interaction.response.defer(ephemeral=True)

        try:
            outcome = await self.tournaments.resume_tournament(tournament_id=tournament_id)
        except TournamentError as ex:
            await self._send_error(interaction, ex, ephemeral=True)
            return

        if outcome.tournament_finished:
            desc = "Tournament is finished."
        elif outcome.next_round_created:
            desc = "Next round created."
        else:
            desc = "Current round still has pending matches."
        await interaction.followup.send(embed=self.embeds.info(title="Resume", description=desc), ephemeral=True)

    @tournament.command(name="delete", description="Delete a tournament with all its matches and registrations.")
    async def delete(self, interaction: discord.Interaction, tournament_id: int) -> None:
        if not self._can_manage(interaction):
            await interaction.response.send_message("Missing permission to manage tournaments here.", ephemeral=True)
            return
        await interaction.response.defer(ephemeral=True)

        try:
            await self.tournaments.delete_tournament(tournament_id=tournament_id)
        except TournamentError as ex:
            await self._send_error(interaction, ex, ephemeral=True)
            return

        await interaction.followup.send(
            embed=self.embeds.success(title="Deleted", description=f"Tournament `{tournament_id}` deleted."),
            ephemeral=True,
        )

    async def _mention_account(self, account_id: Optional[int]) -> str:
        if account_id is None:
            return "(none)"
        ids = await self.accounts.discord_ids_for(account_ids=[account_id])
        discord_id = ids.get(account_id)
        return self.embeds.mention_user(discord_id) if discord_id is not None else f"account {account_id}"


async def setup(
    bot: commands.Bot,
    *,
    accounts: AccountStore,
    tournaments: TournamentService,
    embeds: Embeds,
    bracket_view: BracketView,
    standings_view: StandingsView,
) -> None:
    await bot.add_cog(
        TournamentCog(
            bot,
            accounts=accounts,
            tournaments=tournaments,
            embeds=embeds,
            bracket_view=bracket_view,
            standings_view=standings_view,
        )
    )
