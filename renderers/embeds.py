# renderers/embeds.py
from __future__ import annotations

from dataclasses import dataclass

import discord

from domain.errors import (
    ConflictError,
    NotFoundError,
    StorageError,
    TournamentError,
    ValidationError,
)


@dataclass(frozen=True)
class EmbedTheme:
    primary: int = 0xB08D57   # antique gold
    success: int = 0x2ECC71
    warning: int = 0xF1C40F
    danger: int = 0xE74C3C
    neutral: int = 0x5865F2   # discord-ish blue


class Embeds:
    """
    Centralized embed styling so every command looks consistent.
    """

    def __init__(self, *, theme: EmbedTheme | None = None, footer: str = "Tournament Engine") -> None:
        self._theme = theme or EmbedTheme()
        self._footer = footer

    def base(
        self,
        *,
        title: str,
        description: str | None = None,
        color: int | None = None,
    ) -> discord.Embed:
        e = discord.Embed(
            title=title,
            description=description,
            color=color if color is not None else self._theme.primary,
        )
        e.set_footer(text=self._footer)
        return e

    def info(self, *, title: str, description: str | None = None) -> discord.Embed:
        return self.base(title=title, description=description, color=self._theme.neutral)

    def success(self, *, title: str, description: str | None = None) -> discord.Embed:
        return self.base(title=title, description=description, color=self._theme.success)

    def warning(self, *, title: str, description: str | None = None) -> discord.Embed:
        return self.base(title=title, description=description, color=self._theme.warning)

    def error(self, *, title: str, description: str | None = None) -> discord.Embed:
        return self.base(title=title, description=description, color=self._theme.danger)

    def for_error(self, exc: TournamentError) -> discord.Embed:
        """One embed per error family; the message carries the specifics."""
        if isinstance(exc, ValidationError):
            return self.warning(title="Invalid input", description=str(exc))
        if isinstance(exc, NotFoundError):
            return self.error(title="Not found", description=str(exc))
        if isinstance(exc, ConflictError):
            return self.warning(title="Not allowed right now", description=str(exc))
        if isinstance(exc, StorageError):
            return self.error(title="Storage error", description="The database failed. Try again in a moment.")
        return self.error(title="Error", description=str(exc))

    def mention_user(self, user_id: int) -> str:
        return f"<@{int(user_id)}>"
