# domain/enums.py
from __future__ import annotations

from enum import Enum


class TournamentStatus(str, Enum):
    REGISTRATION = "registration"
    ONGOING = "ongoing"
    FINISHED = "finished"


class ParticipantStatus(str, Enum):
    REGISTERED = "registered"
    ELIMINATED = "eliminated"
    WINNER = "winner"


class MatchStatus(str, Enum):
    PENDING = "pending"
    FINISHED = "finished"


class MatchSource(str, Enum):
    PLAYED = "played"    # reported by the game transport
    MANUAL = "manual"    # typed in by a person


class MatchPhase(str, Enum):
    ROUND_ROBIN = "round_robin"          # first (elimination) round
    WINNERS_BRACKET = "winners_bracket"
    LOSERS_BRACKET = "losers_bracket"
    CROSSOVER = "crossover_match"

    @classmethod
    def parse(cls, value: "str | MatchPhase") -> "MatchPhase":
        if isinstance(value, cls):
            return value
        v = (value or "").strip().lower()
        try:
            return cls(v)
        except ValueError as e:
            raise ValueError(f"Unknown match phase: {value!r}") from e


class JoinResult(str, Enum):
    """What the store did with a registration request."""

    ADDED = "added"
    DUPLICATE = "duplicate"
    FULL = "full"
    CLOSED = "closed"    # tournament finished or gone
