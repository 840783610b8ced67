# domain/models.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from domain.enums import (
    MatchPhase,
    MatchSource,
    MatchStatus,
    ParticipantStatus,
    TournamentStatus,
)

POINTS_PER_WIN = 3

# a bye is recorded as a 1-0 win for the unpaired player
BYE_WINNER_SCORE = 1
BYE_LOSER_SCORE = 0


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Tournament:
    tournament_id: int
    name: str
    game_mode: str
    status: TournamentStatus
    max_players: int
    current_round: int = 0
    winner_id: Optional[int] = None
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    @property
    def is_finished(self) -> bool:
        return self.status == TournamentStatus.FINISHED


@dataclass(frozen=True)
class Participant:
    tournament_id: int
    user_id: int
    username: str
    status: ParticipantStatus = ParticipantStatus.REGISTERED
    joined_at: Optional[datetime] = None


def _check_match_fields(
    player1_id: int,
    player2_id: Optional[int],
    winner_id: Optional[int],
    round_no: int,
) -> None:
    if int(round_no) < 1:
        raise ValueError(f"round must be >= 1, got {round_no}")
    if player2_id is not None and int(player1_id) == int(player2_id):
        raise ValueError("A player cannot be paired against themselves.")
    if winner_id is not None and winner_id not in (player1_id, player2_id):
        raise ValueError("winner_id must be player1_id or player2_id.")


@dataclass(frozen=True)
class NewMatch:
    """
    A match produced by a pairing strategy, not yet persisted.
    Byes arrive here already finished.
    """

    player1_id: int
    player2_id: Optional[int]
    round: int
    phase: MatchPhase
    status: MatchStatus = MatchStatus.PENDING
    player1_score: Optional[int] = None
    player2_score: Optional[int] = None
    winner_id: Optional[int] = None
    played_at: Optional[datetime] = None
    source: MatchSource = MatchSource.PLAYED

    def __post_init__(self) -> None:
        object.__setattr__(self, "phase", MatchPhase.parse(self.phase))
        _check_match_fields(self.player1_id, self.player2_id, self.winner_id, self.round)

    @property
    def is_bye(self) -> bool:
        return self.player2_id is None


@dataclass(frozen=True)
class Match:
    match_id: int
    tournament_id: int
    player1_id: int
    player2_id: Optional[int]
    round: int
    phase: MatchPhase
    status: MatchStatus = MatchStatus.PENDING
    player1_score: Optional[int] = None
    player2_score: Optional[int] = None
    winner_id: Optional[int] = None
    source: MatchSource = MatchSource.PLAYED
    played_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "phase", MatchPhase.parse(self.phase))
        _check_match_fields(self.player1_id, self.player2_id, self.winner_id, self.round)

    @property
    def is_bye(self) -> bool:
        return self.player2_id is None

    @property
    def is_pending(self) -> bool:
        return self.status == MatchStatus.PENDING

    @property
    def is_finished(self) -> bool:
        return self.status == MatchStatus.FINISHED

    def involves(self, user_id: int) -> bool:
        return user_id in (self.player1_id, self.player2_id)

    def score_of(self, user_id: int) -> int:
        """Score this player recorded in the match (0 when unset)."""
        if user_id == self.player1_id:
            return int(self.player1_score or 0)
        if user_id == self.player2_id:
            return int(self.player2_score or 0)
        raise ValueError(f"user {user_id} did not play match {self.match_id}")


@dataclass(frozen=True)
class Standing:
    user_id: int
    username: str
    wins: int = 0
    losses: int = 0
    points: int = 0
    total_score: int = 0
    rank: int = 0


@dataclass(frozen=True)
class RoundOutcome:
    next_round_created: bool = False
    tournament_finished: bool = False


@dataclass(frozen=True)
class MatchResultOutcome:
    match_id: int
    winner_id: Optional[int]
    next_round_created: bool
    tournament_finished: bool


@dataclass(frozen=True)
class BracketSnapshot:
    tournament: Tournament
    participants: list[Participant] = field(default_factory=list)
    standings: list[Standing] = field(default_factory=list)
    current_round: int = 0
    current_matches: list[Match] = field(default_factory=list)

    @property
    def total_rounds(self) -> int:
        # only ever known after the fact
        return self.current_round
