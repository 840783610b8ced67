# services/pairing_service.py
from __future__ import annotations

import math
from datetime import datetime
from typing import Callable, Optional, Sequence

from domain.enums import MatchPhase, MatchStatus
from domain.models import BYE_LOSER_SCORE, BYE_WINNER_SCORE, NewMatch, Standing, utcnow


class PairingError(ValueError):
    pass


PairingStrategy = Callable[[Sequence[int], int], list[NewMatch]]


def _pair_consecutive(players: Sequence[int], round_no: int, phase: MatchPhase) -> tuple[list[NewMatch], Optional[int]]:
    """
    (p0,p1), (p2,p3), ...
    Returns the matches plus the unpaired last player when the count is odd.
    """
    out: list[NewMatch] = []
    i = 0
    while i + 1 < len(players):
        out.append(NewMatch(player1_id=players[i], player2_id=players[i + 1], round=round_no, phase=phase))
        i += 2
    leftover = players[i] if i < len(players) else None
    return out, leftover


def _bye(player_id: int, round_no: int, *, now: datetime) -> NewMatch:
    return NewMatch(
        player1_id=player_id,
        player2_id=None,
        round=round_no,
        phase=MatchPhase.ROUND_ROBIN,
        status=MatchStatus.FINISHED,
        player1_score=BYE_WINNER_SCORE,
        player2_score=BYE_LOSER_SCORE,
        winner_id=player_id,
        played_at=now,
    )


def _check_unique(players: Sequence[int]) -> None:
    if len(set(players)) != len(players):
        raise PairingError("A player appears more than once in the pairing input.")


def pair_elimination(players: Sequence[int], round_no: int = 1, *, now: datetime | None = None) -> list[NewMatch]:
    """
    First round: registration order, consecutive pairs. An odd player out gets a bye,
    stored as an already-finished 1-0 win so standings count it.
    """
    players = list(players)
    if len(players) < 2:
        raise PairingError("Not enough participants for an elimination round (need at least 2).")
    _check_unique(players)

    matches, leftover = _pair_consecutive(players, round_no, MatchPhase.ROUND_ROBIN)
    if leftover is not None:
        matches.append(_bye(leftover, round_no, now=now or utcnow()))
    return matches


def pair_ladder(ranked: Sequence[int], round_no: int) -> list[NewMatch]:
    """
    Later rounds, from the ranked standings:

      - top ceil(n/2) form the winners group, the rest the losers group
      - winners pair consecutively
      - an odd winner out meets the best-ranked loser (crossover), who is then taken
      - remaining losers pair consecutively
      - an odd loser out sits the round out; no match is recorded for them
    """
    ranked = list(ranked)
    _check_unique(ranked)

    half = math.ceil(len(ranked) / 2)
    winners, losers = ranked[:half], ranked[half:]

    winner_matches, winner_left = _pair_consecutive(winners, round_no, MatchPhase.WINNERS_BRACKET)

    crossover: list[NewMatch] = []
    if winner_left is not None and losers:
        crossover.append(
            NewMatch(player1_id=winner_left, player2_id=losers[0], round=round_no, phase=MatchPhase.CROSSOVER)
        )
        losers = losers[1:]

    loser_matches, _sits_out = _pair_consecutive(losers, round_no, MatchPhase.LOSERS_BRACKET)

    return winner_matches + loser_matches + crossover


def pair_ladder_from_standings(standings: Sequence[Standing], round_no: int) -> list[NewMatch]:
    ordered = sorted(standings, key=lambda s: s.rank)
    return pair_ladder([s.user_id for s in ordered], round_no)


def strategy_for_round(round_no: int) -> PairingStrategy:
    if round_no < 1:
        raise PairingError(f"round must be >= 1, got {round_no}")
    if round_no == 1:
        return pair_elimination
    return pair_ladder
