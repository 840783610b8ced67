"""
tests/test_pairing.py - elimination and ladder pairing.
"""

import pytest

from domain.enums import MatchPhase, MatchStatus
from domain.models import NewMatch, Standing
from services.pairing_service import (
    PairingError,
    pair_elimination,
    pair_ladder,
    pair_ladder_from_standings,
    strategy_for_round,
)


def _pairs(matches):
    return [(m.player1_id, m.player2_id, m.phase) for m in matches]


# ======================================================================
# Elimination
# ======================================================================


@pytest.mark.parametrize("n", [2, 3, 4, 5, 6, 7, 8, 11])
def test_elimination_counts(n):
    players = list(range(1, n + 1))

    matches = pair_elimination(players, 1)

    pending = [m for m in matches if m.status == MatchStatus.PENDING]
    byes = [m for m in matches if m.is_bye]
    assert len(pending) == n // 2
    assert len(byes) == (1 if n % 2 else 0)
    assert all(m.round == 1 and m.phase == MatchPhase.ROUND_ROBIN for m in matches)
    assert all(m.player1_score is None and m.winner_id is None for m in pending)

    seen = [p for m in matches for p in (m.player1_id, m.player2_id) if p is not None]
    assert sorted(seen) == players


def test_elimination_pairs_in_registration_order():
    matches = pair_elimination([10, 20, 30, 40], 1)

    assert [(m.player1_id, m.player2_id) for m in matches] == [(10, 20), (30, 40)]


def test_elimination_bye_goes_to_last_player():
    matches = pair_elimination([1, 2, 3, 4, 5], 1)

    bye = matches[-1]
    assert bye.is_bye
    assert bye.player1_id == 5
    assert bye.winner_id == 5
    assert (bye.player1_score, bye.player2_score) == (1, 0)
    assert bye.status == MatchStatus.FINISHED
    assert bye.played_at is not None


def test_elimination_needs_two_players():
    with pytest.raises(PairingError):
        pair_elimination([1], 1)
    with pytest.raises(PairingError):
        pair_elimination([], 1)


def test_elimination_rejects_duplicates():
    with pytest.raises(PairingError):
        pair_elimination([1, 2, 1], 1)


# ======================================================================
# Ladder
# ======================================================================

W, L, X = MatchPhase.WINNERS_BRACKET, MatchPhase.LOSERS_BRACKET, MatchPhase.CROSSOVER


def test_ladder_even_groups():
    matches = pair_ladder([1, 2, 3, 4], 2)

    assert _pairs(matches) == [(1, 2, W), (3, 4, L)]
    assert all(m.round == 2 and m.status == MatchStatus.PENDING for m in matches)
    assert all(m.player1_score is None and m.player2_score is None for m in matches)


def test_ladder_five_players_crossover_and_sit_out():
    # winners [A, C, E], losers [B, D]
    a, c, e, b, d = 1, 3, 5, 2, 4

    matches = pair_ladder([a, c, e, b, d], 2)

    assert _pairs(matches) == [(a, c, W), (e, b, X)]
    assert d not in {p for m in matches for p in (m.player1_id, m.player2_id)}


def test_ladder_six_players_everyone_plays():
    matches = pair_ladder([1, 2, 3, 4, 5, 6], 3)

    assert _pairs(matches) == [(1, 2, W), (5, 6, L), (3, 4, X)]


def test_ladder_seven_players_lowest_loser_sits_out():
    matches = pair_ladder([1, 2, 3, 4, 5, 6, 7], 2)

    assert _pairs(matches) == [(1, 2, W), (3, 4, W), (5, 6, L)]


def test_ladder_three_players():
    assert _pairs(pair_ladder([1, 2, 3], 2)) == [(1, 2, W)]


def test_ladder_two_players_is_a_crossover():
    # one winner, one loser: the lone winner is the odd one out
    assert _pairs(pair_ladder([1, 2], 2)) == [(1, 2, X)]


def test_ladder_single_player_gets_nothing():
    assert pair_ladder([1], 2) == []
    assert pair_ladder([], 2) == []


@pytest.mark.parametrize("n", range(2, 13))
def test_ladder_never_double_books(n):
    matches = pair_ladder(list(range(1, n + 1)), 2)

    booked = [p for m in matches for p in (m.player1_id, m.player2_id)]
    assert len(booked) == len(set(booked))
    assert None not in booked


def test_ladder_from_standings_uses_rank():
    standings = [
        Standing(user_id=7, username="G", rank=2),
        Standing(user_id=8, username="H", rank=1),
        Standing(user_id=9, username="I", rank=4),
        Standing(user_id=6, username="F", rank=3),
    ]

    matches = pair_ladder_from_standings(standings, 2)

    assert _pairs(matches) == [(8, 7, W), (6, 9, L)]


# ======================================================================
# Selection + construction rules
# ======================================================================


def test_strategy_for_round():
    assert strategy_for_round(1) is pair_elimination
    assert strategy_for_round(2) is pair_ladder
    assert strategy_for_round(5) is pair_ladder
    with pytest.raises(PairingError):
        strategy_for_round(0)


def test_phase_is_a_closed_set():
    assert MatchPhase.parse("crossover_match") is MatchPhase.CROSSOVER
    assert MatchPhase.parse(" Winners_Bracket ") is MatchPhase.WINNERS_BRACKET
    with pytest.raises(ValueError):
        MatchPhase.parse("points_3")
    with pytest.raises(ValueError):
        NewMatch(player1_id=1, player2_id=2, round=2, phase="group_stage")


def test_match_winner_must_be_a_player():
    with pytest.raises(ValueError):
        NewMatch(player1_id=1, player2_id=2, round=1, phase=MatchPhase.ROUND_ROBIN, winner_id=3)
    with pytest.raises(ValueError):
        NewMatch(player1_id=1, player2_id=1, round=1, phase=MatchPhase.ROUND_ROBIN)
    with pytest.raises(ValueError):
        NewMatch(player1_id=1, player2_id=2, round=0, phase=MatchPhase.ROUND_ROBIN)
