"""
tests/test_standings.py - pure standings calculation.
"""

from domain.enums import MatchPhase, MatchStatus
from domain.models import Match, Participant
from services.standings_service import compute_standings

T = 1


def _p(user_id, name):
    return Participant(tournament_id=T, user_id=user_id, username=name)


def _m(match_id, p1, p2, s1=None, s2=None, *, round_no=1, tournament_id=T, status=MatchStatus.FINISHED):
    winner = None
    if s1 is not None and s2 is not None and status == MatchStatus.FINISHED:
        winner = p1 if s1 > s2 else p2 if s2 > s1 else None
    return Match(
        match_id=match_id,
        tournament_id=tournament_id,
        player1_id=p1,
        player2_id=p2,
        round=round_no,
        phase=MatchPhase.ROUND_ROBIN,
        status=status,
        player1_score=s1,
        player2_score=s2,
        winner_id=winner,
    )


PARTICIPANTS = [_p(1, "A"), _p(2, "B"), _p(3, "C"), _p(4, "D")]


def test_no_matches_keeps_registration_order():
    rows = compute_standings(T, PARTICIPANTS, [])

    assert [s.user_id for s in rows] == [1, 2, 3, 4]
    assert [s.rank for s in rows] == [1, 2, 3, 4]
    assert all(s.wins == s.losses == s.points == s.total_score == 0 for s in rows)


def test_wins_losses_points_and_score():
    matches = [_m(1, 1, 2, 5, 3), _m(2, 3, 4, 2, 6), _m(3, 1, 4, 1, 4, round_no=2)]

    rows = {s.user_id: s for s in compute_standings(T, PARTICIPANTS, matches)}

    assert (rows[1].wins, rows[1].losses, rows[1].points, rows[1].total_score) == (1, 1, 3, 6)
    assert (rows[4].wins, rows[4].losses, rows[4].points, rows[4].total_score) == (2, 0, 6, 10)
    assert (rows[2].wins, rows[2].losses, rows[2].total_score) == (0, 1, 3)
    assert (rows[3].wins, rows[3].losses, rows[3].total_score) == (0, 1, 2)


def test_sorted_by_points_then_total_score():
    matches = [_m(1, 1, 2, 1, 0), _m(2, 3, 4, 9, 2)]

    rows = compute_standings(T, PARTICIPANTS, matches)

    # C and A both have 3 points; C scored more. D outscored B among the 0-point players.
    assert [s.user_id for s in rows] == [3, 1, 4, 2]
    assert [s.rank for s in rows] == [1, 2, 3, 4]


def test_full_ties_fall_back_to_registration_order():
    matches = [_m(1, 2, 1, 1, 0), _m(2, 4, 3, 1, 0)]

    rows = compute_standings(T, PARTICIPANTS, matches)

    assert [s.user_id for s in rows] == [2, 4, 1, 3]


def test_draw_is_neither_win_nor_loss():
    rows = {s.user_id: s for s in compute_standings(T, PARTICIPANTS, [_m(1, 1, 2, 2, 2)])}

    assert rows[1].wins == rows[1].losses == 0
    assert rows[2].wins == rows[2].losses == 0
    assert rows[1].total_score == rows[2].total_score == 2


def test_bye_counts_as_a_win():
    bye = Match(
        match_id=9,
        tournament_id=T,
        player1_id=3,
        player2_id=None,
        round=1,
        phase=MatchPhase.ROUND_ROBIN,
        status=MatchStatus.FINISHED,
        player1_score=1,
        player2_score=0,
        winner_id=3,
    )

    rows = {s.user_id: s for s in compute_standings(T, PARTICIPANTS, [bye])}

    assert (rows[3].wins, rows[3].points, rows[3].total_score) == (1, 3, 1)


def test_ignores_pending_and_foreign_matches():
    matches = [
        _m(1, 1, 2, status=MatchStatus.PENDING),
        _m(2, 3, 4, 3, 0, tournament_id=99),
    ]

    rows = compute_standings(T, PARTICIPANTS, matches)

    assert all(s.points == 0 and s.total_score == 0 for s in rows)


def test_ranks_are_a_gapless_permutation():
    participants = [_p(i, f"P{i}") for i in range(1, 8)]
    matches = [_m(1, 1, 2, 3, 1), _m(2, 3, 4, 0, 3), _m(3, 5, 6, 2, 2)]

    rows = compute_standings(T, participants, matches)

    assert sorted(s.rank for s in rows) == list(range(1, 8))
    keys = [(-s.points, -s.total_score) for s in rows]
    assert keys == sorted(keys)
