# renderers/bracket_view.py
from __future__ import annotations

from typing import Mapping, Optional, Sequence

from domain.enums import MatchPhase
from domain.models import BracketSnapshot, Match

PHASE_LABELS: dict[MatchPhase, str] = {
    MatchPhase.ROUND_ROBIN: "OPENING",
    MatchPhase.WINNERS_BRACKET: "WINNERS",
    MatchPhase.LOSERS_BRACKET: "LOSERS",
    MatchPhase.CROSSOVER: "CROSSOVER",
}

PHASE_ORDER = [MatchPhase.ROUND_ROBIN, MatchPhase.WINNERS_BRACKET, MatchPhase.CROSSOVER, MatchPhase.LOSERS_BRACKET]


def _pad(s: str, width: int) -> str:
    s = s or ""
    if len(s) > width:
        return s[: max(0, width - 1)] + "…" if width >= 2 else s[:width]
    return s + (" " * (width - len(s)))


def _status_mark(m: Match) -> str:
    if m.is_bye:
        return "BYE"
    if m.is_finished:
        return f"{m.player1_score}-{m.player2_score}"
    return "pending"


class BracketView:
    """
    Text bracket renderer for Discord (monospace).
    Matches of a round are grouped by phase; each line carries the match id used to report.
    """

    def __init__(self, *, name_width: int = 18) -> None:
        self._name_width = int(name_width)

    def render(
        self,
        snapshot: BracketSnapshot,
        *,
        matches: Optional[Sequence[Match]] = None,
        max_lines: int = 55,
    ) -> str:
        """
        Renders `matches` (defaults to the current round) with names taken from the snapshot.
        """
        names: Mapping[int, str] = {p.user_id: p.username for p in snapshot.participants}
        rows = list(snapshot.current_matches if matches is None else matches)
        rows.sort(key=lambda m: (m.round, PHASE_ORDER.index(m.phase), m.match_id))

        t = snapshot.tournament
        lines: list[str] = [f"=== {t.name} ({t.game_mode}) ===", f"Status: {t.status.value}"]
        if snapshot.current_round:
            lines.append(f"Round {snapshot.current_round} of {snapshot.total_rounds}")
        lines.append("")

        if not rows:
            lines.append("(no matches yet)")

        curr: Optional[tuple[int, MatchPhase]] = None
        for m in rows:
            if curr != (m.round, m.phase):
                curr = (m.round, m.phase)
                lines.append(f"-- Round {m.round} {PHASE_LABELS[m.phase]} --")
            lines.append(self._line(m, names))

        if len(lines) > max_lines:
            lines = lines[: max_lines - 1] + ["..."]

        return "```text\n" + "\n".join(lines).rstrip() + "\n```"

    def _line(self, m: Match, names: Mapping[int, str]) -> str:
        left = self._name(m.player1_id, names, winner=m.winner_id)
        right = self._name(m.player2_id, names, winner=m.winner_id) if not m.is_bye else _pad("-", self._name_width)
        return f"  #{m.match_id:<5} {left} vs {right}  {_status_mark(m)}"

    def _name(self, user_id: Optional[int], names: Mapping[int, str], *, winner: Optional[int]) -> str:
        if user_id is None:
            return _pad("-", self._name_width)
        label = names.get(user_id) or str(user_id)
        if winner is not None and winner == user_id:
            label = f"*{label}"
        return _pad(label, self._name_width)
