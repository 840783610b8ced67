# renderers/standings_view.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from domain.models import Standing


def _pad(s: str, width: int) -> str:
    s = s or ""
    if len(s) > width:
        return s[: max(0, width - 1)] + "…" if width >= 2 else s[:width]
    return s + (" " * (width - len(s)))


@dataclass(frozen=True)
class StandingsOptions:
    max_rows: int = 20
    name_width: int = 18
    title: str = "Standings"


class StandingsView:
    """
    Monospace standings table: rank, player, W, L, Pts, Score.
    """

    def render(self, rows: Sequence[Standing], *, opts: StandingsOptions | None = None) -> str:
        o = opts or StandingsOptions()
        data = list(rows)[: o.max_rows]

        rank_w = 3
        name_w = max(o.name_width, min(28, max((len(s.username) for s in data), default=o.name_width)))
        num_w = 5

        lines: list[str] = [f"=== {o.title} ==="]
        lines.append(
            f"{_pad('#', rank_w)} {_pad('Player', name_w)} "
            f"{_pad('W', num_w)} {_pad('L', num_w)} {_pad('Pts', num_w)} {_pad('Score', num_w)}"
        )
        lines.append("-" * (rank_w + 1 + name_w + 1 + (num_w + 1) * 4))

        if not data:
            lines.append("(no participants)")

        for s in data:
            lines.append(
                f"{_pad(str(s.rank), rank_w)} {_pad(s.username or str(s.user_id), name_w)} "
                f"{_pad(str(s.wins), num_w)} {_pad(str(s.losses), num_w)} "
                f"{_pad(str(s.points), num_w)} {_pad(str(s.total_score), num_w)}"
            )

        if len(rows) > len(data):
            lines.append(f"... {len(rows) - len(data)} more")

        return "```text\n" + "\n".join(lines).rstrip() + "\n```"
