"""Standings aggregation for a session."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .models import GameResult

if TYPE_CHECKING:
    from .models import MatchSession, PlayerInfo


@dataclass
class PlayerScore:
    """Derived per-player tally. Never persisted."""

    id: str
    name: str
    points: float = 0
    win_count: int = 0
    loss_count: int = 0
    draw_count: int = 0
    match_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "points": self.points,
            "winCount": self.win_count,
            "lossCount": self.loss_count,
            "drawCount": self.draw_count,
            "matchCount": self.match_count,
        }


def natural_key(value: str) -> tuple[Any, ...]:
    """Sort key that compares digit runs as numbers ("P2" < "P10")."""
    parts = re.split(r"(\d+)", value)
    return tuple(int(p) if i % 2 else p.casefold() for i, p in enumerate(parts))


def _ensure_player(scores: dict[str, PlayerScore], player: PlayerInfo) -> PlayerScore:
    # First name seen for an id wins.
    if player.id not in scores:
        scores[player.id] = PlayerScore(id=player.id, name=player.name)
    return scores[player.id]


def _tally(score: PlayerScore, points: float, outcome: str) -> None:
    score.points += points
    score.match_count += 1
    if outcome == "win":
        score.win_count += 1
    elif outcome == "loss":
        score.loss_count += 1
    else:
        score.draw_count += 1


_OUTCOMES = {
    GameResult.WIN: ("win", "loss"),
    GameResult.LOSS: ("loss", "win"),
    GameResult.DRAW: ("draw", "draw"),
}


def aggregate(session: MatchSession) -> list[PlayerScore]:
    """Fold a session's tables into per-player standings, ordered by id."""
    scores: dict[str, PlayerScore] = {}

    for table in session.tables:
        p1 = _ensure_player(scores, table.player1)
        p2 = _ensure_player(scores, table.player2)
        if table.result is GameResult.PENDING:
            continue

        bucket = session.scoring_config.bucket(table.result)
        p1_outcome, p2_outcome = _OUTCOMES[table.result]
        # p1 and p2 are the same record for a self-paired table; both apply.
        _tally(p1, bucket.p1, p1_outcome)
        _tally(p2, bucket.p2, p2_outcome)

    # Ids that differ only in case or zero padding tie on natural_key.
    return sorted(scores.values(), key=lambda s: (natural_key(s.id), s.id))


def completed_tables(session: MatchSession) -> list[Any]:
    """Tables with a terminal result, in table-number order."""
    return [t for t in session.sorted_tables() if t.is_complete]
