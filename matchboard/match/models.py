"""Data models for sessions, tables and scoring."""

from __future__ import annotations

import datetime
import re
import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Optional

from matchboard.core.types import (
    ScoringDocument,
    SessionDocument,
    TableDocument,
)


class MatchStatus(str, Enum):
    """Whether referees may still report results."""

    OPEN = "OPEN"
    CLOSED = "CLOSED"


class GameResult(str, Enum):
    """Outcome of a table, from player1's perspective."""

    PENDING = "PENDING"
    WIN = "WIN"
    LOSS = "LOSS"
    DRAW = "DRAW"

    @property
    def label(self) -> str:
        """Display label used on the board and in exported sheets."""
        return RESULT_LABELS[self]

    @classmethod
    def parse(cls, value: Any) -> GameResult:
        """Accept either the wire value or the display label."""
        if isinstance(value, GameResult):
            return value
        text = str(value or "").strip()
        for result, label in RESULT_LABELS.items():
            if text == label:
                return result
        try:
            return cls(text.upper())
        except ValueError:
            raise ValueError(f"Unknown result: {value!r}") from None


RESULT_LABELS = {
    GameResult.PENDING: "待定",
    GameResult.WIN: "勝",
    GameResult.LOSS: "負",
    GameResult.DRAW: "和",
}


class UserRole(str, Enum):
    """Roles granted by the login gate."""

    GUEST = "GUEST"
    ADMIN = "ADMIN"
    REFEREE = "REFEREE"


def utcnow_iso() -> str:
    """Timestamp format used for createdAt/updatedAt."""
    return datetime.datetime.now(datetime.timezone.utc).isoformat()


@dataclass(frozen=True)
class PlayerInfo:
    """A participant; id is the scoring key, not globally unique."""

    id: str
    name: str

    @classmethod
    def from_dict(cls, data: Optional[dict[str, Any]]) -> PlayerInfo:
        data = data or {}
        return cls(id=str(data.get("id") or "").strip(), name=str(data.get("name") or "").strip())

    def to_dict(self) -> dict[str, str]:
        return {"id": self.id, "name": self.name}


@dataclass(frozen=True)
class PointPair:
    p1: float
    p2: float


@dataclass(frozen=True)
class ScoringConfig:
    """Points awarded to each side for each outcome."""

    win: PointPair = PointPair(1, 0)
    loss: PointPair = PointPair(0, 1)
    draw: PointPair = PointPair(0.5, 0.5)

    def bucket(self, result: GameResult) -> PointPair:
        """Select the point pair for a resolved table."""
        if result is GameResult.WIN:
            return self.win
        if result is GameResult.LOSS:
            return self.loss
        if result is GameResult.DRAW:
            return self.draw
        raise ValueError("Pending tables have no scoring bucket.")

    @classmethod
    def from_dict(cls, data: Optional[dict[str, Any]]) -> ScoringConfig:
        if not data:
            return cls()
        default = cls()
        buckets = {}
        for name in ("win", "loss", "draw"):
            fallback = getattr(default, name)
            raw = data.get(name) or {}
            buckets[name] = PointPair(
                p1=_to_number(raw.get("p1", fallback.p1)),
                p2=_to_number(raw.get("p2", fallback.p2)),
            )
        return cls(**buckets)

    def to_dict(self) -> ScoringDocument:
        return {
            "win": {"p1": self.win.p1, "p2": self.win.p2},
            "loss": {"p1": self.loss.p1, "p2": self.loss.p2},
            "draw": {"p1": self.draw.p1, "p2": self.draw.p2},
        }


def _to_number(value: Any) -> float:
    if isinstance(value, bool):
        raise ValueError("Scoring values must be numbers.")
    if isinstance(value, (int, float)):
        return value
    try:
        number = float(str(value).strip())
    except ValueError:
        raise ValueError(f"Scoring value {value!r} is not a number.") from None
    return int(number) if number.is_integer() else number


@dataclass(frozen=True)
class TableMatch:
    """One pairing within a session."""

    table_number: int
    player1: PlayerInfo
    player2: PlayerInfo
    result: GameResult = GameResult.PENDING
    submitted_by: Optional[str] = None
    updated_at: Optional[str] = None
    # Carried unchanged; nothing here assigns it.
    assigned_referee: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return self.result is not GameResult.PENDING

    def with_result(
        self, result: GameResult, submitted_by: str, updated_at: Optional[str] = None
    ) -> TableMatch:
        """Return a copy carrying a reported result."""
        return replace(
            self,
            result=result,
            submitted_by=submitted_by,
            updated_at=updated_at or utcnow_iso(),
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TableMatch:
        return cls(
            table_number=int(data.get("tableNumber") or 0),
            player1=PlayerInfo.from_dict(data.get("player1")),
            player2=PlayerInfo.from_dict(data.get("player2")),
            result=GameResult.parse(data.get("result") or GameResult.PENDING),
            submitted_by=data.get("submittedBy") or None,
            updated_at=data.get("updatedAt") or None,
            assigned_referee=data.get("assignedReferee") or None,
        )

    def to_dict(self) -> TableDocument:
        doc: TableDocument = {
            "tableNumber": self.table_number,
            "player1": self.player1.to_dict(),
            "player2": self.player2.to_dict(),
            "result": self.result.value,
        }
        if self.submitted_by:
            doc["submittedBy"] = self.submitted_by
        if self.updated_at:
            doc["updatedAt"] = self.updated_at
        if self.assigned_referee:
            doc["assignedReferee"] = self.assigned_referee
        return doc


@dataclass(frozen=True)
class MatchSession:
    """A tournament event: roster, tables and scoring weights."""

    id: str
    title: str
    status: MatchStatus = MatchStatus.OPEN
    referees: tuple[str, ...] = ()
    tables: tuple[TableMatch, ...] = ()
    scoring_config: ScoringConfig = field(default_factory=ScoringConfig)
    created_at: str = field(default_factory=utcnow_iso)

    @classmethod
    def new(
        cls,
        title: str,
        referees: list[str],
        tables: list[TableMatch],
        scoring_config: Optional[ScoringConfig] = None,
    ) -> MatchSession:
        """Create a session the way an organizer does: fresh id, status OPEN."""
        return cls(
            id=str(uuid.uuid4()),
            title=title,
            status=MatchStatus.OPEN,
            referees=tuple(referees),
            tables=tuple(tables),
            scoring_config=scoring_config or ScoringConfig(),
        )

    def find_table(self, table_number: int) -> Optional[TableMatch]:
        for table in self.tables:
            if table.table_number == table_number:
                return table
        return None

    def replace_table(self, updated: TableMatch) -> MatchSession:
        """Swap in one table, matched by table number."""
        tables = tuple(
            updated if t.table_number == updated.table_number else t
            for t in self.tables
        )
        return replace(self, tables=tables)

    def sorted_tables(self) -> list[TableMatch]:
        return sorted(self.tables, key=lambda t: t.table_number)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MatchSession:
        return cls(
            id=str(data["id"]),
            title=str(data.get("title") or ""),
            status=MatchStatus(data.get("status") or MatchStatus.OPEN.value),
            referees=tuple(data.get("referees") or ()),
            tables=tuple(TableMatch.from_dict(t) for t in data.get("tables") or ()),
            scoring_config=ScoringConfig.from_dict(data.get("scoringConfig")),
            created_at=str(data.get("createdAt") or utcnow_iso()),
        )

    def to_dict(self) -> SessionDocument:
        return {
            "id": self.id,
            "title": self.title,
            "status": self.status.value,
            "referees": list(self.referees),
            "tables": [t.to_dict() for t in self.tables],
            "scoringConfig": self.scoring_config.to_dict(),
            "createdAt": self.created_at,
        }


def parse_referees(raw: str) -> list[str]:
    """Split a roster entry on ASCII or full-width commas, keeping first order."""
    names = [name.strip() for name in re.split(r"[,，]", raw or "")]
    return list(dict.fromkeys(name for name in names if name))


def next_table_number(tables: list[TableMatch] | tuple[TableMatch, ...]) -> int:
    """Table number for a newly added row."""
    if not tables:
        return 1
    return max(t.table_number for t in tables) + 1
