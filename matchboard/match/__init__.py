"""Match domain: sessions, tables, scoring and spreadsheet I/O."""

from .models import (
    GameResult,
    MatchSession,
    MatchStatus,
    PlayerInfo,
    ScoringConfig,
    TableMatch,
    UserRole,
)
from .scoring import PlayerScore, aggregate
from .services import SessionService

__all__ = [
    "GameResult",
    "MatchSession",
    "MatchStatus",
    "PlayerInfo",
    "PlayerScore",
    "ScoringConfig",
    "SessionService",
    "TableMatch",
    "UserRole",
    "aggregate",
]
