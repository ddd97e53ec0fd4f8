"""Builders and fakes shared by the test modules."""

from __future__ import annotations

import shutil
import tempfile
import unittest
from typing import Any, Optional

from matchboard import create_app
from matchboard.match.models import (
    GameResult,
    MatchSession,
    MatchStatus,
    PlayerInfo,
    ScoringConfig,
    TableMatch,
)
from matchboard.storage.shared_bin import sessions_from_payload

CREATED_AT = "2024-05-01T09:00:00+00:00"


def make_table(
    number: int,
    p1: tuple[str, str] = ("P1", "Alice"),
    p2: tuple[str, str] = ("P2", "Bob"),
    result: GameResult = GameResult.PENDING,
    submitted_by: Optional[str] = None,
) -> TableMatch:
    return TableMatch(
        table_number=number,
        player1=PlayerInfo(*p1),
        player2=PlayerInfo(*p2),
        result=result,
        submitted_by=submitted_by,
        updated_at=CREATED_AT if submitted_by else None,
    )


def make_session(
    session_id: str = "s1",
    title: str = "R1",
    referees: tuple[str, ...] = ("A", "B"),
    tables: Optional[list[TableMatch]] = None,
    status: MatchStatus = MatchStatus.OPEN,
    scoring_config: Optional[ScoringConfig] = None,
    created_at: str = CREATED_AT,
) -> MatchSession:
    return MatchSession(
        id=session_id,
        title=title,
        status=status,
        referees=referees,
        tables=tuple(tables if tables is not None else [make_table(1)]),
        scoring_config=scoring_config or ScoringConfig(),
        created_at=created_at,
    )


class FakeBinClient:
    """In-memory stand-in for SharedBinClient."""

    def __init__(self) -> None:
        self.bins: dict[str, list[dict[str, Any]]] = {}
        self.fail = False
        self.created = 0
        self.pushes = 0

    def create(self, sessions: list[MatchSession]) -> Optional[str]:
        if self.fail:
            return None
        self.created += 1
        code = f"bin{self.created}"
        self.bins[code] = [s.to_dict() for s in sessions]
        return code

    def fetch(self, code: str) -> Optional[list[MatchSession]]:
        if self.fail or code not in self.bins:
            return None
        return sessions_from_payload(self.bins[code])

    def push(self, code: str, sessions: list[MatchSession]) -> bool:
        if self.fail:
            return False
        self.pushes += 1
        self.bins[code] = [s.to_dict() for s in sessions]
        return True


class AppTestCase(unittest.TestCase):
    """Test client on an app whose storage lives in a temp directory."""

    config: dict[str, Any] = {}

    def setUp(self) -> None:
        self.storage_dir = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, self.storage_dir, True)
        self.app = create_app(
            {
                "TESTING": True,
                "WTF_CSRF_ENABLED": False,
                "STORAGE_DIR": self.storage_dir,
                **self.config,
            }
        )
        self.sync = self.app.extensions["matchboard.sync"]
        self.client = self.app.test_client()

    def login(self, role: str, password: Optional[str] = None) -> Any:
        if password is None:
            password = "admin" if role == "ADMIN" else "referee"
        return self.client.post("/auth/login", json={"role": role, "password": password})
