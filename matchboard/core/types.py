"""Wire-format types shared by the storage backends."""

from typing import List, TypedDict  # noqa: UP035


class PlayerDocument(TypedDict):
    id: str
    name: str


class PointPair(TypedDict):
    p1: float
    p2: float


class ScoringDocument(TypedDict):
    win: PointPair
    loss: PointPair
    draw: PointPair


class _TableDocumentBase(TypedDict):
    tableNumber: int
    player1: PlayerDocument
    player2: PlayerDocument
    result: str


class TableDocument(_TableDocumentBase, total=False):
    """One table as stored in every backend."""

    submittedBy: str
    updatedAt: str
    assignedReferee: str


class SessionDocument(TypedDict):
    """A session as stored: one JSON object, one Firestore document."""

    id: str
    title: str
    status: str
    referees: List[str]  # noqa: UP006
    tables: List[TableDocument]  # noqa: UP006
    scoringConfig: ScoringDocument
    createdAt: str


class SettingsDocument(TypedDict):
    """The shared login-gate record."""

    adminPassword: str
    refereePassword: str

