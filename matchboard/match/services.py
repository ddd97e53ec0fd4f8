"""Service layer for session lifecycle operations."""

from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING, Any, Optional

from matchboard.core.constants import ADMIN_EDIT_LABEL, REFEREE_EDIT_LABEL
from matchboard.errors import (
    NotFoundError,
    PermissionDeniedError,
    SessionClosedError,
    UnknownRefereeError,
    ValidationError,
)

from .models import (
    GameResult,
    MatchSession,
    MatchStatus,
    PlayerInfo,
    ScoringConfig,
    TableMatch,
    UserRole,
    parse_referees,
)
from .spreadsheet import read_tables

if TYPE_CHECKING:
    from werkzeug.datastructures import FileStorage

    from matchboard.sync.synchronizer import SessionSynchronizer


def _parse_table(raw: Any, index: int) -> TableMatch:
    if not isinstance(raw, dict):
        raise ValidationError(f"Table row {index + 1} is malformed.")
    number = raw.get("tableNumber")
    try:
        table_number = int(number)
    except (TypeError, ValueError):
        raise ValidationError(f"Table row {index + 1} has no valid table number.") from None
    try:
        result = GameResult.parse(raw.get("result") or GameResult.PENDING)
    except ValueError as e:
        raise ValidationError(str(e)) from None
    return TableMatch(
        table_number=table_number,
        player1=PlayerInfo.from_dict(raw.get("player1")),
        player2=PlayerInfo.from_dict(raw.get("player2")),
        result=result,
        submitted_by=raw.get("submittedBy") or None,
        updated_at=raw.get("updatedAt") or None,
        assigned_referee=raw.get("assignedReferee") or None,
    )


def check_table_numbers(tables: list[TableMatch] | tuple[TableMatch, ...]) -> None:
    """Reject duplicate table numbers; rows are keyed by them."""
    seen: set[int] = set()
    for table in tables:
        if table.table_number in seen:
            raise ValidationError(f"Table {table.table_number} appears more than once.")
        seen.add(table.table_number)


def parse_session_payload(
    payload: dict[str, Any],
) -> tuple[str, list[str], list[TableMatch], ScoringConfig]:
    """Validate an organizer's create/edit body before anything is written."""
    title = str(payload.get("title") or "").strip()
    if not title:
        raise ValidationError("Title is required.")

    raw_referees = payload.get("referees")
    if isinstance(raw_referees, str):
        referees = parse_referees(raw_referees)
    else:
        referees = parse_referees(",".join(str(r) for r in raw_referees or []))
    if not referees:
        raise ValidationError("At least one referee is required.")

    raw_tables = payload.get("tables") or []
    if not isinstance(raw_tables, list):
        raise ValidationError("Tables must be a list.")
    tables = [_parse_table(raw, i) for i, raw in enumerate(raw_tables)]
    check_table_numbers(tables)

    try:
        scoring = ScoringConfig.from_dict(payload.get("scoringConfig"))
    except (ValueError, AttributeError) as e:
        raise ValidationError(f"Invalid scoring configuration: {e}") from None

    return title, referees, tables, scoring


def record_result(
    session: MatchSession,
    table_number: Optional[int],
    result: GameResult,
    referee_name: str,
    updated_at: Optional[str] = None,
) -> MatchSession:
    """Apply a referee's report to one table, or raise without touching it."""
    if not referee_name:
        raise ValidationError("Select your name first.")
    if referee_name not in session.referees:
        raise UnknownRefereeError(referee_name)
    if session.status is not MatchStatus.OPEN:
        raise SessionClosedError()
    if table_number is None:
        raise ValidationError("Select a table.")
    if result is GameResult.PENDING:
        raise ValidationError("Select a result.")
    table = session.find_table(table_number)
    if table is None:
        raise NotFoundError(f"Table {table_number} is not part of this session.")
    return session.replace_table(table.with_result(result, referee_name, updated_at))


def correct_result(
    session: MatchSession,
    table_number: int,
    result: GameResult,
    role: UserRole,
    updated_at: Optional[str] = None,
) -> MatchSession:
    """Board correction by an organizer or referee; PENDING is allowed."""
    if role is UserRole.ADMIN:
        label = ADMIN_EDIT_LABEL
    elif role is UserRole.REFEREE:
        label = REFEREE_EDIT_LABEL
    else:
        raise PermissionDeniedError()
    if session.status is not MatchStatus.OPEN:
        raise SessionClosedError()
    table = session.find_table(table_number)
    if table is None:
        raise NotFoundError(f"Table {table_number} is not part of this session.")
    return session.replace_table(table.with_result(result, label, updated_at))


class SessionService:
    """Handles session business logic on top of the synchronizer."""

    @staticmethod
    def get_session(sync: SessionSynchronizer, session_id: str) -> MatchSession:
        session = sync.get_session(session_id)
        if session is None:
            raise NotFoundError("Session not found.")
        return session

    @staticmethod
    def create_session(
        sync: SessionSynchronizer, payload: dict[str, Any]
    ) -> tuple[MatchSession, bool]:
        """Create an OPEN session; returns it and whether the write landed."""
        title, referees, tables, scoring = parse_session_payload(payload)
        session = MatchSession.new(title, referees, tables, scoring)
        return session, sync.add_session(session)

    @staticmethod
    def edit_session(
        sync: SessionSynchronizer, session_id: str, payload: dict[str, Any]
    ) -> tuple[MatchSession, bool]:
        """Replace title, roster, tables and scoring; id/status/createdAt stay."""
        existing = SessionService.get_session(sync, session_id)
        title, referees, tables, scoring = parse_session_payload(payload)
        session = replace(
            existing,
            title=title,
            referees=tuple(referees),
            tables=tuple(tables),
            scoring_config=scoring,
        )
        return session, sync.update_session(session)

    @staticmethod
    def submit_result(
        sync: SessionSynchronizer,
        session_id: str,
        table_number: Optional[int],
        result: GameResult,
        referee_name: str,
    ) -> tuple[MatchSession, bool]:
        session = SessionService.get_session(sync, session_id)
        updated = record_result(session, table_number, result, referee_name)
        return updated, sync.update_session(updated)

    @staticmethod
    def correct_result(
        sync: SessionSynchronizer,
        session_id: str,
        table_number: int,
        result: GameResult,
        role: UserRole,
    ) -> tuple[MatchSession, bool]:
        session = SessionService.get_session(sync, session_id)
        updated = correct_result(session, table_number, result, role)
        return updated, sync.update_session(updated)

    @staticmethod
    def set_status(
        sync: SessionSynchronizer, session_id: str, status: MatchStatus
    ) -> tuple[MatchSession, bool]:
        session = SessionService.get_session(sync, session_id)
        updated = replace(session, status=status)
        return updated, sync.update_session(updated)

    @staticmethod
    def delete_session(sync: SessionSynchronizer, session_id: str) -> bool:
        """Immediate and irreversible; unknown ids are not an error."""
        return sync.delete_session(session_id)

    @staticmethod
    def import_tables(
        sync: SessionSynchronizer, session_id: str, upload: FileStorage
    ) -> tuple[MatchSession, bool]:
        """Replace a session's tables with a sheet; nothing changes on a bad file."""
        session = SessionService.get_session(sync, session_id)
        tables = read_tables(upload.stream, upload.filename or "")
        check_table_numbers(tables)
        updated = replace(session, tables=tuple(tables))
        return updated, sync.update_session(updated)
