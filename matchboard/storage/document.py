"""Document-Store backend: one Firestore document per session."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable, Optional, cast

from firebase_admin import firestore
from google.api_core.exceptions import Conflict

from matchboard.core.constants import (
    SESSIONS_COLLECTION,
    SETTINGS_COLLECTION,
    SETTINGS_DOCUMENT,
)
from matchboard.errors import DuplicateSessionError
from matchboard.match.models import MatchSession

from .base import Settings

if TYPE_CHECKING:
    from google.cloud.firestore_v1.base_document import DocumentSnapshot
    from google.cloud.firestore_v1.client import Client

    from matchboard.match.models import UserRole

logger = logging.getLogger(__name__)

SessionsCallback = Callable[[list[MatchSession]], None]


def _sessions_from_docs(docs: Any) -> list[MatchSession]:
    """Decode snapshots newest first, skipping documents that do not parse."""
    sessions = []
    for doc in docs:
        if not doc.exists:
            continue
        data = doc.to_dict()
        if not data:
            continue
        data["id"] = doc.id
        try:
            sessions.append(MatchSession.from_dict(data))
        except (ValueError, TypeError, KeyError, AttributeError) as e:
            logger.warning(f"Skipping unreadable session document {doc.id}: {e}")
    sessions.sort(key=lambda s: s.created_at, reverse=True)
    return sessions


class DocumentStore:
    """Sessions collection keyed by session id, plus a settings document."""

    def __init__(self, db: Optional[Client] = None, defaults: Optional[Settings] = None) -> None:
        self.db = db if db is not None else firestore.client()
        self.defaults = defaults or Settings()

    @property
    def _sessions(self) -> Any:
        return self.db.collection(SESSIONS_COLLECTION)

    @property
    def _settings_ref(self) -> Any:
        return self.db.collection(SETTINGS_COLLECTION).document(SETTINGS_DOCUMENT)

    def list_sessions(self) -> list[MatchSession]:
        """All sessions ordered by createdAt, newest first."""
        try:
            return _sessions_from_docs(self._sessions.stream())
        except Exception as e:
            logger.warning(f"Failed to list sessions from Firestore: {e}")
            return []

    def add_session(self, session: MatchSession) -> bool:
        """Create the document; fails on an id that is already stored."""
        try:
            self._sessions.document(session.id).create(dict(session.to_dict()))
        except Conflict:
            raise DuplicateSessionError(session.id) from None
        except Exception as e:
            logger.error(f"Failed to create session {session.id}: {e}")
            return False
        return True

    def update_session(self, session: MatchSession) -> bool:
        """Replace the whole document; creates it when missing."""
        return self._write(session)

    def _write(self, session: MatchSession) -> bool:
        try:
            self._sessions.document(session.id).set(dict(session.to_dict()))
        except Exception as e:
            logger.error(f"Failed to write session {session.id}: {e}")
            return False
        return True

    def delete_session(self, session_id: str) -> bool:
        ref = self._sessions.document(session_id)
        try:
            if cast("DocumentSnapshot", ref.get()).exists:
                ref.delete()
        except Exception as e:
            logger.error(f"Failed to delete session {session_id}: {e}")
            return False
        return True

    def subscribe(self, callback: SessionsCallback) -> Callable[[], None]:
        """Push the full list to callback on every collection change."""

        def on_snapshot(col_snapshot: Any, changes: Any, read_time: Any) -> None:
            try:
                callback(_sessions_from_docs(col_snapshot))
            except Exception as e:
                logger.error(f"Session subscriber failed: {e}")

        watch = self._sessions.on_snapshot(on_snapshot)
        return watch.unsubscribe

    def get_settings(self) -> Settings:
        """The login-gate document, created with defaults on first read."""
        try:
            doc = cast("DocumentSnapshot", self._settings_ref.get())
            if doc.exists:
                return Settings.from_dict(doc.to_dict() or {}, self.defaults)
            self._settings_ref.set(dict(self.defaults.to_dict()))
        except Exception as e:
            logger.warning(f"Failed to load settings from Firestore: {e}")
        return self.defaults

    def update_password(self, role: UserRole, new_value: str) -> bool:
        settings = self.get_settings().with_password(role, new_value)
        try:
            self._settings_ref.set(dict(settings.to_dict()))
        except Exception as e:
            logger.error(f"Failed to update password: {e}")
            return False
        return True
