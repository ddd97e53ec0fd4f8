"""Local-Only backend: the whole session list under one storage key."""

from __future__ import annotations

import json
import logging
import threading
from typing import TYPE_CHECKING, Optional

from matchboard.core.constants import SESSIONS_KEY, SETTINGS_KEY
from matchboard.errors import DuplicateSessionError
from matchboard.match.models import MatchSession

from .base import Settings

if TYPE_CHECKING:
    from matchboard.match.models import UserRole

    from .keyvalue import KeyValueStorage

logger = logging.getLogger(__name__)


class LocalStore:
    """Read-entire-list, mutate, write-entire-list over a KeyValueStorage.

    Two processes writing the same storage directory can lose each other's
    updates; only writers inside this process are serialized.
    """

    def __init__(self, storage: KeyValueStorage, defaults: Optional[Settings] = None) -> None:
        self.storage = storage
        self.defaults = defaults or Settings()
        self._write_lock = threading.RLock()

    def list_sessions(self) -> list[MatchSession]:
        """Sessions in stored (insertion) order."""
        raw = self.storage.get(SESSIONS_KEY)
        if not raw:
            return []
        try:
            return [MatchSession.from_dict(item) for item in json.loads(raw)]
        except (ValueError, TypeError, KeyError, AttributeError) as e:
            logger.warning(f"Stored session list is unreadable, ignoring it: {e}")
            return []

    def save_sessions(self, sessions: list[MatchSession]) -> bool:
        """Replace the entire stored list."""
        try:
            payload = json.dumps([s.to_dict() for s in sessions], ensure_ascii=False)
            self.storage.set(SESSIONS_KEY, payload)
        except OSError as e:
            logger.error(f"Failed to persist sessions: {e}")
            return False
        return True

    @property
    def write_lock(self) -> threading.RLock:
        """Held by anything that rewrites the stored list."""
        return self._write_lock

    def add_session(self, session: MatchSession) -> bool:
        return self.insert(session) is not None

    def update_session(self, session: MatchSession) -> bool:
        return self.replace(session) is not None

    def delete_session(self, session_id: str) -> bool:
        return self.remove(session_id) is not None

    # The methods below return the list as saved, or None when saving failed.

    def insert(self, session: MatchSession) -> Optional[list[MatchSession]]:
        with self._write_lock:
            sessions = self.list_sessions()
            if any(s.id == session.id for s in sessions):
                raise DuplicateSessionError(session.id)
            sessions.append(session)
            return self._saved(sessions)

    def replace(self, session: MatchSession) -> Optional[list[MatchSession]]:
        """Whole-record replacement; appends when the id is not stored."""
        with self._write_lock:
            sessions = self.list_sessions()
            for index, existing in enumerate(sessions):
                if existing.id == session.id:
                    sessions[index] = session
                    break
            else:
                sessions.append(session)
            return self._saved(sessions)

    def remove(self, session_id: str) -> Optional[list[MatchSession]]:
        with self._write_lock:
            sessions = self.list_sessions()
            remaining = [s for s in sessions if s.id != session_id]
            if len(remaining) == len(sessions):
                return sessions
            return self._saved(remaining)

    def _saved(self, sessions: list[MatchSession]) -> Optional[list[MatchSession]]:
        return sessions if self.save_sessions(sessions) else None

    def get_settings(self) -> Settings:
        """The login-gate record, created with defaults on first read."""
        raw = self.storage.get(SETTINGS_KEY)
        if raw:
            try:
                return Settings.from_dict(json.loads(raw), self.defaults)
            except (ValueError, TypeError, AttributeError) as e:
                logger.warning(f"Stored settings are unreadable, using defaults: {e}")
                return self.defaults
        self._save_settings(self.defaults)
        return self.defaults

    def update_password(self, role: UserRole, new_value: str) -> bool:
        settings = self.get_settings().with_password(role, new_value)
        return self._save_settings(settings)

    def _save_settings(self, settings: Settings) -> bool:
        try:
            self.storage.set(SETTINGS_KEY, json.dumps(settings.to_dict()))
        except OSError as e:
            logger.error(f"Failed to persist settings: {e}")
            return False
        return True
