"""Keeps the in-memory session list consistent with the authoritative backend."""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import TYPE_CHECKING, Callable, Optional

from matchboard.core.constants import (
    SESSIONS_KEY,
    SYNC_CODE_KEY,
    SYNC_INTERVAL_SECONDS,
)
from matchboard.errors import ValidationError
from matchboard.storage.shared_bin import SharedBinStore

if TYPE_CHECKING:
    from matchboard.match.models import MatchSession, UserRole
    from matchboard.storage.base import SessionStore, Settings
    from matchboard.storage.document import DocumentStore
    from matchboard.storage.keyvalue import KeyValueStorage
    from matchboard.storage.local import LocalStore
    from matchboard.storage.shared_bin import SharedBinClient

logger = logging.getLogger(__name__)

SessionsListener = Callable[[list["MatchSession"]], None]


class SyncMode(str, Enum):
    LOCAL = "LOCAL"
    SHARED_BIN = "SHARED_BIN"
    DOCUMENT = "DOCUMENT"


class SessionSynchronizer:
    """Chooses the authoritative backend and mirrors it into a cache.

    Precedence: a configured Document-Store always wins and is followed by
    subscription; otherwise a stored sync code selects the Shared-Bin,
    polled every interval; otherwise the Local-Only store is polled and
    also refreshed on storage-change notifications.

    Conflicts resolve by whole-list replacement: whatever the last poll or
    push delivered becomes the cache. Writes replace whole sessions, so two
    clients editing different tables of one session from stale copies lose
    one of the edits.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        local: LocalStore,
        bin_client: Optional[SharedBinClient] = None,
        document_store: Optional[DocumentStore] = None,
        interval: float = SYNC_INTERVAL_SECONDS,
    ) -> None:
        self.storage = storage
        self.local = local
        self.bin_client = bin_client
        self.document_store = document_store
        self.interval = interval

        self._lock = threading.RLock()
        self._sessions: list[MatchSession] = []
        self._revision = 0
        # Bumped on every mode change and on stop; results fetched under an
        # older generation are dropped.
        self._generation = 0
        self._listeners: list[SessionsListener] = []
        self._publishing = False

        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._unsubscribe_documents: Optional[Callable[[], None]] = None
        self._unsubscribe_storage: Optional[Callable[[], None]] = None

    # ------------------------------------------------------------------
    # Mode selection
    # ------------------------------------------------------------------

    @property
    def sync_code(self) -> Optional[str]:
        if self.document_store is not None:
            return None
        code = (self.storage.get(SYNC_CODE_KEY) or "").strip()
        return code or None

    @property
    def mode(self) -> SyncMode:
        if self.document_store is not None:
            return SyncMode.DOCUMENT
        if self.sync_code and self.bin_client is not None:
            return SyncMode.SHARED_BIN
        return SyncMode.LOCAL

    @property
    def store(self) -> SessionStore:
        """The backend every read and write currently goes to."""
        mode = self.mode
        if mode is SyncMode.DOCUMENT:
            return self.document_store  # type: ignore[return-value]
        if mode is SyncMode.SHARED_BIN:
            return SharedBinStore(self.bin_client, self.sync_code, self.local)  # type: ignore[arg-type]
        return self.local

    @property
    def settings_store(self) -> SessionStore:
        if self.document_store is not None:
            return self.document_store
        return self.local

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def running(self) -> bool:
        return self._thread is not None or self._unsubscribe_documents is not None

    def start(self) -> None:
        """Load once, then subscribe (Document-Store) or start polling."""
        if self.running:
            return
        self._stop.clear()

        if self.document_store is not None:
            with self._lock:
                generation = self._generation
            try:
                self._unsubscribe_documents = self.document_store.subscribe(
                    lambda sessions: self._replace(sessions, generation)
                )
            except Exception as e:
                logger.error(
                    f"Document store subscription failed, falling back to local storage: {e}"
                )
                self.document_store = None
                self._bump_generation()
            else:
                logger.info("Session sync: following document store.")
                self.refresh()
                return

        self._unsubscribe_storage = self.storage.subscribe(self._on_storage_change)
        self.refresh()
        self._thread = threading.Thread(
            target=self._poll, name="session-sync", daemon=True
        )
        self._thread.start()
        logger.info(f"Session sync: polling {self.mode.value} every {self.interval}s.")

    def stop(self) -> None:
        """Tear down the timer and subscriptions; in-flight results are dropped."""
        self._stop.set()
        self._bump_generation()
        if self._unsubscribe_documents is not None:
            self._unsubscribe_documents()
            self._unsubscribe_documents = None
        if self._unsubscribe_storage is not None:
            self._unsubscribe_storage()
            self._unsubscribe_storage = None
        thread, self._thread = self._thread, None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=self.interval + 1)

    def _poll(self) -> None:
        while not self._stop.wait(self.interval):
            try:
                self.refresh()
            except Exception as e:
                logger.error(f"Session sync tick failed: {e}")

    def _on_storage_change(self, key: str) -> None:
        if key in (SESSIONS_KEY, SYNC_CODE_KEY) and self.mode is SyncMode.LOCAL:
            self.refresh()

    def _bump_generation(self) -> None:
        with self._lock:
            self._generation += 1

    # ------------------------------------------------------------------
    # Cache
    # ------------------------------------------------------------------

    @property
    def sessions(self) -> list[MatchSession]:
        with self._lock:
            return list(self._sessions)

    @property
    def revision(self) -> int:
        """Increases every time the cache changes."""
        with self._lock:
            return self._revision

    def get_session(self, session_id: str) -> Optional[MatchSession]:
        with self._lock:
            for session in self._sessions:
                if session.id == session_id:
                    return session
        return None

    def subscribe(self, listener: SessionsListener) -> Callable[[], None]:
        """Observe every cache replacement; returns the unsubscribe callable."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def refresh(self) -> bool:
        """Pull from the authoritative backend once and replace the cache.

        A failed Shared-Bin fetch keeps the current cache.
        """
        with self._lock:
            generation = self._generation
            mode = self.mode
            store = self.store

        if isinstance(store, SharedBinStore):
            sessions = store.fetch()
            if sessions is None:
                return False
        else:
            sessions = store.list_sessions()

        replaced = self._replace(sessions, generation)
        if not replaced:
            logger.info(f"Discarded a {mode.value} refresh that finished after a mode change.")
        return replaced

    def _replace(self, sessions: list[MatchSession], generation: int) -> bool:
        with self._lock:
            if generation != self._generation:
                return False
            self._sessions = list(sessions)
            self._revision += 1
            snapshot = list(self._sessions)
            listeners = list(self._listeners)
        self._notify(listeners, snapshot)
        return True

    def _apply(self, change: Callable[[list[MatchSession]], list[MatchSession]]) -> None:
        with self._lock:
            self._sessions = change(list(self._sessions))
            self._revision += 1
            snapshot = list(self._sessions)
            listeners = list(self._listeners)
        self._notify(listeners, snapshot)

    @staticmethod
    def _notify(listeners: list[SessionsListener], sessions: list[MatchSession]) -> None:
        for listener in listeners:
            try:
                listener(sessions)
            except Exception as e:
                logger.error(f"Session listener failed: {e}")

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def add_session(self, session: MatchSession) -> bool:
        """Write through the active backend, then show it locally right away.

        Returns False when the backend did not take the write; in Shared-Bin
        mode that means the push failed after the local mirror was updated.
        """
        ok = self.store.add_session(session)
        newest_first = self.mode is SyncMode.DOCUMENT

        # A storage notification may already have refreshed it in.
        def change(sessions: list[MatchSession]) -> list[MatchSession]:
            others = [s for s in sessions if s.id != session.id]
            return [session, *others] if newest_first else [*others, session]

        self._apply(change)
        return ok

    def update_session(self, session: MatchSession) -> bool:
        ok = self.store.update_session(session)

        def change(sessions: list[MatchSession]) -> list[MatchSession]:
            for index, existing in enumerate(sessions):
                if existing.id == session.id:
                    sessions[index] = session
                    return sessions
            return [*sessions, session]

        self._apply(change)
        return ok

    def delete_session(self, session_id: str) -> bool:
        ok = self.store.delete_session(session_id)
        self._apply(lambda s: [x for x in s if x.id != session_id])
        return ok

    # ------------------------------------------------------------------
    # Sync code transitions
    # ------------------------------------------------------------------

    @property
    def publishing(self) -> bool:
        return self._publishing

    def publish(self) -> Optional[str]:
        """Seed a new shared bin with the local list and switch to it.

        Returns the new sync code, or None when the bin could not be created
        or a publish is already in flight.
        """
        if self.document_store is not None or self.bin_client is None:
            return None
        with self._lock:
            if self._publishing:
                return None
            self._publishing = True
        try:
            sessions = self.local.list_sessions()
            if not sessions:
                raise ValidationError("Create at least one session before publishing.")
            code = self.bin_client.create(sessions)
            if code:
                self._set_code(code)
                logger.info(f"Published {len(sessions)} sessions to shared bin {code}.")
            return code
        finally:
            with self._lock:
                self._publishing = False

    def join(self, code: str) -> bool:
        """Adopt an existing sync code and pull it immediately."""
        code = (code or "").strip()
        if not code:
            raise ValidationError("Sync code is required.")
        if self.document_store is not None:
            return False
        if code != self.sync_code:
            self._set_code(code)
            logger.info(f"Joined shared bin {code}.")
        return self.refresh()

    def clear_sync_code(self) -> None:
        """Return to Local-Only, serving whatever local storage holds."""
        if self.sync_code is None:
            return
        with self._lock:
            self._generation += 1
            self.storage.remove(SYNC_CODE_KEY)
        logger.info("Cleared sync code; serving local storage.")
        self.refresh()

    def _set_code(self, code: str) -> None:
        with self._lock:
            self._generation += 1
            self.storage.set(SYNC_CODE_KEY, code)

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    def get_settings(self) -> Settings:
        return self.settings_store.get_settings()

    def update_password(self, role: UserRole, new_value: str) -> bool:
        return self.settings_store.update_password(role, new_value)
