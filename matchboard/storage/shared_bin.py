"""Shared-Bin backend: the session list mirrored to a remote JSON blob."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable, Optional

import requests

from matchboard.match.models import MatchSession

if TYPE_CHECKING:
    from matchboard.match.models import UserRole

    from .base import Settings
    from .local import LocalStore

logger = logging.getLogger(__name__)


def sessions_from_payload(payload: Any) -> Optional[list[MatchSession]]:
    """Decode a bin body; None when it does not hold a session list."""
    items = payload.get("sessions") if isinstance(payload, dict) else payload
    if not isinstance(items, list):
        return None
    try:
        return [MatchSession.from_dict(item) for item in items]
    except (ValueError, TypeError, KeyError, AttributeError) as e:
        logger.warning(f"Malformed session in shared bin: {e}")
        return None


class SharedBinClient:
    """HTTP client for a JSON blob service addressed by sync code.

    Every method fails soft: network and decoding errors come back as
    None/False and are logged, never raised.
    """

    def __init__(
        self,
        base_url: str,
        timeout: Optional[float] = None,
        http: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.http = http or requests.Session()

    def _url(self, code: str) -> str:
        return f"{self.base_url}/{code}"

    @staticmethod
    def _body(sessions: list[MatchSession]) -> dict[str, Any]:
        return {"sessions": [s.to_dict() for s in sessions]}

    def create(self, sessions: list[MatchSession]) -> Optional[str]:
        """Create a new bin seeded with sessions; returns its sync code."""
        try:
            resp = self.http.post(
                self.base_url,
                json=self._body(sessions),
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
            resp.raise_for_status()
        except requests.RequestException as e:
            logger.error(f"Failed to create shared bin: {e}")
            return None

        location = resp.headers.get("Location")
        if location:
            return location.rstrip("/").rsplit("/", 1)[-1]
        try:
            data = resp.json()
        except ValueError:
            data = None
        if isinstance(data, dict):
            code = data.get("id") or (data.get("metadata") or {}).get("id")
            if code:
                return str(code)
        logger.error("Shared bin created but the service returned no id.")
        return None

    def fetch(self, code: str) -> Optional[list[MatchSession]]:
        """Latest remote snapshot, or None when it cannot be read."""
        try:
            resp = self.http.get(
                self._url(code),
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
            resp.raise_for_status()
            payload = resp.json()
        except requests.RequestException as e:
            logger.warning(f"Failed to fetch shared bin {code}: {e}")
            return None
        except ValueError as e:
            logger.warning(f"Shared bin {code} is not JSON: {e}")
            return None
        return sessions_from_payload(payload)

    def push(self, code: str, sessions: list[MatchSession]) -> bool:
        """Overwrite the remote blob with the entire list."""
        try:
            resp = self.http.put(
                self._url(code),
                json=self._body(sessions),
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
            resp.raise_for_status()
        except requests.RequestException as e:
            logger.error(f"Failed to push shared bin {code}: {e}")
            return False
        return True


class SharedBinStore:
    """Mutations land in the local mirror, then the whole list is pushed.

    Reads pull the remote snapshot and refresh the mirror with it, so
    leaving Shared-Bin mode falls back to the last list seen here. Both
    paths hold the mirror's write lock, so a poll cannot interleave with a
    write and its push.
    """

    def __init__(self, client: SharedBinClient, code: str, local: LocalStore) -> None:
        self.client = client
        self.code = code
        self.local = local

    def fetch(self) -> Optional[list[MatchSession]]:
        """Remote snapshot (None on failure); a success replaces the mirror."""
        with self.local.write_lock:
            sessions = self.client.fetch(self.code)
            if sessions is not None:
                self.local.save_sessions(sessions)
        return sessions

    def list_sessions(self) -> list[MatchSession]:
        return self.fetch() or []

    def _push(self, mutate: Callable[[], Optional[list[MatchSession]]]) -> bool:
        with self.local.write_lock:
            sessions = mutate()
            if sessions is None:
                return False
            return self.client.push(self.code, sessions)

    def add_session(self, session: MatchSession) -> bool:
        return self._push(lambda: self.local.insert(session))

    def update_session(self, session: MatchSession) -> bool:
        return self._push(lambda: self.local.replace(session))

    def delete_session(self, session_id: str) -> bool:
        return self._push(lambda: self.local.remove(session_id))

    def get_settings(self) -> Settings:
        return self.local.get_settings()

    def update_password(self, role: UserRole, new_value: str) -> bool:
        return self.local.update_password(role, new_value)
