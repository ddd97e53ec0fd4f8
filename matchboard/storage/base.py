"""The contract every persistence backend satisfies."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional, Protocol

from matchboard.core.constants import DEFAULT_ADMIN_PASSWORD, DEFAULT_REFEREE_PASSWORD
from matchboard.match.models import UserRole

if TYPE_CHECKING:
    from matchboard.core.types import SettingsDocument
    from matchboard.match.models import MatchSession


@dataclass(frozen=True)
class Settings:
    """Plaintext strings compared by the login gate."""

    admin_password: str = DEFAULT_ADMIN_PASSWORD
    referee_password: str = DEFAULT_REFEREE_PASSWORD

    def password_for(self, role: UserRole) -> Optional[str]:
        if role is UserRole.ADMIN:
            return self.admin_password
        if role is UserRole.REFEREE:
            return self.referee_password
        return None

    def with_password(self, role: UserRole, value: str) -> Settings:
        if role is UserRole.ADMIN:
            return Settings(admin_password=value, referee_password=self.referee_password)
        if role is UserRole.REFEREE:
            return Settings(admin_password=self.admin_password, referee_password=value)
        raise ValueError(f"Role {role.value} has no password.")

    @classmethod
    def from_dict(cls, data: dict[str, Any], defaults: Settings) -> Settings:
        return cls(
            admin_password=data.get("adminPassword") or defaults.admin_password,
            referee_password=data.get("refereePassword") or defaults.referee_password,
        )

    def to_dict(self) -> SettingsDocument:
        return {
            "adminPassword": self.admin_password,
            "refereePassword": self.referee_password,
        }


class SessionStore(Protocol):
    """CRUD + read-all over sessions, plus the shared settings record.

    Reads never raise on I/O failure (they return an empty list); writes
    report I/O failure by returning False. add_session raises
    DuplicateSessionError rather than overwrite.
    """

    def list_sessions(self) -> list[MatchSession]: ...

    def add_session(self, session: MatchSession) -> bool: ...

    def update_session(self, session: MatchSession) -> bool: ...

    def delete_session(self, session_id: str) -> bool: ...

    def get_settings(self) -> Settings: ...

    def update_password(self, role: UserRole, new_value: str) -> bool: ...
