"""Persistence backends for sessions and the login-gate settings."""

from .base import SessionStore, Settings
from .document import DocumentStore
from .keyvalue import KeyValueStorage
from .local import LocalStore
from .shared_bin import SharedBinClient, SharedBinStore

__all__ = [
    "DocumentStore",
    "KeyValueStorage",
    "LocalStore",
    "SessionStore",
    "Settings",
    "SharedBinClient",
    "SharedBinStore",
]
