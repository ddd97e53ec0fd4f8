"""Flask extensions for the application."""

from __future__ import annotations

from typing import TYPE_CHECKING

from flask import current_app
from flask_wtf.csrf import CSRFProtect

if TYPE_CHECKING:
    from matchboard.sync.synchronizer import SessionSynchronizer

SYNC_EXTENSION = "matchboard.sync"

csrf = CSRFProtect()


def get_sync() -> SessionSynchronizer:
    """The synchronizer owned by the current app."""
    return current_app.extensions[SYNC_EXTENSION]
