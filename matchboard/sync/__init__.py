"""Session synchronization across devices."""

from flask import Blueprint

from .synchronizer import SessionSynchronizer, SyncMode

bp = Blueprint("sync", __name__, url_prefix="/sync")

from . import routes  # noqa: E402

__all__ = ["SessionSynchronizer", "SyncMode", "routes"]
