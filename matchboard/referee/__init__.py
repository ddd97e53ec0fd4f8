"""The referee blueprint."""

from flask import Blueprint

bp = Blueprint("referee", __name__, url_prefix="/referee")

from . import routes  # noqa: E402

__all__ = ["routes"]
