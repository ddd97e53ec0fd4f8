"""Decorators for the auth blueprint."""

from functools import wraps

from flask import session

from matchboard.errors import PermissionDeniedError
from matchboard.match.models import UserRole

ROLE_KEY = "role"


def current_role():
    """The role granted to this browser session; GUEST when none."""
    try:
        return UserRole(session.get(ROLE_KEY) or UserRole.GUEST.value)
    except ValueError:
        session.pop(ROLE_KEY, None)
        return UserRole.GUEST


def role_required(*roles):
    """Reject the request unless the session holds one of the given roles.

    Usage:
    @role_required(UserRole.ADMIN)
    def admin_view():
        ...
    """

    def decorator(func):
        @wraps(func)
        def decorated_function(*args, **kwargs):
            if current_role() not in roles:
                raise PermissionDeniedError()
            return func(*args, **kwargs)

        return decorated_function

    return decorator
