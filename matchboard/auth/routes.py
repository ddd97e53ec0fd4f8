import hmac

from flask import current_app, jsonify, session
from flask_wtf.csrf import generate_csrf

from matchboard.errors import AppError
from matchboard.extensions import get_sync
from matchboard.match.models import UserRole
from matchboard.utils import validate_form

from . import bp
from .decorators import ROLE_KEY, current_role
from .forms import LoginForm


@bp.route("/login", methods=["POST"])
def login():
    """Grant ADMIN or REFEREE when the password matches the shared settings."""
    form = validate_form(LoginForm())
    role = UserRole(form.role.data)
    expected = get_sync().get_settings().password_for(role) or ""
    if not hmac.compare_digest(str(form.password.data).encode(), expected.encode()):
        current_app.logger.warning(f"Failed {role.value} login attempt.")
        raise AppError("Incorrect password.", 401)

    # Non-permanent: the role ends with the browser session.
    session.permanent = False
    session[ROLE_KEY] = role.value
    current_app.logger.info(f"{role.value} logged in.")
    return jsonify({"status": "ok", "role": role.value})


@bp.route("/logout", methods=["POST"])
def logout():
    """Return to GUEST."""
    session.pop(ROLE_KEY, None)
    return jsonify({"status": "ok", "role": UserRole.GUEST.value})


@bp.route("/whoami")
def whoami():
    return jsonify({"role": current_role().value})


@bp.route("/csrf")
def csrf_token():
    """Token for the X-CSRFToken header on state-changing requests."""
    return jsonify({"csrfToken": generate_csrf()})
