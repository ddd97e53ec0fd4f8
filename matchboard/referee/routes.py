from flask import current_app, jsonify, session

from matchboard.auth.decorators import role_required
from matchboard.extensions import get_sync
from matchboard.match.models import GameResult, UserRole
from matchboard.match.services import SessionService
from matchboard.utils import validate_form, write_response

from . import bp
from .forms import RefereeNameForm, ResultForm

# Kept in the browser's session cookie, beside the role.
REFEREE_NAME_KEY = "refereeName"


def remembered_name():
    return session.get(REFEREE_NAME_KEY) or None


def remember_name(name):
    if name:
        session[REFEREE_NAME_KEY] = name
    else:
        session.pop(REFEREE_NAME_KEY, None)


@bp.route("/sessions/<string:session_id>/results", methods=["POST"])
@role_required(UserRole.REFEREE, UserRole.ADMIN)
def submit_result(session_id):
    """Report a table's result as a roster referee."""
    form = validate_form(ResultForm())
    referee_name = (form.refereeName.data or "").strip() or remembered_name() or ""
    result = form.result.parse() if form.result.data else GameResult.PENDING

    match_session, synced = SessionService.submit_result(
        get_sync(), session_id, form.tableNumber.data, result, referee_name
    )
    remember_name(referee_name)
    current_app.logger.info(
        f"Referee {referee_name} reported table {form.tableNumber.data} "
        f"of session {session_id} as {result.value}"
    )
    return write_response(match_session, synced)


@bp.route("/me", methods=["GET"])
def whoami():
    """The referee name remembered for this browser."""
    return jsonify({"refereeName": remembered_name()})


@bp.route("/me", methods=["PUT"])
def remember():
    form = validate_form(RefereeNameForm())
    name = (form.refereeName.data or "").strip()
    remember_name(name)
    return jsonify({"status": "ok", "refereeName": name or None})
