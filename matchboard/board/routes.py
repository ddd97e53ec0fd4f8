from flask import current_app, jsonify

from matchboard.auth.decorators import current_role, role_required
from matchboard.extensions import get_sync
from matchboard.match.models import UserRole, next_table_number
from matchboard.match.scoring import aggregate, completed_tables
from matchboard.match.services import SessionService
from matchboard.utils import validate_form, write_response

from . import bp
from .forms import CorrectionForm


def _standings(session):
    return [score.to_dict() for score in aggregate(session)]


@bp.route("/sessions")
def list_sessions():
    """Every session known to the cache, with the cache revision."""
    sync = get_sync()
    return jsonify(
        {
            "sessions": [s.to_dict() for s in sync.sessions],
            "revision": sync.revision,
            "mode": sync.mode.value,
        }
    )


@bp.route("/sessions/<string:session_id>")
def view_session(session_id):
    """One session as the board renders it: sorted tables, results, standings."""
    session = SessionService.get_session(get_sync(), session_id)
    data = session.to_dict()
    data["tables"] = [t.to_dict() for t in session.sorted_tables()]
    return jsonify(
        {
            "session": data,
            "completed": [t.to_dict() for t in completed_tables(session)],
            "standings": _standings(session),
            "nextTableNumber": next_table_number(session.tables),
            "role": current_role().value,
        }
    )


@bp.route("/sessions/<string:session_id>/standings")
def standings(session_id):
    session = SessionService.get_session(get_sync(), session_id)
    return jsonify({"sessionId": session.id, "standings": _standings(session)})


@bp.route("/sessions/<string:session_id>/tables/<int:table_number>", methods=["POST"])
@role_required(UserRole.ADMIN, UserRole.REFEREE)
def correct_table(session_id, table_number):
    """Overwrite one table's result from the board."""
    form = validate_form(CorrectionForm())
    role = current_role()
    result = form.result.parse()
    session, synced = SessionService.correct_result(
        get_sync(), session_id, table_number, result, role
    )
    current_app.logger.info(
        f"{role.value} set table {table_number} of session {session_id} to {result.value}"
    )
    return write_response(session, synced)
