import io

from flask import current_app, jsonify, request, send_file

from matchboard.auth.decorators import role_required
from matchboard.errors import ValidationError
from matchboard.extensions import get_sync
from matchboard.match.models import MatchStatus, UserRole, next_table_number
from matchboard.match.services import SessionService, check_table_numbers
from matchboard.match.spreadsheet import export_report, read_tables
from matchboard.utils import json_body, validate_form, write_response

from . import bp
from .forms import PasswordForm, StatusForm, TableImportForm


@bp.route("/sessions", methods=["POST"])
@role_required(UserRole.ADMIN)
def create_session():
    """Create an OPEN session from a title, roster, tables and scoring."""
    session, synced = SessionService.create_session(get_sync(), json_body())
    current_app.logger.info(f"Created session {session.id} ({session.title})")
    return write_response(session, synced, 201)


@bp.route("/sessions/<string:session_id>", methods=["PUT"])
@role_required(UserRole.ADMIN)
def edit_session(session_id):
    session, synced = SessionService.edit_session(get_sync(), session_id, json_body())
    current_app.logger.info(f"Edited session {session_id}")
    return write_response(session, synced)


@bp.route("/sessions/<string:session_id>", methods=["DELETE"])
@role_required(UserRole.ADMIN)
def delete_session(session_id):
    """Delete immediately; there is no undo."""
    synced = SessionService.delete_session(get_sync(), session_id)
    current_app.logger.info(f"Deleted session {session_id}")
    return jsonify({"status": "ok", "synced": synced})


@bp.route("/sessions/<string:session_id>/status", methods=["POST"])
@role_required(UserRole.ADMIN)
def set_status(session_id):
    form = validate_form(StatusForm())
    status = MatchStatus(form.status.data)
    session, synced = SessionService.set_status(get_sync(), session_id, status)
    current_app.logger.info(f"Session {session_id} is now {status.value}")
    return write_response(session, synced)


@bp.route("/sessions/<string:session_id>/import", methods=["POST"])
@role_required(UserRole.ADMIN)
def import_tables(session_id):
    """Replace a session's tables with an uploaded sheet."""
    form = validate_form(TableImportForm())
    session, synced = SessionService.import_tables(get_sync(), session_id, form.file.data)
    current_app.logger.info(
        f"Imported {len(session.tables)} tables into session {session_id}"
    )
    return write_response(session, synced)


@bp.route("/sessions/<string:session_id>/export")
@role_required(UserRole.ADMIN)
def export_session(session_id):
    """Download the tables or standings report as xlsx or csv."""
    session = SessionService.get_session(get_sync(), session_id)
    report = request.args.get("report", "tables")
    fmt = request.args.get("format", "xlsx")
    try:
        content, mimetype, filename = export_report(session, report, fmt)
    except ValueError as e:
        raise ValidationError(str(e)) from None
    return send_file(
        io.BytesIO(content),
        mimetype=mimetype,
        as_attachment=True,
        download_name=filename,
    )


@bp.route("/tables/import", methods=["POST"])
@role_required(UserRole.ADMIN)
def parse_tables():
    """Parse a sheet for a draft session without saving anything."""
    form = validate_form(TableImportForm())
    upload = form.file.data
    tables = read_tables(upload.stream, upload.filename or "")
    check_table_numbers(tables)
    return jsonify(
        {
            "tables": [t.to_dict() for t in tables],
            "nextTableNumber": next_table_number(tables),
        }
    )


@bp.route("/settings/password", methods=["POST"])
@role_required(UserRole.ADMIN)
def change_password():
    form = validate_form(PasswordForm())
    role = UserRole(form.role.data)
    synced = get_sync().update_password(role, str(form.password.data))
    current_app.logger.info(f"{role.value} password changed")
    return jsonify({"status": "ok", "synced": synced})
