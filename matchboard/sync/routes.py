from flask import current_app, jsonify, request

from matchboard.auth.decorators import role_required
from matchboard.core.constants import SYNC_CODE_PARAM
from matchboard.errors import AppError
from matchboard.extensions import get_sync
from matchboard.match.models import UserRole
from matchboard.utils import validate_form

from . import bp
from .forms import JoinForm
from .synchronizer import SyncMode


def share_link(code):
    """Link that puts another device on the same shared bin."""
    if not code:
        return None
    return f"{request.url_root}?{SYNC_CODE_PARAM}={code}"


def _status():
    sync = get_sync()
    code = sync.sync_code
    return {
        "mode": sync.mode.value,
        "code": code,
        "shareLink": share_link(code),
        "publishing": sync.publishing,
        "revision": sync.revision,
    }


@bp.route("", methods=["GET"])
def status():
    return jsonify(_status())


@bp.route("/publish", methods=["POST"])
@role_required(UserRole.ADMIN)
def publish():
    """Create a shared bin from this device's sessions and switch to it."""
    sync = get_sync()
    if sync.mode is SyncMode.DOCUMENT:
        raise AppError("Sessions are already shared through the document store.", 409)
    if sync.publishing:
        raise AppError("Publishing is already in progress.", 409)
    code = sync.publish()
    if not code:
        current_app.logger.error("Shared bin could not be created.")
        raise AppError("Could not create a shared bin. Please try again.", 502)
    return jsonify(_status()), 201


@bp.route("/join", methods=["POST"])
@role_required(UserRole.ADMIN)
def join():
    form = validate_form(JoinForm())
    sync = get_sync()
    if sync.mode is SyncMode.DOCUMENT:
        raise AppError("Sessions are already shared through the document store.", 409)
    synced = sync.join(form.code.data)
    return jsonify(dict(_status(), synced=synced))


@bp.route("", methods=["DELETE"])
@role_required(UserRole.ADMIN)
def leave():
    """Stop following the shared bin and serve local storage."""
    get_sync().clear_sync_code()
    return jsonify(_status())
