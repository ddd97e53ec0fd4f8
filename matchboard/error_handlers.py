from flask import Blueprint, current_app, jsonify
from flask_wtf.csrf import CSRFError

from .errors import AppError, DuplicateResourceError, NotFoundError, ValidationError

error_handlers_bp = Blueprint("error_handlers", __name__)


def _error(message, status_code):
    return jsonify({"status": "error", "message": message}), status_code


@error_handlers_bp.app_errorhandler(ValidationError)
def handle_validation_error(error):
    """Handles validation errors with a JSON body."""
    current_app.logger.warning(f"Validation Error: {error.message}")
    return _error(error.message, error.status_code)


@error_handlers_bp.app_errorhandler(DuplicateResourceError)
def handle_duplicate_resource_error(error):
    """Handles duplicate resource errors."""
    current_app.logger.warning(f"Duplicate Resource Error: {error.message}")
    return _error(error.message, error.status_code)


@error_handlers_bp.app_errorhandler(NotFoundError)
def handle_not_found_error(error):
    """Handles not found errors."""
    current_app.logger.warning(f"Not Found Error: {error.message}")
    return _error(error.message, error.status_code)


@error_handlers_bp.app_errorhandler(AppError)
def handle_app_error(error):
    """Handles generic application errors."""
    current_app.logger.error(f"Application Error: {error.message}")
    return _error(error.message, error.status_code)


@error_handlers_bp.app_errorhandler(404)
def handle_404(e):
    """Handles generic 404 errors for routes that don't exist."""
    return _error("Not found.", 404)


@error_handlers_bp.app_errorhandler(405)
def handle_405(e):
    return _error("Method not allowed.", 405)


@error_handlers_bp.app_errorhandler(500)
def handle_500(e):
    """Handles unexpected server errors."""
    current_app.logger.error(f"Internal Server Error: {e}")
    return _error("An unexpected error occurred.", 500)


@error_handlers_bp.app_errorhandler(CSRFError)
def handle_csrf_error(e):
    """
    Handles CSRF errors, which usually mean the page sat open past the token's lifetime.
    """
    current_app.logger.warning(f"CSRF Error: {e.description}")
    return _error("Your session may have expired. Please try your action again.", 400)
