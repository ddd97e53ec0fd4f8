"""Utility functions for the application."""

from flask import jsonify, request

from .errors import ValidationError


def validate_form(form):
    """Validate a submitted form.

    Raises:
        ValidationError: With the first field error, labelled like the field.
    """
    if form.validate_on_submit():
        return form
    for field, errors in form.errors.items():
        for error in errors:
            label = getattr(form, field).label.text if hasattr(form, field) else field
            raise ValidationError(f"Error in {label}: {error}")
    raise ValidationError()


def json_body():
    """The request's JSON object, or an empty dict."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Expected a JSON object.")
    return data


def write_response(session, synced, status_code=200, **extra):
    """Response for a session write; synced=False means the backend refused it."""
    payload = {"status": "ok", "synced": synced, "session": session.to_dict()}
    payload.update(extra)
    return jsonify(payload), status_code
