"""Forms for the admin blueprint."""

from flask_wtf import FlaskForm  # type: ignore
from flask_wtf.file import FileAllowed, FileField, FileRequired
from wtforms import PasswordField, SelectField
from wtforms.validators import DataRequired

from matchboard.auth.forms import LOGIN_ROLES
from matchboard.core.constants import IMPORT_EXTENSIONS
from matchboard.match.models import MatchStatus


class StatusForm(FlaskForm):
    """Open or close a session for reporting."""

    status = SelectField(
        "Status",
        choices=[(s.value, s.value) for s in MatchStatus],
        validators=[DataRequired()],
    )


class TableImportForm(FlaskForm):
    """Spreadsheet upload of table pairings."""

    file = FileField(
        "Table sheet",
        validators=[
            FileRequired(),
            FileAllowed(list(IMPORT_EXTENSIONS), "Excel or CSV files only!"),
        ],
    )


class PasswordForm(FlaskForm):
    """Change the shared password of one role."""

    role = SelectField("Role", choices=LOGIN_ROLES, validators=[DataRequired()])
    password = PasswordField(
        "New Password",
        validators=[DataRequired()],
        render_kw={"autocomplete": "new-password"},
    )
