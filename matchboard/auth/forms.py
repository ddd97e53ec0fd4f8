"""Forms for the auth blueprint."""

from flask_wtf import FlaskForm  # type: ignore
from wtforms import PasswordField, SelectField
from wtforms.validators import DataRequired

from matchboard.match.models import UserRole

LOGIN_ROLES = [
    (UserRole.ADMIN.value, "Organizer"),
    (UserRole.REFEREE.value, "Referee"),
]


class LoginForm(FlaskForm):
    """Role login form."""

    role = SelectField("Role", choices=LOGIN_ROLES, validators=[DataRequired()])
    password = PasswordField(
        "Password",
        validators=[DataRequired()],
        render_kw={"autocomplete": "current-password"},
    )
