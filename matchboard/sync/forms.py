"""Forms for the sync blueprint."""

from flask_wtf import FlaskForm  # type: ignore
from wtforms import StringField
from wtforms.validators import DataRequired, Length


class JoinForm(FlaskForm):
    """Adopt a sync code shared by another device."""

    code = StringField("Sync code", validators=[DataRequired(), Length(max=200)])
