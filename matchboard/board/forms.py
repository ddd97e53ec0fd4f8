"""Forms for the board blueprint."""

from flask_wtf import FlaskForm  # type: ignore
from wtforms import StringField, ValidationError
from wtforms.validators import DataRequired

from matchboard.match.models import GameResult


class ResultField(StringField):
    """A result given either as its wire value or its display label."""

    def parse(self):
        return GameResult.parse(self.data)


def validate_result_value(form, field):
    if not field.data:
        return
    try:
        GameResult.parse(field.data)
    except ValueError as e:
        raise ValidationError(str(e)) from None


class CorrectionForm(FlaskForm):
    """Board correction of a single table; any result, PENDING included."""

    result = ResultField("Result", validators=[DataRequired(), validate_result_value])
