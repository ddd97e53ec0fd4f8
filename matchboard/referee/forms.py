"""Forms for the referee blueprint."""

from flask_wtf import FlaskForm  # type: ignore
from wtforms import IntegerField, StringField
from wtforms.validators import Length, Optional

from matchboard.board.forms import ResultField, validate_result_value


class ResultForm(FlaskForm):
    """A referee's report for one table.

    Only types are checked here; required fields are checked in reporting
    order by the service so the first missing step is the one reported.
    """

    tableNumber = IntegerField("Table", validators=[Optional()])  # noqa: N815
    result = ResultField("Result", validators=[Optional(), validate_result_value])
    refereeName = StringField("Referee", validators=[Optional()])  # noqa: N815


class RefereeNameForm(FlaskForm):
    """The name this device reports under."""

    refereeName = StringField("Referee", validators=[Length(max=100)])  # noqa: N815
