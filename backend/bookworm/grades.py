"""Grade level parsing and display.

Grades are stored as integers where ``0`` means kindergarten.  Parents
type ``"K"`` for kindergarten, so input and display go through these
helpers.
"""

from bookworm.errors import ValidationError

KINDERGARTEN = 0
MIN_GRADE = 0
MAX_GRADE = 12


def parse_grade_level(value: str | int) -> int:
    """Convert user input such as ``"K"`` or ``"3"`` to a stored grade."""

    if isinstance(value, bool):
        raise ValidationError("Please enter a grade level")
    if isinstance(value, int):
        grade = value
    else:
        text = str(value).strip().upper()
        if not text:
            raise ValidationError("Please enter a grade level")
        if text == "K":
            return KINDERGARTEN
        try:
            grade = int(text)
        except ValueError:
            raise ValidationError(
                "Please enter a valid grade level (K or 1-12)"
            ) from None
    if grade < MIN_GRADE or grade > MAX_GRADE:
        raise ValidationError("Please enter a valid grade level (K or 1-12)")
    return grade


def format_grade_level(grade: int) -> str:
    return "K" if grade == KINDERGARTEN else str(grade)
