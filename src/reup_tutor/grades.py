"""Letter grade scale shared by every grade shown in the app."""
from typing import Optional

NO_GRADE = "N/A"

GRADE_VALUES = {
    "A+": 4.3, "A": 4.0, "A-": 3.7,
    "B+": 3.3, "B": 3.0, "B-": 2.7,
    "C+": 2.3, "C": 2.0, "C-": 1.7,
    "D+": 1.3, "D": 1.0, "D-": 0.7,
    "F": 0.0,
}

# Lower bound of each letter, highest first.
LETTER_THRESHOLDS = [
    (4.15, "A+"), (3.85, "A"), (3.5, "A-"),
    (3.15, "B+"), (2.85, "B"), (2.5, "B-"),
    (2.15, "C+"), (1.85, "C"), (1.5, "C-"),
    (1.15, "D+"), (0.85, "D"), (0.5, "D-"),
]


def numeric_grade(grade: str) -> float:
    """Numeric value of a letter grade. Unknown grades count as F."""
    return GRADE_VALUES.get((grade or "").strip().upper(), 0.0)


def letter_grade(value: Optional[float]) -> str:
    if value is None:
        return NO_GRADE
    for threshold, letter in LETTER_THRESHOLDS:
        if value >= threshold:
            return letter
    return "F"


def average(values: list[float]) -> Optional[float]:
    if not values:
        return None
    return sum(values) / len(values)


def get_grade_color(grade: str) -> str:
    if grade.startswith("A"):
        return "green"
    elif grade.startswith("B"):
        return "yellow"
    elif grade.startswith("C"):
        return "dark_orange"
    elif grade == NO_GRADE:
        return "dim"
    return "red"
