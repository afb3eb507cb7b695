"""
Validation package: the rule registry and the row validator.
"""

from movie_ratings.validation.rules import (
    GENRE_NONEMPTY,
    RATING_RANGE,
    RELEASED_YEAR_RANGE,
    TITLE_NONEMPTY,
    RuleSet,
    build_default_rules,
)
from movie_ratings.validation.validator import RowValidator

__all__ = [
    "GENRE_NONEMPTY",
    "RATING_RANGE",
    "RELEASED_YEAR_RANGE",
    "TITLE_NONEMPTY",
    "RowValidator",
    "RuleSet",
    "build_default_rules",
]
