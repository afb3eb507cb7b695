"""
Row validation rules.

A rule set is a mapping from rule identifier to a predicate over a `Record`.
Rules are independent of each other and of the router; add or remove entries
to change what the gate enforces.
"""

from __future__ import annotations

import math
import numbers
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Dict, Mapping, Optional

from movie_ratings.config import Settings
from movie_ratings.domain.models import Record

Predicate = Callable[[Record], bool]
RuleSet = Mapping[str, Predicate]

RATING_RANGE = "rating_range"
RELEASED_YEAR_RANGE = "released_year_range"
TITLE_NONEMPTY = "title_nonempty"
GENRE_NONEMPTY = "genre_nonempty"


def parse_rating(value: Any) -> Optional[float]:
    """Return a finite float, or None when the value is not a usable number."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
    elif not isinstance(value, (numbers.Real, Decimal)):
        return None
    try:
        number = float(value)
    except (ValueError, OverflowError):
        return None
    return number if math.isfinite(number) else None


def parse_year(value: Any) -> Optional[int]:
    """Return an integral year, or None. Accepts "2013", 2013 and 2013.0."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, (numbers.Real, Decimal)):
        number = parse_rating(value)
        return int(number) if number is not None and number.is_integer() else None
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            number = parse_rating(text)
            if number is not None and number.is_integer():
                return int(number)
            return None
    return None


def non_empty_text(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def rating_in_range(low: float, high: float) -> Predicate:
    def _check(record: Record) -> bool:
        rating = parse_rating(record.rating)
        return rating is not None and low <= rating <= high

    return _check


def released_year_in_range(low: int, leeway: int, today: Callable[[], date] = date.today) -> Predicate:
    """Upper bound follows the calendar: current year plus `leeway`."""

    def _check(record: Record) -> bool:
        year = parse_year(record.released_year)
        return year is not None and low <= year <= today().year + leeway

    return _check


def build_default_rules(
    settings: Settings,
    today: Callable[[], date] = date.today,
) -> Dict[str, Predicate]:
    """
    Build the default rule set from configured bounds. Insertion order is the
    order rules are reported in.
    """
    return {
        RATING_RANGE: rating_in_range(settings.min_rating, settings.max_rating),
        RELEASED_YEAR_RANGE: released_year_in_range(
            settings.min_release_year, settings.release_year_leeway, today
        ),
        TITLE_NONEMPTY: lambda record: non_empty_text(record.title),
        GENRE_NONEMPTY: lambda record: non_empty_text(record.genre),
    }


__all__ = [
    "GENRE_NONEMPTY",
    "Predicate",
    "RATING_RANGE",
    "RELEASED_YEAR_RANGE",
    "RuleSet",
    "TITLE_NONEMPTY",
    "build_default_rules",
    "non_empty_text",
    "parse_rating",
    "parse_year",
    "rating_in_range",
    "released_year_in_range",
]
