"""
Utilities package for the movie ratings quality gate.

Exports shared helpers for logging and profiling. Keep this package free of
domain-specific logic.
"""

from movie_ratings.utils.logging import configure_logging, get_logger
from movie_ratings.utils.profiler import ProfileStats, profile_block

__all__ = [
    "configure_logging",
    "get_logger",
    "ProfileStats",
    "profile_block",
]
