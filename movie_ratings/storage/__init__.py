"""
Storage package: durable ratings tables and quarantine storage.
"""

from movie_ratings.storage.quarantine import QuarantineStore
from movie_ratings.storage.tables import (
    InMemoryRatingsTable,
    PostgresRatingsTable,
    RatingsTable,
    available_backends,
    build_table,
)

__all__ = [
    "InMemoryRatingsTable",
    "PostgresRatingsTable",
    "QuarantineStore",
    "RatingsTable",
    "available_backends",
    "build_table",
]
