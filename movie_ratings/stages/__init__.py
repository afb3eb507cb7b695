"""
Pipeline stages: routing, loading, and aggregate refresh.
"""

from movie_ratings.stages.aggregate import AggregateRefresher, AggregateSnapshot
from movie_ratings.stages.load import LoadStage, to_rating_row
from movie_ratings.stages.quarantine_router import QuarantineRouter

__all__ = [
    "AggregateRefresher",
    "AggregateSnapshot",
    "LoadStage",
    "QuarantineRouter",
    "to_rating_row",
]
