"""
Domain package for the movie ratings quality gate.

Exports the data definitions shared by the validator, router, stages, and
pipeline. Keep this package free of I/O.
"""

from movie_ratings.domain.models import (
    AggregateRow,
    Batch,
    LoadResult,
    PipelineOutcome,
    PipelineStatus,
    RatingRow,
    Record,
    RouteResult,
    RuleOutcome,
    RuleOutcomeSummary,
    Verdict,
    new_batch_id,
)

__all__ = [
    "AggregateRow",
    "Batch",
    "LoadResult",
    "PipelineOutcome",
    "PipelineStatus",
    "RatingRow",
    "Record",
    "RouteResult",
    "RuleOutcome",
    "RuleOutcomeSummary",
    "Verdict",
    "new_batch_id",
]
