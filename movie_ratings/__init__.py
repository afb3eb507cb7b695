"""
Movie ratings quality gate.

Validates incoming movie-rating rows against a rule set, routes failures to
quarantine, appends accepted rows to a durable table, and maintains a
snapshot of movie counts per (released_year, genre):

- Row validation with a pluggable rule registry
- Stable accept/reject partitioning with per-rule outcome summaries
- Append-only loading with per-row failure reporting
- Full-recompute aggregate snapshots with atomic swap
- A structured outcome per batch for an external notifier
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from movie_ratings.config import Settings, get_settings
from movie_ratings.domain.models import (
    AggregateRow,
    Batch,
    LoadResult,
    PipelineOutcome,
    PipelineStatus,
    Record,
    RuleOutcomeSummary,
    Verdict,
)
from movie_ratings.errors import (
    FatalInputFailure,
    PartialIngestFailure,
    PipelineError,
    RefreshFailure,
)
from movie_ratings.pipeline import RatingsPipeline, build_pipeline
from movie_ratings.stages import AggregateRefresher, LoadStage, QuarantineRouter
from movie_ratings.utils.logging import configure_logging, get_logger
from movie_ratings.validation import RowValidator, build_default_rules

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    # Domain
    "AggregateRow",
    "Batch",
    "LoadResult",
    "PipelineOutcome",
    "PipelineStatus",
    "Record",
    "RuleOutcomeSummary",
    "Verdict",
    # Errors
    "FatalInputFailure",
    "PartialIngestFailure",
    "PipelineError",
    "RefreshFailure",
    # Components
    "AggregateRefresher",
    "LoadStage",
    "QuarantineRouter",
    "RatingsPipeline",
    "RowValidator",
    "build_default_rules",
    "build_pipeline",
    # Logging
    "configure_logging",
    "get_logger",
]
