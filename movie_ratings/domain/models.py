"""
Domain models for the movie ratings quality gate.

`Record` holds raw values exactly as read so that malformed input can be
classified instead of rejected at parse time. Everything produced from a
record (verdicts, summaries, load results, outcomes) is frozen as well.
"""
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, FrozenSet, NamedTuple, Optional, Tuple

from pydantic import BaseModel, Field

from movie_ratings.errors import PartialIngestFailure

_FROZEN = {"frozen": True, "populate_by_name": True, "arbitrary_types_allowed": False}


class Record(BaseModel):
    """
    One movie-rating entry as read from input. Never coerced, only classified.
    """

    title: Any = Field(None, description="Movie title (text, required).")
    released_year: Any = Field(None, alias="year", description="Release year.")
    genre: Any = Field(None, description="Genre label (text, required).")
    rating: Any = Field(None, description="Rating on a 0-10 scale.")
    line_number: Optional[int] = Field(None, description="Source line, for audits.")
    extra: Dict[str, Any] = Field(default_factory=dict, description="Unused input columns.")

    model_config = _FROZEN


class Verdict(BaseModel):
    """
    Result of validating one record: which rules failed.
    """

    record: Record
    failed_rules: FrozenSet[str] = Field(default_factory=frozenset)

    model_config = _FROZEN

    @property
    def passed(self) -> bool:
        return not self.failed_rules


def new_batch_id() -> str:
    return uuid.uuid4().hex[:16]


class Batch(BaseModel):
    """
    Ordered records from one input unit. `truncated` marks a stream that ended
    mid-row; its records are still routed.
    """

    batch_id: str = Field(default_factory=new_batch_id)
    source: Optional[str] = None
    records: Tuple[Record, ...] = ()
    truncated: bool = False

    model_config = _FROZEN

    def __len__(self) -> int:
        return len(self.records)


class RuleOutcome(BaseModel):
    rule: str
    passed: int = 0
    failed: int = 0

    model_config = _FROZEN


class RuleOutcomeSummary(BaseModel):
    """
    Per-rule pass/fail counts for one batch.
    """

    batch_id: str
    total_records: int
    complete: bool = True
    outcomes: Tuple[RuleOutcome, ...] = ()
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = _FROZEN

    def for_rule(self, rule: str) -> RuleOutcome:
        for outcome in self.outcomes:
            if outcome.rule == rule:
                return outcome
        raise KeyError(rule)

    def failed_counts(self) -> Dict[str, int]:
        return {outcome.rule: outcome.failed for outcome in self.outcomes}


class RouteResult(NamedTuple):
    """Stable partition of a batch plus its rule summary."""

    accepted: Tuple[Record, ...]
    rejected: Tuple[Verdict, ...]
    summary: RuleOutcomeSummary


class RatingRow(BaseModel):
    """
    Typed durable-table row built from an accepted record.
    """

    title: str
    released_year: int
    genre: str
    rating: float

    model_config = _FROZEN


class LoadResult(BaseModel):
    """
    Outcome of appending accepted records. `retryable` holds exactly the records
    that were not committed, in input order.
    """

    inserted_count: int = 0
    failed_count: int = 0
    retryable: Tuple[Record, ...] = ()
    errors: Tuple[str, ...] = ()

    model_config = _FROZEN

    @property
    def error(self) -> Optional[PartialIngestFailure]:
        if not self.failed_count:
            return None
        return PartialIngestFailure(self.failed_count, self.errors)


class AggregateRow(BaseModel):
    released_year: int
    genre: str
    movie_count: int

    model_config = _FROZEN


class PipelineStatus(str, Enum):
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILURE = "failure"


class PipelineOutcome(BaseModel):
    """
    Structured result of one pipeline invocation, handed to the notifier.
    """

    status: PipelineStatus
    batch_id: Optional[str] = None
    source: Optional[str] = None
    accepted_count: int = 0
    rejected_count: int = 0
    inserted_count: int = 0
    failed_count: int = 0
    complete: bool = True
    refreshed: bool = False
    error_detail: Optional[str] = None
    rule_failures: Dict[str, int] = Field(default_factory=dict)
    durations: Dict[str, float] = Field(default_factory=dict)
    finished_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = _FROZEN

    def to_notification(self) -> Dict[str, Any]:
        """Payload for the external notification channel."""
        payload: Dict[str, Any] = {
            "status": self.status.value,
            "accepted_count": self.accepted_count,
            "rejected_count": self.rejected_count,
        }
        if self.error_detail:
            payload["error_detail"] = self.error_detail
        return payload


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
