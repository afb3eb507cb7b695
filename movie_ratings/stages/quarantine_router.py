"""
Quarantine router: split a batch into accepted and rejected records.

Validation is a parallel map followed by an ordered reassembly, so both output
streams keep the relative order of the input batch and can be correlated with
source line numbers.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional

from movie_ratings.domain.models import (
    Batch,
    Record,
    RouteResult,
    RuleOutcome,
    RuleOutcomeSummary,
    Verdict,
)
from movie_ratings.storage.quarantine import QuarantineStore
from movie_ratings.utils.logging import get_logger
from movie_ratings.validation.validator import RowValidator

log = get_logger(__name__)


class QuarantineRouter:
    """
    Partition batches by validator verdict and summarize rule outcomes.

    Parameters
    ----------
    validator : RowValidator | None
        Validator to apply (default rule set when omitted).
    workers : int
        Number of validation threads. 1 validates inline.
    quarantine : QuarantineStore | None
        When set, rejected records and the summary are persisted per batch.
    """

    def __init__(
        self,
        validator: Optional[RowValidator] = None,
        workers: int = 1,
        quarantine: Optional[QuarantineStore] = None,
    ) -> None:
        self.validator = validator or RowValidator()
        self.workers = max(workers, 1)
        self.quarantine = quarantine

    def _validate_all(self, records: tuple[Record, ...]) -> List[Verdict]:
        if self.workers == 1 or len(records) < 2:
            return [self.validator.validate(record) for record in records]
        # Executor.map yields results in submission order.
        with ThreadPoolExecutor(max_workers=self.workers) as pool:
            return list(pool.map(self.validator.validate, records))

    def route(self, batch: Batch) -> RouteResult:
        verdicts = self._validate_all(batch.records)

        rule_ids = self.validator.rule_ids
        failed: Dict[str, int] = {rule_id: 0 for rule_id in rule_ids}
        accepted: List[Record] = []
        rejected: List[Verdict] = []
        for verdict in verdicts:
            if verdict.passed:
                accepted.append(verdict.record)
                continue
            rejected.append(verdict)
            for rule_id in verdict.failed_rules:
                failed[rule_id] = failed.get(rule_id, 0) + 1

        total = len(verdicts)
        summary = RuleOutcomeSummary(
            batch_id=batch.batch_id,
            total_records=total,
            complete=not batch.truncated,
            outcomes=tuple(
                RuleOutcome(rule=rule_id, passed=total - count, failed=count)
                for rule_id, count in failed.items()
            ),
        )
        result = RouteResult(accepted=tuple(accepted), rejected=tuple(rejected), summary=summary)

        log.info(
            "Batch routed",
            extra={
                "batch_id": batch.batch_id,
                "accepted": len(accepted),
                "rejected": len(rejected),
                "complete": summary.complete,
                "rule_failures": summary.failed_counts(),
            },
        )

        if self.quarantine is not None:
            self.quarantine.write(batch.batch_id, result.rejected, summary)

        return result


__all__ = ["QuarantineRouter"]
