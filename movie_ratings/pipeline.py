"""
Pipeline entry point called once per new input unit.

Usage (example from an external trigger):
    from movie_ratings.pipeline import build_pipeline

    pipeline = build_pipeline()
    outcome = pipeline.run_file("incoming/ratings.csv")
    notifier.send(outcome.to_notification())

Outcomes are saved to `results/` by default:
- `results/latest.json` (last run)
- `results/run-<timestamp>-<batch_id>.json` (timestamped archive)
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import List, Literal, Optional

from movie_ratings.config import Settings, get_settings
from movie_ratings.domain.models import Batch, PipelineOutcome, PipelineStatus
from movie_ratings.errors import FatalInputFailure, RefreshFailure
from movie_ratings.ingest.reader import CSVBatchReader
from movie_ratings.stages.aggregate import AggregateRefresher
from movie_ratings.stages.load import LoadStage
from movie_ratings.stages.quarantine_router import QuarantineRouter
from movie_ratings.storage.quarantine import QuarantineStore
from movie_ratings.storage.tables import build_table
from movie_ratings.utils.logging import get_logger
from movie_ratings.utils.profiler import profile_block
from movie_ratings.validation.rules import build_default_rules
from movie_ratings.validation.validator import RowValidator

log = get_logger(__name__)

RefreshPolicy = Literal["after_load", "manual"]


def _persist_outcome(outcome: PipelineOutcome, outcomes_dir: Path) -> None:
    outcomes_dir.mkdir(parents=True, exist_ok=True)
    payload = outcome.model_dump(mode="json")
    latest_path = outcomes_dir / "latest.json"
    timestamp = outcome.finished_at.strftime("%Y%m%dT%H%M%S%fZ")
    archive_path = outcomes_dir / f"run-{timestamp}-{outcome.batch_id or 'unread'}.json"

    with latest_path.open("w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, sort_keys=True)
    with archive_path.open("w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, sort_keys=True)

    log.info("Outcome persisted", extra={"latest": str(latest_path), "archive": str(archive_path)})


class RatingsPipeline:
    """
    Validate, route, load, and (per policy) refresh for one batch at a time.

    Batches share no mutable state; the durable table and the aggregate
    snapshot are the only shared resources.
    """

    def __init__(
        self,
        router: QuarantineRouter,
        load_stage: LoadStage,
        refresher: AggregateRefresher,
        refresh_policy: RefreshPolicy = "after_load",
        reader: Optional[CSVBatchReader] = None,
        outcomes_dir: Optional[Path | str] = None,
    ) -> None:
        self.router = router
        self.load_stage = load_stage
        self.refresher = refresher
        self.refresh_policy = refresh_policy
        self.reader = reader or CSVBatchReader()
        self.outcomes_dir = Path(outcomes_dir) if outcomes_dir is not None else None

    def _finish(self, outcome: PipelineOutcome) -> PipelineOutcome:
        log.info(
            f"[BATCH {outcome.status.value.upper()}] {outcome.batch_id}",
            extra=outcome.to_notification() | {"batch_id": outcome.batch_id, "source": outcome.source},
        )
        if self.outcomes_dir is not None:
            _persist_outcome(outcome, self.outcomes_dir)
        return outcome

    def on_new_batch(self, batch: Batch) -> PipelineOutcome:
        log.info(f"[BATCH START] {batch.batch_id}", extra={"batch_id": batch.batch_id, "rows": len(batch)})
        durations = {}

        with profile_block("route") as stats:
            try:
                accepted, rejected, summary = self.router.route(batch)
            except OSError as exc:
                log.exception("Quarantine write failed", extra={"batch_id": batch.batch_id})
                failed = PipelineOutcome(
                    status=PipelineStatus.FAILURE,
                    batch_id=batch.batch_id,
                    source=batch.source,
                    complete=not batch.truncated,
                    error_detail=f"quarantine write failed: {exc}",
                )
                return self._finish(failed)
        durations["route"] = round(stats.duration_seconds, 4)

        problems: List[str] = []
        if batch.truncated:
            problems.append(f"input truncated after {len(batch)} record(s)")

        with profile_block("load") as stats:
            load_result = self.load_stage.load(accepted, batch_id=batch.batch_id)
        durations["load"] = round(stats.duration_seconds, 4)
        if load_result.error is not None:
            problems.append(str(load_result.error))

        refreshed = False
        if self.refresh_policy == "after_load" and load_result.inserted_count:
            with profile_block("refresh") as stats:
                try:
                    self.refresher.refresh_with_retry()
                    refreshed = True
                except RefreshFailure as exc:
                    problems.append(str(exc))
            durations["refresh"] = round(stats.duration_seconds, 4)

        outcome = PipelineOutcome(
            status=PipelineStatus.PARTIAL if problems else PipelineStatus.SUCCESS,
            batch_id=batch.batch_id,
            source=batch.source,
            accepted_count=len(accepted),
            rejected_count=len(rejected),
            inserted_count=load_result.inserted_count,
            failed_count=load_result.failed_count,
            complete=summary.complete,
            refreshed=refreshed,
            error_detail="; ".join(problems) or None,
            rule_failures=summary.failed_counts(),
            durations=durations,
        )
        return self._finish(outcome)

    def run_file(self, path: Path | str) -> PipelineOutcome:
        """Read one input file and process it; unreadable input ends as failure."""
        try:
            batch = self.reader.read_batch(path)
        except FatalInputFailure as exc:
            log.error("Fatal input failure", extra={"source": exc.source, "reason": exc.reason})
            outcome = PipelineOutcome(
                status=PipelineStatus.FAILURE,
                source=exc.source,
                complete=False,
                error_detail=str(exc),
            )
            return self._finish(outcome)
        return self.on_new_batch(batch)

    def close(self) -> None:
        self.load_stage.table.close()


def build_pipeline(
    settings: Optional[Settings] = None,
    backend: Optional[str] = None,
    persist: bool = True,
) -> RatingsPipeline:
    """Wire a pipeline from settings."""
    settings = settings or get_settings()
    table = build_table(backend or settings.storage_backend)
    router = QuarantineRouter(
        validator=RowValidator(build_default_rules(settings)),
        workers=settings.validation_workers,
        quarantine=QuarantineStore(settings.quarantine_dir),
    )
    return RatingsPipeline(
        router=router,
        load_stage=LoadStage(table, timeout_ms=settings.load_timeout_ms),
        refresher=AggregateRefresher(
            table,
            timeout_seconds=settings.refresh_timeout_seconds,
            retry_attempts=settings.refresh_retry_attempts,
        ),
        refresh_policy=settings.refresh_policy,
        outcomes_dir=settings.outcomes_dir if persist else None,
    )


__all__ = ["RatingsPipeline", "RefreshPolicy", "build_pipeline"]
