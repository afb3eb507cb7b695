"""
Aggregate refresh stage: movie counts per (released_year, genre).

The summary is recomputed from the durable table in full and published as a
new immutable snapshot by a single reference assignment. Readers take whatever
snapshot is current and never wait on a refresh. At most one recompute runs at
a time. A caller only reuses a recompute that started after it called; one
that arrives while an older recompute is running waits for it to end and then
starts (or joins) a fresh one, so rows committed before the call are counted.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from movie_ratings.config import get_settings
from movie_ratings.domain.models import AggregateRow
from movie_ratings.errors import RefreshFailure, TableUnavailableError
from movie_ratings.storage.tables import RatingsTable
from movie_ratings.utils.logging import get_logger

log = get_logger(__name__)


@dataclass(frozen=True)
class AggregateSnapshot:
    rows: Tuple[AggregateRow, ...] = ()
    refreshed_at: Optional[datetime] = None
    generation: int = 0


class AggregateRefresher:
    """
    Maintain the (released_year, genre) count snapshot.

    Parameters
    ----------
    table : RatingsTable
        Durable table the counts are computed from.
    timeout_seconds : float | None
        Default refresh timeout (settings value when omitted). Applied both to
        waiting on an in-flight refresh and to the backend query.
    retry_attempts : int | None
        Attempts made by `refresh_with_retry` (settings value when omitted).
    retry_wait_seconds : float
        Base of the exponential backoff between attempts.
    """

    # Outcomes of recent runs, looked up by joining callers.
    _KEPT_OUTCOMES = 32

    def __init__(
        self,
        table: RatingsTable,
        timeout_seconds: Optional[float] = None,
        retry_attempts: Optional[int] = None,
        retry_wait_seconds: float = 1.0,
    ) -> None:
        settings = get_settings()
        self.table = table
        self.timeout_seconds = (
            timeout_seconds if timeout_seconds is not None else settings.refresh_timeout_seconds
        )
        self.retry_attempts = retry_attempts if retry_attempts is not None else settings.refresh_retry_attempts
        self.retry_wait_seconds = retry_wait_seconds
        self.recompute_count = 0
        self._snapshot = AggregateSnapshot()
        self._cond = threading.Condition()
        self._running = False
        self._started = 0
        self._finished = 0
        self._outcomes: Dict[int, Optional[RefreshFailure]] = {}

    @property
    def snapshot(self) -> AggregateSnapshot:
        return self._snapshot

    def _recompute(self, timeout: float) -> None:
        self.recompute_count += 1
        try:
            groups = self.table.count_by_year_genre(timeout_ms=int(timeout * 1000))
        except TableUnavailableError as exc:
            log.error("Aggregate refresh failed; previous snapshot kept", extra={"error": str(exc)})
            raise RefreshFailure(f"aggregate recompute failed: {exc}") from exc

        rows = tuple(
            sorted(
                (AggregateRow(released_year=year, genre=genre, movie_count=count) for year, genre, count in groups),
                key=lambda row: (row.released_year, row.genre),
            )
        )
        previous = self._snapshot
        self._snapshot = AggregateSnapshot(
            rows=rows,
            refreshed_at=datetime.now(timezone.utc),
            generation=previous.generation + 1,
        )
        log.info(
            "Aggregate snapshot published",
            extra={"groups": len(rows), "generation": self._snapshot.generation},
        )

    def _wait(self, predicate, deadline: float, timeout: float) -> None:
        """Wait on the condition (lock held) until `predicate` holds or the deadline passes."""
        if not self._cond.wait_for(predicate, timeout=max(deadline - time.monotonic(), 0.0)):
            raise RefreshFailure(f"timed out after {timeout}s waiting for in-flight refresh")

    def refresh(self, timeout: Optional[float] = None) -> None:
        """
        Recompute and swap in a new snapshot. Raises RefreshFailure on failure;
        readers keep seeing the previous snapshot.

        Concurrent callers collapse: only the first one to find no recompute
        running starts one, the others wait for it and share its outcome.
        """
        effective_timeout = timeout if timeout is not None else self.timeout_seconds
        deadline = time.monotonic() + effective_timeout

        with self._cond:
            arrived_after = self._started
            # A recompute that began before this call may have missed rows
            # committed before it; let it finish first.
            self._wait(
                lambda: not self._running or self._started > arrived_after,
                deadline,
                effective_timeout,
            )
            if self._started > arrived_after:
                run = self._started
                self._wait(lambda: self._finished >= run, deadline, effective_timeout)
                joined_error = self._outcomes.get(run)
                log.debug("Joined aggregate refresh", extra={"run": run, "generation": self._snapshot.generation})
                if joined_error is not None:
                    raise RefreshFailure(f"joined refresh failed: {joined_error}") from joined_error
                return
            self._running = True
            self._started += 1
            run = self._started

        error: Optional[RefreshFailure] = None
        try:
            self._recompute(effective_timeout)
        except RefreshFailure as exc:
            error = exc
            raise
        finally:
            with self._cond:
                self._running = False
                self._finished = run
                self._outcomes[run] = error
                self._outcomes.pop(run - self._KEPT_OUTCOMES, None)
                self._cond.notify_all()

    def refresh_with_retry(self, timeout: Optional[float] = None) -> None:
        """Refresh, retrying RefreshFailure with exponential backoff."""
        retryer = Retrying(
            stop=stop_after_attempt(self.retry_attempts),
            wait=wait_exponential(multiplier=self.retry_wait_seconds, max=30),
            retry=retry_if_exception_type(RefreshFailure),
            reraise=True,
        )
        retryer(self.refresh, timeout)

    def query(self, released_year: Optional[int] = None, genre: Optional[str] = None) -> List[AggregateRow]:
        snapshot = self._snapshot
        return [
            row
            for row in snapshot.rows
            if (released_year is None or row.released_year == released_year)
            and (genre is None or row.genre == genre)
        ]


__all__ = ["AggregateRefresher", "AggregateSnapshot"]
