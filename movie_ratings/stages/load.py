"""
Load stage: append accepted records to the durable table.

Append-only. A failed row never aborts the rest of the batch; the result lists
exactly the records that were not committed so a caller can retry only those.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence

from movie_ratings.config import get_settings
from movie_ratings.domain.models import LoadResult, RatingRow, Record
from movie_ratings.errors import TableUnavailableError
from movie_ratings.storage.tables import RatingsTable
from movie_ratings.utils.logging import get_logger
from movie_ratings.validation.rules import parse_rating, parse_year

log = get_logger(__name__)


def to_rating_row(record: Record) -> RatingRow:
    """
    Typed table row for an accepted record. Raises ValueError when the record
    does not carry usable values (it was not accepted by the default rules).
    """
    year = parse_year(record.released_year)
    rating = parse_rating(record.rating)
    if year is None or rating is None:
        raise ValueError(f"record at line {record.line_number} has no usable year/rating")
    if not isinstance(record.title, str) or not isinstance(record.genre, str):
        raise ValueError(f"record at line {record.line_number} has non-text title/genre")
    return RatingRow(
        title=record.title.strip(),
        released_year=year,
        genre=record.genre.strip(),
        rating=rating,
    )


class LoadStage:
    """
    Append accepted records through a RatingsTable backend.

    Parameters
    ----------
    table : RatingsTable
        Durable table backend.
    timeout_ms : int | None
        Default statement timeout for a load (settings value when omitted).
    """

    def __init__(self, table: RatingsTable, timeout_ms: Optional[int] = None) -> None:
        self.table = table
        self.timeout_ms = timeout_ms if timeout_ms is not None else get_settings().load_timeout_ms

    def load(
        self,
        accepted: Sequence[Record],
        batch_id: Optional[str] = None,
        timeout_ms: Optional[int] = None,
    ) -> LoadResult:
        effective_timeout = timeout_ms if timeout_ms is not None else self.timeout_ms

        rows: List[RatingRow] = []
        row_sources: List[int] = []
        failures: Dict[int, str] = {}
        for index, record in enumerate(accepted):
            try:
                rows.append(to_rating_row(record))
                row_sources.append(index)
            except ValueError as exc:
                failures[index] = str(exc)

        try:
            table_failures = self.table.append_many(rows, batch_id=batch_id, timeout_ms=effective_timeout)
        except TableUnavailableError as exc:
            log.error(
                "Load aborted; no rows committed",
                extra={"batch_id": batch_id, "rows": len(accepted), "error": str(exc)},
            )
            return LoadResult(
                inserted_count=0,
                failed_count=len(accepted),
                retryable=tuple(accepted),
                errors=(str(exc),),
            )

        for row_index, message in table_failures.items():
            failures[row_sources[row_index]] = message

        failed_indexes = sorted(failures)
        result = LoadResult(
            inserted_count=len(accepted) - len(failed_indexes),
            failed_count=len(failed_indexes),
            retryable=tuple(accepted[i] for i in failed_indexes),
            errors=tuple(failures[i] for i in failed_indexes),
        )
        if result.failed_count:
            log.warning(
                "Partial load",
                extra={"batch_id": batch_id, "inserted": result.inserted_count, "failed": result.failed_count},
            )
        else:
            log.info("Load complete", extra={"batch_id": batch_id, "inserted": result.inserted_count})
        return result


__all__ = ["LoadStage", "to_rating_row"]
