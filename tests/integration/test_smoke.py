"""
Integration tests for the Postgres-backed quality gate.

These tests run against a real PostgreSQL instance and verify that:
1. Accepted rows are appended and counted per (released_year, genre)
2. A row rejected by a table constraint fails alone
3. The full pipeline loads, quarantines, and refreshes end to end

Run with: RUN_INTEGRATION_TESTS=1 pytest tests/integration/
"""

from __future__ import annotations

import os
from pathlib import Path

import psycopg
import pytest

from movie_ratings.domain.models import AggregateRow, Batch, PipelineStatus, RatingRow
from movie_ratings.pipeline import RatingsPipeline
from movie_ratings.stages.aggregate import AggregateRefresher
from movie_ratings.stages.load import LoadStage
from movie_ratings.stages.quarantine_router import QuarantineRouter
from movie_ratings.storage.tables import PostgresRatingsTable
from movie_ratings.validation.validator import RowValidator

DEFAULT_CHUNK_SIZE = 2
DEFAULT_TIMEOUT_MS = 5_000

pytestmark = pytest.mark.skipif(
    os.getenv("RUN_INTEGRATION_TESTS", "0") != "1",
    reason="Integration tests require RUN_INTEGRATION_TESTS=1 and reachable Postgres",
)


@pytest.fixture
def pg_table(test_dsn: str, clean_ratings_table):
    table = PostgresRatingsTable(insert_chunk_size=DEFAULT_CHUNK_SIZE, dsn_override=test_dsn)
    yield table
    table.close()


def _row(title: str, year: int = 2013, genre: str = "Drama", rating: float = 8.0) -> RatingRow:
    return RatingRow(title=title, released_year=year, genre=genre, rating=rating)


class TestPostgresTable:
    def test_append_and_count(self, pg_table: PostgresRatingsTable):
        failures = pg_table.append_many(
            [_row("Her"), _row("Alien", 1979, "Horror"), _row("Her")],
            batch_id="b1",
            timeout_ms=DEFAULT_TIMEOUT_MS,
        )

        assert failures == {}
        assert pg_table.count_by_year_genre(timeout_ms=DEFAULT_TIMEOUT_MS) == [
            (1979, "Horror", 1),
            (2013, "Drama", 2),
        ]

    def test_constraint_violation_fails_only_that_row(
        self, pg_table: PostgresRatingsTable, db_connection: psycopg.Connection
    ):
        rows = [_row("A"), _row("B"), _row("Out of range", rating=42.0), _row("C")]

        failures = pg_table.append_many(rows, batch_id="b2", timeout_ms=DEFAULT_TIMEOUT_MS)

        assert list(failures) == [2]
        with db_connection.cursor() as cur:
            cur.execute("SELECT title FROM public.movie_ratings WHERE batch_id = %s ORDER BY id", ("b2",))
            titles = [r[0] for r in cur.fetchall()]
        db_connection.commit()
        assert titles == ["A", "B", "C"]

    def test_empty_append_is_a_no_op(self, pg_table: PostgresRatingsTable):
        assert pg_table.append_many([]) == {}
        assert pg_table.count_by_year_genre() == []


class TestPipelineAgainstPostgres:
    def test_example_batch(
        self,
        pg_table: PostgresRatingsTable,
        validator: RowValidator,
        example_batch: Batch,
        tmp_path: Path,
    ):
        pipeline = RatingsPipeline(
            router=QuarantineRouter(validator=validator),
            load_stage=LoadStage(pg_table, timeout_ms=DEFAULT_TIMEOUT_MS),
            refresher=AggregateRefresher(pg_table, timeout_seconds=5, retry_attempts=1),
            outcomes_dir=tmp_path / "results",
        )

        outcome = pipeline.on_new_batch(example_batch)

        assert outcome.status is PipelineStatus.SUCCESS
        assert outcome.inserted_count == 1
        assert pipeline.refresher.query(released_year=2013, genre="Drama") == [
            AggregateRow(released_year=2013, genre="Drama", movie_count=1)
        ]
