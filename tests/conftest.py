"""
Pytest configuration for the movie ratings quality gate.

Provides fixtures for:
- Settings with deterministic validation bounds
- Pipeline components wired to the in-memory table
- Database connection management for integration tests
"""

from __future__ import annotations

import os
from datetime import date
from pathlib import Path
from typing import Generator

import psycopg
import pytest

from movie_ratings.config import Settings
from movie_ratings.domain.models import Batch, Record
from movie_ratings.pipeline import RatingsPipeline
from movie_ratings.stages.aggregate import AggregateRefresher
from movie_ratings.stages.load import LoadStage
from movie_ratings.stages.quarantine_router import QuarantineRouter
from movie_ratings.storage.quarantine import QuarantineStore
from movie_ratings.storage.tables import InMemoryRatingsTable
from movie_ratings.validation.rules import build_default_rules
from movie_ratings.validation.validator import RowValidator

FIXED_TODAY = date(2024, 6, 1)


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """
    Settings fixture with test-specific overrides.

    Can be overridden via environment variables in CI or local testing.
    """
    return Settings(
        db_host=os.getenv("DB_HOST", "localhost"),
        db_port=int(os.getenv("DB_PORT", "5432")),
        db_user=os.getenv("DB_USER", "postgres"),
        db_password=os.getenv("DB_PASSWORD", "postgres"),
        db_name=os.getenv("DB_NAME", "movie_ratings"),
        log_level="DEBUG",
        storage_backend="memory",
    )


@pytest.fixture
def validator(test_settings: Settings) -> RowValidator:
    """Default rules with the calendar pinned to FIXED_TODAY (max year 2025)."""
    return RowValidator(build_default_rules(test_settings, today=lambda: FIXED_TODAY))


@pytest.fixture
def memory_table() -> InMemoryRatingsTable:
    return InMemoryRatingsTable()


@pytest.fixture
def quarantine_store(tmp_path: Path) -> QuarantineStore:
    return QuarantineStore(tmp_path / "quarantine")


@pytest.fixture
def pipeline(
    validator: RowValidator,
    memory_table: InMemoryRatingsTable,
    quarantine_store: QuarantineStore,
    tmp_path: Path,
) -> RatingsPipeline:
    return RatingsPipeline(
        router=QuarantineRouter(validator=validator, quarantine=quarantine_store),
        load_stage=LoadStage(memory_table, timeout_ms=0),
        refresher=AggregateRefresher(memory_table, timeout_seconds=5, retry_attempts=2, retry_wait_seconds=0),
        refresh_policy="after_load",
        outcomes_dir=tmp_path / "results",
    )


@pytest.fixture
def example_batch() -> Batch:
    """The three-record scenario: one valid, one blank title, one out of range."""
    return Batch(
        batch_id="example",
        source="example.csv",
        records=(
            Record(title="Her", year=2013, genre="Drama", rating=8.0, line_number=2),
            Record(title="", year=2013, genre="Drama", rating=8.0, line_number=3),
            Record(title="X", year=1850, genre="Drama", rating=11, line_number=4),
        ),
    )


@pytest.fixture(scope="session")
def test_dsn(test_settings: Settings) -> str:
    """
    Database connection string for tests.
    """
    return (
        f"postgresql://{test_settings.db_user}:{test_settings.db_password}"
        f"@{test_settings.db_host}:{test_settings.db_port}/{test_settings.db_name}"
    )


@pytest.fixture(scope="session")
def db_connection_available(test_dsn: str) -> bool:
    """
    Check if database is reachable.

    Used to conditionally skip integration tests when DB is not available.
    """
    try:
        with psycopg.connect(test_dsn, connect_timeout=5) as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1;")
                cur.fetchone()
        return True
    except psycopg.Error:
        return False


@pytest.fixture(scope="session")
def db_connection(
    test_dsn: str, db_connection_available: bool
) -> Generator[psycopg.Connection, None, None]:
    """
    Provide a session-scoped database connection for integration tests.

    Skips tests if database is not available.
    """
    if not db_connection_available:
        pytest.skip("Database not available for integration tests")

    conn = psycopg.connect(test_dsn)
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture(scope="session")
def db_schema_initialized(db_connection: psycopg.Connection, test_dsn: str) -> bool:
    """
    Ensure the durable ratings table exists.
    """
    from movie_ratings.infrastructure.db_factory import ensure_schema

    ensure_schema(test_dsn)
    return True


@pytest.fixture(scope="function")
def clean_ratings_table(db_connection: psycopg.Connection, db_schema_initialized: bool):
    """
    Empty the ratings table before and after each test function.
    """
    with db_connection.cursor() as cur:
        cur.execute("TRUNCATE TABLE public.movie_ratings RESTART IDENTITY;")
    db_connection.commit()
    yield
    with db_connection.cursor() as cur:
        cur.execute("TRUNCATE TABLE public.movie_ratings RESTART IDENTITY;")
    db_connection.commit()
