"""
Durable ratings table backends.

Every backend implements the RatingsTable protocol: append-only writes that
report per-row failures, and a grouped count used by the aggregate refresh.
A failure of the whole operation raises TableUnavailableError and commits
nothing.
"""

from __future__ import annotations

import threading
from collections import Counter
from typing import Callable, Dict, List, Optional, Protocol, Sequence, Tuple, runtime_checkable

import psycopg
from psycopg_pool import ConnectionPool

from movie_ratings.config import get_settings
from movie_ratings.domain.models import RatingRow
from movie_ratings.errors import TableUnavailableError
from movie_ratings.infrastructure.db_factory import apply_statement_timeout, get_sync_pool
from movie_ratings.infrastructure.schema import RATINGS_TABLE
from movie_ratings.utils.logging import get_logger

log = get_logger(__name__)

GroupCount = Tuple[int, str, int]


@runtime_checkable
class RatingsTable(Protocol):
    """
    Common interface of durable table backends.

    Attributes
    ----------
    name : str
        A short machine-friendly identifier.
    """

    name: str

    def append_many(
        self,
        rows: Sequence[RatingRow],
        batch_id: Optional[str] = None,
        timeout_ms: Optional[int] = None,
    ) -> Dict[int, str]:
        """
        Append rows. Returns a mapping of failed row index to error message;
        an empty mapping means every row was committed.
        """
        ...

    def count_by_year_genre(self, timeout_ms: Optional[int] = None) -> List[GroupCount]:
        """Return `(released_year, genre, count)` for every group."""
        ...

    def close(self) -> None:
        ...


class InMemoryRatingsTable:
    """
    Process-local table for local runs and tests. Appends are serialized by a
    lock; there is no I/O, so timeouts are ignored.
    """

    name: str = "memory"

    def __init__(self) -> None:
        self._rows: List[Tuple[Optional[str], RatingRow]] = []
        self._lock = threading.Lock()

    def append_many(
        self,
        rows: Sequence[RatingRow],
        batch_id: Optional[str] = None,
        timeout_ms: Optional[int] = None,
    ) -> Dict[int, str]:
        del timeout_ms
        with self._lock:
            self._rows.extend((batch_id, row) for row in rows)
        return {}

    def count_by_year_genre(self, timeout_ms: Optional[int] = None) -> List[GroupCount]:
        del timeout_ms
        with self._lock:
            counts = Counter((row.released_year, row.genre) for _, row in self._rows)
        return [(year, genre, count) for (year, genre), count in counts.items()]

    def rows(self) -> List[RatingRow]:
        with self._lock:
            return [row for _, row in self._rows]

    def __len__(self) -> int:
        with self._lock:
            return len(self._rows)

    def close(self) -> None:
        return None


class PostgresRatingsTable:
    """
    PostgreSQL-backed table using a psycopg ConnectionPool.

    One load is one transaction. Rows are inserted in chunks inside savepoints;
    a chunk that hits a data or constraint error is replayed row by row so only
    the offending rows fail. Anything else (connection loss, statement timeout)
    rolls back the whole transaction.
    """

    name: str = "postgres"

    INSERT_SQL = (
        f"INSERT INTO {RATINGS_TABLE} (title, released_year, genre, rating, batch_id) "
        "VALUES (%s, %s, %s, %s, %s)"
    )
    GROUP_COUNT_SQL = (
        f"SELECT released_year, genre, COUNT(*) FROM {RATINGS_TABLE} "
        "GROUP BY released_year, genre ORDER BY released_year, genre"
    )

    def __init__(
        self,
        insert_chunk_size: int = 500,
        pool_min_size: Optional[int] = None,
        pool_max_size: Optional[int] = None,
        dsn_override: Optional[str] = None,
    ) -> None:
        settings = get_settings()
        self.insert_chunk_size = max(insert_chunk_size, 1)
        self.pool_min_size = pool_min_size or settings.db_pool_min_size
        self.pool_max_size = pool_max_size or settings.db_pool_max_size
        self.default_timeout_ms = settings.db_statement_timeout_ms
        self._dsn_override = dsn_override
        self._pool_instance: ConnectionPool | None = None
        self._owns_pool = False

    def _get_pool(self) -> ConnectionPool:
        if self._pool_instance is not None:
            return self._pool_instance
        if self._dsn_override:
            self._pool_instance = ConnectionPool(
                conninfo=self._dsn_override,
                min_size=self.pool_min_size,
                max_size=self.pool_max_size,
                open=True,
            )
            self._owns_pool = True
        else:
            self._pool_instance = get_sync_pool(
                min_size=self.pool_min_size, max_size=self.pool_max_size
            )
        return self._pool_instance

    def _timeout(self, timeout_ms: Optional[int]) -> Optional[int]:
        return timeout_ms if timeout_ms is not None else self.default_timeout_ms

    @staticmethod
    def _params(row: RatingRow, batch_id: Optional[str]) -> tuple:
        return (row.title, row.released_year, row.genre, row.rating, batch_id)

    def _insert_chunk(
        self,
        conn: psycopg.Connection,
        cur: psycopg.Cursor,
        offset: int,
        chunk: Sequence[RatingRow],
        batch_id: Optional[str],
        failures: Dict[int, str],
    ) -> None:
        try:
            with conn.transaction():
                cur.executemany(self.INSERT_SQL, [self._params(row, batch_id) for row in chunk])
            return
        except (psycopg.DataError, psycopg.IntegrityError):
            log.debug("Chunk insert failed; replaying row by row", extra={"offset": offset})

        for position, row in enumerate(chunk):
            try:
                with conn.transaction():
                    cur.execute(self.INSERT_SQL, self._params(row, batch_id))
            except (psycopg.DataError, psycopg.IntegrityError) as exc:
                failures[offset + position] = str(exc).strip()

    def append_many(
        self,
        rows: Sequence[RatingRow],
        batch_id: Optional[str] = None,
        timeout_ms: Optional[int] = None,
    ) -> Dict[int, str]:
        failures: Dict[int, str] = {}
        if not rows:
            return failures
        try:
            with self._get_pool().connection() as conn:
                with conn.transaction():
                    with conn.cursor() as cur:
                        apply_statement_timeout(cur, self._timeout(timeout_ms))
                        for offset in range(0, len(rows), self.insert_chunk_size):
                            chunk = rows[offset : offset + self.insert_chunk_size]
                            self._insert_chunk(conn, cur, offset, chunk, batch_id, failures)
        except psycopg.Error as exc:
            raise TableUnavailableError(f"append aborted, nothing committed: {exc}") from exc
        return failures

    def count_by_year_genre(self, timeout_ms: Optional[int] = None) -> List[GroupCount]:
        try:
            with self._get_pool().connection() as conn:
                with conn.transaction():
                    with conn.cursor() as cur:
                        apply_statement_timeout(cur, self._timeout(timeout_ms))
                        cur.execute(self.GROUP_COUNT_SQL)
                        return [(int(year), str(genre), int(count)) for year, genre, count in cur.fetchall()]
        except psycopg.Error as exc:
            raise TableUnavailableError(f"group count failed: {exc}") from exc

    def close(self) -> None:
        """Close the pool if this table created it; shared pools close at exit."""
        if self._pool_instance is not None and self._owns_pool:
            self._pool_instance.close()
        self._pool_instance = None
        self._owns_pool = False


def _table_factories() -> Dict[str, Callable[[], RatingsTable]]:
    """Registry of available table backends."""
    return {
        "memory": lambda: InMemoryRatingsTable(),
        "postgres": lambda: PostgresRatingsTable(),
    }


def available_backends() -> List[str]:
    """List available backend names."""
    return sorted(_table_factories().keys())


def build_table(name: Optional[str] = None) -> RatingsTable:
    backend = name or get_settings().storage_backend
    factories = _table_factories()
    if backend not in factories:
        raise ValueError(f"Unknown storage backend '{backend}'. Available: {', '.join(factories)}")
    return factories[backend]()


__all__ = [
    "GroupCount",
    "InMemoryRatingsTable",
    "PostgresRatingsTable",
    "RatingsTable",
    "available_backends",
    "build_table",
]
