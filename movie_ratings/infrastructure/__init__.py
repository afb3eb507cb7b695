"""
Infrastructure package for the movie ratings quality gate.

Centralizes database connectivity concerns (connection factory, pooling,
schema). Keep this layer focused on I/O and resource management, decoupled
from validation and routing logic.
"""

from movie_ratings.infrastructure.db_factory import (
    PoolManager,
    apply_statement_timeout,
    build_dsn,
    ensure_schema,
    get_sync_connection,
    get_sync_pool,
)

__all__ = [
    "PoolManager",
    "apply_statement_timeout",
    "build_dsn",
    "ensure_schema",
    "get_sync_connection",
    "get_sync_pool",
]
