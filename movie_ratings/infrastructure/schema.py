"""
DDL for the durable ratings table.

Append-only: the surrogate `id` only orders rows, there is no natural key and
duplicates are allowed.
"""

RATINGS_TABLE = "public.movie_ratings"

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS public.movie_ratings (
    id BIGSERIAL PRIMARY KEY,
    title TEXT NOT NULL,
    released_year INTEGER NOT NULL,
    genre TEXT NOT NULL,
    rating NUMERIC(4, 2) NOT NULL CHECK (rating BETWEEN 0 AND 10),
    batch_id TEXT,
    ingested_at TIMESTAMPTZ NOT NULL DEFAULT now()
);

CREATE INDEX IF NOT EXISTS movie_ratings_year_genre_idx
    ON public.movie_ratings (released_year, genre);
"""

__all__ = ["RATINGS_TABLE", "SCHEMA_SQL"]
