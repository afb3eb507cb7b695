"""
Synthetic movie ratings generator for the quality gate.

Emits a deterministic pseudo-random ratings CSV with a controlled share of
invalid rows (blank titles or genres, out-of-range years and ratings,
unparseable values) and can feed it straight through the pipeline.
"""

from __future__ import annotations

import csv
import random
import sys
import tempfile
import time
from datetime import date
from pathlib import Path

import typer

from movie_ratings.pipeline import build_pipeline
from movie_ratings.utils.logging import configure_logging

app = typer.Typer(help="Generate synthetic movie ratings CSV and optionally ingest it.")

HEADER = ["title", "released_year", "genre", "rating", "source_id"]
GENRES = ["Drama", "Comedy", "Action", "Horror", "Documentary", "Sci-Fi", "Romance"]
WORDS = ["Night", "River", "Her", "Glass", "Echo", "Summer", "Last", "Iron", "Blue", "Silent"]

# Each corruption breaks exactly one rule.
_CORRUPTIONS = (
    ("title", lambda rng: rng.choice(["", "   "])),
    ("genre", lambda rng: rng.choice(["", "\t"])),
    ("released_year", lambda rng: rng.choice(["1850", "3000", "unknown", ""])),
    ("rating", lambda rng: rng.choice(["11", "-1", "ten", "", "nan"])),
)


def _generate_rows_csv(csv_path: Path, rows: int, invalid_ratio: float, seed: int) -> int:
    """Write `rows` data rows; return how many were deliberately corrupted."""
    rng = random.Random(seed)
    last_year = date.today().year
    corrupted = 0

    with csv_path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(HEADER)
        for i in range(rows):
            row = {
                "title": " ".join(rng.sample(WORDS, rng.randint(1, 3))),
                "released_year": str(rng.randint(1920, last_year)),
                "genre": rng.choice(GENRES),
                "rating": f"{rng.uniform(0, 10):.1f}",
                "source_id": f"src-{i:07d}",
            }
            if rng.random() < invalid_ratio:
                column, corrupt = rng.choice(_CORRUPTIONS)
                row[column] = corrupt(rng)
                corrupted += 1
            writer.writerow([row[name] for name in HEADER])
    return corrupted


@app.command()
def main(
    rows: int = typer.Option(10_000, "--rows", "-r", help="Number of rows to generate."),
    invalid_ratio: float = typer.Option(
        0.05, "--invalid-ratio", min=0.0, max=1.0, help="Share of rows to corrupt."
    ),
    seed: int = typer.Option(42, "--seed", help="Deterministic RNG seed."),
    output: Path | None = typer.Option(
        None,
        "--output",
        "-o",
        help="Optional CSV output path (if omitted, a temp file will be used).",
    ),
    ingest: bool = typer.Option(False, "--ingest", help="Run the generated file through the pipeline."),
    backend: str | None = typer.Option(None, "--backend", "-b", help="Storage backend for --ingest."),
) -> None:
    """
    Generate synthetic ratings and optionally ingest them.
    """
    start = time.perf_counter()
    if output:
        csv_path = output
        csv_path.parent.mkdir(parents=True, exist_ok=True)
    else:
        tmpdir = Path(tempfile.mkdtemp(prefix="movie_ratings_csv_"))
        csv_path = tmpdir / "ratings.csv"

    typer.echo(f"Generating {rows:,} rows -> {csv_path} (invalid_ratio={invalid_ratio}, seed={seed})")
    corrupted = _generate_rows_csv(csv_path, rows=rows, invalid_ratio=invalid_ratio, seed=seed)
    gen_duration = time.perf_counter() - start
    typer.echo(f"CSV generation completed in {gen_duration:.2f}s ({corrupted:,} corrupted rows)")

    if not ingest:
        return

    configure_logging(level="WARNING")
    pipeline = build_pipeline(backend=backend)
    try:
        outcome = pipeline.run_file(csv_path)
    finally:
        pipeline.close()
    typer.echo(
        f"Ingest {outcome.status.value}: accepted={outcome.accepted_count:,} "
        f"rejected={outcome.rejected_count:,} inserted={outcome.inserted_count:,}"
    )


if __name__ == "__main__":
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)
