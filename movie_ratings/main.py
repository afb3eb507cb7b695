from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import List, Optional

import typer

from movie_ratings.config import get_settings
from movie_ratings.domain.models import PipelineStatus
from movie_ratings.errors import RefreshFailure
from movie_ratings.infrastructure.db_factory import ensure_schema
from movie_ratings.pipeline import build_pipeline
from movie_ratings.reporter import print_aggregates, print_outcomes
from movie_ratings.stages.aggregate import AggregateRefresher
from movie_ratings.storage.tables import available_backends, build_table
from movie_ratings.utils.logging import configure_logging
from movie_ratings.validation.rules import build_default_rules

app = typer.Typer(help="Movie ratings quality gate CLI.")


def _check_backend(backend: Optional[str]) -> None:
    if backend is not None and backend not in available_backends():
        raise typer.BadParameter(f"choose one of: {', '.join(available_backends())}", param_hint="--backend")


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    typer.echo(
        f"env={settings.app_env} | DB={settings.db_user}@{settings.db_host}:{settings.db_port}/{settings.db_name} | "
        f"backend={settings.storage_backend} refresh={settings.refresh_policy} "
        f"workers={settings.validation_workers} quarantine={settings.quarantine_dir}"
    )


@app.command()
def rules() -> None:
    """
    List the active validation rules.
    """
    settings = get_settings()
    for rule_id in build_default_rules(settings):
        typer.echo(rule_id)
    typer.echo(
        f"bounds: rating {settings.min_rating}..{settings.max_rating}, "
        f"released_year {settings.min_release_year}..current+{settings.release_year_leeway}"
    )


@app.command("init-db")
def init_db() -> None:
    """
    Create the durable ratings table in Postgres.
    """
    configure_logging(level=get_settings().log_level)
    ensure_schema()
    typer.echo("Schema ready.")


@app.command()
def ingest(
    paths: List[Path] = typer.Argument(..., help="Input CSV files, one batch each."),
    backend: Optional[str] = typer.Option(None, "--backend", "-b", help="Storage backend override."),
    refresh: Optional[bool] = typer.Option(
        None, "--refresh/--no-refresh", help="Override the refresh policy for this run."
    ),
    as_json: bool = typer.Option(False, "--json", help="Print notification payloads as JSON."),
) -> None:
    """
    Validate, quarantine, and load each input file, then report outcomes.
    """
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)
    _check_backend(backend)

    if refresh is not None:
        settings = settings.model_copy(update={"refresh_policy": "after_load" if refresh else "manual"})

    pipeline = build_pipeline(settings=settings, backend=backend)
    try:
        outcomes = [pipeline.run_file(path) for path in paths]
        if as_json:
            typer.echo(json.dumps([outcome.to_notification() for outcome in outcomes], indent=2))
        else:
            print_outcomes(outcomes)
            if pipeline.refresher.snapshot.generation:
                print_aggregates(pipeline.refresher.query())
    finally:
        pipeline.close()

    if any(outcome.status is PipelineStatus.FAILURE for outcome in outcomes):
        raise typer.Exit(code=1)


@app.command()
def aggregates(
    year: Optional[int] = typer.Option(None, "--year", "-y", help="Only this release year."),
    genre: Optional[str] = typer.Option(None, "--genre", "-g", help="Only this genre."),
    backend: Optional[str] = typer.Option(None, "--backend", "-b", help="Storage backend override."),
) -> None:
    """
    Refresh the aggregate snapshot from the durable table and print it.
    """
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)
    _check_backend(backend)

    table = build_table(backend)
    refresher = AggregateRefresher(table)
    try:
        refresher.refresh_with_retry()
    except RefreshFailure as exc:
        typer.echo(f"Refresh failed: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    finally:
        table.close()
    print_aggregates(refresher.query(released_year=year, genre=genre))


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
