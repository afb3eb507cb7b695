from __future__ import annotations

import random

from movie_ratings.domain.models import Batch, Record
from movie_ratings.stages.quarantine_router import QuarantineRouter
from movie_ratings.storage.quarantine import QuarantineStore
from movie_ratings.validation.rules import (
    GENRE_NONEMPTY,
    RATING_RANGE,
    RELEASED_YEAR_RANGE,
    TITLE_NONEMPTY,
)
from movie_ratings.validation.validator import RowValidator

BATCH_SIZE = 200


def _random_batch(seed: int, size: int = BATCH_SIZE) -> Batch:
    rng = random.Random(seed)
    records = []
    for line in range(2, size + 2):
        records.append(
            Record(
                title=rng.choice(["Her", "", "Alien", "  "]),
                year=rng.choice([1999, 1850, "2005", "soon"]),
                genre=rng.choice(["Drama", "", "Horror"]),
                rating=rng.choice([5.5, 11, "7", "n/a"]),
                line_number=line,
            )
        )
    return Batch(batch_id=f"random-{seed}", records=tuple(records))


def test_example_scenario(validator: RowValidator, example_batch: Batch) -> None:
    accepted, rejected, summary = QuarantineRouter(validator).route(example_batch)

    assert [r.title for r in accepted] == ["Her"]
    assert [v.failed_rules for v in rejected] == [
        {TITLE_NONEMPTY},
        {RELEASED_YEAR_RANGE, RATING_RANGE},
    ]
    assert summary.failed_counts() == {
        RATING_RANGE: 1,
        RELEASED_YEAR_RANGE: 1,
        TITLE_NONEMPTY: 1,
        GENRE_NONEMPTY: 0,
    }
    assert summary.for_rule(TITLE_NONEMPTY).passed == 2
    assert summary.for_rule(GENRE_NONEMPTY).passed == 3
    assert summary.total_records == 3
    assert summary.complete


def test_partition_is_total_and_order_preserving(validator: RowValidator) -> None:
    batch = _random_batch(seed=1)
    accepted, rejected, _ = QuarantineRouter(validator).route(batch)

    assert len(accepted) + len(rejected) == len(batch)
    accepted_lines = [r.line_number for r in accepted]
    rejected_lines = [v.record.line_number for v in rejected]
    assert accepted_lines == sorted(accepted_lines)
    assert rejected_lines == sorted(rejected_lines)
    assert set(accepted_lines).isdisjoint(rejected_lines)


def test_parallel_validation_matches_sequential(validator: RowValidator) -> None:
    batch = _random_batch(seed=2)
    sequential = QuarantineRouter(validator, workers=1).route(batch)
    parallel = QuarantineRouter(validator, workers=8).route(batch)

    assert parallel.accepted == sequential.accepted
    assert parallel.rejected == sequential.rejected
    assert parallel.summary.outcomes == sequential.summary.outcomes


def test_summary_counts_add_up_per_rule(validator: RowValidator) -> None:
    batch = _random_batch(seed=3)
    _, rejected, summary = QuarantineRouter(validator).route(batch)

    for outcome in summary.outcomes:
        assert outcome.passed + outcome.failed == len(batch)
        assert outcome.failed == sum(outcome.rule in v.failed_rules for v in rejected)


def test_empty_batch(validator: RowValidator) -> None:
    accepted, rejected, summary = QuarantineRouter(validator).route(Batch(batch_id="empty"))
    assert accepted == ()
    assert rejected == ()
    assert summary.total_records == 0
    assert all(o.passed == 0 and o.failed == 0 for o in summary.outcomes)


def test_truncated_batch_is_routed_and_marked(validator: RowValidator, example_batch: Batch) -> None:
    truncated = example_batch.model_copy(update={"truncated": True})
    accepted, rejected, summary = QuarantineRouter(validator).route(truncated)

    assert len(accepted) == 1
    assert len(rejected) == 2
    assert summary.complete is False


def test_rejected_records_and_summary_are_quarantined(
    validator: RowValidator, example_batch: Batch, quarantine_store: QuarantineStore
) -> None:
    router = QuarantineRouter(validator, quarantine=quarantine_store)
    _, _, summary = router.route(example_batch)

    entries = quarantine_store.read_rejected("example")
    assert [e["line_number"] for e in entries] == [3, 4]
    assert entries[0]["failed_rules"] == [TITLE_NONEMPTY]
    assert entries[1]["failed_rules"] == sorted([RATING_RANGE, RELEASED_YEAR_RANGE])
    assert entries[1]["released_year"] == 1850
    stored = quarantine_store.read_summary("example")
    assert stored.outcomes == summary.outcomes
    assert stored.total_records == 3


def test_quarantine_keeps_extra_columns(validator: RowValidator, quarantine_store: QuarantineStore) -> None:
    batch = Batch(
        batch_id="extras",
        records=(Record(title="", year=2000, genre="Drama", rating=5, extra={"source_id": "s-1"}),),
    )
    QuarantineRouter(validator, quarantine=quarantine_store).route(batch)

    (entry,) = quarantine_store.read_rejected("extras")
    assert entry["source_id"] == "s-1"


def test_extra_columns_cannot_overwrite_audit_fields(
    validator: RowValidator, quarantine_store: QuarantineStore
) -> None:
    batch = Batch(
        batch_id="shadowed",
        records=(
            Record(
                title="",
                year=2000,
                genre="Drama",
                rating=5,
                line_number=7,
                extra={"line_number": "abc", "failed_rules": "none", "source_id": "s-2"},
            ),
        ),
    )
    QuarantineRouter(validator, quarantine=quarantine_store).route(batch)

    (entry,) = quarantine_store.read_rejected("shadowed")
    assert entry["line_number"] == 7
    assert entry["failed_rules"] == [TITLE_NONEMPTY]
    assert entry["source_id"] == "s-2"
