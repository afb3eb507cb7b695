from __future__ import annotations

import io
from pathlib import Path

import pytest

from movie_ratings.errors import FatalInputFailure
from movie_ratings.ingest.reader import OVERFLOW_KEY, PARSE_ERROR_KEY, CSVBatchReader


def _read(text: str):
    return CSVBatchReader().read_stream(io.StringIO(text), source="test.csv")


def test_reads_records_in_order_with_line_numbers() -> None:
    batch = _read("title,released_year,genre,rating\nHer,2013,Drama,8.0\nAlien,1979,Horror,8.5\n")

    assert [r.title for r in batch.records] == ["Her", "Alien"]
    assert [r.line_number for r in batch.records] == [2, 3]
    assert batch.records[0].released_year == "2013"
    assert batch.source == "test.csv"
    assert not batch.truncated


def test_header_is_case_and_order_insensitive_and_extra_columns_kept() -> None:
    batch = _read(" Rating ,Genre,source_id,Title,RELEASED_YEAR\n8.0,Drama,s-1,Her,2013\n")

    (record,) = batch.records
    assert (record.title, record.released_year, record.genre, record.rating) == ("Her", "2013", "Drama", "8.0")
    assert record.extra == {"source_id": "s-1"}


def test_short_and_long_rows_become_records() -> None:
    batch = _read("title,released_year,genre,rating\nHer,2013\nA,2000,Drama,5,extra\n")

    short, long = batch.records
    assert short.genre is None and short.rating is None
    assert long.extra[OVERFLOW_KEY] == ["extra"]


def test_blank_lines_are_skipped() -> None:
    batch = _read("title,released_year,genre,rating\n\nHer,2013,Drama,8\n\n")
    assert len(batch) == 1


@pytest.mark.parametrize(
    "text",
    [
        "",
        "title,genre,rating\nHer,Drama,8\n",
        "name,year\n",
    ],
)
def test_structural_problems_are_fatal(text: str) -> None:
    with pytest.raises(FatalInputFailure) as excinfo:
        _read(text)
    assert excinfo.value.source == "test.csv"


def test_stream_ending_inside_quoted_field_is_truncated() -> None:
    batch = _read('title,released_year,genre,rating\nHer,2013,Drama,8\n"Unfinished,2020,Dra')

    assert batch.truncated
    assert [r.title for r in batch.records] == ["Her"]


def test_malformed_row_mid_file_is_kept_as_unusable_record() -> None:
    batch = _read('title,released_year,genre,rating\n"Her"x,2013,Drama,8\nAlien,1979,Horror,8.5\n')

    assert not batch.truncated
    broken, alien = batch.records
    assert broken.title is None
    assert PARSE_ERROR_KEY in broken.extra
    assert alien.title == "Alien"


def test_missing_file_is_fatal(tmp_path: Path) -> None:
    with pytest.raises(FatalInputFailure):
        CSVBatchReader().read_batch(tmp_path / "nope.csv")


def test_read_batch_from_file(tmp_path: Path) -> None:
    path = tmp_path / "ratings.csv"
    path.write_text("title;released_year;genre;rating\nHer;2013;Drama;8.0\n", encoding="utf-8")

    batch = CSVBatchReader(delimiter=";").read_batch(path, batch_id="b1")

    assert batch.batch_id == "b1"
    assert batch.source == str(path)
    assert len(batch) == 1


def test_byte_order_mark_before_header_is_ignored(tmp_path: Path) -> None:
    path = tmp_path / "export.csv"
    path.write_bytes("\ufefftitle,released_year,genre,rating\nHer,2013,Drama,8.0\n".encode("utf-8"))

    batch = CSVBatchReader().read_batch(path)

    assert [r.title for r in batch.records] == ["Her"]
    assert batch.records[0].extra == {}


def test_byte_order_mark_in_stream_header_is_ignored() -> None:
    batch = _read("\ufeffTitle,released_year,genre,rating\nHer,2013,Drama,8.0\n")
    assert batch.records[0].title == "Her"
