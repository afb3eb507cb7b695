"""
Delimited-text reader that turns one input unit into a `Batch`.

The header must name `title`, `released_year`, `genre` and `rating` (any order,
case-insensitive); other columns are kept on the record for quarantine output
and otherwise ignored. A missing header or required column is fatal. A stream
that breaks after the header yields the rows read so far with the batch marked
as truncated.
"""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from movie_ratings.domain.models import Batch, Record, new_batch_id
from movie_ratings.errors import FatalInputFailure
from movie_ratings.utils.logging import get_logger

log = get_logger(__name__)

REQUIRED_COLUMNS = ("title", "released_year", "genre", "rating")
OVERFLOW_KEY = "_overflow"
PARSE_ERROR_KEY = "_parse_error"

# csv raises this (strict mode) when EOF lands inside a quoted field.
_END_OF_DATA = "unexpected end of data"


def _to_record(row: Sequence[str], columns: Sequence[str], line_number: int) -> Record:
    values: dict = {}
    for position, name in enumerate(columns):
        if name in values:
            continue
        values[name] = row[position] if position < len(row) else None

    extra = {name: value for name, value in values.items() if name not in REQUIRED_COLUMNS}
    if len(row) > len(columns):
        extra[OVERFLOW_KEY] = list(row[len(columns) :])

    return Record(
        title=values["title"],
        released_year=values["released_year"],
        genre=values["genre"],
        rating=values["rating"],
        line_number=line_number,
        extra=extra,
    )


class CSVBatchReader:
    """
    Read a whole input unit into an ordered batch.

    Parameters
    ----------
    delimiter : str
        Field delimiter of the input files.
    """

    def __init__(self, delimiter: str = ",") -> None:
        self.delimiter = delimiter

    def read_stream(
        self,
        stream: Iterable[str],
        source: str = "<stream>",
        batch_id: Optional[str] = None,
    ) -> Batch:
        reader = csv.reader(stream, delimiter=self.delimiter, strict=True)
        try:
            header = next(reader)
        except StopIteration:
            raise FatalInputFailure(source, "empty input, header row missing") from None
        except (csv.Error, UnicodeDecodeError) as exc:
            raise FatalInputFailure(source, f"unreadable header: {exc}") from exc

        columns = [name.strip().lower() for name in header]
        # Streams not opened as utf-8-sig keep the byte-order mark.
        if columns:
            columns[0] = columns[0].lstrip("\ufeff").strip()
        missing = [name for name in REQUIRED_COLUMNS if name not in columns]
        if missing:
            raise FatalInputFailure(source, f"header missing required column(s): {', '.join(missing)}")

        records: List[Record] = []
        truncated = False
        while True:
            try:
                row = next(reader)
            except StopIteration:
                break
            except csv.Error as exc:
                if str(exc).startswith(_END_OF_DATA):
                    truncated = True
                    log.warning(
                        "Input stream truncated; keeping rows read so far",
                        extra={"source": source, "rows": len(records), "error": str(exc)},
                    )
                    break
                # The reader resets on the next call; the broken row becomes a
                # record with no usable values so every rule rejects it.
                records.append(Record(line_number=reader.line_num, extra={PARSE_ERROR_KEY: str(exc)}))
                continue
            except UnicodeDecodeError as exc:
                truncated = True
                log.warning(
                    "Undecodable bytes in input; keeping rows read so far",
                    extra={"source": source, "rows": len(records), "error": str(exc)},
                )
                break
            if not row:
                continue
            records.append(_to_record(row, columns, reader.line_num))

        batch = Batch(
            batch_id=batch_id or new_batch_id(),
            source=source,
            records=tuple(records),
            truncated=truncated,
        )
        log.info(
            "Batch read",
            extra={"batch_id": batch.batch_id, "source": source, "rows": len(batch), "truncated": truncated},
        )
        return batch

    def read_batch(self, path: Path | str, batch_id: Optional[str] = None) -> Batch:
        """
        Read one file. Raises FatalInputFailure when the file cannot be opened
        or its header is unusable.
        """
        file_path = Path(path)
        try:
            with file_path.open("r", newline="", encoding="utf-8-sig") as f:
                return self.read_stream(f, source=str(file_path), batch_id=batch_id)
        except OSError as exc:
            raise FatalInputFailure(str(file_path), f"cannot open input: {exc}") from exc


__all__ = ["CSVBatchReader", "OVERFLOW_KEY", "PARSE_ERROR_KEY", "REQUIRED_COLUMNS"]
