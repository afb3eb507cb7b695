from __future__ import annotations

import json
import logging

from movie_ratings.utils.logging import _json_formatter

EXPECTED_ROWS = 10
EXPECTED_REJECTED = 3


def _record() -> logging.LogRecord:
    return logging.LogRecord(
        name="test.logger",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="hello",
        args=(),
        exc_info=None,
    )


def test_json_formatter_promotes_standard_extra_fields() -> None:
    record = _record()
    record.rows = EXPECTED_ROWS
    record.batch_id = "abc123"

    payload = json.loads(_json_formatter(record))

    assert payload["level"] == "INFO"
    assert payload["logger"] == "test.logger"
    assert payload["message"] == "hello"
    assert payload["rows"] == EXPECTED_ROWS
    assert payload["batch_id"] == "abc123"
    assert "lineno" not in payload


def test_json_formatter_supports_legacy_nested_extra_field() -> None:
    record = _record()
    record.extra = {"rejected": EXPECTED_REJECTED}

    payload = json.loads(_json_formatter(record))

    assert payload["rejected"] == EXPECTED_REJECTED


def test_json_formatter_stringifies_unserializable_values() -> None:
    record = _record()
    record.failed_rules = frozenset({"title_nonempty"})

    payload = json.loads(_json_formatter(record))

    assert "title_nonempty" in payload["failed_rules"]
