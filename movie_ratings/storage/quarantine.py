"""
Quarantine storage for rejected records and per-batch rule summaries.

Layout under the quarantine root:
- `<batch_id>/rejected.jsonl` (one rejected record per line, with failed rules)
- `<batch_id>/summary.json` (rule outcome summary)

Files are written to a temporary name and renamed into place so a reader never
sees a half-written quarantine file.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Iterable, List

from movie_ratings.domain.models import RuleOutcomeSummary, Verdict
from movie_ratings.utils.logging import get_logger

log = get_logger(__name__)

REJECTED_FILE = "rejected.jsonl"
SUMMARY_FILE = "summary.json"


def rejected_entry(verdict: Verdict) -> Dict[str, Any]:
    """Original columns of a rejected record plus its failed rule ids."""
    record = verdict.record
    # Extra input columns never shadow the record fields or the audit keys.
    entry: Dict[str, Any] = dict(record.extra)
    entry.update(
        line_number=record.line_number,
        title=record.title,
        released_year=record.released_year,
        genre=record.genre,
        rating=record.rating,
    )
    entry["failed_rules"] = sorted(verdict.failed_rules)
    return entry


def _atomic_write(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


class QuarantineStore:
    """
    Durable storage area for records that failed validation.

    Parameters
    ----------
    root : Path | str
        Directory that holds one sub-directory per batch.
    """

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root)

    def batch_dir(self, batch_id: str) -> Path:
        return self.root / batch_id

    def write(self, batch_id: str, rejected: Iterable[Verdict], summary: RuleOutcomeSummary) -> Path:
        """
        Persist rejected records and the summary for one batch. The summary is
        written last so its presence marks the batch as fully quarantined.
        """
        target = self.batch_dir(batch_id)
        lines = [json.dumps(rejected_entry(v), default=str, sort_keys=True) for v in rejected]
        _atomic_write(target / REJECTED_FILE, "".join(f"{line}\n" for line in lines))
        _atomic_write(
            target / SUMMARY_FILE,
            json.dumps(summary.model_dump(mode="json"), indent=2, sort_keys=True),
        )
        log.info(
            "Quarantine written",
            extra={"batch_id": batch_id, "rejected": len(lines), "path": str(target)},
        )
        return target

    def read_rejected(self, batch_id: str) -> List[Dict[str, Any]]:
        path = self.batch_dir(batch_id) / REJECTED_FILE
        with path.open("r", encoding="utf-8") as f:
            return [json.loads(line) for line in f if line.strip()]

    def read_summary(self, batch_id: str) -> RuleOutcomeSummary:
        path = self.batch_dir(batch_id) / SUMMARY_FILE
        with path.open("r", encoding="utf-8") as f:
            return RuleOutcomeSummary.model_validate(json.load(f))


__all__ = ["QuarantineStore", "REJECTED_FILE", "SUMMARY_FILE", "rejected_entry"]
