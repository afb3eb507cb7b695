"""
Error taxonomy for the movie ratings quality gate.

Rule violations are not errors: they are a normal classification outcome and
never appear here. `FatalInputFailure` is raised and aborts a batch.
`PartialIngestFailure` and `RefreshFailure` are recoverable; the pipeline
reports them in a structured outcome so an external orchestrator can retry.
"""

from __future__ import annotations

from typing import Sequence


class PipelineError(Exception):
    """Base class for all pipeline errors."""


class FatalInputFailure(PipelineError):
    """The input unit is structurally unreadable; no output is produced for it."""

    def __init__(self, source: str, reason: str) -> None:
        super().__init__(f"{source}: {reason}")
        self.source = source
        self.reason = reason


class PartialIngestFailure(PipelineError):
    """One or more accepted records could not be appended to the durable table."""

    def __init__(self, failed_count: int, messages: Sequence[str] = ()) -> None:
        detail = f"{failed_count} record(s) failed durable insertion"
        if messages:
            detail = f"{detail}: {messages[0]}"
        super().__init__(detail)
        self.failed_count = failed_count
        self.messages = tuple(messages)


class RefreshFailure(PipelineError):
    """The aggregate snapshot could not be recomputed; the previous one stays visible."""


class TableUnavailableError(PipelineError):
    """The durable table rejected a whole operation (unreachable, timed out, missing)."""


__all__ = [
    "PipelineError",
    "FatalInputFailure",
    "PartialIngestFailure",
    "RefreshFailure",
    "TableUnavailableError",
]
