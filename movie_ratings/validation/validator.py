from __future__ import annotations

from typing import Optional

from movie_ratings.config import get_settings
from movie_ratings.domain.models import Record, Verdict
from movie_ratings.utils.logging import get_logger
from movie_ratings.validation.rules import RuleSet, build_default_rules

log = get_logger(__name__)


class RowValidator:
    """
    Evaluate one record against every rule in a rule set.

    Pure: no I/O and no mutation of the record. A predicate that raises on a
    malformed value counts as a failure of that rule.
    """

    def __init__(self, rules: Optional[RuleSet] = None) -> None:
        self.rules: RuleSet = rules if rules is not None else build_default_rules(get_settings())

    @property
    def rule_ids(self) -> tuple[str, ...]:
        return tuple(self.rules)

    def validate(self, record: Record) -> Verdict:
        failed = set()
        for rule_id, predicate in self.rules.items():
            try:
                ok = bool(predicate(record))
            except (TypeError, ValueError, ArithmeticError, AttributeError) as exc:
                log.debug(
                    "Rule raised on malformed value",
                    extra={"rule": rule_id, "line_number": record.line_number, "error": str(exc)},
                )
                ok = False
            if not ok:
                failed.add(rule_id)
        return Verdict(record=record, failed_rules=frozenset(failed))


__all__ = ["RowValidator"]
