"""Block literal substrings that appear in newly added lines."""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, Iterator

from saykai_gate.config import ForbiddenPatternRule
from saykai_gate.result import MatchHit, Verdict

from . import EvaluationContext

if TYPE_CHECKING:
    from saykai_gate.diff import AddedLine


def match_line(added: "AddedLine", rules: Iterable[ForbiddenPatternRule]) -> Iterator[MatchHit]:
    """Yield one hit per rule whose pattern occurs in the line, in rule order.

    Matching is case-sensitive containment; patterns are never treated as regexes.
    """

    for rule in rules:
        if rule.pattern and rule.pattern in added.content:
            yield MatchHit.from_line(
                rule_id=rule.id,
                pattern=rule.pattern,
                message=rule.message,
                file=added.file,
                line=added.line_number,
                content=added.content,
            )


class ForbiddenPatternCheck:
    """Flag added lines containing a forbidden pattern."""

    name = "forbidden_patterns"

    def scan(self, context: EvaluationContext, verdict: Verdict) -> None:
        rules = context.spec.forbidden_patterns
        if not rules:
            return
        for added in context.added_lines:
            verdict.extend(match_line(added, rules))
