"""Require an approval label when protected paths change."""

from __future__ import annotations

from typing import Iterable, List

from saykai_gate.config import ProtectedPathRule
from saykai_gate.result import ProtectedPathViolation, Verdict

from . import EvaluationContext


def normalize_path(path: str) -> str:
    return str(path).replace("\\", "/")


def is_under_any_prefix(file_path: str, prefixes: Iterable[str]) -> bool:
    """Return True if ``file_path`` equals a prefix or sits beneath one."""

    norm = normalize_path(file_path)
    for prefix in prefixes:
        bounded = normalize_path(prefix).rstrip("/")
        if norm == bounded or norm.startswith(bounded + "/"):
            return True
    return False


def touched_files(rule: ProtectedPathRule, changed_files: Iterable[str]) -> List[str]:
    return [path for path in changed_files if is_under_any_prefix(path, rule.paths)]


class ProtectedPathCheck:
    """Emit one violation per rule whose paths changed without approval."""

    name = "protected_paths"

    def scan(self, context: EvaluationContext, verdict: Verdict) -> None:
        if context.approved:
            return
        for rule in context.spec.protected_paths:
            touched = touched_files(rule, context.changed_files)
            if not touched:
                continue
            verdict.add_failure(
                ProtectedPathViolation(
                    rule_id=rule.id,
                    message=rule.message,
                    required_label=context.required_label,
                    touched_files=tuple(touched),
                )
            )
