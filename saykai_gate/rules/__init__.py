"""Rule registry for the gate."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, FrozenSet, List, Optional, Protocol, Sequence

from saykai_gate.config import Spec
from saykai_gate.result import Verdict

if TYPE_CHECKING:
    from saykai_gate.diff import AddedLine

DEFAULT_REQUIRED_LABEL = "saykai-approved"


class Rule(Protocol):
    """Protocol implemented by all rule evaluators."""

    name: str

    def scan(self, context: "EvaluationContext", verdict: Verdict) -> None:
        """Evaluate the context and append failures to ``verdict``."""


@dataclass
class EvaluationContext:
    """Bundle inputs shared across rules."""

    spec: Spec
    added_lines: Sequence["AddedLine"] = ()
    changed_files: Sequence[str] = ()
    labels: FrozenSet[str] = field(default_factory=frozenset)
    required_label: str = DEFAULT_REQUIRED_LABEL

    @property
    def approved(self) -> bool:
        return self.required_label in self.labels


def load_rules() -> List[Rule]:
    from .forbidden_patterns import ForbiddenPatternCheck
    from .protected_paths import ProtectedPathCheck

    return [
        ForbiddenPatternCheck(),
        ProtectedPathCheck(),
    ]


def evaluate(context: EvaluationContext, verdict: Optional[Verdict] = None) -> Verdict:
    """Run every rule against ``context`` in a fixed order."""

    if verdict is None:
        verdict = Verdict()
    for rule in load_rules():
        rule.scan(context, verdict)
    return verdict

