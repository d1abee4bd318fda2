"""Core verdict data structures for the gate."""

from __future__ import annotations

from dataclasses import dataclass, field, asdict
from typing import Dict, Iterable, List, Sequence, Tuple, Union

from .kinds import FailureKind

SAMPLE_LIMIT = 200

KIND_ORDER: Sequence[FailureKind] = (
    FailureKind.FORBIDDEN_PATTERN,
    FailureKind.PROTECTED_PATHS,
    FailureKind.FATAL,
)


@dataclass(frozen=True)
class MatchHit:
    """A forbidden pattern found in an added line."""

    rule_id: str
    file: str
    line: int
    pattern: str
    message: str
    sample: str

    kind = FailureKind.FORBIDDEN_PATTERN

    @classmethod
    def from_line(cls, rule_id: str, pattern: str, message: str, file: str, line: int, content: str) -> "MatchHit":
        return cls(
            rule_id=rule_id,
            file=file,
            line=line,
            pattern=pattern,
            message=message,
            sample=content[:SAMPLE_LIMIT],
        )

    def to_dict(self) -> Dict[str, object]:
        data: Dict[str, object] = {"type": self.kind.value}
        data.update(asdict(self))
        return data


@dataclass(frozen=True)
class ProtectedPathViolation:
    """Protected paths changed without the approval label."""

    rule_id: str
    message: str
    required_label: str
    touched_files: Tuple[str, ...]

    kind = FailureKind.PROTECTED_PATHS

    def to_dict(self) -> Dict[str, object]:
        return {
            "type": self.kind.value,
            "rule_id": self.rule_id,
            "message": self.message,
            "required_label": self.required_label,
            "touched_files": list(self.touched_files),
        }


@dataclass(frozen=True)
class FatalFailure:
    """A condition that stopped the gate before or during scanning."""

    message: str

    kind = FailureKind.FATAL

    def to_dict(self) -> Dict[str, object]:
        return {"type": self.kind.value, "message": self.message}


Failure = Union[MatchHit, ProtectedPathViolation, FatalFailure]


@dataclass
class Summary:
    """Aggregate failure counts by kind."""

    forbidden_pattern: int = 0
    protected_paths: int = 0
    fatal: int = 0

    def increment(self, kind: FailureKind) -> None:
        attr = kind.value
        setattr(self, attr, getattr(self, attr) + 1)

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)

    def as_rows(self) -> List[Tuple[str, int]]:
        """Return kind/count pairs ordered for reporting."""

        return [(kind.value, getattr(self, kind.value)) for kind in KIND_ORDER]

    @property
    def total(self) -> int:
        return sum(getattr(self, kind.value) for kind in KIND_ORDER)


@dataclass
class Verdict:
    """Append-only accumulator for one gate run.

    ``passed`` is derived from the failure list and there is no way to drop
    an entry, so a blocked run can never flip back to passing.
    """

    summary: Summary = field(default_factory=Summary)
    failures: List[Failure] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return not self.failures

    def add_failure(self, failure: Failure) -> None:
        self.summary.increment(failure.kind)
        self.failures.append(failure)

    def extend(self, failures: Iterable[Failure]) -> None:
        for failure in failures:
            self.add_failure(failure)

    def add_fatal(self, message: str) -> None:
        self.add_failure(FatalFailure(message=message))

    def to_dict(self) -> Dict[str, object]:
        return {
            "passed": self.passed,
            "failures": [failure.to_dict() for failure in self.failures],
        }

    def exit_code(self) -> int:
        return 0 if self.passed else 1
