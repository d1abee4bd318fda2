"""Error taxonomy for the gate pipeline."""

from __future__ import annotations

from typing import Iterable, List


class GateError(RuntimeError):
    """Base class for conditions that abort evaluation with a fatal verdict."""


class SchemaError(GateError):
    """Raised when the Safety Spec fails to parse or validate."""

    def __init__(self, errors: Iterable[str]) -> None:
        self.errors: List[str] = list(errors)
        super().__init__("Invalid Safety Spec. Fix spec format.")


class MissingSpecError(GateError):
    """Raised when the Safety Spec file does not exist."""

    def __init__(self, spec_path: str) -> None:
        self.spec_path = spec_path
        super().__init__(f"Missing Safety Spec at {spec_path}. Add one or set inputs.spec_path.")


class SpecReadError(GateError):
    """Raised when the Safety Spec exists but cannot be read."""

    def __init__(self, spec_path: str, detail: str) -> None:
        self.spec_path = spec_path
        super().__init__(f"Unable to read Safety Spec at {spec_path}: {detail}")


class RangeError(GateError):
    """Raised when the base/head diff range cannot be resolved."""


class VcsError(GateError):
    """Raised when a git command fails or exceeds its deadline."""

    def __init__(
        self,
        argv: Iterable[str],
        detail: str,
        returncode: int | None = None,
        status: str | None = None,
    ) -> None:
        self.argv = tuple(argv)
        self.returncode = returncode
        rendered = " ".join(self.argv)
        if status is None:
            status = "timed out" if returncode is None else f"failed ({returncode})"
        message = f"git command {status}: {rendered}"
        if detail:
            message += f"\n{detail.strip()}"
        super().__init__(message)


class DiffParseError(GateError):
    """Raised when diff text cannot be parsed into hunks."""


class GateCancelled(GateError):
    """Raised when the run is cancelled before a git call completes."""
