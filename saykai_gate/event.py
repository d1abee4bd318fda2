"""Read the pull-request context from the CI event payload."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from .utils import read_json_file


@dataclass(frozen=True)
class PullRequestContext:
    """Fields of a ``pull_request`` event the gate relies on."""

    number: Optional[int]
    title: str
    base_sha: Optional[str] = None
    head_sha: Optional[str] = None
    labels: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def diff_range(self) -> Optional[Tuple[str, str]]:
        if not self.base_sha or not self.head_sha:
            return None
        return self.base_sha, self.head_sha

    @classmethod
    def from_payload(cls, payload: Any) -> Optional["PullRequestContext"]:
        if not isinstance(payload, dict):
            return None
        pull_request = payload.get("pull_request")
        if not isinstance(pull_request, dict):
            return None
        labels = tuple(
            str(label["name"])
            for label in pull_request.get("labels") or []
            if isinstance(label, dict) and label.get("name")
        )
        return cls(
            number=pull_request.get("number"),
            title=str(pull_request.get("title") or ""),
            base_sha=_sha(pull_request.get("base")),
            head_sha=_sha(pull_request.get("head")),
            labels=labels,
        )


def _sha(ref: Any) -> Optional[str]:
    if isinstance(ref, dict) and ref.get("sha"):
        return str(ref["sha"])
    return None


def load_pull_request(event_path: Optional[str] = None) -> Optional[PullRequestContext]:
    """Return the PR context, or ``None`` when the run is not for a pull request."""

    if event_path is None:
        event_path = os.environ.get("GITHUB_EVENT_PATH")
    if not event_path:
        return None
    payload: Dict[str, Any] | None = read_json_file(Path(event_path))
    return PullRequestContext.from_payload(payload)
