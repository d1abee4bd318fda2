"""GitHub Actions workflow commands and job summary output."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Optional

from .fileio import append_text_file

TITLE = "Saykai Gate"
_NEWLINES = re.compile(r"[\r\n]")


def _flatten(message: object) -> str:
    return _NEWLINES.sub(" ", str(message))


def out(message: str) -> None:
    print(message)


def warn(message: str) -> None:
    print(f"::warning title={TITLE}::{_flatten(message)}")


def error(message: str) -> None:
    print(f"::error title={TITLE}::{_flatten(message)}")


def error_at(file: str, line: Optional[int], message: str) -> None:
    """Emit an error annotation anchored to ``file`` (and ``line`` when positive)."""

    safe_file = _NEWLINES.sub("", file or "")
    location = f"file={safe_file}"
    if isinstance(line, int) and line > 0:
        location += f",line={line}"
    print(f"::error {location},title={TITLE}::{_flatten(message)}")


class JobSummary:
    """Append Markdown to the run summary file when one is configured."""

    def __init__(self, path: Optional[str] = None) -> None:
        if path is None:
            path = os.environ.get("GITHUB_STEP_SUMMARY") or None
        self._path = Path(path) if path else None

    @property
    def enabled(self) -> bool:
        return self._path is not None

    def append(self, markdown: str) -> None:
        if self._path is None:
            return
        append_text_file(self._path, markdown + "\n")
