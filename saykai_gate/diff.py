"""Extract added lines with post-change line numbers from a unified diff."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Collection, Iterable, Iterator, List, Optional

from unidiff import PatchSet, UnidiffParseError

from .config import ForbiddenPatternRule
from .errors import DiffParseError
from .result import MatchHit
from .rules.forbidden_patterns import match_line
from .vcs import GitClient, unquote_path

DEV_NULL = "/dev/null"


@dataclass(frozen=True)
class AddedLine:
    """One line present after the change and absent before it."""

    file: str
    line_number: int
    content: str


def _target_path(target_file: str) -> Optional[str]:
    target_file = unquote_path(target_file or "")
    if not target_file or target_file == DEV_NULL:
        return None
    if target_file.startswith("b/"):
        return target_file[2:]
    return target_file


def _strip_eol(value: str) -> str:
    if value.endswith("\n"):
        return value[:-1]
    return value


def parse_added_lines(diff_text: str, files: Optional[Collection[str]] = None) -> Iterator[AddedLine]:
    """Yield added lines in diff order.

    Each hunk seeds the counter from its new-file start line; added lines
    take the current value and advance it, removed lines leave it alone.
    When ``files`` is given, lines from other files are skipped.
    """

    if not diff_text.strip():
        return
    try:
        patch = PatchSet(diff_text)
    except UnidiffParseError as exc:
        raise DiffParseError(f"Unable to parse diff: {exc}") from exc

    for patched_file in patch:
        path = _target_path(patched_file.target_file)
        if path is None or patched_file.is_removed_file or patched_file.is_binary_file:
            continue
        if files is not None and path not in files:
            continue
        for hunk in patched_file:
            cursor = hunk.target_start
            for line in hunk:
                if line.is_added:
                    yield AddedLine(file=path, line_number=cursor, content=_strip_eol(line.value))
                    cursor += 1
                elif line.is_context:
                    cursor += 1


class DiffScanner:
    """Read changed files and added lines between two revisions via git."""

    def __init__(self, git: GitClient) -> None:
        self._git = git
        self._fetched = False

    def _ensure_fetched(self) -> None:
        if not self._fetched:
            self._git.fetch()
            self._fetched = True

    def changed_files(self, base: str, head: str) -> List[str]:
        self._ensure_fetched()
        return self._git.changed_files(base, head)

    def added_lines(self, base: str, head: str, files: Optional[Collection[str]] = None) -> List[AddedLine]:
        self._ensure_fetched()
        return list(parse_added_lines(self._git.diff(base, head), files))

    def scan_added_lines(
        self,
        base: str,
        head: str,
        rules: Iterable[ForbiddenPatternRule],
        files: Optional[Collection[str]] = None,
    ) -> List[MatchHit]:
        rules = tuple(rules)
        hits: List[MatchHit] = []
        for added in self.added_lines(base, head, files):
            hits.extend(match_line(added, rules))
        return hits
