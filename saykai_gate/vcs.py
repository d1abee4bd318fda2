"""Git command runner used to obtain diffs for the gate."""

from __future__ import annotations

import re
import subprocess
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence

from .errors import GateCancelled, RangeError, VcsError
from .utils import warn

DEFAULT_TIMEOUT = 120.0
DEFAULT_RETRIES = 2
DEFAULT_FETCH_DEPTH = 200
RETRY_BACKOFF = 1.0

_UNRESOLVABLE_HINTS = ("unknown revision", "bad revision", "bad object", "invalid object name", "ambiguous argument")

# core.quotePath=false keeps non-ASCII names raw; git still quotes names
# with control characters in them.
_QUOTED_ESCAPE = re.compile(rb"\\([0-7]{3}|.)", re.DOTALL)
_C_ESCAPES = {
    b"a": b"\a",
    b"b": b"\b",
    b"t": b"\t",
    b"n": b"\n",
    b"v": b"\v",
    b"f": b"\f",
    b"r": b"\r",
    b'"': b'"',
    b"\\": b"\\",
}


def unquote_path(value: str) -> str:
    """Undo git's C-style quoting of a path, leaving plain paths untouched."""

    if len(value) < 2 or not (value.startswith('"') and value.endswith('"')):
        return value

    def _replace(match: "re.Match[bytes]") -> bytes:
        token = match.group(1)
        if len(token) == 3:
            return bytes([int(token, 8) & 0xFF])
        return _C_ESCAPES.get(token, token)

    raw = _QUOTED_ESCAPE.sub(_replace, value[1:-1].encode("utf-8"))
    return raw.decode("utf-8", errors="replace")


@dataclass(frozen=True)
class GitResult:
    """Result envelope for one git invocation."""

    argv: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str


class GitClient:
    """Run git in an explicit working directory with a deadline and bounded retry.

    Only timeouts are retried; a non-zero exit status is returned to the
    caller on the first attempt.
    """

    def __init__(
        self,
        workdir: Path,
        timeout: float = DEFAULT_TIMEOUT,
        retries: int = DEFAULT_RETRIES,
        fetch_depth: int = DEFAULT_FETCH_DEPTH,
        cancel_event: Optional[threading.Event] = None,
        backoff: float = RETRY_BACKOFF,
    ) -> None:
        self.workdir = Path(workdir)
        self.timeout = timeout
        self.retries = max(0, retries)
        self.fetch_depth = fetch_depth
        self.cancel_event = cancel_event
        self.backoff = backoff

    def run(self, args: Sequence[str]) -> GitResult:
        argv = ("git", "-c", "core.quotePath=false", *args)
        attempts = self.retries + 1
        for attempt in range(1, attempts + 1):
            self._check_cancelled()
            try:
                completed = subprocess.run(
                    argv,
                    cwd=self.workdir,
                    capture_output=True,
                    text=True,
                    encoding="utf-8",
                    errors="replace",
                    timeout=self.timeout,
                    check=False,
                )
            except subprocess.TimeoutExpired:
                if attempt == attempts:
                    raise VcsError(argv, f"no result after {attempts} attempt(s) of {self.timeout:g}s")
                warn(f"{' '.join(argv)} timed out (attempt {attempt}/{attempts}); retrying")
                self._sleep(self.backoff * attempt)
                continue
            except OSError as exc:
                raise VcsError(argv, str(exc), status="could not start") from exc
            return GitResult(
                argv=argv,
                returncode=completed.returncode,
                stdout=completed.stdout,
                stderr=completed.stderr,
            )
        raise VcsError(argv, "no attempts made")  # pragma: no cover

    def fetch(self) -> bool:
        """Fetch missing history from ``origin``; failures only produce a warning."""

        try:
            result = self.run(["fetch", "--no-tags", "--prune", f"--depth={self.fetch_depth}", "origin"])
        except VcsError as exc:
            warn(f"git fetch failed, diffing with local history: {exc}")
            return False
        if result.returncode != 0:
            warn(f"git fetch failed, diffing with local history: {result.stderr.strip()}")
            return False
        return True

    def diff(self, base: str, head: str) -> str:
        """Return the zero-context unified diff between ``base`` and ``head``."""

        return self._checked(["diff", "-U0", "--no-color", "--no-ext-diff", base, head]).stdout

    def changed_files(self, base: str, head: str) -> List[str]:
        output = self._checked(["diff", "--name-only", "--no-color", base, head]).stdout
        return [unquote_path(line.strip()) for line in output.splitlines() if line.strip()]

    def _checked(self, args: Sequence[str]) -> GitResult:
        result = self.run(args)
        if result.returncode == 0:
            return result
        detail = result.stderr.strip() or result.stdout.strip()
        if any(hint in detail.lower() for hint in _UNRESOLVABLE_HINTS):
            raise RangeError(f"Unable to resolve diff range: {detail}")
        raise VcsError(result.argv, detail, result.returncode)

    def _check_cancelled(self) -> None:
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise GateCancelled("Gate run cancelled before git completed.")

    def _sleep(self, seconds: float) -> None:
        if seconds <= 0:
            return
        if self.cancel_event is not None:
            self.cancel_event.wait(seconds)
        else:
            time.sleep(seconds)
