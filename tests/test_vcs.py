import subprocess
import threading

import pytest

from saykai_gate.errors import GateCancelled, RangeError, VcsError
from saykai_gate.vcs import GitClient, unquote_path


class ScriptedRun:
    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    def __call__(self, argv, **kwargs):
        self.calls.append((tuple(argv), kwargs))
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


def _completed(returncode=0, stdout="", stderr=""):
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


def test_changed_files_runs_in_workdir(tmp_path, monkeypatch):
    fake = ScriptedRun(_completed(stdout="a.txt\n\nb/c.txt\n"))
    monkeypatch.setattr(subprocess, "run", fake)

    files = GitClient(tmp_path, timeout=5).changed_files("base", "head")

    assert files == ["a.txt", "b/c.txt"]
    argv, kwargs = fake.calls[0]
    assert argv == ("git", "-c", "core.quotePath=false", "diff", "--name-only", "--no-color", "base", "head")
    assert kwargs["cwd"] == tmp_path
    assert kwargs["timeout"] == 5


def test_diff_uses_zero_context(tmp_path, monkeypatch):
    fake = ScriptedRun(_completed(stdout="diff text"))
    monkeypatch.setattr(subprocess, "run", fake)

    assert GitClient(tmp_path).diff("base", "head") == "diff text"
    assert fake.calls[0][0][3:5] == ("diff", "-U0")


def test_timeouts_are_retried(tmp_path, monkeypatch, capsys):
    fake = ScriptedRun(
        subprocess.TimeoutExpired(cmd="git", timeout=1),
        _completed(stdout="x.txt\n"),
    )
    monkeypatch.setattr(subprocess, "run", fake)

    files = GitClient(tmp_path, timeout=1, retries=2, backoff=0).changed_files("base", "head")

    assert files == ["x.txt"]
    assert len(fake.calls) == 2
    assert "timed out (attempt 1/3)" in capsys.readouterr().out


def test_retries_are_bounded(tmp_path, monkeypatch):
    fake = ScriptedRun(*[subprocess.TimeoutExpired(cmd="git", timeout=1) for _ in range(2)])
    monkeypatch.setattr(subprocess, "run", fake)

    with pytest.raises(VcsError) as excinfo:
        GitClient(tmp_path, timeout=1, retries=1, backoff=0).diff("base", "head")

    assert "timed out" in str(excinfo.value)
    assert len(fake.calls) == 2


def test_unknown_revision_is_a_range_error(tmp_path, monkeypatch):
    fake = ScriptedRun(_completed(returncode=128, stderr="fatal: bad object deadbeef"))
    monkeypatch.setattr(subprocess, "run", fake)

    with pytest.raises(RangeError):
        GitClient(tmp_path).diff("deadbeef", "head")


def test_other_git_failures_raise_vcs_error(tmp_path, monkeypatch):
    fake = ScriptedRun(_completed(returncode=129, stderr="usage: git diff"))
    monkeypatch.setattr(subprocess, "run", fake)

    with pytest.raises(VcsError) as excinfo:
        GitClient(tmp_path).diff("base", "head")

    assert excinfo.value.returncode == 129


def test_fetch_failure_is_only_a_warning(tmp_path, monkeypatch, capsys):
    fake = ScriptedRun(_completed(returncode=128, stderr="fatal: 'origin' does not appear to be a git repository"))
    monkeypatch.setattr(subprocess, "run", fake)

    assert GitClient(tmp_path, fetch_depth=50).fetch() is False
    assert "--depth=50" in fake.calls[0][0]
    assert "::warning title=Saykai Gate::git fetch failed" in capsys.readouterr().out


def test_cancelled_client_does_not_run_git(tmp_path, monkeypatch):
    fake = ScriptedRun()
    monkeypatch.setattr(subprocess, "run", fake)
    cancel = threading.Event()
    cancel.set()

    with pytest.raises(GateCancelled):
        GitClient(tmp_path, cancel_event=cancel).changed_files("base", "head")
    with pytest.raises(GateCancelled):
        GitClient(tmp_path, cancel_event=cancel).fetch()
    assert fake.calls == []


def test_quoted_names_are_unquoted(tmp_path, monkeypatch):
    fake = ScriptedRun(_completed(stdout='"infra/r\\303\\251sum\\303\\251.tf"\n"logs/tab\\there.txt"\nplain.txt\n'))
    monkeypatch.setattr(subprocess, "run", fake)

    files = GitClient(tmp_path).changed_files("base", "head")

    assert files == ["infra/résumé.tf", "logs/tab\there.txt", "plain.txt"]


def test_unquote_path_handles_escaped_quotes_and_backslashes():
    assert unquote_path('"a\\"b\\\\c"') == 'a"b\\c'
    assert unquote_path("infra/main.tf") == "infra/main.tf"
    assert unquote_path('"') == '"'


def test_missing_git_binary_is_not_reported_as_timeout(tmp_path, monkeypatch):
    fake = ScriptedRun(FileNotFoundError(2, "No such file or directory", "git"))
    monkeypatch.setattr(subprocess, "run", fake)

    with pytest.raises(VcsError) as excinfo:
        GitClient(tmp_path).diff("base", "head")

    message = str(excinfo.value)
    assert message.startswith("git command could not start:")
    assert "timed out" not in message
    assert excinfo.value.returncode is None
