"""Sequential gate pipeline: event, spec, diff, rules, report."""

from __future__ import annotations

import os
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Collection, List, Optional, Protocol, Tuple

from .config import DEFAULT_SPEC_PATH, load_spec_file
from .diff import AddedLine, DiffScanner
from .errors import GateError, RangeError, SchemaError
from .event import PullRequestContext, load_pull_request
from .kinds import FailureKind
from .report import (
    DEFAULT_MAX_FILES,
    REPORT_DIR,
    GateReport,
    RunMetadata,
    build_report,
    format_failure,
    format_summary_table,
    write_report_files,
)
from .result import Verdict
from .rules import DEFAULT_REQUIRED_LABEL, EvaluationContext, evaluate
from .utils import JobSummary, error, error_at, out, warn
from .vcs import DEFAULT_FETCH_DEPTH, DEFAULT_RETRIES, DEFAULT_TIMEOUT, GitClient

BLOCK_MESSAGE = "Saykai Gate blocked this change. See job summary and .saykai reports."
SUMMARY_FAILURE_LIMIT = 10


class ChangeSource(Protocol):
    def changed_files(self, base: str, head: str) -> List[str]:
        ...

    def added_lines(self, base: str, head: str, files: Optional[Collection[str]] = None) -> List[AddedLine]:
        ...


@dataclass
class GateOptions:
    """Run parameters; relative paths resolve against ``workdir``."""

    workdir: Path
    spec_path: str = DEFAULT_SPEC_PATH
    required_label: str = DEFAULT_REQUIRED_LABEL
    max_files_scanned: int = DEFAULT_MAX_FILES
    event_path: Optional[str] = None
    report_dir: str = REPORT_DIR
    summary_path: Optional[str] = None
    git_timeout: float = DEFAULT_TIMEOUT
    git_retries: int = DEFAULT_RETRIES
    fetch_depth: int = DEFAULT_FETCH_DEPTH

    def resolve(self, path: str) -> Path:
        candidate = Path(path)
        return candidate if candidate.is_absolute() else Path(self.workdir) / candidate

    @property
    def spec_file(self) -> Path:
        return self.resolve(self.spec_path)

    @property
    def report_path(self) -> Path:
        return self.resolve(self.report_dir)


@dataclass
class GateOutcome:
    exit_code: int
    report: Optional[GateReport] = None
    report_paths: Tuple[Path, ...] = ()

    @property
    def skipped(self) -> bool:
        return self.report is None


def _relative(path: Path, root: Path) -> str:
    try:
        return Path(os.path.relpath(path, root)).as_posix()
    except ValueError:
        return path.as_posix()


def _evaluate(
    options: GateOptions,
    pr: PullRequestContext,
    source: ChangeSource,
    metadata: RunMetadata,
    verdict: Verdict,
    summary: JobSummary,
) -> None:
    diff_range = pr.diff_range
    if diff_range is None:
        raise RangeError("Unable to compute diff range for PR.")
    base, head = diff_range
    metadata.base, metadata.head = base, head

    spec = load_spec_file(options.spec_file, options.spec_path)
    metadata.spec_version = spec.version
    out(f"Loaded Safety Spec {spec.version} with {spec.rule_count} rule(s) from {options.spec_path}")

    changed = source.changed_files(base, head)
    metadata.changed_files = list(changed)
    evaluated = changed[: options.max_files_scanned]
    metadata.files_evaluated = len(evaluated)

    summary.append("\n## Change set\n")
    summary.append(f"- Files changed: **{len(changed)}** (evaluating up to **{len(evaluated)}**)")
    labels = ", ".join(f"`{label}`" for label in pr.labels) if pr.labels else "_none_"
    summary.append(f"- PR labels: {labels}")

    scope: Optional[Collection[str]] = None
    if len(evaluated) < len(changed):
        warn(
            f"{len(changed)} files changed; scanning added lines in the first {len(evaluated)} only. "
            "Protected paths are checked for every file."
        )
        scope = frozenset(evaluated)

    context = EvaluationContext(
        spec=spec,
        added_lines=source.added_lines(base, head, scope),
        changed_files=changed,
        labels=frozenset(pr.labels),
        required_label=options.required_label,
    )
    evaluate(context, verdict)


def _annotate(verdict: Verdict) -> None:
    for failure in verdict.failures:
        if failure.kind is FailureKind.FORBIDDEN_PATTERN:
            error_at(
                failure.file,
                failure.line,
                f'{failure.message} (rule: {failure.rule_id}, pattern: "{failure.pattern}")',
            )
        elif failure.kind is FailureKind.PROTECTED_PATHS:
            error(f'{failure.message} (rule: {failure.rule_id}, required label: "{failure.required_label}")')
        else:
            error(failure.message)


def _summarize(summary: JobSummary, verdict: Verdict, report_refs: str) -> None:
    summary.append("\n## Gate result\n")
    if verdict.passed:
        summary.append("- Status: **PASS**")
        summary.append(f"- Report: {report_refs}")
        return
    summary.append("- Status: **BLOCK**")
    summary.append(f"- Failures: **{len(verdict.failures)}**")
    summary.append(f"- Report: {report_refs}")
    summary.append("\n### Failures (top)\n")
    for failure in verdict.failures[:SUMMARY_FAILURE_LIMIT]:
        summary.append(format_failure(failure)[0])


def run_gate(
    options: GateOptions,
    source: Optional[ChangeSource] = None,
    summary: Optional[JobSummary] = None,
    cancel_event: Optional[threading.Event] = None,
) -> GateOutcome:
    """Run the gate once and persist its report.

    Returns exit code 0 for a pass or a non-pull-request event, 1 otherwise.
    """

    if summary is None:
        summary = JobSummary(options.summary_path)
    workdir = Path(options.workdir)

    summary.append("# Saykai Gate\n")
    summary.append(f"- Workspace: `{workdir}`")
    summary.append(f"- Spec: `{options.spec_path}`")
    summary.append(f"- Required label for protected paths: `{options.required_label}`")

    pr = load_pull_request(options.event_path)
    if pr is None:
        warn("Designed for pull_request events. Skipping.")
        summary.append("\n> Skipped: not a pull_request event.\n")
        return GateOutcome(exit_code=0)

    metadata = RunMetadata(
        pr_number=pr.number,
        pr_title=pr.title,
        labels=pr.labels,
        max_files_scanned=options.max_files_scanned,
    )
    verdict = Verdict()
    if source is None:
        git = GitClient(
            workdir,
            timeout=options.git_timeout,
            retries=options.git_retries,
            fetch_depth=options.fetch_depth,
            cancel_event=cancel_event,
        )
        source = DiffScanner(git)

    try:
        _evaluate(options, pr, source, metadata, verdict, summary)
    except SchemaError as exc:
        verdict.add_fatal(str(exc))
        for message in exc.errors:
            verdict.add_fatal(message)
        summary.append("\n## Spec validation\n")
        for message in exc.errors:
            summary.append(f"- {message}")
    except GateError as exc:
        verdict.add_fatal(str(exc))

    report = build_report(metadata, verdict)
    paths = write_report_files(options.report_path, report)
    report_refs = " and ".join(f"`{_relative(path, workdir)}`" for path in paths)

    out(format_summary_table(verdict))
    out(f"\nReport written to {report_refs.replace('`', '')}")
    _annotate(verdict)
    _summarize(summary, verdict, report_refs)

    if verdict.passed:
        out("Saykai Gate: PASS")
    else:
        error(BLOCK_MESSAGE)
    return GateOutcome(exit_code=verdict.exit_code(), report=report, report_paths=paths)
