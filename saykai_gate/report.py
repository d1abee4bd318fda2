"""Build and persist the gate report in JSON and Markdown form."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .kinds import FailureKind
from .result import Failure, Verdict
from .utils import write_text_file

GATE_ID = "saykai-gate"
UNKNOWN_VERSION = "unknown"
REPORT_DIR = ".saykai"
JSON_REPORT = "report.json"
MARKDOWN_REPORT = "report.md"
MAX_LISTED_FILES = 20
DEFAULT_MAX_FILES = 200


@dataclass
class RunMetadata:
    """Everything known about the run, filled in as the pipeline progresses.

    A fatal failure can stop the pipeline at any step, so every field has a
    usable default.
    """

    pr_number: Optional[int] = None
    pr_title: str = ""
    labels: Tuple[str, ...] = ()
    base: Optional[str] = None
    head: Optional[str] = None
    changed_files: List[str] = field(default_factory=list)
    spec_version: str = UNKNOWN_VERSION
    max_files_scanned: int = DEFAULT_MAX_FILES
    files_evaluated: int = 0
    gate: str = GATE_ID


@dataclass(frozen=True)
class GateReport:
    structured: Dict[str, Any]
    rendered: str

    @property
    def passed(self) -> bool:
        return bool(self.structured["results"]["passed"])


def build_structured(metadata: RunMetadata, verdict: Verdict) -> Dict[str, Any]:
    return {
        "gate": metadata.gate,
        "spec_version": metadata.spec_version or UNKNOWN_VERSION,
        "pr": {
            "number": metadata.pr_number,
            "title": metadata.pr_title,
            "labels": list(metadata.labels),
        },
        "diff": {
            "base": metadata.base,
            "head": metadata.head,
            "changed_files": list(metadata.changed_files),
            "max_files_scanned": metadata.max_files_scanned,
            "files_evaluated": metadata.files_evaluated,
        },
        "summary": verdict.summary.to_dict(),
        "results": verdict.to_dict(),
    }


def format_failure(failure: Failure) -> List[str]:
    """Return the Markdown bullet line(s) for a failure entry."""

    if failure.kind is FailureKind.FORBIDDEN_PATTERN:
        return [f"- Forbidden pattern `{failure.pattern}` in `{failure.file}:{failure.line}` (rule: `{failure.rule_id}`)"]
    if failure.kind is FailureKind.PROTECTED_PATHS:
        files = list(failure.touched_files)
        listed = ", ".join(files[:MAX_LISTED_FILES])
        if len(files) > MAX_LISTED_FILES:
            listed += " ..."
        return [
            f"- Protected paths changed without label `{failure.required_label}` (rule: `{failure.rule_id}`)",
            f"  - Files: {listed}",
        ]
    return [f"- {failure.message}"]


def render_markdown(metadata: RunMetadata, verdict: Verdict) -> str:
    lines: List[str] = ["# Saykai Gate report", ""]
    lines.append(f"- Spec version: {metadata.spec_version or UNKNOWN_VERSION}")
    if metadata.pr_number is not None:
        lines.append(f"- PR: #{metadata.pr_number} - {metadata.pr_title}".rstrip())
    lines.append(f"- Labels: {', '.join(metadata.labels) if metadata.labels else 'none'}")
    if metadata.base and metadata.head:
        lines.append(f"- Diff: `{metadata.base}...{metadata.head}` ({len(metadata.changed_files)} files)")
    lines.append("")
    lines.append("## Result")
    if verdict.passed:
        lines.append("PASS")
    else:
        lines.append("BLOCK")
        lines.append("")
        lines.append("## Failures")
        for failure in verdict.failures:
            lines.extend(format_failure(failure))
    return "\n".join(lines) + "\n"


def build_report(metadata: RunMetadata, verdict: Verdict) -> GateReport:
    return GateReport(
        structured=build_structured(metadata, verdict),
        rendered=render_markdown(metadata, verdict),
    )


def write_report_files(report_dir: Path, report: GateReport) -> Tuple[Path, Path]:
    """Write ``report.json`` and ``report.md`` into ``report_dir``."""

    json_path = write_text_file(report_dir / JSON_REPORT, json.dumps(report.structured, indent=2))
    md_path = write_text_file(report_dir / MARKDOWN_REPORT, report.rendered)
    return json_path, md_path


def format_summary_table(verdict: Verdict, max_failures: int = 10) -> str:
    """Create a human-readable summary table for console output."""

    lines: List[str] = []
    lines.append("Gate Summary")
    lines.append("=" * 40)
    header = f"{'Kind':<18} | {'Count':>5}"
    lines.append(header)
    lines.append("-" * len(header))
    for kind, count in verdict.summary.as_rows():
        lines.append(f"{kind:<18} | {count:>5}")
    lines.append("-" * len(header))
    status = "PASS" if verdict.passed else "BLOCK"
    lines.append(f"Status    : {status}")
    lines.append(f"Failures  : {verdict.summary.total}")

    shown = verdict.failures[:max_failures]
    if shown:
        lines.append("")
        lines.append("Top Failures")
        lines.append("-" * 40)
        for failure in shown:
            lines.extend(format_failure(failure))
    return "\n".join(lines)
