"""Command-line entry point for the Saykai Gate."""

from __future__ import annotations

import argparse
import os
from pathlib import Path
from typing import List

from .config import DEFAULT_SPEC_PATH
from .gate import GateOptions, run_gate
from .report import DEFAULT_MAX_FILES, REPORT_DIR
from .rules import DEFAULT_REQUIRED_LABEL
from .vcs import DEFAULT_FETCH_DEPTH, DEFAULT_RETRIES, DEFAULT_TIMEOUT


def get_input(name: str, fallback: str) -> str:
    """Read a GitHub Action input (``INPUT_<NAME>``) from the environment."""

    key = "INPUT_" + name.replace(" ", "_").upper()
    return (os.environ.get(key) or fallback).strip()


def to_positive_int(value: object, fallback: int) -> int:
    try:
        number = int(str(value).strip())
    except ValueError:
        return fallback
    return number if number > 0 else fallback


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Spec-driven pull request gate for forbidden patterns and protected paths",
    )
    parser.add_argument(
        "--spec-path",
        default=get_input("spec_path", DEFAULT_SPEC_PATH),
        help="Path to the Safety Spec, relative to the workdir.",
    )
    parser.add_argument(
        "--required-label",
        default=get_input("required_label", DEFAULT_REQUIRED_LABEL),
        help="PR label that approves changes to protected paths.",
    )
    parser.add_argument(
        "--max-files-scanned",
        default=get_input("max_files_scanned", str(DEFAULT_MAX_FILES)),
        help="Scan added lines in at most this many changed files.",
    )
    parser.add_argument(
        "--workdir",
        default=os.environ.get("GITHUB_WORKSPACE") or os.getcwd(),
        help="Repository checkout where git runs and reports are written.",
    )
    parser.add_argument(
        "--event-path",
        default=os.environ.get("GITHUB_EVENT_PATH"),
        help="JSON event payload describing the pull request.",
    )
    parser.add_argument(
        "--report-dir",
        default=REPORT_DIR,
        help="Directory for report.json and report.md, relative to the workdir.",
    )
    parser.add_argument(
        "--summary-path",
        default=os.environ.get("GITHUB_STEP_SUMMARY"),
        help="Markdown file to append the run summary to.",
    )
    parser.add_argument(
        "--git-timeout",
        type=float,
        default=DEFAULT_TIMEOUT,
        help="Seconds allowed for each git call.",
    )
    parser.add_argument(
        "--git-retries",
        type=int,
        default=DEFAULT_RETRIES,
        help="Extra attempts for a git call that timed out.",
    )
    parser.add_argument(
        "--fetch-depth",
        type=int,
        default=DEFAULT_FETCH_DEPTH,
        help="History depth fetched from origin before diffing.",
    )
    return parser


def main(argv: List[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    options = GateOptions(
        workdir=Path(args.workdir),
        spec_path=args.spec_path,
        required_label=args.required_label,
        max_files_scanned=to_positive_int(args.max_files_scanned, DEFAULT_MAX_FILES),
        event_path=args.event_path,
        report_dir=args.report_dir,
        summary_path=args.summary_path,
        git_timeout=args.git_timeout,
        git_retries=args.git_retries,
        fetch_depth=args.fetch_depth,
    )
    return run_gate(options).exit_code


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
