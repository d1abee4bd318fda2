"""Utility helpers for the gate."""

from .fileio import append_text_file, read_json_file, write_text_file
from .workflow import JobSummary, error, error_at, out, warn

__all__ = [
    "append_text_file",
    "read_json_file",
    "write_text_file",
    "JobSummary",
    "error",
    "error_at",
    "out",
    "warn",
]
