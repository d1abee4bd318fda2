"""Failure kinds recorded in gate verdicts."""

from __future__ import annotations

from enum import Enum


class FailureKind(str, Enum):
    """Enumerate the failure entries a verdict can hold."""

    FORBIDDEN_PATTERN = "forbidden_pattern"
    PROTECTED_PATHS = "protected_paths"
    FATAL = "fatal"
