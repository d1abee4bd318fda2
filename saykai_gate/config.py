"""Load and validate the Safety Spec (``.saykai/spec.yml``)."""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from .errors import MissingSpecError, SchemaError, SpecReadError

DEFAULT_SPEC_PATH = ".saykai/spec.yml"
TAB_WIDTH = 2


class SpecLoader(yaml.BaseLoader):
    """YAML loader that keeps every scalar a string except plain true/false."""


def _construct_bool(loader: SpecLoader, node: yaml.Node) -> bool:
    return loader.construct_scalar(node) == "true"


SpecLoader.add_implicit_resolver("tag:yaml.org,2002:bool", re.compile(r"^(?:true|false)$"), list("tf"))
SpecLoader.add_constructor("tag:yaml.org,2002:bool", _construct_bool)


@dataclass(frozen=True)
class ForbiddenPatternRule:
    id: str
    pattern: str
    message: str


@dataclass(frozen=True)
class ProtectedPathRule:
    id: str
    paths: Tuple[str, ...]
    message: str


@dataclass(frozen=True)
class Spec:
    """Validated rule set for one gate run."""

    version: str
    forbidden_patterns: Tuple[ForbiddenPatternRule, ...] = ()
    protected_paths: Tuple[ProtectedPathRule, ...] = ()

    @property
    def rule_count(self) -> int:
        return len(self.forbidden_patterns) + len(self.protected_paths)


def _prepare(text: str) -> str:
    lines = []
    for line in text.replace("\r\n", "\n").split("\n"):
        line = line.replace("\t", " " * TAB_WIDTH)
        if line.strip().startswith("#"):
            continue
        lines.append(line)
    return "\n".join(lines)


def parse(text: str) -> Any:
    """Parse spec text into a plain tree of dicts, lists, strings and booleans."""

    try:
        return yaml.load(_prepare(text), Loader=SpecLoader)
    except yaml.YAMLError as exc:
        raise SchemaError([f"Spec is not valid YAML: {exc}"]) from exc


def _is_text(value: Any) -> bool:
    return isinstance(value, str) and value != ""


def _valid_forbidden_rule(rule: Any) -> bool:
    return isinstance(rule, dict) and all(_is_text(rule.get(key)) for key in ("id", "pattern", "message"))


def _valid_protected_rule(rule: Any) -> bool:
    if not isinstance(rule, dict):
        return False
    paths = rule.get("paths")
    if not isinstance(paths, list) or not paths or not all(_is_text(path) for path in paths):
        return False
    return _is_text(rule.get("id")) and _is_text(rule.get("message"))


def validate(tree: Any) -> List[str]:
    """Return a list of schema problems; an empty list means the tree is usable."""

    errors: List[str] = []
    if not isinstance(tree, dict):
        errors.append("Spec is not an object.")
        tree = {}

    version = tree.get("version")
    if not _is_text(version):
        errors.append("Missing spec.version string.")

    rules = tree.get("rules")
    if not isinstance(rules, dict):
        errors.append("Missing spec.rules object.")
        rules = {}

    forbidden = rules.get("forbidden_patterns")
    protected = rules.get("protected_paths")
    if not isinstance(forbidden, list):
        errors.append("rules.forbidden_patterns must be an array.")
        forbidden = []
    if not isinstance(protected, list):
        errors.append("rules.protected_paths must be an array.")
        protected = []

    if not all(_valid_forbidden_rule(rule) for rule in forbidden):
        errors.append("Each forbidden_patterns rule must include id, pattern, message.")
    if not all(_valid_protected_rule(rule) for rule in protected):
        errors.append("Each protected_paths rule must include id, paths[], message.")
    return errors


def normalize(tree: Dict[str, Any]) -> Spec:
    """Build a :class:`Spec` from a tree that already passed :func:`validate`."""

    rules = tree.get("rules") or {}
    forbidden = tuple(
        ForbiddenPatternRule(id=rule["id"], pattern=rule["pattern"], message=rule["message"])
        for rule in rules.get("forbidden_patterns") or []
    )
    protected = tuple(
        ProtectedPathRule(id=rule["id"], paths=tuple(rule["paths"]), message=rule["message"])
        for rule in rules.get("protected_paths") or []
    )
    return Spec(version=tree["version"], forbidden_patterns=forbidden, protected_paths=protected)


def load_spec(text: str) -> Spec:
    tree = parse(text)
    errors = validate(tree)
    if errors:
        raise SchemaError(errors)
    return normalize(tree)


def load_spec_file(path: Path, display_path: Optional[str] = None) -> Spec:
    """Read, parse and validate the spec at ``path``.

    Raises :class:`MissingSpecError` when the file does not exist,
    :class:`SpecReadError` when it cannot be read and :class:`SchemaError`
    when it is not UTF-8 or does not describe a usable rule set.
    """

    shown = display_path or str(path)
    if not path.is_file():
        raise MissingSpecError(shown)
    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise SchemaError([f"Spec is not valid UTF-8: {exc}"]) from exc
    except OSError as exc:
        raise SpecReadError(shown, exc.strerror or str(exc)) from exc
    return load_spec(text)
