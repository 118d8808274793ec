"""Work-list selection from a commit's file listing."""

from __future__ import annotations

from dataclasses import dataclass
from fnmatch import fnmatchcase
from typing import Iterable, List, Sequence

from .languages import is_supported


@dataclass(frozen=True)
class ExcludeRule:
    """A gitignore-flavoured exclusion pattern from configuration."""

    pattern: str
    directory_only: bool
    anchored: bool

    def matches(self, path: str) -> bool:
        if self.directory_only:
            prefix = f"{self.pattern}/"
            if self.anchored or "/" in self.pattern:
                return path.startswith(prefix)
            parts = path.split("/")[:-1]
            return any(fnmatchcase(part, self.pattern) for part in parts)
        if self.anchored or "/" in self.pattern:
            return fnmatchcase(path, self.pattern)
        return any(fnmatchcase(part, self.pattern) for part in path.split("/"))


def build_exclude_rules(patterns: Iterable[str]) -> List[ExcludeRule]:
    rules: List[ExcludeRule] = []
    for raw in patterns:
        pattern = raw.strip()
        if not pattern:
            continue
        directory_only = pattern.endswith("/")
        if directory_only:
            pattern = pattern.rstrip("/")
        anchored = pattern.startswith("/")
        if anchored:
            pattern = pattern.lstrip("/")
        if pattern:
            rules.append(ExcludeRule(pattern, directory_only, anchored))
    return rules


def select_files(paths: Iterable[str], exclude: Sequence[str] = ()) -> List[str]:
    """Keep paths whose extension is registered, minus configured exclusions."""
    rules = build_exclude_rules(exclude)
    selected: List[str] = []
    for path in paths:
        if any(rule.matches(path) for rule in rules):
            continue
        if is_supported(path):
            selected.append(path)
    return selected


__all__ = ["ExcludeRule", "build_exclude_rules", "select_files"]
