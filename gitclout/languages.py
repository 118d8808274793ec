"""Extension taxonomy: which files are counted and under which category."""

from __future__ import annotations

from types import MappingProxyType
from typing import List, Mapping, Tuple

from .models import COMMENTS, ClassificationRule, CommentGrammar

C_STYLE = CommentGrammar.of(r"//.*", "/*", "*/")
HASH_STYLE = CommentGrammar.of(r"#.*", '"""', '"""')
RUBY_STYLE = CommentGrammar.of(r"#.*", "=begin", "=end")

COMMENTS_COLOR = "#555555"

_RULES: dict[str, ClassificationRule] = {
    # Source languages
    "java": ClassificationRule("java", C_STYLE, color="#caf270"),
    "py": ClassificationRule("python", HASH_STYLE, color="#ff0000"),
    "c": ClassificationRule("c", C_STYLE, color="#555555"),
    "js": ClassificationRule("javascript", C_STYLE, color="#f1e05a"),
    "rb": ClassificationRule("ruby", RUBY_STYLE, color="#701516"),
    "php": ClassificationRule("php", C_STYLE, color="#4F5D95"),
    "css": ClassificationRule("css", C_STYLE, color="#563d7c"),
    "ts": ClassificationRule("typescript", C_STYLE, color="#2b7489"),
    "cpp": ClassificationRule("cpp", C_STYLE, color="#FDCBB8"),
    # Build descriptors and plain text
    "xml": ClassificationRule("pom.xml", color="#0060a3"),
    "gitignore": ClassificationRule("gitignore", color="#45c490"),
    "md": ClassificationRule("readme", color="#1abc9c"),
    "txt": ClassificationRule("txt", color="#d35400"),
    "properties": ClassificationRule("properties", color="#8e44ad"),
    # Images
    "jpg": ClassificationRule("jpg", opaque=True, color="#f34b7d"),
    "png": ClassificationRule("png", opaque=True, color="#008d93"),
    "gif": ClassificationRule("gif", opaque=True, color="#2980b9"),
    "svg": ClassificationRule("svg", opaque=True, color="#c0392b"),
}

TAXONOMY: Mapping[str, ClassificationRule] = MappingProxyType(_RULES)

BUILD_DESCRIPTORS: Mapping[str, str] = MappingProxyType({"xml": "pom.xml"})


def extension_of(path: str) -> str | None:
    """Return the text after the last dot, or None when there is none."""
    index = path.rfind(".")
    if index == -1 or index == len(path) - 1:
        return None
    return path[index + 1 :]


def rule_for_path(path: str) -> ClassificationRule | None:
    """Return the rule a path is counted under, or None when unsupported."""
    extension = extension_of(path)
    if extension is None:
        return None
    rule = TAXONOMY.get(extension)
    if rule is None:
        return None
    descriptor = BUILD_DESCRIPTORS.get(extension)
    if descriptor is not None and path.rsplit("/", 1)[-1] != descriptor:
        return None
    return rule


def is_supported(path: str) -> bool:
    return rule_for_path(path) is not None


def palette() -> List[Tuple[str, str]]:
    """Every category the engine can emit, paired with its display colour."""
    entries = [(rule.category, rule.color) for rule in TAXONOMY.values()]
    entries.append((COMMENTS, COMMENTS_COLOR))
    return entries


__all__ = [
    "TAXONOMY",
    "extension_of",
    "is_supported",
    "palette",
    "rule_for_path",
]
