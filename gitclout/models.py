"""Core data models shared across gitclout components."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, Optional

COMMENTS = "comments"


@dataclass(frozen=True)
class CommentGrammar:
    """Single-line pattern plus block delimiters for one language family."""

    line_pattern: re.Pattern[str]
    block_start: str
    block_end: str

    @classmethod
    def of(cls, line_pattern: str, block_start: str, block_end: str) -> "CommentGrammar":
        return cls(re.compile(line_pattern), block_start, block_end)


@dataclass(frozen=True)
class ClassificationRule:
    """How lines of one registered extension are counted."""

    category: str
    grammar: Optional[CommentGrammar] = None
    opaque: bool = False
    color: str = "#555555"


@dataclass(frozen=True)
class BlameLine:
    """One line of a file paired with the author blamed for it."""

    text: str
    author: str


@dataclass
class Contributor:
    """Contributor name and the per-category line counts attributed to it."""

    name: str
    contributions: Dict[str, int] = field(default_factory=dict)

    def add(self, category: str, count: int = 1) -> None:
        self.contributions[category] = self.contributions.get(category, 0) + count


@dataclass(frozen=True)
class ContributionRow:
    """Flattened contributor/category/commit count, ready for storage."""

    contributor: str
    category: str
    commit: str
    count: int
