"""Line classification: comment versus code, with block-comment state."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Tuple

from .models import COMMENTS, ClassificationRule


@dataclass
class ScanState:
    """Carried across the lines of a single file, never between files."""

    inside_block_comment: bool = False


def classify_line(text: str, rule: ClassificationRule, inside: bool) -> Tuple[str, bool]:
    """Return the category for ``text`` and the block flag for the next line.

    A line that opens a block comment is a comment itself. A line that closes
    a block opened earlier is still a comment; the flag only drops for the
    lines after it. A line holding both markers while outside a block opens
    the block and leaves it open.
    """
    grammar = rule.grammar
    if rule.opaque or grammar is None:
        return rule.category, inside

    opened_here = False
    if grammar.block_start in text and not inside:
        inside = True
        opened_here = True

    if inside or grammar.line_pattern.search(text):
        category = COMMENTS
    else:
        category = rule.category

    if grammar.block_end in text and not opened_here:
        inside = False

    return category, inside


def classify_lines(lines: Iterable[str], rule: ClassificationRule) -> List[str]:
    """Classify a file's lines in order, threading a fresh ScanState."""
    state = ScanState()
    categories: List[str] = []
    for text in lines:
        category, state.inside_block_comment = classify_line(
            text, rule, state.inside_block_comment
        )
        categories.append(category)
    return categories


__all__ = ["ScanState", "classify_line", "classify_lines"]
