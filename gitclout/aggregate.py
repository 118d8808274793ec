"""Thread-safe contributor → category → count aggregation."""

from __future__ import annotations

import threading
from collections import Counter
from typing import Dict, Iterable, Iterator, Mapping, Tuple

from .models import Contributor, ContributionRow

Increment = Tuple[str, str]

_TAG_PREFIX = "refs/tags/"


class ContributionAggregator:
    """Collects per-file increment batches from concurrent analysis tasks.

    Each call to :meth:`apply` is merged under one lock, so a file's whole
    batch lands as a unit relative to every other file.
    """

    def __init__(self) -> None:
        self._contributors: Dict[str, Contributor] = {}
        self._lock = threading.Lock()

    def apply(self, increments: Iterable[Increment]) -> None:
        batch = Counter(increments)
        if not batch:
            return
        with self._lock:
            for (author, category), count in batch.items():
                contributor = self._contributors.get(author)
                if contributor is None:
                    contributor = Contributor(author)
                    self._contributors[author] = contributor
                contributor.add(category, count)

    def snapshot(self) -> Dict[str, Dict[str, int]]:
        with self._lock:
            return {
                name: dict(contributor.contributions)
                for name, contributor in self._contributors.items()
            }


def flatten(
    result: Mapping[str, Mapping[str, int]], commit: str
) -> Iterator[ContributionRow]:
    """Yield one row per contributor/category pair for persistence layers."""
    commit_id = commit[len(_TAG_PREFIX) :] if commit.startswith(_TAG_PREFIX) else commit
    for contributor in sorted(result):
        categories = result[contributor]
        for category in sorted(categories):
            yield ContributionRow(contributor, category, commit_id, categories[category])


__all__ = ["ContributionAggregator", "Increment", "flatten"]
