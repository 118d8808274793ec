"""Concurrent blame-and-classify pass over one commit snapshot."""

from __future__ import annotations

import threading
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence

from .aggregate import ContributionAggregator, Increment
from .classifier import classify_lines
from .config import DEFAULT_MAX_WORKERS, DEFAULT_TIMEOUT_SECONDS, load_config
from .git.repository import GitRepository, VersionControl
from .languages import rule_for_path
from .logging import get_logger
from .models import BlameLine, ClassificationRule
from .selector import select_files

Result = Dict[str, Dict[str, int]]


class AnalysisError(RuntimeError):
    """Raised when a snapshot cannot be analyzed; the root cause is chained."""


class AnalysisTimeoutError(AnalysisError):
    """Raised when the worker pool exceeds its time budget.

    ``partial`` holds whatever had been aggregated when the guard fired. Files
    still in flight may be missing from it, so it is not a valid result.
    """

    def __init__(self, message: str, partial: Result) -> None:
        super().__init__(message)
        self.partial = partial


def file_increments(lines: Sequence[BlameLine], rule: ClassificationRule) -> List[Increment]:
    """Return the (author, category) increments for one file's blame lines."""
    if not lines:
        return []
    if rule.opaque:
        # Images are attributed once, to the author of their first line.
        return [(lines[0].author, rule.category)]
    categories = classify_lines((line.text for line in lines), rule)
    return [(line.author, category) for line, category in zip(lines, categories)]


class ContributionAnalyzer:
    """Counts, per contributor, the lines they last touched in a snapshot.

    The repository is borrowed: :meth:`analyze` never closes it.
    """

    def __init__(
        self,
        repository: VersionControl,
        *,
        max_workers: int = DEFAULT_MAX_WORKERS,
        timeout: Optional[float] = DEFAULT_TIMEOUT_SECONDS,
        exclude: Sequence[str] = (),
    ) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.repository = repository
        self.max_workers = max_workers
        self.timeout = timeout
        self.exclude = list(exclude)
        self.logger = get_logger("analyzer")

    def analyze(self, ref: str) -> Result:
        """Return contributor → category → line count for ``ref``."""
        try:
            commit = self.repository.resolve(ref)
        except Exception as exc:
            raise AnalysisError(f"Cannot resolve reference '{ref}'") from exc

        try:
            paths = self.repository.list_files(commit)
        except Exception as exc:
            raise AnalysisError(f"Cannot list files of {commit}") from exc

        files = select_files(paths, self.exclude)
        self.logger.info(
            "Analyzing %d of %d files at %s (%s) with %d workers",
            len(files),
            len(paths),
            ref,
            commit[:12],
            self.max_workers,
        )

        aggregator = ContributionAggregator()
        if files:
            self._run_pool(files, commit, aggregator)

        result = aggregator.snapshot()
        self.logger.info("Finished %s: %d contributors", ref, len(result))
        return result

    # ------------------------------------------------------------------
    # Internals

    def _run_pool(
        self, files: Sequence[str], commit: str, aggregator: ContributionAggregator
    ) -> None:
        abort = threading.Event()
        executor = ThreadPoolExecutor(
            max_workers=self.max_workers, thread_name_prefix="gitclout-blame"
        )
        try:
            futures: Dict[Future[int], str] = {
                executor.submit(self._analyze_file, path, commit, aggregator, abort): path
                for path in files
            }
            done, pending = wait(futures, timeout=self.timeout, return_when=FIRST_EXCEPTION)

            failed = [
                future
                for future in futures
                if future in done and future.exception() is not None
            ]
            if failed:
                abort.set()
                first = failed[0]
                cause = first.exception()
                self.logger.error("Blame failed for %s: %s", futures[first], cause)
                raise AnalysisError(
                    f"Analysis of '{futures[first]}' at {commit} failed"
                ) from cause

            if pending:
                abort.set()
                self.logger.warning(
                    "Timed out after %ss with %d files outstanding", self.timeout, len(pending)
                )
                raise AnalysisTimeoutError(
                    f"Analysis of {commit} timed out with {len(pending)} files outstanding",
                    partial=aggregator.snapshot(),
                )
        finally:
            executor.shutdown(wait=False, cancel_futures=True)
            if abort.is_set():
                self._cancel_running()

    def _cancel_running(self) -> None:
        # Kills blame queries already in flight; queued ones were cancelled above.
        cancel = getattr(self.repository, "cancel", None)
        if callable(cancel):
            cancel()

    def _analyze_file(
        self,
        path: str,
        commit: str,
        aggregator: ContributionAggregator,
        abort: threading.Event,
    ) -> int:
        if abort.is_set():
            return 0
        lines = self.repository.blame(path, commit)
        if not lines:
            self.logger.debug("No blame lines for %s; skipping", path)
            return 0
        rule = rule_for_path(path)
        if rule is None:  # pragma: no cover - guaranteed by select_files
            return 0
        increments = file_increments(lines, rule)
        if abort.is_set():
            return 0
        aggregator.apply(increments)
        return len(increments)


def analyze_repository(
    path: str | Path,
    ref: str,
    *,
    max_workers: Optional[int] = None,
    timeout: Optional[float] = None,
    runner: Callable[..., str] | None = None,
) -> Result:
    """Open the repository at ``path``, analyze ``ref`` and close it again.

    Settings from ``.gitclout.yml`` apply unless overridden by arguments.
    """
    repo_path = Path(path).expanduser().resolve()
    config = load_config(repo_path).analysis
    with GitRepository(repo_path, runner=runner) as repository:
        analyzer = ContributionAnalyzer(
            repository,
            max_workers=max_workers or config.max_workers,
            timeout=timeout or config.timeout_seconds,
            exclude=config.exclude_paths,
        )
        return analyzer.analyze(ref)


__all__ = [
    "AnalysisError",
    "AnalysisTimeoutError",
    "ContributionAnalyzer",
    "analyze_repository",
    "file_increments",
]
