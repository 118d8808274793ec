"""Git access: ref resolution, tree listing and per-line blame."""

from __future__ import annotations

import subprocess
import threading
from pathlib import Path
from typing import Callable, Iterable, List, Protocol, Sequence, Set

from ..models import BlameLine


class GitError(RuntimeError):
    """Raised when a git command fails or its output cannot be understood."""


class VersionControl(Protocol):
    """Read-only repository operations the analyzer depends on."""

    def resolve(self, ref: str) -> str: ...

    def list_files(self, commit: str) -> Sequence[str]: ...

    def blame(self, path: str, commit: str) -> Sequence[BlameLine] | None: ...

    def cancel(self) -> None: ...

    def close(self) -> None: ...


class ProcessRunner:
    """Runs commands as child processes that can be killed mid-flight.

    Output is decoded from raw bytes so a carriage return inside a file's
    line stays part of that line.
    """

    def __init__(self) -> None:
        self._live: Set[subprocess.Popen[bytes]] = set()
        self._lock = threading.Lock()

    def __call__(
        self,
        args: Iterable[str],
        *,
        cwd: Path,
        capture_output: bool = False,
    ) -> str:
        command = list(args)
        pipe = subprocess.PIPE if capture_output else None
        process = subprocess.Popen(command, cwd=str(cwd), stdout=pipe, stderr=pipe)
        with self._lock:
            self._live.add(process)
        try:
            stdout, stderr = process.communicate()
        finally:
            with self._lock:
                self._live.discard(process)
        output = _decode(stdout)
        if process.returncode != 0:
            raise subprocess.CalledProcessError(
                process.returncode, command, output=output, stderr=_decode(stderr)
            )
        return output

    @property
    def active(self) -> int:
        with self._lock:
            return len(self._live)

    def terminate(self) -> None:
        """Kill every child process still running."""
        with self._lock:
            processes = list(self._live)
        for process in processes:
            if process.poll() is None:
                process.kill()


def _decode(data: bytes | None) -> str:
    return data.decode("utf-8", errors="replace") if data else ""


class GitRepository:
    """Runs git commands against a local clone.

    Commands go through an injectable runner so tests can answer them
    without a real repository.
    """

    def __init__(self, path: str | Path, runner: Callable[..., str] | None = None) -> None:
        self.path = Path(path).expanduser().resolve()
        self._runner = runner or ProcessRunner()
        self._closed = False

    def __enter__(self) -> "GitRepository":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self._closed

    def cancel(self) -> None:
        """Stop git commands that are currently running, if the runner can."""
        terminate = getattr(self._runner, "terminate", None)
        if callable(terminate):
            terminate()

    def close(self) -> None:
        self.cancel()
        self._closed = True

    def resolve(self, ref: str) -> str:
        """Return the full commit id for a tag, branch or revision."""
        output = self._run(["git", "rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}"])
        commit = output.strip()
        if not commit:
            raise GitError(f"Cannot resolve reference '{ref}' in {self.path}")
        return commit

    def list_files(self, commit: str) -> List[str]:
        """Return every blob path in the commit's tree."""
        output = self._run(["git", "ls-tree", "-r", "--name-only", "-z", commit])
        return [path for path in output.split("\0") if path]

    def blame(self, path: str, commit: str) -> List[BlameLine]:
        output = self._run(["git", "blame", "--line-porcelain", commit, "--", path])
        return parse_line_porcelain(output)

    # ------------------------------------------------------------------
    # Internals

    def _run(self, args: Iterable[str]) -> str:
        if self._closed:
            raise GitError(f"Repository {self.path} is closed")
        command = list(args)
        try:
            return self._runner(command, cwd=self.path, capture_output=True)
        except subprocess.CalledProcessError as exc:
            stderr = (exc.stderr or "").strip()
            detail = f": {stderr}" if stderr else ""
            raise GitError(f"'{' '.join(command)}' failed in {self.path}{detail}") from exc
        except OSError as exc:
            raise GitError(f"Unable to run git in {self.path}: {exc}") from exc


def parse_line_porcelain(output: str) -> List[BlameLine]:
    """Turn ``git blame --line-porcelain`` output into ordered blame lines.

    Every line of content is preceded by its full header block, so the most
    recent ``author`` field always belongs to the next tab-prefixed line.
    """
    lines: List[BlameLine] = []
    author = ""
    for raw in output.split("\n"):
        if raw.startswith("\t"):
            lines.append(BlameLine(text=raw[1:], author=author))
        elif raw.startswith("author "):
            author = raw[len("author ") :]
    return lines


__all__ = [
    "GitError",
    "GitRepository",
    "ProcessRunner",
    "VersionControl",
    "parse_line_porcelain",
]
