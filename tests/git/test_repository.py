"""Tests for the git collaborator."""

from __future__ import annotations

import os
import shutil
import subprocess
import threading
import time
from pathlib import Path

import pytest

from gitclout.analyzer import ContributionAnalyzer
from gitclout.classifier import classify_line
from gitclout.git import GitError, GitRepository, ProcessRunner, parse_line_porcelain
from gitclout.languages import TAXONOMY
from gitclout.models import BlameLine

PORCELAIN = """\
4f1c2d0000000000000000000000000000000000 1 1 2
author Alice Martin
author-mail <alice@example.com>
author-time 1700000000
author-tz +0100
committer Alice Martin
committer-mail <alice@example.com>
committer-time 1700000000
committer-tz +0100
summary Initial commit
boundary
filename app.py
\t# entry point
4f1c2d0000000000000000000000000000000000 2 2
author Alice Martin
author-mail <alice@example.com>
author-time 1700000000
author-tz +0100
committer Alice Martin
committer-mail <alice@example.com>
committer-time 1700000000
committer-tz +0100
summary Initial commit
boundary
filename app.py
\tprint("hi")
9a8b7c0000000000000000000000000000000000 3 3 1
author Bob
author-mail <bob@example.com>
author-time 1700001000
author-tz +0000
committer Bob
committer-mail <bob@example.com>
committer-time 1700001000
committer-tz +0000
summary Add tail
previous 4f1c2d0000000000000000000000000000000000 app.py
filename app.py
\t\tindented
"""


def test_parse_line_porcelain_pairs_text_with_author() -> None:
    assert parse_line_porcelain(PORCELAIN) == [
        BlameLine("# entry point", "Alice Martin"),
        BlameLine('print("hi")', "Alice Martin"),
        BlameLine("\tindented", "Bob"),
    ]
    assert parse_line_porcelain("") == []


def test_repository_issues_expected_commands(tmp_path: Path) -> None:
    calls: list[tuple[list[str], Path]] = []

    def runner(args, cwd, capture_output=False):  # type: ignore[no-untyped-def]
        calls.append((list(args), Path(cwd)))
        if args[1] == "rev-parse":
            return "deadbeef\n"
        if args[1] == "ls-tree":
            return "a.py\0dir/b.png\0"
        return PORCELAIN

    repo = GitRepository(tmp_path, runner=runner)

    assert repo.resolve("v1.0") == "deadbeef"
    assert repo.list_files("deadbeef") == ["a.py", "dir/b.png"]
    assert len(repo.blame("app.py", "deadbeef")) == 3

    assert calls[0][0] == ["git", "rev-parse", "--verify", "--quiet", "v1.0^{commit}"]
    assert calls[1][0] == ["git", "ls-tree", "-r", "--name-only", "-z", "deadbeef"]
    assert calls[2][0] == ["git", "blame", "--line-porcelain", "deadbeef", "--", "app.py"]
    assert all(cwd == tmp_path.resolve() for _, cwd in calls)


def test_repository_wraps_command_failures(tmp_path: Path) -> None:
    def runner(args, cwd, capture_output=False):  # type: ignore[no-untyped-def]
        raise subprocess.CalledProcessError(128, list(args), stderr="fatal: bad object\n")

    repo = GitRepository(tmp_path, runner=runner)

    with pytest.raises(GitError) as excinfo:
        repo.blame("a.py", "deadbeef")

    assert "fatal: bad object" in str(excinfo.value)
    assert isinstance(excinfo.value.__cause__, subprocess.CalledProcessError)


def test_empty_rev_parse_output_is_unresolved(tmp_path: Path) -> None:
    repo = GitRepository(tmp_path, runner=lambda args, cwd, capture_output=False: "")

    with pytest.raises(GitError):
        repo.resolve("nope")


def test_closed_repository_refuses_commands(tmp_path: Path) -> None:
    with GitRepository(tmp_path, runner=lambda *a, **k: "") as repo:
        pass

    assert repo.closed
    with pytest.raises(GitError):
        repo.list_files("deadbeef")


class _FakePopen:
    """Popen double that replays canned byte output."""

    stdout = b""
    stderr = b""
    returncode = 0

    def __init__(self, args, cwd=None, stdout=None, stderr=None):  # type: ignore[no-untyped-def]
        self.args = args

    def communicate(self):  # type: ignore[no-untyped-def]
        return type(self).stdout, type(self).stderr

    def poll(self):  # type: ignore[no-untyped-def]
        return self.returncode


def test_default_runner_keeps_carriage_returns_inside_lines(tmp_path: Path, monkeypatch) -> None:
    class BlamePopen(_FakePopen):
        stdout = b"abc 1 1 1\nauthor Alice\nfilename a.py\n\tx = 1\r# note\n"

    monkeypatch.setattr(subprocess, "Popen", BlamePopen)

    lines = GitRepository(tmp_path).blame("a.py", "deadbeef")

    assert lines == [BlameLine("x = 1\r# note", "Alice")]
    assert classify_line(lines[0].text, TAXONOMY["py"], False)[0] == "comments"


def test_default_runner_reports_decoded_stderr(tmp_path: Path, monkeypatch) -> None:
    class FailingPopen(_FakePopen):
        stderr = b"fatal: no such path \xff\n"
        returncode = 128

    monkeypatch.setattr(subprocess, "Popen", FailingPopen)

    with pytest.raises(GitError) as excinfo:
        GitRepository(tmp_path).blame("missing.py", "deadbeef")

    assert "fatal: no such path" in str(excinfo.value)
    assert excinfo.value.__cause__.returncode == 128


@pytest.mark.skipif(shutil.which("sleep") is None, reason="sleep executable not available")
def test_process_runner_terminate_kills_running_commands(tmp_path: Path) -> None:
    runner = ProcessRunner()
    errors: list[BaseException] = []

    def _run() -> None:
        try:
            runner(["sleep", "30"], cwd=tmp_path, capture_output=True)
        except subprocess.CalledProcessError as exc:
            errors.append(exc)

    worker = threading.Thread(target=_run)
    started = time.monotonic()
    worker.start()
    deadline = started + 5.0
    while runner.active == 0 and time.monotonic() < deadline:
        time.sleep(0.01)

    runner.terminate()
    worker.join(timeout=5.0)

    assert not worker.is_alive()
    assert len(errors) == 1
    assert runner.active == 0
    assert time.monotonic() - started < 5.0


def test_repository_cancel_delegates_to_runner(tmp_path: Path) -> None:
    class RecordingRunner:
        terminated = 0

        def __call__(self, args, cwd, capture_output=False):  # type: ignore[no-untyped-def]
            return ""

        def terminate(self) -> None:
            self.terminated += 1

    runner = RecordingRunner()
    repo = GitRepository(tmp_path, runner=runner)
    repo.cancel()
    repo.close()

    assert runner.terminated == 2


def _git(repo: Path, *args: str, author: str = "Alice") -> None:
    env = {
        "GIT_AUTHOR_NAME": author,
        "GIT_AUTHOR_EMAIL": f"{author.lower()}@example.com",
        "GIT_COMMITTER_NAME": author,
        "GIT_COMMITTER_EMAIL": f"{author.lower()}@example.com",
        "HOME": str(repo),
        "PATH": os.environ.get("PATH", ""),
    }
    subprocess.run(["git", *args], cwd=repo, check=True, capture_output=True, env=env)


@pytest.mark.skipif(shutil.which("git") is None, reason="git executable not available")
def test_end_to_end_against_real_repository(tmp_path: Path) -> None:
    repo = tmp_path / "repo"
    repo.mkdir()
    _git(repo, "init", "-q")
    (repo / "a.py").write_text('# c1\n"""\nx=1\n"""\ny=2\n', encoding="utf-8")
    (repo / "other.xml").write_text("<x/>\n", encoding="utf-8")
    (repo / "logo.png").write_bytes(b"\x89PNG\r\n\x1a\n\x00\x01\n\x02\n\x03\n")
    _git(repo, "add", ".")
    _git(repo, "commit", "-q", "-m", "initial")
    _git(repo, "tag", "v1.0")

    (repo / "a.py").write_text('# c1\n"""\nx=1\n"""\ny=2\nz=3\n', encoding="utf-8")
    _git(repo, "commit", "-q", "-am", "more", author="Bob")

    with GitRepository(repo) as git_repo:
        tagged = ContributionAnalyzer(git_repo).analyze("v1.0")
        head = ContributionAnalyzer(git_repo).analyze("HEAD")

    assert tagged == {"Alice": {"comments": 4, "python": 1, "png": 1}}
    assert head == {
        "Alice": {"comments": 4, "python": 1, "png": 1},
        "Bob": {"python": 1},
    }
