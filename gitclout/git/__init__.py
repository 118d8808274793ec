"""Version-control collaborators."""

from .repository import (
    GitError,
    GitRepository,
    ProcessRunner,
    VersionControl,
    parse_line_porcelain,
)

__all__ = [
    "GitError",
    "GitRepository",
    "ProcessRunner",
    "VersionControl",
    "parse_line_porcelain",
]
