# git.py
# Small, focused wrapper around the Git CLI.
# This module centralizes all Git interactions so the rest of the codebase
# never needs to call subprocess("git ...") directly.

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, Optional

from ..errors import VcsError


class FileStatus(str, Enum):
    """Collapsed view of the two-letter porcelain status code."""
    UNMODIFIED = "unmodified"
    MODIFIED = "modified"
    STAGED = "staged"
    UNTRACKED = "untracked"
    DELETED = "deleted"
    RENAMED = "renamed"
    CONFLICTED = "conflicted"
    IGNORED = "ignored"


@dataclass(frozen=True)
class StatusEntry:
    """One line of `git status --porcelain`, path relative to the repo root."""
    path: str
    index: str
    worktree: str
    orig_path: str | None = None

    @property
    def status(self) -> FileStatus:
        code = self.index + self.worktree
        if code == "??":
            return FileStatus.UNTRACKED
        if code == "!!":
            return FileStatus.IGNORED
        if "U" in code or code in ("AA", "DD"):
            return FileStatus.CONFLICTED
        if "D" in code:
            return FileStatus.DELETED
        if "R" in code or "C" in code:
            return FileStatus.RENAMED
        if self.worktree not in (" ", ""):
            return FileStatus.MODIFIED
        if self.index not in (" ", ""):
            return FileStatus.STAGED
        return FileStatus.UNMODIFIED

    @property
    def is_unmodified(self) -> bool:
        return self.status is FileStatus.UNMODIFIED


def _git(args: list[str], cwd: Optional[str | Path] = None, *, strip: bool = True) -> str:
    """
    Execute a git command and return its stdout as a string.

    This is the single low-level entry point for all Git operations in this file.
    Failures (non-zero exit, git missing from PATH) are raised as VcsError so
    callers deal with one exception type.

    Args:
        args: List of git arguments (e.g. ["status", "--porcelain"])
        cwd: Optional working directory in which to run the git command.
        strip: Strip surrounding whitespace. Disable for -z output where
               leading spaces are part of the status code.

    Returns:
        Stdout from the git command.
    """
    try:
        out = subprocess.check_output(
            ["git", *args],
            cwd=str(cwd) if cwd is not None else None,
            text=True,
            # paths are raw bytes; keep undecodable ones the way os.fsdecode does
            errors="surrogateescape",
            stderr=subprocess.PIPE,
        )
    except FileNotFoundError as e:
        raise VcsError(
            kind="git_unavailable",
            message="git command not found",
            details={"hint": "Install Git or fix PATH."},
        ) from e
    except subprocess.CalledProcessError as e:
        raise VcsError(
            kind="git_failed",
            message=f"git {' '.join(args)} failed (exit={e.returncode})",
            details={"cwd": str(cwd or "."), "stderr": (e.stderr or "").strip()},
        ) from e

    return out.strip() if strip else out


def repo_root(path: str | Path = ".") -> Path:
    """
    Return the absolute path to the root of the Git working tree containing `path`.

    Uses git itself as the source of truth rather than guessing based on
    filesystem layout. Raises VcsError if `path` is not inside a working tree.
    """
    p = Path(path)
    if not p.is_dir():
        raise VcsError(
            kind="not_a_repository",
            message=f"path is not a directory: {p}",
            details={},
        )
    return Path(_git(["rev-parse", "--show-toplevel"], cwd=p)).resolve()


def parse_porcelain_z(out: str) -> List[StatusEntry]:
    """
    Parse `git status --porcelain -z` output.

    Records are NUL separated and look like "XY path". Renames and copies are
    followed by an extra record holding the original path.
    """
    records = out.split("\0")
    entries: List[StatusEntry] = []
    i = 0
    while i < len(records):
        rec = records[i]
        i += 1
        if len(rec) < 4:
            # trailing empty record after the last NUL
            continue
        x, y, path = rec[0], rec[1], rec[3:]
        orig = None
        if x in ("R", "C") or y in ("R", "C"):
            if i < len(records):
                orig = records[i] or None
                i += 1
        entries.append(StatusEntry(path=path, index=x, worktree=y, orig_path=orig))
    return entries


def status_entries(path: str | Path) -> List[StatusEntry]:
    """
    Return every non-clean path in the working tree at `path`.

    Includes modified, staged, deleted, renamed and untracked files. Untracked
    directories are expanded so new files inside them are reported one by one.
    """
    out = _git(
        ["status", "--porcelain", "-z", "--untracked-files=all"],
        cwd=path,
        strip=False,
    )
    return parse_porcelain_z(out)

