# errors.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class IntellibuildError(Exception):
    """
    Structured error with enough context for:
      - clean CLI output
      - debugging without full tracebacks
    """
    kind: str
    message: str
    details: dict = field(default_factory=dict)

    def __str__(self) -> str:
        lines = [f"{self.kind}: {self.message}"]
        for k, v in self.details.items():
            lines.append(f"{k}={v}")
        return "\n".join(lines)


class VcsError(IntellibuildError):
    """The working-tree status could not be obtained. Fatal for the run."""


class ScanError(IntellibuildError):
    """A project file could not be read or the tree walk failed. Fatal for the run."""


@dataclass
class CacheNotFound(IntellibuildError):
    """The persisted run config is absent or unparsable. Triggers a full rescan."""
    kind: str = "cache_not_found"
    message: str = "no usable dependency cache"
    # RunConfig built from the parts of the file that were still valid, if any
    salvaged: Any = None


@dataclass
class BuildFailure(IntellibuildError):
    """A compiler invocation exited non-zero."""
    kind: str = "build_failed"
    message: str = ""
    project: str = ""
    cmd: str = ""
    exit_code: int = 0

    def __str__(self) -> str:
        return f"[{self.project}] build failed (exit={self.exit_code}): {self.cmd}"
