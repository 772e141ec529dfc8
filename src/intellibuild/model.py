# model.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List


# project path -> source file names
DependencyMapping = Dict[str, List[str]]
DirtyProjects = Dict[str, List[str]]


@dataclass(frozen=True)
class ChangeSet:
    """Base names reported changed by version control for one run."""
    sources: list[str] = field(default_factory=list)
    projects: list[str] = field(default_factory=list)


class Branch(str, Enum):
    """Which way the build selector went for a run."""
    REBUILD = "rebuild"
    INCREMENTAL = "incremental"


class ScanCandidates(str, Enum):
    """Which source names a full rescan looks for inside project files."""
    CHANGED = "changed"   # only the sources changed in this run
    TREE = "tree"         # every source file found by the walk


class CompilerSyntax(str, Enum):
    """Shape of the compiler command line handed one project file."""
    MSBUILD = "msbuild"
    MSBUILD_BUILD = "msbuild-build"
    CUSTOM = "custom"


class Decision(str, Enum):
    BUILD = "build"
    SKIP = "skip"
    ABORT = "abort"


@dataclass
class Selection:
    """
    Output of the build selector.

    `dependency_map` is what gets persisted; `dirty` is handed to the build
    executor and then discarded.
    """
    branch: Branch
    dirty: DirtyProjects
    dependency_map: DependencyMapping
    reason: str = ""


@dataclass
class RunResult:
    selection: Selection
    changes: ChangeSet
    builds: dict[str, str] = field(default_factory=dict)  # project -> ok|failed|skipped|aborted
    cache_saved: bool = True
