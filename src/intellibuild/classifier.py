# classifier.py
from __future__ import annotations

import posixpath
from pathlib import Path
from typing import List, Optional

from .git_facts.git import StatusEntry, status_entries
from .model import ChangeSet

DEFAULT_SOURCE_EXTENSION = "cpp"
DEFAULT_PROJECT_EXTENSION = "cbproj"


def base_name(path: str) -> str:
    """Base file name of a git-style (forward slash) or native path."""
    return posixpath.basename(path.replace("\\", "/"))


def file_extension(name: str, *, strict: bool = False) -> Optional[str]:
    """
    Return the text after the last "." of a base file name, or None.

    Names without a dot have no extension. With `strict`, the name must split
    into exactly two segments ("Main.cbproj" yes, "Main.old.cbproj" no); this is
    the rule the project walk uses.
    """
    parts = name.split(".")
    if len(parts) < 2:
        return None
    if strict and len(parts) != 2:
        return None
    return parts[-1]


def classify_entries(
    entries: List[StatusEntry],
    *,
    source_extension: str = DEFAULT_SOURCE_EXTENSION,
    project_extension: str = DEFAULT_PROJECT_EXTENSION,
) -> ChangeSet:
    """
    Partition status entries into changed source and project definition names.

    Sources count when their status is anything but unmodified. Project files
    count whenever they show up at all (new, deleted, renamed included). For
    renames both the new and the original name are reported.
    """
    sources: List[str] = []
    projects: List[str] = []

    for entry in entries:
        paths = [entry.path]
        if entry.orig_path:
            paths.append(entry.orig_path)

        for p in paths:
            name = base_name(p)
            ext = file_extension(name)
            if ext is None:
                continue
            if ext == source_extension:
                if not entry.is_unmodified and name not in sources:
                    sources.append(name)
            elif ext == project_extension:
                if name not in projects:
                    projects.append(name)

    return ChangeSet(sources=sources, projects=projects)


def list_changed_files(
    repo: str | Path,
    *,
    source_extension: str = DEFAULT_SOURCE_EXTENSION,
    project_extension: str = DEFAULT_PROJECT_EXTENSION,
) -> ChangeSet:
    """
    Ask git for the working-tree status of `repo` and classify it.

    Raises VcsError if `repo` is not a readable working tree.
    """
    return classify_entries(
        status_entries(repo),
        source_extension=source_extension,
        project_extension=project_extension,
    )
