# selector.py
from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional

from .model import (
    Branch,
    ChangeSet,
    DependencyMapping,
    DirtyProjects,
    ScanCandidates,
    Selection,
)
from .scanner import find_project_files, scan_projects
from .ui.console import get_console


def intersect_dirty(dependency_map: DependencyMapping, changed_sources: Iterable[str]) -> DirtyProjects:
    """
    Projects whose referenced sources overlap the changed sources.

    Value is the overlapping (triggering) names. Projects without any cached
    reference are never selected.
    """
    changed = set(changed_sources)
    dirty: DirtyProjects = {}
    if not changed:
        return dirty
    for project, names in dependency_map.items():
        hit = changed.intersection(names)
        if hit:
            dirty[project] = sorted(hit)
    return dirty


def rebuild_dependency_map(
    repo_root: str | Path,
    changed_sources: Iterable[str],
    *,
    project_extension: str,
    source_extension: str,
    candidates: ScanCandidates = ScanCandidates.CHANGED,
    max_workers: Optional[int] = None,
) -> DependencyMapping:
    """
    Walk the whole tree for project files and rescan all of them.

    The returned map has an entry for every project file found, and replaces
    whatever was cached before.
    """
    want_tree = candidates is ScanCandidates.TREE
    projects, tree_sources = find_project_files(
        repo_root,
        project_extension,
        source_extension=source_extension if want_tree else None,
    )

    names = list(changed_sources)
    if want_tree:
        names = sorted(set(names).union(tree_sources))

    return scan_projects(projects, names, max_workers=max_workers)


def select_builds(
    repo_root: str | Path,
    changes: ChangeSet,
    cached_map: Optional[DependencyMapping],
    *,
    project_extension: str,
    source_extension: str,
    candidates: ScanCandidates = ScanCandidates.CHANGED,
    max_workers: Optional[int] = None,
    force_rescan: bool = False,
) -> Selection:
    """
    Decide which projects need a build.

    `cached_map=None` means the cache could not be loaded. That, a changed
    project definition, or `force_rescan` takes the rebuild branch; everything
    else is answered from the cache alone.
    """
    console = get_console()

    if cached_map is None or changes.projects or force_rescan:
        if cached_map is None:
            reason = "no dependency cache"
        elif changes.projects:
            reason = f"project files changed: {', '.join(changes.projects)}"
        else:
            reason = "rescan requested"
        console.print_debug(f"rebuild branch ({reason})")

        dep_map = rebuild_dependency_map(
            repo_root,
            changes.sources,
            project_extension=project_extension,
            source_extension=source_extension,
            candidates=candidates,
            max_workers=max_workers,
        )
        return Selection(
            branch=Branch.REBUILD,
            dirty=intersect_dirty(dep_map, changes.sources),
            dependency_map=dep_map,
            reason=reason,
        )

    console.print_debug(f"incremental branch ({len(cached_map)} cached project(s))")
    return Selection(
        branch=Branch.INCREMENTAL,
        dirty=intersect_dirty(cached_map, changes.sources),
        dependency_map=dict(cached_map),
        reason="dependency cache",
    )
