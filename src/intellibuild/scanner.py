# scanner.py
from __future__ import annotations

import os
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set, Tuple

from .classifier import file_extension
from .errors import ScanError
from .model import DependencyMapping
from .ui.console import get_console

# directories never worth descending into
SKIP_DIRS = {".git", ".hg", ".svn"}


class DependencyMap:
    """
    Lock-guarded project -> source names mapping shared by discovery tasks.

    Built fresh for each discovery phase. Every project known up front gets an
    entry, so projects that reference nothing still show up (as empty).
    """

    def __init__(self, projects: Iterable[str] = ()):
        self._lock = threading.Lock()
        self._data: Dict[str, List[str]] = {p: [] for p in projects}

    def add(self, project: str, names: Iterable[str]) -> None:
        # read current list, append, write back: one atomic step
        with self._lock:
            current = self._data.get(project, [])
            merged = list(current)
            for n in names:
                if n not in merged:
                    merged.append(n)
            self._data[project] = merged

    def snapshot(self) -> DependencyMapping:
        with self._lock:
            return {k: sorted(v) for k, v in self._data.items()}

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)


def _raise_walk_error(err: OSError) -> None:
    raise err


def find_project_files(
    root: str | Path,
    project_extension: str,
    *,
    source_extension: Optional[str] = None,
) -> Tuple[List[str], List[str]]:
    """
    Walk `root` and return (project paths, source names).

    Project paths are absolute and only include base names of exactly the form
    "<stem>.<project_extension>". Source names (base names with
    `source_extension`) are only collected when `source_extension` is given.

    Raises ScanError if any directory cannot be listed.
    """
    root_p = Path(root).resolve()
    projects: List[str] = []
    sources: Set[str] = set()

    try:
        for dirpath, dirnames, filenames in os.walk(root_p, onerror=_raise_walk_error):
            dirnames[:] = sorted(d for d in dirnames if d not in SKIP_DIRS)
            for filename in sorted(filenames):
                if file_extension(filename, strict=True) == project_extension:
                    projects.append(str(Path(dirpath) / filename))
                elif source_extension is not None and file_extension(filename) == source_extension:
                    sources.add(filename)
    except OSError as e:
        raise ScanError(
            kind="walk_failed",
            message=f"could not walk {root_p}",
            details={"path": getattr(e, "filename", None) or str(root_p), "error": str(e)},
        ) from e

    return projects, sorted(sources)


def discover(project_file: str | Path, candidates: Iterable[str]) -> Set[str]:
    """
    Return the candidate names that appear as a substring of any line of
    `project_file`.

    This is plain text containment, not a parse of the project format; a name
    in a comment counts too. Each candidate gets its own pass over the file.

    Raises ScanError if the file cannot be opened.
    """
    found: Set[str] = set()
    try:
        with open(project_file, "r", encoding="utf-8", errors="replace") as f:
            for name in candidates:
                f.seek(0)
                for line in f:
                    if name in line:
                        found.add(name)
                        break
    except OSError as e:
        raise ScanError(
            kind="project_unreadable",
            message=f"could not open project file {project_file}",
            details={"error": str(e)},
        ) from e
    return found


def _discover_into(project_file: str, candidates: List[str], out: DependencyMap) -> str:
    names = discover(project_file, candidates)
    out.add(project_file, sorted(names))
    return project_file


def scan_projects(
    project_files: List[str],
    candidates: Iterable[str],
    *,
    max_workers: Optional[int] = None,
) -> DependencyMapping:
    """
    Run discovery for every project file concurrently and return the map.

    One task per project file. `max_workers=None` means one thread per project.
    Blocks until every task has finished; the first ScanError is re-raised.
    """
    console = get_console()
    candidates = list(candidates)
    out = DependencyMap(project_files)
    if not project_files:
        return out.snapshot()

    workers = max_workers or len(project_files)
    console.print_debug(
        f"scanning {len(project_files)} project file(s) for {len(candidates)} candidate(s) "
        f"with {workers} worker(s)"
    )

    errors: List[BaseException] = []
    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = {pool.submit(_discover_into, p, candidates, out): p for p in project_files}
        for fut in as_completed(futures):
            try:
                fut.result()
            except ScanError as e:
                errors.append(e)

    if errors:
        raise errors[0]

    return out.snapshot()
