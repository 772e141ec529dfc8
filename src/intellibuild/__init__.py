from .cache import CacheStore, RunConfig
from .classifier import list_changed_files
from .model import Branch, ChangeSet, Decision, Selection
from .runner import rescan, run_build
from .scanner import discover, scan_projects
from .selector import select_builds

__all__ = [
    "CacheStore",
    "RunConfig",
    "list_changed_files",
    "Branch",
    "ChangeSet",
    "Decision",
    "Selection",
    "rescan",
    "run_build",
    "discover",
    "scan_projects",
    "select_builds",
]
