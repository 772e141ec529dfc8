# runner.py
from __future__ import annotations

import shlex
import subprocess
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .cache import CacheStore, RunConfig
from .classifier import list_changed_files
from .errors import BuildFailure, CacheNotFound, IntellibuildError
from .gate import maybe_bootstrap
from .git_facts.git import repo_root as git_repo_root
from .model import ChangeSet, CompilerSyntax, Decision, DirtyProjects, RunResult, Selection
from .selector import select_builds
from .ui.console import get_console
from .ui.prompt import AutoPresenter, Presenter

# working tree ---> git status ---> select ---> confirm ---> compile

TOOL_HINTS = {
    "msbuild": "Run the environment setup (e.g. rsvars.bat) or fix PATH.",
}

PROJECT_PLACEHOLDER = "{project}"


# ----------------------------------------------------------------------
# Config loading
# ----------------------------------------------------------------------

@dataclass
class LoadedConfig:
    conf: RunConfig
    from_cache: bool


def load_config(store: CacheStore, overrides: Optional[Dict[str, Any]] = None) -> LoadedConfig:
    """
    Load the persisted config and apply non-None overrides on top.

    A missing or broken file yields `from_cache=False`, which sends the
    selector down the rebuild branch; whatever part of the file was still
    readable is kept. Overrides are stored back on save, so CLI flags stick
    for later runs.
    """
    console = get_console()
    try:
        conf = store.load()
        from_cache = True
    except CacheNotFound as e:
        console.print_debug(str(e))
        conf = e.salvaged if e.salvaged is not None else RunConfig()
        from_cache = False

    if conf.unparsed:
        console.print_warning(
            "Unreadable settings in dependency cache",
            f"{store.path}: {', '.join(sorted(conf.unparsed))}",
            suggestion="Defaults are used for this run. The stored values are written back unchanged.",
        )

    for key, value in (overrides or {}).items():
        if value is not None:
            setattr(conf, key, value)

    return LoadedConfig(conf=conf, from_cache=from_cache)


# ----------------------------------------------------------------------
# Compiler invocation
# ----------------------------------------------------------------------

def compiler_command(conf: RunConfig, project: str) -> List[str]:
    """Command line that builds one project file for the configured syntax."""
    if conf.compiler is CompilerSyntax.MSBUILD:
        return ["msbuild", project, "/t:Make"]
    if conf.compiler is CompilerSyntax.MSBUILD_BUILD:
        return ["msbuild", project, "/t:Build"]

    template = list(conf.compiler_command)
    if not template:
        raise IntellibuildError(
            kind="config_invalid",
            message="compiler is 'custom' but compiler_command is empty",
            details={"hint": 'set compiler_command, e.g. ["make", "-f", "{project}"]'},
        )
    if not any(PROJECT_PLACEHOLDER in part for part in template):
        template.append(PROJECT_PLACEHOLDER)
    return [part.replace(PROJECT_PLACEHOLDER, project) for part in template]


def _run_build(conf: RunConfig, project: str) -> None:
    console = get_console()
    cmd = compiler_command(conf, project)
    cmd_str = " ".join(shlex.quote(c) for c in cmd)
    console.print_build_start(project, cmd_str)

    try:
        proc = subprocess.run(cmd, cwd=str(Path(project).parent), check=False)
    except FileNotFoundError as e:
        hint = TOOL_HINTS.get(cmd[0], f"Install {cmd[0]} or fix PATH.")
        raise IntellibuildError(
            kind="tool_unavailable",
            message=f"{cmd[0]} is not available",
            details={"hint": hint, "project": project},
        ) from e

    if proc.returncode != 0:
        raise BuildFailure(project=project, cmd=cmd_str, exit_code=proc.returncode)


def execute_builds(
    conf: RunConfig,
    dirty: DirtyProjects,
    decisions: Dict[str, Decision],
    *,
    fail_fast: bool = True,
) -> Dict[str, str]:
    """
    Build approved projects one after another.

    Returns project -> "ok" | "failed" | "skipped" | "aborted". After an abort
    decision, or a failure with `fail_fast`, nothing else is started.
    """
    console = get_console()
    results: Dict[str, str] = {}
    stopped = False

    for project in sorted(dirty):
        decision = decisions.get(project, Decision.SKIP)
        if decision is Decision.ABORT:
            stopped = True
        if stopped:
            results[project] = "aborted" if decision is Decision.ABORT else "skipped"
            continue
        if decision is Decision.SKIP:
            results[project] = "skipped"
            continue

        try:
            _run_build(conf, project)
            results[project] = "ok"
        except IntellibuildError as e:
            results[project] = "failed"
            console.print_exception(e)
            if fail_fast:
                stopped = True

    return results


# ----------------------------------------------------------------------
# Public API
# ----------------------------------------------------------------------

def _save(store: CacheStore, conf: RunConfig) -> bool:
    console = get_console()
    try:
        path = store.save(conf)
    except OSError as e:
        console.print_warning(
            "Could not save dependency cache",
            f"{store.path}: {e}",
            suggestion="The next run will rescan all project files.",
        )
        return False
    console.print_debug(f"saved {path}")
    return True


def prepare(
    repo: str | Path,
    *,
    overrides: Optional[Dict[str, Any]] = None,
    force_setup: bool = False,
    force_rescan: bool = False,
) -> Tuple[CacheStore, RunConfig, ChangeSet, Selection]:
    """
    Everything up to (and including) the build decision.

    Fatal errors (VcsError, ScanError) propagate before any decision exists.
    The working tree is classified before the environment gate, so a run that
    cannot read the tree never starts the setup script.
    """
    console = get_console()

    root = git_repo_root(repo)
    store = CacheStore(root)
    loaded = load_config(store, overrides)
    conf = loaded.conf

    changes = list_changed_files(
        root,
        source_extension=conf.source_extension,
        project_extension=conf.project_extension,
    )
    console.print_run_started(
        repository=str(root),
        changed_sources=len(changes.sources),
        changed_projects=len(changes.projects),
    )

    conf.last_setup_run = maybe_bootstrap(
        conf.last_setup_run,
        force_setup,
        repo_root=root,
        script=conf.setup_script,
        interval=timedelta(hours=conf.setup_interval_hours),
    )

    selection = select_builds(
        root,
        changes,
        conf.project_file_map if loaded.from_cache else None,
        project_extension=conf.project_extension,
        source_extension=conf.source_extension,
        candidates=conf.scan_candidates,
        max_workers=conf.workers,
        force_rescan=force_rescan,
    )
    conf.project_file_map = selection.dependency_map

    return store, conf, changes, selection


def run_build(
    repo: str | Path,
    *,
    presenter: Optional[Presenter] = None,
    overrides: Optional[Dict[str, Any]] = None,
    force_setup: bool = False,
    force_rescan: bool = False,
    dry_run: bool = False,
    fail_fast: bool = True,
) -> RunResult:
    """
    One full run: classify, gate, select, report, save, confirm, compile.

    The config is saved right after the plan is shown, before anything is
    built, so an aborted or failing build still leaves a fresh cache behind.
    """
    console = get_console()
    presenter = presenter or AutoPresenter()

    store, conf, changes, selection = prepare(
        repo,
        overrides=overrides,
        force_setup=force_setup,
        force_rescan=force_rescan,
    )

    console.print_selection(selection.branch.value, selection.reason, len(selection.dependency_map))
    console.print_plan(selection.dirty)

    saved = _save(store, conf)
    result = RunResult(selection=selection, changes=changes, cache_saved=saved)

    if dry_run or not selection.dirty:
        return result

    decisions = presenter.present(selection.dirty)
    result.builds = execute_builds(conf, selection.dirty, decisions, fail_fast=fail_fast)
    return result


def rescan(repo: str | Path, *, overrides: Optional[Dict[str, Any]] = None) -> RunResult:
    """Rebuild and save the dependency map without building anything."""
    store, conf, changes, selection = prepare(repo, overrides=overrides, force_rescan=True)
    get_console().print_dependency_map(selection.dependency_map)
    saved = _save(store, conf)
    return RunResult(selection=selection, changes=changes, cache_saved=saved)


def read_dependency_map(repo: str | Path) -> Dict[str, List[str]]:
    """Return the cached map; raises CacheNotFound if there is none."""
    root = git_repo_root(repo)
    return CacheStore(root).load().project_file_map
