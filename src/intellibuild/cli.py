# cli.py
from __future__ import annotations

import sys
from typing import Any, Dict

import click

from .errors import CacheNotFound, IntellibuildError
from .model import CompilerSyntax, ScanCandidates
from .runner import read_dependency_map, rescan, run_build
from .ui.console import Console, get_console, set_console
from .ui.prompt import AutoPresenter, ConsolePresenter

_repo_argument = click.argument(
    "repo",
    type=click.Path(exists=True, file_okay=False, resolve_path=True),
    default=".",
)


def _tuning_options(f):
    """Options that override (and get stored into) the persisted config."""
    options = [
        click.option("--workers", type=click.IntRange(min=1), default=None, envvar="INTELLIBUILD_WORKERS",
                     help="Max threads for the project scan (default: one per project)"),
        click.option("--source-ext", "source_extension", default=None, envvar="INTELLIBUILD_SOURCE_EXT",
                     help="Source file extension (default: cpp)"),
        click.option("--project-ext", "project_extension", default=None, envvar="INTELLIBUILD_PROJECT_EXT",
                     help="Project file extension (default: cbproj)"),
        click.option("--setup-script", default=None, envvar="INTELLIBUILD_SETUP_SCRIPT",
                     help="Environment setup executable, relative to the repository root"),
        click.option("--compiler", type=click.Choice([c.value for c in CompilerSyntax]), default=None,
                     envvar="INTELLIBUILD_COMPILER", help="Compiler invocation syntax"),
        click.option("--scan-candidates", type=click.Choice([c.value for c in ScanCandidates]), default=None,
                     envvar="INTELLIBUILD_SCAN_CANDIDATES",
                     help="Source names a full rescan looks for: changed files only, or the whole tree"),
    ]
    for option in reversed(options):
        f = option(f)
    return f


def _overrides(**kwargs: Any) -> Dict[str, Any]:
    return {k: v for k, v in kwargs.items() if v is not None}


def _fail(ctx: click.Context, e: BaseException) -> None:
    console = get_console()
    if isinstance(e, IntellibuildError):
        details = [f"{k}: {v}" for k, v in e.details.items()]
        console.print_error(e.kind.replace("_", " ").capitalize(), e.message, details=details or None)
        if ctx.obj.get("debug", False):
            console.print_exception(e)
    else:
        console.print_exception(e)
    sys.exit(1)


@click.group()
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    envvar="INTELLIBUILD_DEBUG",
    help="Enable debug mode (show stack traces and detailed output)",
)
@click.pass_context
def cli(ctx, debug):
    """intellibuild: rebuild only the projects your changes touch."""
    console = Console(debug=debug)
    set_console(console)
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


@cli.command()
@_repo_argument
@_tuning_options
@click.option("--force-setup", is_flag=True, default=False, help="Run the environment setup script now")
@click.option("--rescan", "force_rescan", is_flag=True, default=False, help="Ignore the cache and rescan every project file")
@click.option("--yes", "-y", is_flag=True, default=False, help="Build every selected project without asking")
@click.option("--dry-run", is_flag=True, default=False, help="Show the build plan and stop")
@click.option("--fail-fast/--no-fail-fast", default=True, help="Stop building after the first failure")
@click.pass_context
def run(ctx, repo, workers, source_extension, project_extension, setup_script, compiler,
        scan_candidates, force_setup, force_rescan, yes, dry_run, fail_fast):
    """Select and build the projects affected by uncommitted changes."""
    console = get_console()
    presenter = AutoPresenter() if yes else ConsolePresenter()

    try:
        result = run_build(
            repo,
            presenter=presenter,
            overrides=_overrides(
                workers=workers,
                source_extension=source_extension,
                project_extension=project_extension,
                setup_script=setup_script,
                compiler=compiler,
                scan_candidates=scan_candidates,
            ),
            force_setup=force_setup,
            force_rescan=force_rescan,
            dry_run=dry_run,
            fail_fast=fail_fast,
        )
    except (KeyboardInterrupt, click.Abort):
        console.print_info("\nInterrupted by user")
        sys.exit(130)
    except Exception as e:
        _fail(ctx, e)
        return

    if result.builds:
        console.print_results(result.builds)
    if any(v == "failed" for v in result.builds.values()):
        sys.exit(1)


@cli.command()
@_repo_argument
@_tuning_options
@click.pass_context
def scan(ctx, repo, workers, source_extension, project_extension, setup_script, compiler, scan_candidates):
    """Rescan every project file and save the dependency map without building."""
    try:
        rescan(
            repo,
            overrides=_overrides(
                workers=workers,
                source_extension=source_extension,
                project_extension=project_extension,
                setup_script=setup_script,
                compiler=compiler,
                scan_candidates=scan_candidates,
            ),
        )
    except (KeyboardInterrupt, click.Abort):
        get_console().print_info("\nInterrupted by user")
        sys.exit(130)
    except Exception as e:
        _fail(ctx, e)


@cli.command()
@_repo_argument
@click.pass_context
def deps(ctx, repo):
    """Print the cached project -> source dependency map."""
    console = get_console()
    try:
        dependency_map = read_dependency_map(repo)
    except CacheNotFound:
        console.print_error(
            "No dependency cache",
            f"No usable cache found for {repo}.",
            suggestion="Create one:\n  intellibuild scan <repo>",
        )
        sys.exit(1)
    except Exception as e:
        _fail(ctx, e)
        return
    console.print_dependency_map(dependency_map)


if __name__ == "__main__":
    cli()
