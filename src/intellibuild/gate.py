# gate.py
# Re-runs the environment setup script when it has not run for a while.
from __future__ import annotations

import subprocess
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Optional

from .ui.console import get_console

SETUP_INTERVAL = timedelta(hours=4)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(ts: datetime) -> datetime:
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts


def is_stale(
    last_run: Optional[datetime],
    now: datetime,
    interval: timedelta = SETUP_INTERVAL,
) -> bool:
    if last_run is None:
        return True
    return _as_utc(now) - _as_utc(last_run) > interval


def run_setup_script(repo_root: Path, script: str) -> int:
    """
    Run the setup executable (relative to `repo_root`) with no arguments.

    Output is not captured so the user sees it. Returns the exit code, or -1 if
    the script could not be started.
    """
    console = get_console()
    path = (repo_root / script).resolve()
    console.print_info(f"Running environment setup: {path}")
    try:
        proc = subprocess.run([str(path)], cwd=str(repo_root), check=False)
    except OSError as e:
        console.print_warning("Environment setup could not be started", str(e))
        return -1
    if proc.returncode != 0:
        console.print_warning(
            "Environment setup failed",
            f"{path} exited with {proc.returncode}; continuing anyway",
        )
    return proc.returncode


def maybe_bootstrap(
    last_run: Optional[datetime],
    force: bool,
    *,
    repo_root: str | Path,
    script: Optional[str],
    interval: timedelta = SETUP_INTERVAL,
    now: Callable[[], datetime] = _utcnow,
    runner: Callable[[Path, str], int] = run_setup_script,
) -> Optional[datetime]:
    """
    Return the timestamp to persist as the last setup run.

    Runs the setup script when `force` is set or more than `interval` passed
    since `last_run`, and returns the current time. The script's exit code does
    not matter: a failed setup still moves the timestamp forward. Without a
    configured script nothing runs and `last_run` comes back unchanged.
    """
    console = get_console()
    current = now()

    if not force and not is_stale(last_run, current, interval):
        console.print_debug(f"environment setup is fresh (last run {last_run})")
        return last_run

    if not script:
        if force:
            console.print_warning(
                "No setup script configured",
                "--force-setup was given but no setup script is set",
                suggestion="Configure one:\n  intellibuild run <repo> --setup-script <path>",
            )
        return last_run

    runner(Path(repo_root), script)
    return current
