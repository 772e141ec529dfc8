from __future__ import annotations

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from intellibuild.gate import SETUP_INTERVAL, is_stale, maybe_bootstrap, run_setup_script

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


class FakeRunner:
    def __init__(self, exit_code: int = 0):
        self.exit_code = exit_code
        self.calls: list[tuple[Path, str]] = []

    def __call__(self, repo_root: Path, script: str) -> int:
        self.calls.append((repo_root, script))
        return self.exit_code


def _gate(last_run, force=False, script="setup.sh", runner=None, tmp_path=Path(".")):
    return maybe_bootstrap(
        last_run,
        force,
        repo_root=tmp_path,
        script=script,
        now=lambda: NOW,
        runner=runner or FakeRunner(),
    )


def test_window_is_four_hours() -> None:
    assert SETUP_INTERVAL == timedelta(hours=4)


def test_is_stale() -> None:
    assert is_stale(None, NOW)
    assert not is_stale(NOW - timedelta(hours=3, minutes=59), NOW)
    assert not is_stale(NOW - timedelta(hours=4), NOW)
    assert is_stale(NOW - timedelta(hours=4, seconds=1), NOW)


def test_is_stale_accepts_naive_timestamps() -> None:
    naive = (NOW - timedelta(hours=5)).replace(tzinfo=None)
    assert is_stale(naive, NOW)


def test_fresh_timestamp_is_returned_unchanged() -> None:
    runner = FakeRunner()
    last = NOW - timedelta(hours=1)

    assert _gate(last, runner=runner) == last
    assert runner.calls == []


def test_stale_timestamp_runs_setup_and_returns_now() -> None:
    runner = FakeRunner()
    assert _gate(NOW - timedelta(hours=5), runner=runner) == NOW
    assert len(runner.calls) == 1
    assert runner.calls[0][1] == "setup.sh"


def test_never_run_counts_as_stale() -> None:
    runner = FakeRunner()
    assert _gate(None, runner=runner) == NOW
    assert len(runner.calls) == 1


def test_force_runs_even_when_fresh() -> None:
    runner = FakeRunner()
    assert _gate(NOW - timedelta(minutes=5), force=True, runner=runner) == NOW
    assert len(runner.calls) == 1


def test_failed_setup_still_moves_timestamp() -> None:
    runner = FakeRunner(exit_code=3)
    assert _gate(NOW - timedelta(days=1), runner=runner) == NOW


def test_without_script_nothing_runs(capsys) -> None:
    runner = FakeRunner()
    last = NOW - timedelta(days=1)

    assert _gate(last, force=True, script=None, runner=runner) == last
    assert runner.calls == []
    assert "No setup script configured" in capsys.readouterr().err


def test_run_setup_script_missing_executable_is_not_fatal(tmp_path: Path, capsys) -> None:
    assert run_setup_script(tmp_path, "missing-setup") == -1
    assert "could not be started" in capsys.readouterr().err


@pytest.mark.skipif(sys.platform == "win32", reason="uses a POSIX shell script")
def test_run_setup_script_reports_nonzero_exit(tmp_path: Path, capsys) -> None:
    script = tmp_path / "setup.sh"
    script.write_text("#!/bin/sh\nexit 2\n", encoding="utf-8")
    script.chmod(0o755)

    assert run_setup_script(tmp_path, "setup.sh") == 2
    assert "Environment setup failed" in capsys.readouterr().err
