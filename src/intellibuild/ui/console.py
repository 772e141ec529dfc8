"""Console output formatting utilities for intellibuild."""

from __future__ import annotations

import sys
from typing import Optional


class Console:
    """Centralized console output formatting."""

    def __init__(self, debug: bool = False):
        """
        Initialize console formatter.

        Args:
            debug: If True, show detailed output including stack traces
        """
        self.debug = debug

    def print_header(self, title: str) -> None:
        """Print a section header."""
        print(f"\n{title}")
        print("-" * len(title))

    def print_run_started(
        self,
        repository: str,
        changed_sources: int,
        changed_projects: int,
    ) -> None:
        """Print run start information."""
        print("\nRUN STARTED")
        print(f"Repository: {repository}")
        print(f"Changed sources: {changed_sources}")
        print(f"Changed project files: {changed_projects}")
        print()

    def print_selection(self, branch: str, reason: str, project_count: int) -> None:
        """Print which selection branch was taken."""
        print(f"SELECTION: {branch} ({reason})")
        print(f"Projects tracked: {project_count}")

    def print_plan(self, dirty: dict[str, list[str]]) -> None:
        """Print the projects that need a build and why."""
        self.print_header("BUILD PLAN")
        if not dirty:
            print("  nothing to build")
            return
        for project in sorted(dirty):
            print(f"  {project} (for files: {', '.join(dirty[project])})")

    def print_build_start(self, project: str, cmd: str) -> None:
        """Print build start message."""
        print(f"\nBUILD STARTED: {project}")
        print(f"COMMAND: {cmd}")

    def print_dependency_map(self, dependency_map: dict[str, list[str]]) -> None:
        """Print the cached project -> sources mapping."""
        self.print_header("DEPENDENCY MAP")
        if not dependency_map:
            print("  (empty)")
            return
        for project in sorted(dependency_map):
            names = dependency_map[project]
            print(f"  {project}: {', '.join(names) if names else '-'}")

    def print_results(self, results: dict[str, str]) -> None:
        """Print final results summary."""
        print("\n" + "=" * 40)
        print("RESULTS")
        print("=" * 40)
        for project, status in results.items():
            status_display = status.upper() if status != "ok" else "SUCCESS"
            print(f"  {project}: {status_display}")

    def print_warning(
        self,
        title: str,
        message: str,
        suggestion: Optional[str] = None,
    ) -> None:
        """Print a non-fatal problem; the run continues."""
        print(f"\nWARNING: {title}", file=sys.stderr)
        print(f"{message}", file=sys.stderr)
        if suggestion:
            print(f"\n{suggestion}", file=sys.stderr)

    def print_error(
        self,
        title: str,
        message: str,
        details: Optional[list[str]] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        """
        Print structured error message.

        Args:
            title: Error title
            message: Main error message
            details: Optional list of detail lines
            suggestion: Optional suggestion for user
        """
        print(f"\nERROR: {title}", file=sys.stderr)
        print(f"{message}", file=sys.stderr)
        if details:
            for detail in details:
                print(f"  {detail}", file=sys.stderr)
        if suggestion:
            print(f"\n{suggestion}", file=sys.stderr)

    def print_exception(self, exc: BaseException) -> None:
        """Print exception, with full traceback only in debug mode."""
        if self.debug:
            import traceback
            traceback.print_exc()
        else:
            print(f"Error: {exc}", file=sys.stderr)

    def print_info(self, message: str) -> None:
        """Print informational message."""
        print(message)

    def print_debug(self, message: str) -> None:
        """Print debug message (only if debug mode enabled)."""
        if self.debug:
            print(f"[DEBUG] {message}", file=sys.stderr)


# Global console instance (will be initialized by CLI)
_console: Optional[Console] = None


def get_console() -> Console:
    """Get the global console instance."""
    global _console
    if _console is None:
        _console = Console()
    return _console


def set_console(console: Console) -> None:
    """Set the global console instance."""
    global _console
    _console = console
