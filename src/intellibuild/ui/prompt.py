# prompt.py
# Presenters decide, per dirty project, whether it gets built.
from __future__ import annotations

from typing import Dict, List, Protocol

import click

from ..model import Decision, DirtyProjects

_CHOICES = {"y": Decision.BUILD, "n": Decision.SKIP, "a": Decision.ABORT}


class Presenter(Protocol):
    def present(self, dirty: DirtyProjects) -> Dict[str, Decision]:
        ...


class AutoPresenter:
    """Approves every project without asking (--yes)."""

    def present(self, dirty: DirtyProjects) -> Dict[str, Decision]:
        return {project: Decision.BUILD for project in dirty}


class ConsolePresenter:
    """
    Asks once per project on the terminal.

    Answering "a" aborts: the project and every one after it are marked ABORT.
    """

    def present(self, dirty: DirtyProjects) -> Dict[str, Decision]:
        decisions: Dict[str, Decision] = {}
        projects: List[str] = sorted(dirty)
        for i, project in enumerate(projects):
            answer = click.prompt(
                f"Build {project} for files {', '.join(dirty[project])}? [y]es/[n]o/[a]bort",
                type=click.Choice(list(_CHOICES), case_sensitive=False),
                default="y",
                show_choices=False,
            )
            decision = _CHOICES[answer.lower()]
            if decision is Decision.ABORT:
                for rest in projects[i:]:
                    decisions[rest] = Decision.ABORT
                break
            decisions[project] = decision
        return decisions
