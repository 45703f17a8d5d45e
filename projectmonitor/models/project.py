"""Project — a repository and the tasks tracked for it."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from projectmonitor.models.task import Task


@dataclass
class Project:
    """A repository-like container of tasks.  ``url`` is its identity."""

    owner: str
    name: str
    url: str
    tasks: list[Task] = field(default_factory=list)

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    def empty_copy(self) -> Project:
        return Project(owner=self.owner, name=self.name, url=self.url)

    def latest_activity(self) -> datetime | None:
        """Most recent ``created_at`` among the project's tasks."""
        if not self.tasks:
            return None
        return max(task.created_at for task in self.tasks)


Baseline = list[Project]


@dataclass
class ResultingTasks:
    """Output of one reconciliation: what to persist and what to notify."""

    new_baseline: list[Project]
    to_notify: list[Project]
    pruned_count: int = 0

    @property
    def new_count(self) -> int:
        return sum(len(p.tasks) for p in self.to_notify)
