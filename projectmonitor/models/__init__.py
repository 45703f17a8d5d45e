"""Domain models — tasks, projects and reconciliation results."""

from projectmonitor.models.project import Baseline, Project, ResultingTasks
from projectmonitor.models.task import DELETED_USER, Task, TaskType

__all__ = [
    "Baseline",
    "DELETED_USER",
    "Project",
    "ResultingTasks",
    "Task",
    "TaskType",
]
