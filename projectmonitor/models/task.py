"""Task — an issue, pull request or discussion that may need attention."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime

DELETED_USER = "<deleted user>"


class TaskType(str, enum.Enum):
    ISSUE = "issue"
    PR = "pr"
    DISCUSSION = "discussion"

    @property
    def label(self) -> str:
        return _LABELS[self]


_LABELS = {
    TaskType.ISSUE: "Issue",
    TaskType.PR: "Pull Request",
    TaskType.DISCUSSION: "Discussion",
}


@dataclass
class Task:
    """A single task as reported by the upstream source.

    ``url`` is the identity of a task; every other field is metadata that may
    drift upstream without making the task new.  ``observed_at`` is stamped
    locally the first time the task is recorded in the baseline.
    """

    task_type: TaskType
    id: int
    title: str
    author: str
    created_at: datetime
    url: str
    observed_at: datetime | None = None

    def sort_key(self) -> tuple[datetime, str]:
        """Display ordering key, never used for identity."""
        return (self.created_at, self.url)
