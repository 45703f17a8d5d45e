"""On-disk JSON form of the baseline.

The file is a pretty-printed JSON array of project records.  Decoding is
lenient: unknown fields are ignored, missing metadata falls back to defaults
and records that cannot identify a task or project are dropped.  Only a
document that is not a JSON array at all raises :class:`DeserializationError`.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any

import structlog
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from projectmonitor.exceptions import DeserializationError
from projectmonitor.models import DELETED_USER, Project, Task, TaskType

log = structlog.get_logger("projectmonitor.baseline")

# Externally tagged task objects written by earlier releases, e.g. {"Issue": {...}}.
_LEGACY_TAGS: dict[str, TaskType] = {
    "Issue": TaskType.ISSUE,
    "Pr": TaskType.PR,
    "Discussion": TaskType.DISCUSSION,
}


class TaskRecord(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: TaskType = TaskType.ISSUE
    id: int = 0
    title: str = ""
    author: str = DELETED_USER
    created_at: datetime
    url: str = Field(min_length=1)
    observed_at: datetime | None = None

    @model_validator(mode="before")
    @classmethod
    def _unwrap_legacy(cls, data: Any) -> Any:
        if isinstance(data, dict) and len(data) == 1:
            tag, inner = next(iter(data.items()))
            if tag in _LEGACY_TAGS and isinstance(inner, dict):
                return {**inner, "type": _LEGACY_TAGS[tag]}
        return data

    @field_validator("created_at", "observed_at")
    @classmethod
    def _assume_utc(cls, value: datetime | None) -> datetime | None:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @classmethod
    def from_task(cls, task: Task) -> TaskRecord:
        return cls(
            type=task.task_type,
            id=task.id,
            title=task.title,
            author=task.author,
            created_at=task.created_at,
            url=task.url,
            observed_at=task.observed_at,
        )

    def to_task(self) -> Task:
        return Task(
            task_type=self.type,
            id=self.id,
            title=self.title,
            author=self.author,
            created_at=self.created_at,
            url=self.url,
            observed_at=self.observed_at,
        )


class ProjectRecord(BaseModel):
    model_config = ConfigDict(extra="ignore")

    owner: str = ""
    name: str = ""
    url: str = Field(min_length=1)
    # Validated one by one in decode() so a bad task only drops itself.
    tasks: list[Any] = Field(default_factory=list)


def encode(baseline: list[Project]) -> str:
    """Serialize *baseline* to stable, human-diffable JSON."""
    rows = []
    for project in baseline:
        rows.append(
            {
                "owner": project.owner,
                "name": project.name,
                "url": project.url,
                "tasks": [
                    TaskRecord.from_task(task).model_dump(mode="json") for task in project.tasks
                ],
            }
        )
    return json.dumps(rows, indent=2, ensure_ascii=False) + "\n"


def decode(text: str) -> list[Project]:
    """Parse baseline JSON, dropping records that cannot be recovered.

    Raises :class:`DeserializationError` if *text* is not a JSON array.
    """
    if not text.strip():
        return []
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise DeserializationError(f"baseline is not valid JSON: {exc}") from exc
    if not isinstance(data, list):
        raise DeserializationError(
            f"baseline must be a JSON array, got {type(data).__name__}"
        )

    projects: list[Project] = []
    project_urls: set[str] = set()
    for i, raw in enumerate(data):
        try:
            record = ProjectRecord.model_validate(raw)
        except ValidationError as exc:
            log.warning("baseline.project_dropped", index=i, error=str(exc))
            continue
        if record.url in project_urls:
            log.warning("baseline.duplicate_project", project=record.url)
            continue
        project_urls.add(record.url)

        project = Project(owner=record.owner, name=record.name, url=record.url)
        seen: set[str] = set()
        for raw_task in record.tasks:
            try:
                task = TaskRecord.model_validate(raw_task).to_task()
            except ValidationError as exc:
                log.warning("baseline.task_dropped", project=record.url, error=str(exc))
                continue
            if task.url in seen:
                continue
            seen.add(task.url)
            project.tasks.append(task)
        projects.append(project)
    return projects
