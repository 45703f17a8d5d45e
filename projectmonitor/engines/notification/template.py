"""Plain-text digest of newly discovered tasks."""

from __future__ import annotations

from projectmonitor.models import Project, Task, TaskType

SUBJECT = "GitHub: New Unsubscribed Tasks"

_INTRO = (
    "New tasks have been found in your projects that you are not yet subscribed to.\n"
    "Check the following list."
)

_LABEL_WIDTH = max(len(t.label) for t in TaskType) + 2


def render_digest(projects: list[Project]) -> tuple[str, str]:
    """Return (subject, body) for a digest of *projects*, in the given order."""
    lines = [_INTRO, ""]
    for project in projects:
        lines.append(f"Project: {project.full_name} ({project.url})")
        lines.extend(_format_task(task) for task in project.tasks)
        lines.append("")
    return SUBJECT, "\n".join(lines).rstrip() + "\n"


def _format_task(task: Task) -> str:
    label = f"{task.task_type.label}:".ljust(_LABEL_WIDTH)
    return (
        f"  {label}#{task.id} {task.title} by @{task.author}"
        f" ({task.created_at.isoformat()}) -> {task.url}"
    )
