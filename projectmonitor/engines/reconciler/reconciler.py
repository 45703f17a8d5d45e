"""Reconciler — diff a fresh snapshot against the baseline.

Pure and synchronous: no I/O, no clock access.  The caller supplies ``now``.
"""

from __future__ import annotations

import dataclasses
from datetime import datetime, timedelta

from projectmonitor.models import Project, ResultingTasks, Task


def reconcile(
    known: list[Project],
    fresh: list[Project],
    retention: timedelta,
    now: datetime,
) -> ResultingTasks:
    """Merge *fresh* into *known* and collect the tasks seen for the first time.

    1. Prune the baseline: projects missing from *fresh* are dropped, tasks
       missing upstream or observed longer than *retention* ago are dropped,
       and projects left without tasks are dropped.  A known task that was
       never stamped (baselines written before ``observed_at`` existed) is
       kept and stamped with *now*: it was already reported once.
    2. Merge every fresh task into the pruned baseline.  Tasks not already
       present are stamped with ``observed_at=now`` and also collected in
       ``to_notify``.
    3. Sort ``to_notify`` so the most recently active projects come first.

    *known* and *fresh* are not mutated.
    """
    if now.tzinfo is None:
        raise ValueError("now must be timezone-aware")
    if retention < timedelta(0):
        raise ValueError(f"retention must not be negative, got {retention}")

    fresh_urls = _task_urls_by_project(fresh)

    baseline, pruned_count = _prune(known, fresh_urls, _cutoff(now, retention), now)
    to_notify = _merge(baseline, fresh, now)
    _sort_for_display(to_notify)

    return ResultingTasks(new_baseline=baseline, to_notify=to_notify, pruned_count=pruned_count)


# ── steps ─────────────────────────────────────────────────────────────────


def _task_urls_by_project(projects: list[Project]) -> dict[str, set[str]]:
    # The same project may be reported more than once (own and org listings).
    urls: dict[str, set[str]] = {}
    for project in projects:
        urls.setdefault(project.url, set()).update(task.url for task in project.tasks)
    return urls


def _prune(
    known: list[Project],
    fresh_urls: dict[str, set[str]],
    cutoff: datetime,
    now: datetime,
) -> tuple[list[Project], int]:
    """Return the surviving baseline copy and how many known tasks were evicted."""
    kept: list[Project] = []
    pruned = 0
    for project in known:
        upstream = fresh_urls.get(project.url)
        if upstream is None:
            pruned += len(project.tasks)
            continue

        copy = project.empty_copy()
        for task in project.tasks:
            if task.url not in upstream or not _is_fresh(task, cutoff):
                pruned += 1
            elif task.observed_at is None:
                copy.tasks.append(dataclasses.replace(task, observed_at=now))
            else:
                copy.tasks.append(task)

        if copy.tasks:
            kept.append(copy)
    return kept, pruned


def _cutoff(now: datetime, retention: timedelta) -> datetime:
    try:
        return now - retention
    except OverflowError:
        return datetime.min.replace(tzinfo=now.tzinfo)


def _is_fresh(task: Task, cutoff: datetime) -> bool:
    return task.observed_at is None or task.observed_at >= cutoff


def _merge(baseline: list[Project], fresh: list[Project], now: datetime) -> list[Project]:
    """Upsert fresh tasks into *baseline* in place; return the new-task projects."""
    index = _ProjectIndex(baseline)
    notify_index = _ProjectIndex([])

    for project in fresh:
        for task in project.tasks:
            if index.contains(project.url, task.url):
                continue
            stamped = dataclasses.replace(task, observed_at=now)
            index.add(project, stamped)
            notify_index.add(project, stamped)

    return notify_index.projects


def _sort_for_display(projects: list[Project]) -> None:
    for project in projects:
        project.tasks.sort(key=Task.sort_key, reverse=True)
    # Every project in to_notify holds at least one task.
    projects.sort(key=lambda p: p.latest_activity(), reverse=True)


class _ProjectIndex:
    """Keyed view over a project list: url -> project and url -> task urls."""

    def __init__(self, projects: list[Project]) -> None:
        self.projects = projects
        self._by_url: dict[str, Project] = {p.url: p for p in projects}
        self._task_urls: dict[str, set[str]] = {
            p.url: {t.url for t in p.tasks} for p in projects
        }

    def contains(self, project_url: str, task_url: str) -> bool:
        return task_url in self._task_urls.get(project_url, ())

    def add(self, project: Project, task: Task) -> None:
        target = self._by_url.get(project.url)
        if target is None:
            target = project.empty_copy()
            self.projects.append(target)
            self._by_url[project.url] = target
            self._task_urls[project.url] = set()
        target.tasks.append(task)
        self._task_urls[project.url].add(task.url)
