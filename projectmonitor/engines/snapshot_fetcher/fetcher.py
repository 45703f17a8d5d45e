"""Snapshot fetcher — the current view of unsubscribed tasks across all repositories."""

from __future__ import annotations

import asyncio
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import datetime
from typing import Any

import structlog

from projectmonitor.engines.snapshot_fetcher.github_client import GitHubClient, QueryError
from projectmonitor.engines.snapshot_fetcher.queries import (
    ORGANIZATION_REPOS_QUERY,
    PAGE_SIZE,
    REPO_QUERY,
    VIEWER_ORGANIZATIONS_QUERY,
    VIEWER_REPOS_QUERY,
)
from projectmonitor.models import DELETED_USER, Project, Task, TaskType

log = structlog.get_logger("projectmonitor.engine.fetcher")

_MAX_CONCURRENCY = 5
_DEFAULT_MAX_PAGES = 20

# Connection name in the repository query -> task type it yields.
_CONNECTIONS: dict[str, TaskType] = {
    "issues": TaskType.ISSUE,
    "pullRequests": TaskType.PR,
    "discussions": TaskType.DISCUSSION,
}
_CURSOR_VARS = {
    "issues": "issue",
    "pullRequests": "pullRequest",
    "discussions": "discussion",
}


@dataclass(frozen=True)
class Repo:
    owner: str
    name: str


# ── repository discovery ──────────────────────────────────────────────────


async def fetch_viewer_repos(client: GitHubClient) -> list[Repo]:
    """Non-archived repositories of the authenticated user."""
    repos: list[Repo] = []
    cursor: str | None = None
    while True:
        data = await client.query(VIEWER_REPOS_QUERY, {"cursor": cursor})
        connection = data["viewer"]["repositories"]
        repos.extend(_active_repos(connection))
        cursor, has_next = _page_info(connection)
        if not has_next:
            return repos


async def fetch_viewer_organizations(client: GitHubClient) -> list[str]:
    """Logins of organisations the authenticated user can administer."""
    logins: list[str] = []
    cursor: str | None = None
    while True:
        data = await client.query(VIEWER_ORGANIZATIONS_QUERY, {"cursor": cursor})
        connection = data["viewer"]["organizations"]
        logins.extend(
            node["login"] for node in _nodes(connection) if node.get("viewerCanAdminister")
        )
        cursor, has_next = _page_info(connection)
        if not has_next:
            return logins


async def fetch_org_repos(client: GitHubClient, login: str) -> list[Repo]:
    """Non-archived repositories of organisation *login*."""
    repos: list[Repo] = []
    cursor: str | None = None
    while True:
        data = await client.query(ORGANIZATION_REPOS_QUERY, {"login": login, "cursor": cursor})
        organization = data.get("organization")
        if organization is None:
            raise QueryError(f"no organization {login!r}")
        connection = organization["repositories"]
        repos.extend(_active_repos(connection))
        cursor, has_next = _page_info(connection)
        if not has_next:
            return repos


async def fetch_all_repos(client: GitHubClient) -> list[Repo]:
    """Own repositories plus those of administered organisations, de-duplicated."""

    async def _org_repos() -> list[Repo]:
        logins = await fetch_viewer_organizations(client)
        nested = await asyncio.gather(*(fetch_org_repos(client, login) for login in logins))
        return [repo for repos in nested for repo in repos]

    viewer_repos, org_repos = await asyncio.gather(fetch_viewer_repos(client), _org_repos())

    seen: set[Repo] = set()
    unique: list[Repo] = []
    for repo in [*viewer_repos, *org_repos]:
        if repo not in seen:
            seen.add(repo)
            unique.append(repo)
    return unique


# ── per-repository tasks ──────────────────────────────────────────────────


async def fetch_project(
    client: GitHubClient,
    owner: str,
    name: str,
    *,
    max_pages: int = _DEFAULT_MAX_PAGES,
) -> Project:
    """Open tasks of one repository that the viewer neither watches nor authored.

    Issues, pull requests and discussions are paged independently: each
    connection keeps its own cursor and stops being requested once it is
    exhausted.  Paging ends when every connection is exhausted or after
    *max_pages* requests.
    """
    cursors: dict[str, str | None] = {key: None for key in _CONNECTIONS}
    pending: set[str] = set(_CONNECTIONS)
    tasks: list[Task] = []
    repo_url: str | None = None
    page = 0

    while pending and page < max_pages:
        variables: dict[str, Any] = {"owner": owner, "name": name}
        for key, prefix in _CURSOR_VARS.items():
            variables[f"{prefix}Count"] = PAGE_SIZE if key in pending else 0
            variables[f"{prefix}Cursor"] = cursors[key]

        data = await client.query(REPO_QUERY, variables)
        repository = data.get("repository")
        if repository is None:
            raise QueryError(f"no repository {owner}/{name}")
        repo_url = repository["url"]

        for key, task_type in _CONNECTIONS.items():
            if key not in pending:
                continue
            connection = repository[key]
            tasks.extend(
                _to_task(node, task_type)
                for node in _nodes(connection)
                if _is_relevant(node, client.username)
            )
            cursor, has_next = _page_info(connection)
            cursors[key] = cursor
            if not has_next:
                pending.discard(key)
        page += 1

    if pending:
        log.warning(
            "fetcher.page_limit",
            repo=f"{owner}/{name}",
            max_pages=max_pages,
            unfinished=sorted(pending),
        )

    if repo_url is None:
        raise QueryError(f"no repository data for {owner}/{name}")
    tasks.sort(key=lambda t: t.created_at, reverse=True)
    return Project(owner=owner, name=name, url=repo_url, tasks=tasks)


async def fetch_all_projects(client: GitHubClient) -> list[Project]:
    """Snapshot of every visible repository; any failure fails the whole snapshot."""
    repos = await fetch_all_repos(client)
    sem = asyncio.Semaphore(_MAX_CONCURRENCY)

    async def _fetch_one(repo: Repo) -> Project:
        async with sem:
            return await fetch_project(client, repo.owner, repo.name)

    projects = await asyncio.gather(*(_fetch_one(repo) for repo in repos))
    log.info(
        "fetcher.snapshot",
        repos=len(repos),
        tasks=sum(len(p.tasks) for p in projects),
    )
    return list(projects)


class GitHubSnapshotFetcher:
    """``SnapshotFetcher`` backed by the GitHub GraphQL API."""

    def __init__(self, client: GitHubClient) -> None:
        self._client = client

    async def fetch(self) -> list[Project]:
        return await fetch_all_projects(self._client)


# ── helpers ───────────────────────────────────────────────────────────────


def _nodes(connection: dict[str, Any]) -> Iterator[dict[str, Any]]:
    for edge in connection.get("edges") or []:
        if edge and edge.get("node"):
            yield edge["node"]


def _page_info(connection: dict[str, Any]) -> tuple[str | None, bool]:
    info = connection.get("pageInfo") or {}
    return info.get("endCursor"), bool(info.get("hasNextPage"))


def _active_repos(connection: dict[str, Any]) -> Iterator[Repo]:
    for node in _nodes(connection):
        if not node.get("isArchived"):
            yield Repo(owner=node["owner"]["login"], name=node["name"])


def _author(node: dict[str, Any]) -> str:
    author = node.get("author")
    if not author or not author.get("login"):
        return DELETED_USER
    return author["login"]


def _is_relevant(node: dict[str, Any], username: str) -> bool:
    if node.get("viewerSubscription") == "SUBSCRIBED":
        return False
    return _author(node) != username


def _to_task(node: dict[str, Any], task_type: TaskType) -> Task:
    return Task(
        task_type=task_type,
        id=int(node["number"]),
        title=node.get("title", ""),
        author=_author(node),
        created_at=_parse_datetime(node["createdAt"]),
        url=node["url"],
    )


def _parse_datetime(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))
