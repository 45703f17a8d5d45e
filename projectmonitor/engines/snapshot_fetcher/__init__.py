"""Snapshot fetcher engine — GitHub GraphQL collection, no baseline access."""

from projectmonitor.engines.snapshot_fetcher.fetcher import (
    GitHubSnapshotFetcher,
    fetch_all_projects,
    fetch_all_repos,
    fetch_project,
)
from projectmonitor.engines.snapshot_fetcher.github_client import (
    GitHubClient,
    QueryError,
    RateLimitError,
)

__all__ = [
    "GitHubClient",
    "GitHubSnapshotFetcher",
    "QueryError",
    "RateLimitError",
    "fetch_all_projects",
    "fetch_all_repos",
    "fetch_project",
]
