"""CLI entry point: projectmonitor.

Subcommands:
    projectmonitor run               # poll forever, DELAY seconds between cycles
    projectmonitor run --once        # single reconciliation cycle
    projectmonitor show-baseline     # summarize the persisted baseline
    projectmonitor reset-baseline    # forget every known task
"""

from __future__ import annotations

import asyncio
import os
import sys
from pathlib import Path

import click

from projectmonitor.core.config import DEFAULT_PERSISTENCE_FILE, Settings, load_settings
from projectmonitor.core.logging import setup_logging
from projectmonitor.engines.baseline import FileBaselineStore
from projectmonitor.engines.cycle import CycleRunner
from projectmonitor.engines.notification import EmailNotifier, Mailer
from projectmonitor.engines.snapshot_fetcher import GitHubClient, GitHubSnapshotFetcher
from projectmonitor.exceptions import ConfigError, LockError
from projectmonitor.scheduler import PollLoop


def build_runner(settings: Settings, client: GitHubClient) -> CycleRunner:
    """Wire the file store, GitHub fetcher and mail notifier into a CycleRunner."""
    mailer = Mailer(
        settings.smtp_host,
        settings.smtp_port,
        from_addr=settings.email_from,
        to_addr=settings.email_to,
        username=settings.smtp_username,
        password=settings.smtp_password,
        starttls=settings.smtp_starttls,
    )
    return CycleRunner(
        store=FileBaselineStore(settings.persistence_file),
        fetcher=GitHubSnapshotFetcher(client),
        notifier=EmailNotifier(mailer),
        retention=settings.retention,
    )


async def _serve(settings: Settings, once: bool) -> int:
    async with GitHubClient(settings.github_username, settings.github_access_token) as client:
        runner = build_runner(settings, client)
        poll = PollLoop(runner.run_once, settings.delay)
        if once:
            return 0 if await poll.run_cycle() else 1
        poll.install_signal_handlers()
        await poll.loop()
    return 0


def _default_path() -> str:
    return os.environ.get("PERSISTENCE_FILE") or DEFAULT_PERSISTENCE_FILE


@click.group()
@click.option("--log-level", default=None, help="Override PROJECTMONITOR_LOG_LEVEL.")
@click.option(
    "--log-format",
    type=click.Choice(["console", "json", "logfmt"]),
    default=None,
    help="Override PROJECTMONITOR_LOG_FORMAT.",
)
def main(log_level: str | None, log_format: str | None) -> None:
    """Mail a digest of new GitHub tasks you are not subscribed to."""
    setup_logging(log_level, log_format)


@main.command()
@click.option("--once", is_flag=True, help="Run a single cycle and exit.")
def run(once: bool) -> None:
    """Poll GitHub and notify about new tasks."""
    try:
        settings = load_settings()
    except ConfigError as exc:
        raise click.ClickException(f"invalid configuration: {exc}") from exc

    sys.exit(asyncio.run(_serve(settings, once)))


@main.command("show-baseline")
@click.option(
    "--path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=_default_path,
    help="Baseline file (default: $PERSISTENCE_FILE or persistence.json).",
)
def show_baseline(path: Path) -> None:
    """Summarize the tasks recorded in the baseline."""
    if not path.exists():
        click.echo(f"No baseline at {path}.")
        return

    store = FileBaselineStore(path)
    try:
        with store.acquire() as handle:
            baseline = store.read(handle)
    except LockError as exc:
        raise click.ClickException(str(exc)) from exc

    if not baseline:
        click.echo("Baseline is empty.")
        return

    total = 0
    for project in baseline:
        total += len(project.tasks)
        observed = [t.observed_at for t in project.tasks if t.observed_at is not None]
        oldest = min(observed).isoformat() if observed else "-"
        click.echo(f"{project.full_name}  tasks={len(project.tasks)}  oldest={oldest}")
        click.echo(f"  {project.url}")
    click.echo(f"\n{len(baseline)} project(s), {total} task(s)")


@main.command("reset-baseline")
@click.option(
    "--path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=_default_path,
    help="Baseline file (default: $PERSISTENCE_FILE or persistence.json).",
)
@click.option("--yes", is_flag=True, help="Do not ask for confirmation.")
def reset_baseline(path: Path, yes: bool) -> None:
    """Forget every known task; the next cycle notifies about all of them."""
    if not yes:
        click.confirm(f"Reset baseline {path}?", abort=True)

    store = FileBaselineStore(path)
    try:
        with store.acquire() as handle:
            store.write(handle, [])
    except LockError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Baseline {path} reset.")


if __name__ == "__main__":
    main()
