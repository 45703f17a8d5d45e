"""EmailNotifier — mail the digest of newly discovered tasks."""

from __future__ import annotations

import structlog

from projectmonitor.engines.notification.mailer import Mailer
from projectmonitor.engines.notification.template import render_digest
from projectmonitor.models import Project

log = structlog.get_logger("projectmonitor.engine.notification")


class EmailNotifier:
    """``Notifier`` that renders a plain-text digest and sends it by mail."""

    def __init__(self, mailer: Mailer) -> None:
        self._mailer = mailer

    async def notify(self, projects: list[Project]) -> None:
        subject, body = render_digest(projects)
        log.debug("notification.rendered", body=body)
        await self._mailer.send(subject, body)
        log.info(
            "notification.sent",
            to=self._mailer.to_addr,
            projects=len(projects),
            tasks=sum(len(p.tasks) for p in projects),
        )
