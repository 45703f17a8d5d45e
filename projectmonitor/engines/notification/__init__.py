"""Notification engine — digest rendering and SMTP delivery."""

from projectmonitor.engines.notification.mailer import Mailer
from projectmonitor.engines.notification.notifier import EmailNotifier
from projectmonitor.engines.notification.template import SUBJECT, render_digest

__all__ = ["EmailNotifier", "Mailer", "SUBJECT", "render_digest"]
