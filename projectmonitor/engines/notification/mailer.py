"""Mailer — async SMTP email sending via asyncio.to_thread."""

from __future__ import annotations

import asyncio
import smtplib
from email.message import EmailMessage


class Mailer:
    """Thin async wrapper around smtplib SMTP with optional STARTTLS and login."""

    def __init__(
        self,
        host: str,
        port: int = 587,
        *,
        from_addr: str,
        to_addr: str,
        username: str | None = None,
        password: str | None = None,
        starttls: bool = False,
        timeout: float = 60.0,
    ) -> None:
        self.host = host
        self.port = port
        self.from_addr = from_addr
        self.to_addr = to_addr
        self.username = username
        self.password = password
        self.starttls = starttls
        self.timeout = timeout

    async def send(self, subject: str, body: str) -> None:
        """Send a plain-text email via SMTP in a background thread."""
        await asyncio.to_thread(self._send_sync, subject, body)

    def _send_sync(self, subject: str, body: str) -> None:
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = self.from_addr
        msg["To"] = self.to_addr
        msg.set_content(body)

        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
            if self.starttls:
                server.starttls()
            if self.username and self.password:
                server.login(self.username, self.password)
            server.send_message(msg, from_addr=self.from_addr, to_addrs=[self.to_addr])
