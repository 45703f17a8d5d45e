"""Runtime settings from environment variables and secret files."""

from __future__ import annotations

import math
import os
import re
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path

from projectmonitor.exceptions import ConfigError

SECRETS_DIR = Path("/run/secrets")

DEFAULT_PERSISTENCE_FILE = "persistence.json"
DEFAULT_SMTP_PORT = 587
DEFAULT_RETENTION_DAYS = 30.0
MAX_RETENTION_DAYS = 36500.0

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+$")


@dataclass(frozen=True)
class Settings:
    github_username: str
    github_access_token: str
    smtp_host: str
    smtp_port: int
    smtp_username: str | None
    smtp_password: str | None
    smtp_starttls: bool
    email_from: str
    email_to: str
    persistence_file: Path
    delay: int
    retention: timedelta


def read_secret(
    name: str,
    env: Mapping[str, str] | None = None,
    secrets_dir: Path = SECRETS_DIR,
) -> str | None:
    """Resolve secret *name* from the environment or a secret file.

    Lookup order:
        1. ``NAME`` environment variable
        2. file named by ``NAME_FILE``
        3. ``<secrets_dir>/<name>`` (docker/podman secrets)
    """
    env = os.environ if env is None else env
    env_name = name.upper()

    value = env.get(env_name)
    if value is not None:
        return value

    file_env = env.get(f"{env_name}_FILE")
    if file_env:
        content = _read_file(Path(file_env))
        if content is not None:
            return content

    return _read_file(secrets_dir / name)


def _read_file(path: Path) -> str | None:
    try:
        return path.read_text(encoding="utf-8").strip()
    except OSError:
        return None


def load_settings(
    env: Mapping[str, str] | None = None,
    secrets_dir: Path = SECRETS_DIR,
) -> Settings:
    """Build :class:`Settings`; raise :class:`ConfigError` on the first bad value."""
    env = os.environ if env is None else env

    def secret(name: str) -> str | None:
        return read_secret(name, env, secrets_dir)

    def required_secret(name: str) -> str:
        value = secret(name)
        if not value:
            raise ConfigError(name.upper(), "required secret is not set")
        return value

    return Settings(
        github_username=required_secret("github_username"),
        github_access_token=required_secret("github_access_token"),
        smtp_host=_required(env, "SMTP_HOST"),
        smtp_port=_port(env, "SMTP_PORT", DEFAULT_SMTP_PORT),
        smtp_username=secret("smtp_username"),
        smtp_password=secret("smtp_password"),
        smtp_starttls=_bool(env, "SMTP_STARTTLS", default=False),
        email_from=_email(env, "EMAIL_FROM"),
        email_to=_email(env, "EMAIL_TO"),
        persistence_file=Path(env.get("PERSISTENCE_FILE") or DEFAULT_PERSISTENCE_FILE),
        delay=_positive_int(env, "DELAY"),
        retention=_retention(env, "RETENTION_DAYS"),
    )


# ── parsers ───────────────────────────────────────────────────────────────


def _required(env: Mapping[str, str], name: str) -> str:
    value = env.get(name, "").strip()
    if not value:
        raise ConfigError(name, "required variable is not set")
    return value


def _email(env: Mapping[str, str], name: str) -> str:
    value = _required(env, name)
    if not _EMAIL_RE.match(value):
        raise ConfigError(name, f"{value!r} is not an email address")
    return value


def _positive_int(env: Mapping[str, str], name: str) -> int:
    value = _required(env, name)
    try:
        number = int(value, 10)
    except ValueError as exc:
        raise ConfigError(name, f"{value!r} is not an integer") from exc
    if number <= 0:
        raise ConfigError(name, f"must be positive, got {number}")
    return number


def _port(env: Mapping[str, str], name: str, default: int) -> int:
    if not env.get(name):
        return default
    port = _positive_int(env, name)
    if port > 65535:
        raise ConfigError(name, f"{port} is not a valid port")
    return port


def _bool(env: Mapping[str, str], name: str, *, default: bool) -> bool:
    value = env.get(name)
    if value is None:
        return default
    return value.strip().lower() == "true"


def _retention(env: Mapping[str, str], name: str) -> timedelta:
    value = env.get(name)
    if not value:
        return timedelta(days=DEFAULT_RETENTION_DAYS)
    try:
        days = float(value)
    except ValueError as exc:
        raise ConfigError(name, f"{value!r} is not a number") from exc
    if not math.isfinite(days) or days <= 0:
        raise ConfigError(name, f"must be a positive number of days, got {value!r}")
    if days > MAX_RETENTION_DAYS:
        raise ConfigError(name, f"must be at most {MAX_RETENTION_DAYS:g} days, got {value!r}")
    return timedelta(days=days)
