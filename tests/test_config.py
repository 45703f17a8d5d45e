"""Tests for settings loading and secret resolution."""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path

import pytest

from projectmonitor.core.config import load_settings, read_secret
from projectmonitor.exceptions import ConfigError


@pytest.fixture
def secrets_dir(tmp_path):
    path = tmp_path / "secrets"
    path.mkdir()
    return path


@pytest.fixture
def env():
    return {
        "GITHUB_USERNAME": "octocat",
        "GITHUB_ACCESS_TOKEN": "ghp_token",
        "SMTP_HOST": "smtp.example.com",
        "EMAIL_FROM": "bot@example.com",
        "EMAIL_TO": "me@example.com",
        "DELAY": "300",
    }


# ── read_secret ───────────────────────────────────────────────────────────


class TestReadSecret:
    def test_environment_wins(self, secrets_dir):
        (secrets_dir / "smtp_password").write_text("from-file")
        env = {"SMTP_PASSWORD": "from-env"}

        assert read_secret("smtp_password", env, secrets_dir) == "from-env"

    def test_file_variable(self, tmp_path, secrets_dir):
        secret_file = tmp_path / "token.txt"
        secret_file.write_text("  file-token\n")
        env = {"GITHUB_ACCESS_TOKEN_FILE": str(secret_file)}

        assert read_secret("github_access_token", env, secrets_dir) == "file-token"

    def test_secrets_directory(self, secrets_dir):
        (secrets_dir / "github_username").write_text("octocat\n")

        assert read_secret("github_username", {}, secrets_dir) == "octocat"

    def test_missing_file_variable_falls_through(self, tmp_path, secrets_dir):
        (secrets_dir / "smtp_username").write_text("mailer")
        env = {"SMTP_USERNAME_FILE": str(tmp_path / "nope")}

        assert read_secret("smtp_username", env, secrets_dir) == "mailer"

    def test_absent(self, secrets_dir):
        assert read_secret("smtp_username", {}, secrets_dir) is None


# ── load_settings ─────────────────────────────────────────────────────────


class TestLoadSettings:
    def test_defaults(self, env, secrets_dir):
        settings = load_settings(env, secrets_dir)

        assert settings.github_username == "octocat"
        assert settings.github_access_token == "ghp_token"
        assert settings.smtp_port == 587
        assert settings.smtp_username is None
        assert settings.smtp_password is None
        assert settings.smtp_starttls is False
        assert settings.persistence_file == Path("persistence.json")
        assert settings.delay == 300
        assert settings.retention == timedelta(days=30)

    def test_overrides(self, env, secrets_dir):
        env.update(
            SMTP_PORT="2525",
            SMTP_STARTTLS="TRUE",
            SMTP_USERNAME="bot",
            SMTP_PASSWORD="secret",
            PERSISTENCE_FILE="/data/baseline.json",
            RETENTION_DAYS="7.5",
        )

        settings = load_settings(env, secrets_dir)

        assert settings.smtp_port == 2525
        assert settings.smtp_starttls is True
        assert (settings.smtp_username, settings.smtp_password) == ("bot", "secret")
        assert settings.persistence_file == Path("/data/baseline.json")
        assert settings.retention == timedelta(days=7.5)

    def test_credentials_from_secret_files(self, env, secrets_dir):
        del env["GITHUB_ACCESS_TOKEN"]
        (secrets_dir / "github_access_token").write_text("ghp_secret\n")

        assert load_settings(env, secrets_dir).github_access_token == "ghp_secret"

    def test_starttls_only_for_literal_true(self, env, secrets_dir):
        env["SMTP_STARTTLS"] = "yes"
        assert load_settings(env, secrets_dir).smtp_starttls is False

    @pytest.mark.parametrize(
        "name",
        ["GITHUB_USERNAME", "GITHUB_ACCESS_TOKEN", "SMTP_HOST", "EMAIL_FROM", "EMAIL_TO", "DELAY"],
    )
    def test_required(self, env, secrets_dir, name):
        del env[name]

        with pytest.raises(ConfigError) as excinfo:
            load_settings(env, secrets_dir)

        assert excinfo.value.name == name

    @pytest.mark.parametrize(
        ("name", "value"),
        [
            ("DELAY", "soon"),
            ("DELAY", "0"),
            ("DELAY", "-5"),
            ("SMTP_PORT", "70000"),
            ("SMTP_PORT", "smtp"),
            ("EMAIL_TO", "not-an-address"),
            ("EMAIL_FROM", "two@@example.com"),
            ("RETENTION_DAYS", "0"),
            ("RETENTION_DAYS", "a month"),
            ("RETENTION_DAYS", "inf"),
            ("RETENTION_DAYS", "1e12"),
            ("RETENTION_DAYS", "1000000"),
        ],
    )
    def test_invalid(self, env, secrets_dir, name, value):
        env[name] = value

        with pytest.raises(ConfigError) as excinfo:
            load_settings(env, secrets_dir)

        assert excinfo.value.name == name
        assert str(excinfo.value).startswith(f"{name}: ")

    def test_longest_retention_accepted(self, env, secrets_dir):
        env["RETENTION_DAYS"] = "36500"

        assert load_settings(env, secrets_dir).retention == timedelta(days=36500)
