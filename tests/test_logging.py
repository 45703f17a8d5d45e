"""Tests for structlog/stdlib logging setup."""

from __future__ import annotations

import logging

import pytest
import structlog

from projectmonitor.core.logging import setup_logging


@pytest.fixture(autouse=True)
def _restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    package = logging.getLogger("projectmonitor")
    package_level = package.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    package.setLevel(package_level)
    structlog.reset_defaults()


def _renderer():
    formatter = logging.getLogger().handlers[-1].formatter
    return formatter.processors[-1]


def test_arguments_override_environment(monkeypatch):
    monkeypatch.setenv("PROJECTMONITOR_LOG_LEVEL", "ERROR")
    monkeypatch.setenv("PROJECTMONITOR_LOG_FORMAT", "console")

    setup_logging("debug", "json")

    assert logging.getLogger("projectmonitor").level == logging.DEBUG
    assert isinstance(_renderer(), structlog.processors.JSONRenderer)


def test_environment_defaults(monkeypatch):
    monkeypatch.setenv("PROJECTMONITOR_LOG_LEVEL", "warning")
    monkeypatch.setenv("PROJECTMONITOR_LOG_FORMAT", "logfmt")

    setup_logging()

    assert logging.getLogger("projectmonitor").level == logging.WARNING
    assert isinstance(_renderer(), structlog.processors.LogfmtRenderer)


def test_unknown_format_falls_back_to_console(monkeypatch):
    monkeypatch.delenv("PROJECTMONITOR_LOG_LEVEL", raising=False)
    monkeypatch.setenv("PROJECTMONITOR_LOG_FORMAT", "xml")

    setup_logging()

    assert logging.getLogger("projectmonitor").level == logging.INFO
    assert isinstance(_renderer(), structlog.dev.ConsoleRenderer)


def test_http_transport_is_quiet():
    setup_logging("debug")

    assert logging.getLogger("httpx").level == logging.WARNING
    assert logging.getLogger("httpcore").level == logging.WARNING
