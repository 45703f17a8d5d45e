"""Custom exceptions for ProjectMonitor."""


class MonitorError(Exception):
    """Base exception for all monitor errors."""


class ConfigError(MonitorError):
    """Raised when a required setting is missing or malformed."""

    def __init__(self, name: str, reason: str):
        self.name = name
        self.reason = reason
        super().__init__(f"{name}: {reason}")


class LockError(MonitorError):
    """Raised when another process already holds the baseline lock."""


class FetchError(MonitorError):
    """Raised when the upstream snapshot could not be fetched."""


class DeserializationError(MonitorError):
    """Raised when the persisted baseline cannot be decoded."""


class NotifyError(MonitorError):
    """Raised when the notification for new tasks could not be delivered."""
