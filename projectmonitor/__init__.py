"""ProjectMonitor — mail a digest of new GitHub tasks you are not subscribed to."""

__version__ = "1.0.0"
