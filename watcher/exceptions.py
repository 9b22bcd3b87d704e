"""
Error types raised by the watcher components.
"""

from typing import List, Optional


class WatcherError(Exception):
    """Base class for all watcher errors."""


class ConfigurationError(WatcherError):
    """Required settings are missing or malformed. Fatal at startup."""

    def __init__(self, problems: List[str]):
        self.problems = list(problems)
        super().__init__("Invalid configuration: " + "; ".join(self.problems))


class FetchError(WatcherError):
    """The target document could not be retrieved. Aborts one cycle."""

    def __init__(self, url: str, message: str, status_code: Optional[int] = None):
        self.url = url
        self.status_code = status_code
        super().__init__(message)


class NotificationError(WatcherError):
    """A notification could not be delivered. Never rolls back state."""

    def __init__(self, subject: str, message: str):
        self.subject = subject
        super().__init__(message)
