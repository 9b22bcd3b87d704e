"""
Pytest configuration and shared fixtures.
"""

import asyncio

import pytest

from watcher.exceptions import FetchError, NotificationError
from watcher.models import WatchConfig
from watcher.watch_service import WatchService

TARGET_URL = "https://example.com/notices"


class ScriptedFetcher:
    """
    Fetcher returning scripted responses in order.

    Each entry is either a string (returned) or an exception instance
    (raised). The last entry repeats once the script is exhausted.
    """

    def __init__(self, responses, delay: float = 0.0):
        self.responses = list(responses)
        self.delay = delay
        self.calls = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.closed = False

    async def fetch(self, target: str) -> str:
        self.calls.append(target)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            index = min(len(self.calls) - 1, len(self.responses) - 1)
            response = self.responses[index]
            if isinstance(response, Exception):
                raise response
            return response
        finally:
            self.in_flight -= 1

    async def aclose(self) -> None:
        self.closed = True


class RecordingNotifier:
    """Notifier that records every message; optionally fails."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent = []
        self.attempts = []

    async def notify(self, subject: str, body: str) -> None:
        self.attempts.append((subject, body))
        if self.fail:
            raise NotificationError(subject, "SMTP server unavailable")
        self.sent.append((subject, body))


@pytest.fixture
def watch_config():
    """Create watch configuration for testing."""
    return WatchConfig(
        target_url=TARGET_URL,
        interval_seconds=60
    )


@pytest.fixture
def notifier():
    """Notifier that records messages."""
    return RecordingNotifier()


@pytest.fixture
def failing_notifier():
    """Notifier whose every delivery fails."""
    return RecordingNotifier(fail=True)


@pytest.fixture
def make_service(watch_config, notifier):
    """Factory building a watch service around a scripted fetcher."""
    def _make(responses, delay: float = 0.0, notifier_override=None, config_override=None):
        fetcher = ScriptedFetcher(responses, delay=delay)
        service = WatchService(config_override or watch_config, fetcher, notifier_override or notifier)
        return service, fetcher
    return _make


@pytest.fixture
def fetch_error():
    """A fetch failure for the test target."""
    return FetchError(TARGET_URL, f"HTTP 503 from {TARGET_URL}", status_code=503)
