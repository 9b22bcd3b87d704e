"""
Models for the watch cycle.

This module defines Pydantic models for:
- Fingerprint comparison outcomes
- Notification events
- Per-cycle reports
- Watch service configuration
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field, validator

DEFAULT_START_MARKER = "<!-- Header / End -->"
DEFAULT_END_MARKER = "<!-- Footer "


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ComparisonOutcome(str, Enum):
    """Result of comparing a new fingerprint against the last known one."""
    BASELINE = "baseline"
    UNCHANGED = "unchanged"
    CHANGED = "changed"


class CyclePhase(str, Enum):
    """Steps of one detection cycle, in execution order."""
    FETCH = "fetch"
    EXTRACT = "extract"
    COMPARE = "compare"
    NOTIFY = "notify"
    COMPLETE = "complete"


class ServicePhase(str, Enum):
    """Lifecycle states of the watch service."""
    IDLE = "idle"
    STARTING = "starting"
    POLLING = "polling"
    STOPPED = "stopped"


class NotificationKind(str, Enum):
    """Kinds of notification the watcher emits."""
    MONITOR_STARTED = "monitor_started"
    CONTENT_CHANGED = "content_changed"


class ComparisonResult(BaseModel):
    """Outcome of a compare-and-update on the state tracker."""
    outcome: ComparisonOutcome
    previous_fingerprint: Optional[str] = Field(default=None, description="Fingerprint held before the update")
    current_fingerprint: str = Field(..., description="Fingerprint computed in this cycle")

    class Config:
        """Pydantic configuration."""
        frozen = True

    @property
    def changed(self) -> bool:
        return self.outcome == ComparisonOutcome.CHANGED


class NotificationEvent(BaseModel):
    """Immutable message handed to a notifier."""
    kind: NotificationKind
    subject: str = Field(..., description="Message subject line")
    body: str = Field(..., description="Plain-text message body")
    created_at: datetime = Field(default_factory=utc_now)

    class Config:
        """Pydantic configuration."""
        frozen = True

    @classmethod
    def monitor_started(cls, target_url: str, interval_seconds: float) -> "NotificationEvent":
        """Build the event sent once when the watcher comes up."""
        if float(interval_seconds).is_integer():
            interval_seconds = int(interval_seconds)
        return cls(
            kind=NotificationKind.MONITOR_STARTED,
            subject="Website Monitor Application Started",
            body=(
                f"The website monitoring application for {target_url} has started successfully.\n"
                f"It will check for changes every {interval_seconds} seconds."
            ),
        )

    @classmethod
    def content_changed(
        cls,
        target_url: str,
        previous_fingerprint: str,
        current_fingerprint: str
    ) -> "NotificationEvent":
        """Build the event sent when the watched region changes."""
        return cls(
            kind=NotificationKind.CONTENT_CHANGED,
            subject=f"Website Changed: {target_url}",
            body=(
                f"The content of {target_url} has changed.\n\n"
                f"Previous hash: {previous_fingerprint}\n"
                f"New hash: {current_fingerprint}\n\n"
                f"Check the site: {target_url}"
            ),
        )


class CycleReport(BaseModel):
    """Summary of one detection cycle."""
    cycle_id: str = Field(..., description="Unique cycle identifier")
    started_at: datetime = Field(default_factory=utc_now)
    phase: CyclePhase = Field(default=CyclePhase.FETCH, description="Last phase the cycle reached")
    outcome: Optional[ComparisonOutcome] = Field(default=None)
    fingerprint: Optional[str] = Field(default=None)
    previous_fingerprint: Optional[str] = Field(default=None)
    notified: bool = Field(default=False, description="Whether a change notification was delivered")
    success: bool = Field(default=True)
    error: Optional[str] = Field(default=None)
    duration_seconds: float = Field(default=0.0)


class WatchConfig(BaseModel):
    """Configuration for the watch service."""
    target_url: str = Field(..., description="Document to poll")
    interval_seconds: float = Field(..., gt=0, description="Seconds between cycles")
    start_marker: str = Field(default=DEFAULT_START_MARKER)
    end_marker: str = Field(default=DEFAULT_END_MARKER)
    job_id: str = Field(default="watch_cycle")
    send_startup_notification: bool = Field(default=True)

    @validator('target_url')
    def validate_target_url(cls, v):
        """Ensure the target is an http(s) URL."""
        if not v.startswith(("http://", "https://")):
            raise ValueError('target_url must start with http:// or https://')
        return v
