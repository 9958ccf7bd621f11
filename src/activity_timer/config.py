"""Configuration models and helpers for the activity timer."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

DEFAULT_REMINDER_SECONDS = 900.0
DEFAULT_GRACE_SECONDS = 60.0


@dataclass(slots=True)
class TrackerSettings:
    """Runtime configuration for tracking and check-in reminders."""

    reminder_interval: timedelta = timedelta(seconds=DEFAULT_REMINDER_SECONDS)
    grace_period: timedelta = timedelta(seconds=DEFAULT_GRACE_SECONDS)
    status_url: Optional[str] = None
    notify_timeout: timedelta = timedelta(seconds=5)

    @classmethod
    def from_intervals(
        cls,
        reminder_seconds: float = DEFAULT_REMINDER_SECONDS,
        grace_seconds: float = DEFAULT_GRACE_SECONDS,
        status_url: str | None = None,
        notify_timeout_seconds: float | None = None,
    ) -> "TrackerSettings":
        if reminder_seconds <= 0:
            raise ValueError("reminder interval must be positive")
        if grace_seconds <= 0:
            raise ValueError("grace period must be positive")
        timeout = notify_timeout_seconds if notify_timeout_seconds is not None else 5.0
        return cls(
            reminder_interval=timedelta(seconds=reminder_seconds),
            grace_period=timedelta(seconds=grace_seconds),
            status_url=status_url or None,
            notify_timeout=timedelta(seconds=timeout),
        )
