"""Domain records shared across the tracker."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass(frozen=True, slots=True)
class Activity:
    """A trackable kind of work, as defined by the catalog."""

    id: int
    display_name: str
    color_hint: str
    storage_key: str


@dataclass(slots=True)
class TrackingState:
    """The single mutable entity owned by the tracking engine."""

    current_activity: Optional[Activity] = None
    current_start_time: Optional[datetime] = None

    @property
    def is_tracking(self) -> bool:
        return self.current_activity is not None


IDLE_ACTIVITY_NAME = "none"


@dataclass(frozen=True, slots=True)
class StatusEvent:
    """Activity-change event handed to notification sinks."""

    activity_name: str
    is_active: bool
    timestamp: datetime = field(default_factory=datetime.now)

    @classmethod
    def started(cls, activity: Activity, timestamp: Optional[datetime] = None) -> "StatusEvent":
        return cls(activity.display_name, True, timestamp or datetime.now())

    @classmethod
    def stopped(cls, timestamp: Optional[datetime] = None) -> "StatusEvent":
        return cls(IDLE_ACTIVITY_NAME, False, timestamp or datetime.now())

    def as_payload(self) -> dict[str, object]:
        return {
            "activity": self.activity_name,
            "is_active": self.is_active,
            "timestamp": self.timestamp.isoformat(),
        }
