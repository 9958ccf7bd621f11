"""Exception types raised inside the tracker."""

from __future__ import annotations


class TrackerError(Exception):
    """Base class for tracker errors."""


class ActivityNotFound(TrackerError, LookupError):
    """Raised when an activity id or key is not part of the catalog."""

    def __init__(self, key: object) -> None:
        super().__init__(f"No activity found for {key!r}")
        self.key = key


class PersistenceWriteFailed(TrackerError):
    """Raised by the totals writer when a snapshot cannot be stored."""


class NotificationDeliveryFailed(TrackerError):
    """Raised by a sink when a status event could not be delivered."""
