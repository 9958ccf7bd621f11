"""The check-in prompt seam and the in-memory prompt used by the dashboard."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Protocol

from .models import Activity


class UserPrompt(Protocol):
    def request_check_in(self, activity: Activity, token: int, deadline: datetime) -> None:
        """Show a check-in for ``activity``; answers arrive via the service."""

    def dismiss(self, token: int) -> None:
        """Withdraw the check-in identified by ``token`` if it is still shown."""


@dataclass(frozen=True, slots=True)
class PendingCheckIn:
    activity: Activity
    token: int
    requested_at: datetime
    deadline: datetime


class PendingCheckIns:
    """Holds the check-in currently waiting for an answer, if any."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._pending: Optional[PendingCheckIn] = None

    def request_check_in(self, activity: Activity, token: int, deadline: datetime) -> None:
        with self._lock:
            self._pending = PendingCheckIn(
                activity=activity,
                token=token,
                requested_at=datetime.now(),
                deadline=deadline,
            )

    def dismiss(self, token: int) -> None:
        with self._lock:
            if self._pending is not None and self._pending.token == token:
                self._pending = None

    def current(self) -> Optional[PendingCheckIn]:
        with self._lock:
            return self._pending
