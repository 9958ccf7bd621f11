"""Activity state machine and elapsed-time accounting."""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Callable, Optional

from .catalog import all_activities
from .models import Activity, TrackingState
from .store import TotalsStore

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


class TrackingEngine:
    """Single source of truth for what is active and for how long.

    The engine is either idle or tracking exactly one activity. Committed
    totals only change on ``stop`` and ``reset_all``; reads project the
    running session on top of them.
    """

    def __init__(
        self,
        store: TotalsStore,
        *,
        clock: Clock = datetime.now,
        log: Optional[logging.Logger] = None,
    ) -> None:
        self.store = store
        self._clock = clock
        self._log = log or logger
        self._lock = threading.RLock()
        self._state = TrackingState()
        self._log.info("Loading totals from %s", store.db_path)
        self._totals: dict[Activity, float] = dict(store.load())

    @property
    def current_activity(self) -> Optional[Activity]:
        with self._lock:
            return self._state.current_activity

    @property
    def current_start_time(self) -> Optional[datetime]:
        with self._lock:
            return self._state.current_start_time

    @property
    def is_tracking(self) -> bool:
        with self._lock:
            return self._state.is_tracking

    def start(self, activity: Activity) -> None:
        """Begin tracking ``activity``, committing any running session first.

        Starting the activity that is already running restarts its session
        clock; the time accumulated so far is committed, not lost.
        """
        with self._lock:
            self._log.info("Starting tracking for %s", activity.display_name)
            self.stop()
            self._state.current_activity = activity
            self._state.current_start_time = self._clock()

    def stop(self) -> Optional[float]:
        """Commit the running session and go idle.

        Returns the committed seconds, or ``None`` when nothing was tracked.
        """
        with self._lock:
            activity = self._state.current_activity
            started = self._state.current_start_time
            if activity is None or started is None:
                self._log.debug("stop called but nothing was being tracked")
                return None

            elapsed = self._elapsed_since(started)
            self._totals[activity] = self._totals.get(activity, 0.0) + elapsed
            self._log.info(
                "Stopped tracking %s. Elapsed: %.1f seconds", activity.display_name, elapsed
            )
            self.store.save(dict(self._totals))

            self._state.current_activity = None
            self._state.current_start_time = None
            return elapsed

    def get_total_time(self, activity: Activity) -> float:
        with self._lock:
            total = self._totals.get(activity, 0.0)
            if self._state.current_activity == activity and self._state.current_start_time is not None:
                total += self._elapsed_since(self._state.current_start_time)
            return total

    def totals(self) -> dict[Activity, float]:
        """Projected totals for every catalog activity, in catalog order."""
        with self._lock:
            return {activity: self.get_total_time(activity) for activity in all_activities()}

    def committed_totals(self) -> dict[Activity, float]:
        with self._lock:
            return dict(self._totals)

    def session_elapsed(self) -> float:
        """Seconds since the running session started, 0 when idle."""
        with self._lock:
            started = self._state.current_start_time
            return self._elapsed_since(started) if started is not None else 0.0

    def reset_all(self) -> None:
        """Commit any running session, then zero every total and persist."""
        with self._lock:
            self._log.info("Resetting all times")
            self.stop()
            self._totals.clear()
            self.store.save({})

    def snapshot_state(self) -> TrackingState:
        with self._lock:
            return TrackingState(
                current_activity=self._state.current_activity,
                current_start_time=self._state.current_start_time,
            )

    def _elapsed_since(self, started: datetime) -> float:
        # Wall clock may step backwards (sleep, NTP); never commit negative time.
        return max(0.0, (self._clock() - started).total_seconds())
