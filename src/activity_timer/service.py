"""The owning layer that wires tracking, reminders, prompts and sinks together."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from .catalog import find
from .config import TrackerSettings
from .dispatch import Dispatcher, SerialDispatcher
from .engine import Clock, TrackingEngine
from .models import Activity, StatusEvent
from .notify import FanoutSink, HttpStatusSink, LoggingSink, NotificationSink, SqliteStatusSink
from .prompt import PendingCheckIns, UserPrompt
from .reminder import (
    CheckInResponse,
    ReminderScheduler,
    ReminderState,
    TimerFactory,
    start_thread_timer,
)
from .store import TotalsStore

logger = logging.getLogger(__name__)


class TrackerService:
    """Serializes every tracker transition onto one dispatcher.

    Each user-visible transition produces exactly one status notification;
    sink and prompt failures are logged and never reach the caller.
    """

    def __init__(
        self,
        engine: TrackingEngine,
        *,
        settings: TrackerSettings,
        sink: NotificationSink,
        prompt: UserPrompt,
        dispatcher: Dispatcher,
        timer_factory: TimerFactory = start_thread_timer,
        clock: Clock = datetime.now,
        log: Optional[logging.Logger] = None,
    ) -> None:
        self.engine = engine
        self.settings = settings
        self.sink = sink
        self.prompt = prompt
        self._dispatcher = dispatcher
        self._clock = clock
        self._log = log or logger
        self._prompt_token: Optional[int] = None
        self.scheduler = ReminderScheduler(
            dispatcher,
            interval=settings.reminder_interval,
            grace_period=settings.grace_period,
            on_prompt=self._request_check_in,
            on_resolved=self._check_in_resolved,
            timer_factory=timer_factory,
            log=log,
        )

    @classmethod
    def create(
        cls,
        db_path: Path,
        settings: Optional[TrackerSettings] = None,
        *,
        prompt: Optional[UserPrompt] = None,
    ) -> "TrackerService":
        """Build a service with the default store, sinks and worker thread."""
        resolved_settings = settings or TrackerSettings()
        store = TotalsStore(db_path)
        sinks: list[NotificationSink] = [LoggingSink(), SqliteStatusSink(db_path)]
        if resolved_settings.status_url:
            sinks.append(
                HttpStatusSink(
                    resolved_settings.status_url,
                    timeout=resolved_settings.notify_timeout.total_seconds(),
                )
            )
        return cls(
            TrackingEngine(store),
            settings=resolved_settings,
            sink=FanoutSink(sinks),
            prompt=prompt or PendingCheckIns(),
            dispatcher=SerialDispatcher(),
        )

    def start(self, activity: Activity) -> None:
        self._dispatcher.call(self._start, activity)

    def select(self, activity_id: int) -> bool:
        """Start the activity with ``activity_id``; unknown ids are ignored."""
        activity = find(activity_id)
        if activity is None:
            self._log.warning("Ignoring selection of unknown activity id %s", activity_id)
            return False
        self.start(activity)
        return True

    def stop(self) -> bool:
        return self._dispatcher.call(self._stop)

    def reset_all(self) -> None:
        self._dispatcher.call(self._reset_all)

    def respond(self, response: CheckInResponse, token: Optional[int] = None) -> bool:
        return self._dispatcher.call(self.scheduler.respond, response, token)

    def totals(self) -> dict[Activity, float]:
        return self._dispatcher.call(self.engine.totals)

    def status(self) -> Dict[str, Any]:
        return self._dispatcher.call(self._status)

    def shutdown(self) -> None:
        """Commit the running session and release every worker."""
        self._dispatcher.call(self._stop)
        self.engine.store.close()
        close = getattr(self.sink, "close", None)
        if callable(close):
            close()
        shutdown = getattr(self._dispatcher, "shutdown", None)
        if callable(shutdown):
            shutdown()
        self._log.info("Tracker stopped.")

    def _start(self, activity: Activity) -> None:
        self._withdraw_prompt()
        self._begin(activity)
        self.scheduler.arm(activity)

    def _begin(self, activity: Activity) -> None:
        self.engine.start(activity)
        self._notify(StatusEvent.started(activity, self._clock()))

    def _stop(self) -> bool:
        self._withdraw_prompt()
        self.scheduler.disarm()
        return self._end()

    def _end(self) -> bool:
        if self.engine.stop() is None:
            return False
        self._notify(StatusEvent.stopped(self._clock()))
        return True

    def _reset_all(self) -> None:
        was_tracking = self.engine.is_tracking
        self._withdraw_prompt()
        self.scheduler.disarm()
        self.engine.reset_all()
        if was_tracking:
            self._notify(StatusEvent.stopped(self._clock()))

    def _status(self) -> Dict[str, Any]:
        state = self.engine.snapshot_state()
        activity = state.current_activity
        return {
            "tracking": activity is not None,
            "activity": activity,
            "started_at": state.current_start_time,
            "session_seconds": self.engine.session_elapsed(),
            "reminder_state": self.scheduler.state,
            "reminder_token": self.scheduler.token,
        }

    def _request_check_in(self, activity: Activity, token: int) -> None:
        self._prompt_token = token
        deadline = self._clock() + self.settings.grace_period
        try:
            self.prompt.request_check_in(activity, token, deadline)
        except Exception:
            # The grace timer still resolves the check-in.
            self._log.exception("Failed to show check-in prompt for %s", activity.display_name)

    def _check_in_resolved(self, activity: Activity, response: CheckInResponse) -> None:
        self._withdraw_prompt()
        if response.ends_tracking:
            self._end()
        elif response.switches_activity and response.activity is not None:
            self._begin(response.activity)

    def _withdraw_prompt(self) -> None:
        token = self._prompt_token
        if token is None:
            return
        self._prompt_token = None
        try:
            self.prompt.dismiss(token)
        except Exception:
            self._log.exception("Failed to dismiss check-in prompt %d", token)

    def _notify(self, event: StatusEvent) -> None:
        try:
            self.sink.notify(event)
        except Exception:
            self._log.exception("Status sink rejected %s", event)

    @property
    def awaiting_check_in(self) -> bool:
        return self.scheduler.state is ReminderState.AWAITING_RESPONSE
