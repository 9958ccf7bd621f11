"""Check-in reminders for long-running sessions."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Callable, Optional, Protocol

from .dispatch import Dispatcher
from .models import Activity

logger = logging.getLogger(__name__)


class ReminderState(Enum):
    DISARMED = "disarmed"
    ARMED = "armed"
    AWAITING_RESPONSE = "awaiting_response"


class CheckInChoice(Enum):
    CONTINUE = "continue"
    CHANGE_ACTIVITY = "change_activity"
    STOP = "stop"
    TIMEOUT = "timeout"


@dataclass(frozen=True, slots=True)
class CheckInResponse:
    """The single resolution value of a check-in prompt."""

    choice: CheckInChoice
    activity: Optional[Activity] = None

    @classmethod
    def keep_going(cls) -> "CheckInResponse":
        return cls(CheckInChoice.CONTINUE)

    @classmethod
    def switch_to(cls, activity: Optional[Activity]) -> "CheckInResponse":
        return cls(CheckInChoice.CHANGE_ACTIVITY, activity)

    @classmethod
    def stop(cls) -> "CheckInResponse":
        return cls(CheckInChoice.STOP)

    @classmethod
    def timeout(cls) -> "CheckInResponse":
        return cls(CheckInChoice.TIMEOUT)

    @property
    def ends_tracking(self) -> bool:
        return self.choice in (CheckInChoice.STOP, CheckInChoice.TIMEOUT)

    @property
    def switches_activity(self) -> bool:
        return self.choice is CheckInChoice.CHANGE_ACTIVITY and self.activity is not None


class Cancellable(Protocol):
    def cancel(self) -> None: ...


TimerFactory = Callable[[float, Callable[[], None]], Cancellable]
PromptCallback = Callable[[Activity, int], None]
ResolvedCallback = Callable[[Activity, CheckInResponse], None]


def start_thread_timer(seconds: float, callback: Callable[[], None]) -> Cancellable:
    timer = threading.Timer(seconds, callback)
    timer.daemon = True
    timer.start()
    return timer


class ReminderScheduler:
    """At most one outstanding reminder, tied to the active activity.

    Timer threads never touch scheduler state; they post the generation
    token they were armed with onto the dispatcher, and the owner context
    discards any token that no longer matches.
    """

    def __init__(
        self,
        dispatcher: Dispatcher,
        *,
        interval: timedelta,
        grace_period: timedelta,
        on_prompt: PromptCallback,
        on_resolved: ResolvedCallback,
        timer_factory: TimerFactory = start_thread_timer,
        log: Optional[logging.Logger] = None,
    ) -> None:
        self._dispatcher = dispatcher
        self.interval = interval
        self.grace_period = grace_period
        self._on_prompt = on_prompt
        self._on_resolved = on_resolved
        self._timer_factory = timer_factory
        self._log = log or logger
        self._state = ReminderState.DISARMED
        self._activity: Optional[Activity] = None
        self._generation = 0
        self._timer: Optional[Cancellable] = None

    @property
    def state(self) -> ReminderState:
        return self._state

    @property
    def activity(self) -> Optional[Activity]:
        return self._activity

    @property
    def token(self) -> int:
        return self._generation

    def arm(self, activity: Activity) -> int:
        """Install a fresh reminder for ``activity``, replacing any other."""
        self._cancel_timer()
        self._generation += 1
        generation = self._generation
        self._state = ReminderState.ARMED
        self._activity = activity
        self._timer = self._timer_factory(
            self.interval.total_seconds(),
            lambda: self._dispatcher.post(self._interval_elapsed, generation),
        )
        self._log.debug(
            "Reminder armed for %s in %.0f seconds (token=%d)",
            activity.display_name,
            self.interval.total_seconds(),
            generation,
        )
        return generation

    def disarm(self) -> None:
        if self._state is ReminderState.DISARMED:
            return
        self._cancel_timer()
        self._generation += 1
        self._state = ReminderState.DISARMED
        self._activity = None
        self._log.debug("Reminder disarmed")

    def respond(self, response: CheckInResponse, token: Optional[int] = None) -> bool:
        """Resolve the outstanding check-in.

        Returns ``False`` when no check-in is awaiting or ``token`` belongs
        to a prompt that was already resolved.
        """
        if self._state is not ReminderState.AWAITING_RESPONSE:
            self._log.debug("Ignoring %s; no check-in pending", response.choice.value)
            return False
        if token is not None and token != self._generation:
            self._log.debug("Ignoring stale check-in response (token=%s)", token)
            return False

        activity = self._activity
        if activity is None:
            return False
        self._log.info("Check-in for %s resolved: %s", activity.display_name, response.choice.value)
        target = response.activity if response.switches_activity else None
        if response.ends_tracking:
            self.disarm()
        elif target is not None:
            self.arm(target)
        else:
            self.arm(activity)
        self._on_resolved(activity, response)
        return True

    def _interval_elapsed(self, generation: int) -> None:
        activity = self._activity
        if (
            generation != self._generation
            or self._state is not ReminderState.ARMED
            or activity is None
        ):
            self._log.debug("Discarding expired reminder (token=%d)", generation)
            return
        self._state = ReminderState.AWAITING_RESPONSE
        self._timer = self._timer_factory(
            self.grace_period.total_seconds(),
            lambda: self._dispatcher.post(self._grace_elapsed, generation),
        )
        self._log.info("Check-in due for %s", activity.display_name)
        self._on_prompt(activity, generation)

    def _grace_elapsed(self, generation: int) -> None:
        if generation != self._generation or self._state is not ReminderState.AWAITING_RESPONSE:
            return
        self._log.info("No check-in response within %.0f seconds", self.grace_period.total_seconds())
        self.respond(CheckInResponse.timeout(), generation)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
