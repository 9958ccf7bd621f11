from __future__ import annotations

from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable

import pytest

from activity_timer.config import TrackerSettings
from activity_timer.dispatch import InlineDispatcher
from activity_timer.engine import TrackingEngine
from activity_timer.models import Activity, StatusEvent
from activity_timer.service import TrackerService
from activity_timer.store import TotalsStore


class FakeClock:
    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 3, 2, 9, 0, 0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class ManualTimer:
    def __init__(self, seconds: float, callback: Callable[[], None]) -> None:
        self.seconds = seconds
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        # Fires even when cancelled, like a thread timer that already expired.
        self.fired = True
        self.callback()


class ManualTimers:
    def __init__(self) -> None:
        self.created: list[ManualTimer] = []

    def __call__(self, seconds: float, callback: Callable[[], None]) -> ManualTimer:
        timer = ManualTimer(seconds, callback)
        self.created.append(timer)
        return timer

    @property
    def pending(self) -> list[ManualTimer]:
        return [t for t in self.created if not t.cancelled and not t.fired]

    def fire_next(self) -> ManualTimer:
        timer = self.pending[0]
        timer.fire()
        return timer


class RecordingSink:
    def __init__(self) -> None:
        self.events: list[StatusEvent] = []

    def notify(self, event: StatusEvent) -> None:
        self.events.append(event)

    @property
    def pairs(self) -> list[tuple[str, bool]]:
        return [(event.activity_name, event.is_active) for event in self.events]


class RecordingPrompt:
    def __init__(self) -> None:
        self.requests: list[tuple[Activity, int, datetime]] = []
        self.dismissed: list[int] = []

    def request_check_in(self, activity: Activity, token: int, deadline: datetime) -> None:
        self.requests.append((activity, token, deadline))

    def dismiss(self, token: int) -> None:
        self.dismissed.append(token)


@pytest.fixture()
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "totals.sqlite3"


@pytest.fixture()
def store(db_path: Path):
    totals_store = TotalsStore(db_path)
    yield totals_store
    totals_store.close()


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def engine(store: TotalsStore, clock: FakeClock) -> TrackingEngine:
    return TrackingEngine(store, clock=clock)


@pytest.fixture()
def timers() -> ManualTimers:
    return ManualTimers()


@pytest.fixture()
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture()
def prompt() -> RecordingPrompt:
    return RecordingPrompt()


@pytest.fixture()
def settings() -> TrackerSettings:
    return TrackerSettings.from_intervals(reminder_seconds=5, grace_seconds=2)


@pytest.fixture()
def service(engine, settings, sink, prompt, timers, clock) -> TrackerService:
    return TrackerService(
        engine,
        settings=settings,
        sink=sink,
        prompt=prompt,
        dispatcher=InlineDispatcher(),
        timer_factory=timers,
        clock=clock,
    )
