"""Best-effort delivery of activity-change events."""

from __future__ import annotations

import logging
import sqlite3
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Iterable, Optional, Protocol

import httpx

from .db import database_connection, insert_status_event
from .errors import NotificationDeliveryFailed
from .models import StatusEvent

logger = logging.getLogger(__name__)


class NotificationSink(Protocol):
    def notify(self, event: StatusEvent) -> None: ...


class LoggingSink:
    """Writes each event to the log."""

    def __init__(self, *, log: Optional[logging.Logger] = None) -> None:
        self._log = log or logger

    def notify(self, event: StatusEvent) -> None:
        self._log.info(
            "Status changed: activity=%s active=%s at %s",
            event.activity_name,
            event.is_active,
            event.timestamp.isoformat(timespec="seconds"),
        )


class _BackgroundSink:
    """Delivers events in order on a private worker thread, never retrying."""

    thread_name = "status-sink"

    def __init__(self, *, log: Optional[logging.Logger] = None) -> None:
        self._log = log or logger
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=self.thread_name)
        self._lock = threading.Lock()
        self._closed = False

    def notify(self, event: StatusEvent) -> None:
        with self._lock:
            if self._closed:
                self._log.debug("Sink closed; dropping %s", event)
                return
            self._executor.submit(self._deliver_logged, event)

    def flush(self, timeout: Optional[float] = None) -> None:
        with self._lock:
            if self._closed:
                return
            marker: Future[None] = self._executor.submit(lambda: None)
        marker.result(timeout=timeout)

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._executor.shutdown(wait=True)

    def deliver(self, event: StatusEvent) -> None:
        raise NotImplementedError

    def _deliver_logged(self, event: StatusEvent) -> None:
        try:
            self.deliver(event)
        except NotificationDeliveryFailed as exc:
            self._log.warning("%s", exc)
        except Exception:
            self._log.exception(
                "Failed to deliver status %s/%s", event.activity_name, event.is_active
            )


class HttpStatusSink(_BackgroundSink):
    """POSTs each event as JSON to a status endpoint."""

    thread_name = "status-http"

    def __init__(
        self,
        url: str,
        *,
        timeout: float = 5.0,
        client: Optional[httpx.Client] = None,
        log: Optional[logging.Logger] = None,
    ) -> None:
        super().__init__(log=log)
        self.url = url
        self._client = client or httpx.Client(timeout=timeout)
        self._owns_client = client is None

    def deliver(self, event: StatusEvent) -> None:
        try:
            response = self._client.post(self.url, json=event.as_payload())
            response.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise NotificationDeliveryFailed(
                f"Failed to deliver status {event.activity_name}/{event.is_active} to {self.url}: {exc}"
            ) from exc
        self._log.debug("Delivered status event to %s", self.url)

    def close(self) -> None:
        super().close()
        if self._owns_client:
            self._client.close()


class SqliteStatusSink(_BackgroundSink):
    """Appends each event to the ``status_events`` table."""

    thread_name = "status-db"

    def __init__(self, db_path: Path, *, log: Optional[logging.Logger] = None) -> None:
        super().__init__(log=log)
        self.db_path = Path(db_path)

    def deliver(self, event: StatusEvent) -> None:
        try:
            with database_connection(self.db_path) as conn:
                insert_status_event(conn, event)
        except sqlite3.Error as exc:
            raise NotificationDeliveryFailed(
                f"Failed to record status event in {self.db_path}: {exc}"
            ) from exc


class FanoutSink:
    """Hands each event to several sinks; one failing sink never affects the rest."""

    def __init__(self, sinks: Iterable[NotificationSink], *, log: Optional[logging.Logger] = None) -> None:
        self.sinks = list(sinks)
        self._log = log or logger

    def notify(self, event: StatusEvent) -> None:
        for sink in self.sinks:
            try:
                sink.notify(event)
            except Exception:
                self._log.exception("Sink %r failed to accept status event.", sink)

    def close(self) -> None:
        for sink in self.sinks:
            close = getattr(sink, "close", None)
            if callable(close):
                close()
