"""Durable storage of accumulated seconds per activity."""

from __future__ import annotations

import logging
import sqlite3
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime
from pathlib import Path
from typing import Mapping, Optional

from .catalog import all_activities, find_by_storage_key
from .db import database_connection, fetch_totals, replace_totals
from .errors import PersistenceWriteFailed
from .models import Activity

logger = logging.getLogger(__name__)


class TotalsStore:
    """Loads and saves the totals table.

    Writes are queued on a single worker thread so overlapping saves never
    interleave; the caller is never blocked and never sees a write failure.
    """

    def __init__(self, db_path: Path, *, log: Optional[logging.Logger] = None) -> None:
        self.db_path = Path(db_path)
        self._log = log or logger
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="totals-writer")
        self._lock = threading.Lock()
        self._closed = False

    def load(self) -> dict[Activity, float]:
        """Return totals for activities with a strictly positive stored value."""
        try:
            with database_connection(self.db_path) as conn:
                stored = fetch_totals(conn)
        except sqlite3.Error:
            self._log.exception("Failed to read totals from %s; starting from zero.", self.db_path)
            return {}

        totals: dict[Activity, float] = {}
        for key, seconds in stored.items():
            activity = find_by_storage_key(key)
            if activity is None:
                self._log.debug("Ignoring unknown storage key %s", key)
                continue
            if seconds > 0:
                totals[activity] = seconds
                self._log.debug("Loaded %s: %.1f seconds", activity.display_name, seconds)
        return totals

    def save(self, totals: Mapping[Activity, float]) -> Optional[Future[bool]]:
        """Queue a full-table write of ``totals``; returns the pending write."""
        snapshot = self._snapshot(totals)
        with self._lock:
            if self._closed:
                self._log.warning("Totals store is closed; dropping write of %d keys.", len(snapshot))
                return None
            return self._executor.submit(self._write, snapshot)

    def save_now(self, totals: Mapping[Activity, float]) -> bool:
        """Write ``totals`` on the calling thread, after any queued writes."""
        self.flush()
        return self._write(self._snapshot(totals))

    def flush(self, timeout: Optional[float] = None) -> None:
        """Wait until every write queued so far has finished."""
        with self._lock:
            if self._closed:
                return
            marker = self._executor.submit(lambda: None)
        marker.result(timeout=timeout)

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._executor.shutdown(wait=True)

    @staticmethod
    def _snapshot(totals: Mapping[Activity, float]) -> dict[str, float]:
        return {
            activity.storage_key: max(0.0, float(totals.get(activity, 0.0)))
            for activity in all_activities()
        }

    def _write(self, snapshot: dict[str, float]) -> bool:
        try:
            self._write_snapshot(snapshot)
        except PersistenceWriteFailed as exc:
            self._log.error("%s", exc)
            return False
        except Exception:
            self._log.exception("Failed to save totals to %s", self.db_path)
            return False
        self._log.debug("Saved totals for %d activities.", len(snapshot))
        return True

    def _write_snapshot(self, snapshot: dict[str, float]) -> None:
        try:
            with database_connection(self.db_path) as conn:
                replace_totals(conn, snapshot, updated_at=datetime.now())
        except (sqlite3.Error, OSError) as exc:
            raise PersistenceWriteFailed(
                f"Failed to save totals to {self.db_path}: {exc}"
            ) from exc
