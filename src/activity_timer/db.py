"""SQLite database layer for activity totals and status events."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator, Mapping

from .models import StatusEvent


DATETIME_FMT = "%Y-%m-%d %H:%M:%S.%f"


def open_database(path: Path, *, check_same_thread: bool = True) -> sqlite3.Connection:
    """Open (and initialize) the SQLite database."""
    conn = sqlite3.connect(
        path,
        isolation_level=None,
        check_same_thread=check_same_thread,
    )
    conn.row_factory = sqlite3.Row
    initialize_schema(conn)
    return conn


@contextmanager
def database_connection(
    path: Path, *, check_same_thread: bool = True
) -> Iterator[sqlite3.Connection]:
    conn = open_database(path, check_same_thread=check_same_thread)
    try:
        yield conn
    finally:
        conn.close()


def initialize_schema(conn: sqlite3.Connection) -> None:
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS activity_totals (
            storage_key TEXT PRIMARY KEY,
            seconds REAL NOT NULL DEFAULT 0,
            updated_at TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS status_events (
            id INTEGER PRIMARY KEY,
            activity_name TEXT NOT NULL,
            is_active INTEGER NOT NULL DEFAULT 0,
            recorded_at TEXT NOT NULL
        );

        CREATE INDEX IF NOT EXISTS idx_status_events_recorded_at
            ON status_events(recorded_at);
        """
    )


def fetch_totals(conn: sqlite3.Connection) -> dict[str, float]:
    """Return stored seconds keyed by storage key."""
    rows = conn.execute("SELECT storage_key, seconds FROM activity_totals")
    return {row["storage_key"]: float(row["seconds"] or 0.0) for row in rows}


def replace_totals(
    conn: sqlite3.Connection,
    totals: Mapping[str, float],
    *,
    updated_at: datetime | None = None,
) -> None:
    """Overwrite every given key in a single transaction."""
    stamp = (updated_at or datetime.now()).strftime(DATETIME_FMT)
    conn.execute("BEGIN IMMEDIATE")
    try:
        conn.executemany(
            """
            INSERT INTO activity_totals (storage_key, seconds, updated_at)
            VALUES (?, ?, ?)
            ON CONFLICT(storage_key) DO UPDATE SET
                seconds = excluded.seconds,
                updated_at = excluded.updated_at
            """,
            [(key, float(seconds), stamp) for key, seconds in totals.items()],
        )
    except BaseException:
        conn.execute("ROLLBACK")
        raise
    conn.execute("COMMIT")


def insert_status_event(conn: sqlite3.Connection, event: StatusEvent) -> int:
    cur = conn.execute(
        """
        INSERT INTO status_events (activity_name, is_active, recorded_at)
        VALUES (?, ?, ?)
        """,
        (
            event.activity_name,
            1 if event.is_active else 0,
            event.timestamp.strftime(DATETIME_FMT),
        ),
    )
    return int(cur.lastrowid)


def fetch_status_events(conn: sqlite3.Connection, limit: int = 50) -> list[sqlite3.Row]:
    """Return the most recent status events, newest first."""
    return list(
        conn.execute(
            """
            SELECT id, activity_name, is_active, recorded_at
            FROM status_events
            ORDER BY recorded_at DESC, id DESC
            LIMIT ?;
            """,
            (limit,),
        )
    )
