"""Simple reporting utilities for CLI output."""

from __future__ import annotations

import math
from pathlib import Path
from typing import Mapping, Optional

from .catalog import all_activities
from .models import Activity
from .store import TotalsStore


class TotalsPrinter:
    """Render accumulated totals in the console."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)

    def print_totals(self, activity: Optional[Activity] = None) -> None:
        store = TotalsStore(self.db_path)
        try:
            totals = store.load()
        finally:
            store.close()

        if activity is not None:
            print(f"{activity.display_name}: {format_duration(totals.get(activity, 0.0))}")
            return

        print("Total Times:")
        for entry, seconds in ordered_totals(totals):
            print(f"  {entry.display_name + ':':<12} {format_duration(seconds)}")
        print("-" * 24)
        print(f"  {'All:':<12} {format_duration(sum(totals.values()))}")


def ordered_totals(totals: Mapping[Activity, float]) -> list[tuple[Activity, float]]:
    return [(activity, totals.get(activity, 0.0)) for activity in all_activities()]


def format_duration(seconds: float) -> str:
    total_seconds = max(0, math.floor(seconds))
    hours = total_seconds // 3600
    minutes = total_seconds // 60 % 60
    secs = total_seconds % 60
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"
