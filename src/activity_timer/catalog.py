"""The fixed, ordered set of activities that can be tracked."""

from __future__ import annotations

from typing import Optional

from .errors import ActivityNotFound
from .models import Activity

STORAGE_KEY_PREFIX = "time_"


def storage_key(display_name: str) -> str:
    """Derive the persistence key for an activity from its display name."""
    return STORAGE_KEY_PREFIX + display_name.lower().replace(" ", "_")


def _activity(activity_id: int, display_name: str, color_hint: str) -> Activity:
    return Activity(
        id=activity_id,
        display_name=display_name,
        color_hint=color_hint,
        storage_key=storage_key(display_name),
    )


_ACTIVITIES: tuple[Activity, ...] = (
    _activity(0, "Relax", "#33CC66"),
    _activity(1, "Research", "#4D80FF"),
    _activity(2, "Work", "#FF664D"),
    _activity(3, "Content", "#E69933"),
    _activity(4, "Job Search", "#B34DE6"),
)

_BY_ID: dict[int, Activity] = {activity.id: activity for activity in _ACTIVITIES}
_BY_KEY: dict[str, Activity] = {activity.storage_key: activity for activity in _ACTIVITIES}

# Presentation token for the idle state.
IDLE_COLOR_HINT = "#808080"


def all_activities() -> tuple[Activity, ...]:
    return _ACTIVITIES


def lookup(activity_id: int) -> Activity:
    """Return the activity for ``activity_id`` or raise ``ActivityNotFound``."""
    try:
        return _BY_ID[activity_id]
    except KeyError:
        raise ActivityNotFound(activity_id) from None


def find(activity_id: int) -> Optional[Activity]:
    return _BY_ID.get(activity_id)


def lookup_name(name: str) -> Activity:
    """Resolve a display name, storage key or numeric id given as text."""
    cleaned = name.strip()
    if cleaned.isdigit():
        return lookup(int(cleaned))
    key = cleaned if cleaned.startswith(STORAGE_KEY_PREFIX) else storage_key(cleaned)
    try:
        return _BY_KEY[key.lower()]
    except KeyError:
        raise ActivityNotFound(name) from None


def find_by_storage_key(key: str) -> Optional[Activity]:
    return _BY_KEY.get(key)
