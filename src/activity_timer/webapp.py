"""FastAPI application that exposes the local tracker API."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Literal, Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict

from .catalog import IDLE_COLOR_HINT, all_activities, find
from .config import TrackerSettings
from .db import database_connection, fetch_status_events
from .models import Activity
from .paths import get_db_path
from .prompt import PendingCheckIns
from .reminder import CheckInResponse
from .reporting import format_duration
from .service import TrackerService

logger = logging.getLogger(__name__)


class CheckInPayload(BaseModel):
    choice: Literal["continue", "change_activity", "stop"]
    token: Optional[int] = None
    activity_id: Optional[int] = None

    model_config = ConfigDict(extra="forbid")


def create_app(
    *,
    db_path: Optional[Path] = None,
    settings: Optional[TrackerSettings] = None,
    service: Optional[TrackerService] = None,
) -> FastAPI:
    """Instantiate the FastAPI application."""
    if service is None:
        service = TrackerService.create(
            Path(db_path or get_db_path()),
            settings or TrackerSettings(),
            prompt=PendingCheckIns(),
        )
    resolved_settings = service.settings

    app = FastAPI(title="Activity Timer", version="0.3.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.db_path = service.engine.store.db_path
    app.state.service = service

    @app.on_event("startup")
    async def _startup() -> None:
        logger.info("Activity timer ready; totals stored in %s", app.state.db_path)

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        service.shutdown()

    @app.get("/api/status")
    def status(request: Request) -> Dict[str, Any]:
        snapshot = request.app.state.service.status()
        activity: Optional[Activity] = snapshot["activity"]
        started_at = snapshot["started_at"]
        return {
            "tracking": snapshot["tracking"],
            "activity": _activity_payload(activity) if activity else None,
            "color_hint": activity.color_hint if activity else IDLE_COLOR_HINT,
            "started_at": started_at.isoformat() if started_at else None,
            "session_seconds": snapshot["session_seconds"],
            "reminder_state": snapshot["reminder_state"].value,
            "database_path": str(request.app.state.db_path),
            "reminder_seconds": resolved_settings.reminder_interval.total_seconds(),
            "grace_seconds": resolved_settings.grace_period.total_seconds(),
        }

    @app.get("/api/activities")
    def activities() -> Dict[str, Any]:
        return {"activities": [_activity_payload(activity) for activity in all_activities()]}

    @app.get("/api/totals")
    def totals(request: Request) -> Dict[str, Any]:
        current = request.app.state.service.totals()
        entries = [
            {
                **_activity_payload(activity),
                "seconds": seconds,
                "formatted": format_duration(seconds),
            }
            for activity, seconds in current.items()
        ]
        overall = sum(current.values())
        return {
            "entries": entries,
            "overall_seconds": overall,
            "overall_formatted": format_duration(overall),
        }

    @app.post("/api/activities/{activity_id}/start")
    def start_activity(activity_id: int, request: Request) -> Dict[str, Any]:
        if not request.app.state.service.select(activity_id):
            return {"status": "ignored", "reason": "unknown_activity"}
        return {"status": "ok", "activity": _activity_payload(find(activity_id))}

    @app.post("/api/stop")
    def stop(request: Request) -> Dict[str, Any]:
        stopped = request.app.state.service.stop()
        return {"status": "ok" if stopped else "ignored"}

    @app.post("/api/reset")
    def reset(request: Request) -> Dict[str, Any]:
        request.app.state.service.reset_all()
        return {"status": "ok"}

    @app.get("/api/check-in")
    def pending_check_in(request: Request) -> Dict[str, Any]:
        prompt = request.app.state.service.prompt
        pending = prompt.current() if isinstance(prompt, PendingCheckIns) else None
        if pending is None:
            return {"check_in": None}
        return {
            "check_in": {
                "token": pending.token,
                "activity": _activity_payload(pending.activity),
                "requested_at": pending.requested_at.isoformat(),
                "deadline": pending.deadline.isoformat(),
            }
        }

    @app.post("/api/check-in")
    def answer_check_in(payload: CheckInPayload, request: Request) -> Dict[str, Any]:
        response = _to_response(payload)
        if response is None:
            logger.warning("Ignoring check-in answer for unknown activity id %s", payload.activity_id)
            return {"status": "ignored", "reason": "unknown_activity"}
        if not request.app.state.service.respond(response, payload.token):
            raise HTTPException(status_code=409, detail="No matching check-in is pending")
        return {"status": "ok", "choice": response.choice.value}

    @app.get("/api/status-events")
    def status_events(
        request: Request,
        limit: int = Query(default=50, ge=1, le=500, description="Maximum events to return."),
    ) -> Dict[str, Any]:
        with database_connection(request.app.state.db_path) as conn:
            rows = fetch_status_events(conn, limit)
        return {
            "events": [
                {
                    "id": row["id"],
                    "activity": row["activity_name"],
                    "is_active": bool(row["is_active"]),
                    "recorded_at": row["recorded_at"],
                }
                for row in rows
            ]
        }

    return app


def _to_response(payload: CheckInPayload) -> Optional[CheckInResponse]:
    if payload.choice == "continue":
        return CheckInResponse.keep_going()
    if payload.choice == "stop":
        return CheckInResponse.stop()
    if payload.activity_id is None:
        # Selection dialog cancelled.
        return CheckInResponse.switch_to(None)
    activity = find(payload.activity_id)
    if activity is None:
        return None
    return CheckInResponse.switch_to(activity)


def _activity_payload(activity: Activity) -> Dict[str, Any]:
    return {
        "id": activity.id,
        "display_name": activity.display_name,
        "color_hint": activity.color_hint,
        "storage_key": activity.storage_key,
    }
