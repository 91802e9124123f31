"""FastAPI application that hosts one inactivity watchdog per signed-in session."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, Dict, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict

from .config import WatchdogSettings
from .models import ActivityKind
from .reporting import format_countdown
from .scheduler import AsyncioScheduler, Scheduler
from .sessions import SessionNotFoundError, SessionRegistry, TourSession

logger = logging.getLogger(__name__)


class LoginPayload(BaseModel):
    user: str
    track_activity: bool = True

    model_config = ConfigDict(extra="forbid")


class ActivityPayload(BaseModel):
    event: str

    model_config = ConfigDict(extra="forbid")


def create_app(
    *,
    settings: Optional[WatchdogSettings] = None,
    scheduler_factory: Optional[Callable[[], Scheduler]] = None,
) -> FastAPI:
    """Instantiate the FastAPI application."""
    resolved_settings = settings or WatchdogSettings()
    # Endpoints are async so the default scheduler binds to the serving loop.
    registry = SessionRegistry(resolved_settings, scheduler_factory or AsyncioScheduler)

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s %(levelname)s %(name)s %(message)s",
        )
        try:
            yield
        finally:
            registry.close_all()

    app = FastAPI(title="Session Watchdog", version="0.1.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.registry = registry

    @app.get("/api/status")
    async def status(request: Request) -> Dict[str, Any]:
        return {
            "active_sessions": len(request.app.state.registry),
            "session_timeout_seconds": resolved_settings.session_timeout.total_seconds(),
            "warning_lead_seconds": resolved_settings.warning_lead.total_seconds(),
            "throttle_seconds": resolved_settings.throttle_interval.total_seconds(),
            "expired_redirect": resolved_settings.expired_redirect,
        }

    @app.post("/api/auth/login", status_code=201)
    async def login(payload: LoginPayload, request: Request) -> Dict[str, Any]:
        user = payload.user.strip()
        if not user:
            raise HTTPException(status_code=400, detail="user is required")
        session = request.app.state.registry.sign_in(
            user, track_activity=payload.track_activity
        )
        return _session_payload(session)

    @app.get("/api/sessions/{session_id}")
    async def session_status(session_id: str, request: Request) -> Dict[str, Any]:
        return _session_payload(_lookup(request, session_id))

    @app.post("/api/sessions/{session_id}/activity")
    async def record_activity(
        session_id: str, payload: ActivityPayload, request: Request
    ) -> Dict[str, Any]:
        session = _lookup(request, session_id)
        try:
            kind = ActivityKind.parse(payload.event)
        except ValueError as exc:
            logger.debug("Rejected activity %r for session %s.", payload.event, session_id)
            raise HTTPException(status_code=400, detail=str(exc)) from exc

        accepted = False
        if session.activity is not None:
            before = session.watchdog.resets
            session.activity.publish(kind)
            accepted = session.watchdog.resets > before
        return {"accepted": accepted, **_session_payload(session)}

    @app.post("/api/sessions/{session_id}/extend")
    async def extend_session(session_id: str, request: Request) -> Dict[str, Any]:
        session = _lookup(request, session_id)
        session.watchdog.extend()
        return _session_payload(session)

    @app.post("/api/sessions/{session_id}/logout")
    async def logout(session_id: str, request: Request) -> Dict[str, Any]:
        _lookup(request, session_id)
        await request.app.state.registry.logout(session_id)
        return {"success": True}

    @app.delete("/api/sessions/{session_id}")
    async def close_session(session_id: str, request: Request) -> Dict[str, Any]:
        try:
            request.app.state.registry.close(session_id)
        except SessionNotFoundError as exc:
            raise HTTPException(status_code=404, detail="Session not found") from exc
        return {"closed": True}

    return app


def _lookup(request: Request, session_id: str) -> TourSession:
    try:
        return request.app.state.registry.get(session_id)
    except SessionNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Session not found") from exc


def _session_payload(session: TourSession) -> Dict[str, Any]:
    watchdog = session.watchdog
    remaining = watchdog.time_remaining
    return {
        "session_id": session.session_id,
        "user": session.user,
        "signed_in": session.signed_in,
        "phase": watchdog.phase.value,
        "show_warning": session.signed_in and watchdog.show_warning,
        "time_remaining": remaining,
        "countdown": format_countdown(remaining),
        "redirect_to": session.redirect_to,
        "tracks_activity": session.activity is not None,
    }
