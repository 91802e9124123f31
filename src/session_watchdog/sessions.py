"""In-memory registry of signed-in browser sessions and their watchdogs."""

from __future__ import annotations

import logging
import secrets
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Optional

from .activity import ActivityBus
from .config import WatchdogSettings
from .scheduler import Scheduler
from .watchdog import InactivityWatchdog

logger = logging.getLogger(__name__)

ENDED_SESSION_LIMIT = 256


class SessionNotFoundError(KeyError):
    """Raised when a session id is unknown or already closed."""


@dataclass(slots=True)
class TourSession:
    session_id: str
    user: str
    watchdog: InactivityWatchdog
    activity: Optional[ActivityBus]
    signed_in: bool = True
    redirect_to: Optional[str] = None


class SessionRegistry:
    """Create, look up and tear down watched sessions."""

    def __init__(
        self,
        settings: WatchdogSettings,
        scheduler_factory: Callable[[], Scheduler],
        *,
        ended_limit: int = ENDED_SESSION_LIMIT,
    ) -> None:
        self.settings = settings
        self._scheduler_factory = scheduler_factory
        self._ended_limit = ended_limit
        self._sessions: dict[str, TourSession] = {}
        # Signed-out sessions stay readable until pushed out by newer ones.
        self._ended: OrderedDict[str, TourSession] = OrderedDict()

    def __len__(self) -> int:
        """Number of sessions whose watchdog is still live."""
        return len(self._sessions)

    @property
    def ended_count(self) -> int:
        return len(self._ended)

    def sign_in(self, user: str, *, track_activity: bool = True) -> TourSession:
        session_id = secrets.token_urlsafe(16)
        scheduler = self._scheduler_factory()
        activity = ActivityBus(scheduler.now) if track_activity else None

        async def sign_out() -> None:
            await self.sign_out(session_id)

        def navigate(destination: str) -> None:
            self._navigate(session_id, destination)

        watchdog = InactivityWatchdog(
            self.settings,
            scheduler,
            sign_out=sign_out,
            navigate=navigate,
            activity_source=activity,
        )
        session = TourSession(
            session_id=session_id,
            user=user,
            watchdog=watchdog,
            activity=activity,
        )
        self._sessions[session_id] = session
        watchdog.start()
        logger.info("Session %s signed in for %s.", session_id, user)
        return session

    def get(self, session_id: str) -> TourSession:
        session = self._sessions.get(session_id) or self._ended.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    async def sign_out(self, session_id: str) -> None:
        session = self.get(session_id)
        if session.signed_in:
            session.signed_in = False
            logger.info("Session %s signed out.", session_id)

    async def logout(self, session_id: str) -> None:
        """User-initiated sign-out; the watchdog is no longer needed."""
        await self.sign_out(session_id)
        self.get(session_id).watchdog.stop()
        self._retire(session_id)

    def close(self, session_id: str) -> None:
        session = self._sessions.pop(session_id, None) or self._ended.pop(session_id, None)
        if session is None:
            raise SessionNotFoundError(session_id)
        session.watchdog.stop()
        logger.info("Session %s closed.", session_id)

    def close_all(self) -> None:
        for session_id in list(self._sessions):
            self.close(session_id)
        self._ended.clear()

    def _navigate(self, session_id: str, destination: str) -> None:
        session = self._sessions.get(session_id)
        if session is None:
            logger.debug("Dropping redirect for closed session %s.", session_id)
            return
        session.redirect_to = destination
        self._retire(session_id)

    def _retire(self, session_id: str) -> None:
        session = self._sessions.pop(session_id, None)
        if session is None:
            return
        self._ended[session_id] = session
        while len(self._ended) > self._ended_limit:
            evicted, _ = self._ended.popitem(last=False)
            logger.debug("Forgot ended session %s.", evicted)
