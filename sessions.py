from __future__ import annotations
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Callable, Optional

from admin import AdminPanel
from config import settings
from store import AppState

logger = logging.getLogger(__name__)

@dataclass
class StorefrontSession:
    id: str
    state: AppState = field(default_factory=AppState)
    admin: Optional[AdminPanel] = None
    last_seen: float = 0.0

    def admin_panel(self) -> AdminPanel:
        if self.admin is None:
            self.admin = AdminPanel(self.state)
        return self.admin

    def drop_admin_panel(self) -> None:
        if self.admin is not None:
            self.admin.close()
            self.admin = None

    async def close(self) -> None:
        self.state.notification.cancel()
        self.drop_admin_panel()
        await self.state.flush_background()

class SessionRegistry:
    """In-memory visitor sessions keyed by the session cookie.

    Sessions idle for longer than ``ttl`` seconds are closed and dropped the
    next time the registry is used.
    """

    def __init__(self, ttl: Optional[float] = None, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl = settings.SESSION_TTL_SECONDS if ttl is None else ttl
        self._clock = clock
        self._sessions: dict[str, StorefrontSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def get(self, session_id: Optional[str]) -> Optional[StorefrontSession]:
        if not session_id:
            return None
        return self._sessions.get(session_id)

    async def get_or_create(self, session_id: Optional[str] = None) -> StorefrontSession:
        await self.evict_idle()
        now = self._clock()
        session = self.get(session_id)
        if session is not None:
            session.last_seen = now
            return session
        session = StorefrontSession(id=uuid.uuid4().hex, last_seen=now)
        self._sessions[session.id] = session
        logger.info("New storefront session %s", session.id)
        await session.state.initialize()
        return session

    async def evict_idle(self) -> int:
        if self.ttl <= 0:
            return 0
        cutoff = self._clock() - self.ttl
        idle = [s for s in self._sessions.values() if s.last_seen < cutoff]
        for session in idle:
            del self._sessions[session.id]
            await session.close()
        if idle:
            logger.info("Evicted %d idle session(s)", len(idle))
        return len(idle)

    async def close(self) -> None:
        for session in list(self._sessions.values()):
            await session.close()
        self._sessions.clear()
