"""In-memory registry of orbit navigators, one per exploration run.

Design notes:
    - An asyncio.Lock guards the registry dict only.  Each session is
      mutated by its own commands on the event loop and is not locked.
    - Sessions are not persisted; a restart starts every run fresh.
    - The store builds navigators through an injected factory so tests
      and the app can choose the recommender and feedback ports.
    - Sessions idle for longer than the TTL are exited and dropped by
      expire_stale(), which runs before every create().
"""

from __future__ import annotations

import asyncio
import logging
from datetime import timedelta
from typing import Callable
from uuid import UUID

from orbit_nav.config import settings
from orbit_nav.core.navigator import OrbitNavigator
from orbit_nav.domain.movie import Movie, MovieContext
from orbit_nav.domain.session import OrbitSession

logger = logging.getLogger(__name__)

NavigatorFactory = Callable[[OrbitSession], OrbitNavigator]


class SessionStore:
    """Async-safe, in-memory store of active orbit sessions.

    Args:
        navigator_factory: Builds the navigator that drives a new session.
        ttl: Idle time after which a session is considered stale.
    """

    def __init__(
        self,
        navigator_factory: NavigatorFactory,
        ttl: timedelta = timedelta(minutes=settings.session_ttl_minutes),
    ) -> None:
        self._factory = navigator_factory
        self._ttl = ttl
        self._lock = asyncio.Lock()
        self._navigators: dict[UUID, OrbitNavigator] = {}

    # ── Public API ───────────────────────────────────────────────────────

    async def create(self, movie: Movie, context: MovieContext | None = None) -> OrbitNavigator:
        """Create a session, enter orbit at *movie* and register it."""
        await self.expire_stale()
        navigator = self._factory(OrbitSession())
        navigator.enter_orbit(movie, context)
        async with self._lock:
            self._navigators[navigator.session.session_id] = navigator
        logger.info(
            "Created orbit session %s at %s", navigator.session.session_id, movie
        )
        return navigator

    async def get(self, session_id: UUID) -> OrbitNavigator | None:
        """Look up a session and mark it as active."""
        async with self._lock:
            navigator = self._navigators.get(session_id)
        if navigator is not None:
            navigator.session.touch()
        return navigator

    async def remove(self, session_id: UUID) -> bool:
        """Exit and forget a session.  Returns False if it was unknown."""
        async with self._lock:
            navigator = self._navigators.pop(session_id, None)
        if navigator is None:
            return False
        navigator.exit_orbit()
        logger.info("Removed orbit session %s", session_id)
        return True

    async def expire_stale(self) -> list[UUID]:
        """Exit and remove sessions idle past the TTL.  Returns their ids."""
        async with self._lock:
            stale = [
                sid for sid, nav in self._navigators.items()
                if nav.session.is_expired(self._ttl)
            ]
            expired = [self._navigators.pop(sid) for sid in stale]
        for navigator in expired:
            navigator.exit_orbit()
        if stale:
            logger.info("Expired %d idle orbit session(s)", len(stale))
        return stale

    async def active_count(self) -> int:
        async with self._lock:
            return len(self._navigators)

    async def summaries(self) -> list[dict]:
        async with self._lock:
            return [n.session.summary() for n in self._navigators.values()]
