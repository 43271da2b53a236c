"""OrbitNavigator — drives an OrbitSession from gestures and recommendations.

Responsibilities:
    1. Translate gesture events into session commands.
    2. Run the prefetch fan-out after enter_orbit and every forward step:
       three independent tasks, one per forward direction, each writing
       its own cache slot with the ticket it was issued.
    3. On a forward swipe, consume the prefetched slot or fall back to a
       blocking single-direction call while the session is transitioning.
    4. Absorb every recommendation failure.  A swipe that finds nothing
       resets the transition flags and leaves history untouched.
    5. Notify the feedback port (fire-and-forget).

Back and jump replay history and issue no recommendation calls.

The navigator and its session live on one event loop.  Results that
arrive after the session moved on are recognised by their ticket and
dropped; remote calls are never cancelled.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum

from orbit_nav.config import settings
from orbit_nav.domain.enums import FORWARD_DIRECTIONS, SwipeDirection, connection_type_for
from orbit_nav.domain.movie import Candidate, Movie, MovieContext
from orbit_nav.domain.prefetch import PrefetchTicket
from orbit_nav.domain.session import OrbitSession
from orbit_nav.gestures.events import GestureEvent, GestureKind
from orbit_nav.ports.feedback import FeedbackCue, FeedbackPort, NullFeedback, notify
from orbit_nav.ports.recommendation import RecommendationPort

logger = logging.getLogger(__name__)


class Outcome(str, Enum):
    NAVIGATED = "navigated"
    WENT_BACK = "went_back"
    JUMPED = "jumped"
    EDGE_OF_HISTORY = "edge_of_history"
    NO_CANDIDATE = "no_candidate"
    SUPERSEDED = "superseded"
    IGNORED = "ignored"
    SAVED = "saved"
    UNSAVED = "unsaved"
    CONSTELLATION_SHOWN = "constellation_shown"
    CONSTELLATION_HIDDEN = "constellation_hidden"


@dataclass(frozen=True)
class NavigationResult:
    outcome: Outcome
    direction: SwipeDirection | None = None
    candidate: Candidate | None = None
    from_prefetch: bool = False

    @property
    def changed(self) -> bool:
        return self.outcome not in (Outcome.IGNORED, Outcome.NO_CANDIDATE, Outcome.SUPERSEDED)

    def to_dict(self) -> dict:
        return {
            "outcome": self.outcome.value,
            "direction": self.direction.value if self.direction else None,
            "movie_id": self.candidate.movie.id if self.candidate else None,
            "from_prefetch": self.from_prefetch,
        }


_IGNORED = NavigationResult(Outcome.IGNORED)


class OrbitNavigator:
    """Screen-level controller for one orbit session.

    Args:
        recommender: Port used for prefetch and fallback queries.
        feedback: Port receiving haptic/UI cues.
        session: Session to drive (a fresh one by default).
        transition_delay: Seconds between resolving a candidate and
            committing it, leaving room for the transition effect.
    """

    def __init__(
        self,
        recommender: RecommendationPort,
        feedback: FeedbackPort | None = None,
        session: OrbitSession | None = None,
        transition_delay: float = settings.transition_delay_ms / 1000.0,
    ) -> None:
        self._recommender = recommender
        self._feedback = feedback or NullFeedback()
        self._session = session or OrbitSession()
        self._transition_delay = transition_delay
        self._contexts: dict[int, MovieContext] = {}
        self._tasks: set[asyncio.Task] = set()

    @property
    def session(self) -> OrbitSession:
        return self._session

    @property
    def feedback(self) -> FeedbackPort:
        return self._feedback

    @property
    def gestures_enabled(self) -> bool:
        return self._session.is_active and not self._session.is_transitioning

    # ── Lifecycle ────────────────────────────────────────────────────────

    def enter_orbit(self, movie: Movie, context: MovieContext | None = None) -> None:
        """Start the session at *movie* and kick off the first fan-out."""
        self._contexts = {}
        if context is not None:
            self._contexts[movie.id] = context
        self._session.enter_orbit(movie)
        self._start_prefetch()

    def exit_orbit(self) -> None:
        """Reset the session.  In-flight fan-out results become stale."""
        self._session.exit_orbit()
        self._contexts = {}

    reset = exit_orbit

    # ── Commands ─────────────────────────────────────────────────────────

    async def swipe(self, direction: SwipeDirection) -> NavigationResult:
        """Handle a completed swipe in *direction*."""
        session = self._session
        if not session.is_active or session.current_movie is None or session.is_transitioning:
            return NavigationResult(Outcome.IGNORED, direction)

        if direction == SwipeDirection.RIGHT:
            return self.go_back()

        notify(self._feedback, FeedbackCue.SWIPE_COMPLETE)
        session.set_transitioning(True)
        session.set_pending_direction(direction)

        origin = session.current_movie
        ticket = session.prefetch_cache.ticket()
        candidate = session.prefetch_cache.take(connection_type_for(direction))
        from_prefetch = candidate is not None

        if candidate is None:
            logger.info("No prefetched %s for %s; querying", direction.value, origin)
            candidate = await self._query(origin, direction)

        if ticket is None or not session.prefetch_cache.is_current(ticket):
            logger.info("Swipe %s from %s superseded", direction.value, origin)
            return NavigationResult(Outcome.SUPERSEDED, direction, candidate, from_prefetch)

        if candidate is None:
            session.set_transitioning(False)
            session.set_pending_direction(None)
            logger.info("No candidate %s from %s", direction.value, origin)
            return NavigationResult(Outcome.NO_CANDIDATE, direction)

        if self._transition_delay > 0:
            await asyncio.sleep(self._transition_delay)
            if not session.prefetch_cache.is_current(ticket):
                return NavigationResult(Outcome.SUPERSEDED, direction, candidate, from_prefetch)

        session.navigate_to_candidate(candidate, direction)
        self._start_prefetch()
        return NavigationResult(Outcome.NAVIGATED, direction, candidate, from_prefetch)

    def go_back(self) -> NavigationResult:
        if not self._session.is_active:
            return _IGNORED
        if self._session.go_back():
            notify(self._feedback, FeedbackCue.HISTORY_NAVIGATED)
            return NavigationResult(Outcome.WENT_BACK, SwipeDirection.RIGHT)
        notify(self._feedback, FeedbackCue.EDGE_OF_HISTORY)
        return NavigationResult(Outcome.EDGE_OF_HISTORY, SwipeDirection.RIGHT)

    def jump_to_node(self, index: int) -> NavigationResult:
        if not self._session.jump_to_node(index):
            return _IGNORED
        notify(self._feedback, FeedbackCue.HISTORY_NAVIGATED)
        return NavigationResult(Outcome.JUMPED)

    def toggle_saved(self, movie_id: int | None = None) -> NavigationResult:
        """Toggle *movie_id* (the current movie by default)."""
        session = self._session
        if movie_id is None:
            if session.current_movie is None:
                return _IGNORED
            movie_id = session.current_movie.id
        if not any(n.movie.id == movie_id for n in session.history):
            return _IGNORED
        saved = session.toggle_saved(movie_id)
        if saved:
            notify(self._feedback, FeedbackCue.SAVED)
            return NavigationResult(Outcome.SAVED)
        return NavigationResult(Outcome.UNSAVED)

    def set_show_constellation(self, value: bool) -> NavigationResult:
        session = self._session
        if not session.is_active or session.show_constellation == value:
            return _IGNORED
        session.set_show_constellation(value)
        notify(self._feedback, FeedbackCue.SWIPE_COMPLETE)
        return NavigationResult(
            Outcome.CONSTELLATION_SHOWN if value else Outcome.CONSTELLATION_HIDDEN
        )

    async def handle_gesture(self, event: GestureEvent) -> NavigationResult:
        """Dispatch a recognised gesture."""
        if event.kind == GestureKind.SWIPE and event.direction is not None:
            return await self.swipe(event.direction)
        if not self.gestures_enabled:
            return _IGNORED
        if event.kind == GestureKind.LONG_PRESS:
            return self.toggle_saved()
        if event.kind == GestureKind.PINCH_IN:
            return self.set_show_constellation(True)
        if event.kind == GestureKind.PINCH_OUT:
            return self.set_show_constellation(False)
        return _IGNORED

    # ── Prefetch fan-out ─────────────────────────────────────────────────

    @property
    def pending_prefetches(self) -> int:
        return len(self._tasks)

    async def settle(self) -> None:
        """Wait until every outstanding fan-out task has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _start_prefetch(self) -> None:
        session = self._session
        movie = session.current_movie
        ticket = session.prefetch_cache.ticket()
        if movie is None or ticket is None:
            return
        context = self._context_for(movie)
        logger.debug("Prefetching for %s (epoch %d)", movie, ticket.epoch)
        for direction in FORWARD_DIRECTIONS:
            task = asyncio.create_task(self._prefetch_one(ticket, movie, direction, context))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def _prefetch_one(
        self,
        ticket: PrefetchTicket,
        movie: Movie,
        direction: SwipeDirection,
        context: MovieContext,
    ) -> None:
        candidate = await self._query(movie, direction, context)
        if candidate is None:
            return
        if self._session.prefetch_cache.store(ticket, connection_type_for(direction), candidate):
            logger.debug("Prefetched %s for %s: %s", direction.value, movie, candidate.movie)

    async def _query(
        self,
        movie: Movie,
        direction: SwipeDirection,
        context: MovieContext | None = None,
    ) -> Candidate | None:
        try:
            return await self._recommender.find_candidate(
                movie, direction, context or self._context_for(movie)
            )
        except Exception as exc:
            logger.warning("Recommendation %s for %s raised: %s", direction.value, movie, exc)
            return None

    def _context_for(self, movie: Movie) -> MovieContext:
        context = self._contexts.get(movie.id)
        if context is None:
            context = MovieContext(cinematographer=movie.cinematographer)
            self._contexts[movie.id] = context
        return context
