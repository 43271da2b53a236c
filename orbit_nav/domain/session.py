"""OrbitSession — the navigation/history state machine of one exploration.

States:  inactive → active/idle ⇄ active/transitioning → inactive
    - inactive:      created, or after exit_orbit() / reset()
    - idle:          active, no swipe in flight
    - transitioning: active, a forward swipe is waiting for its candidate

Invariants while active:
    - 0 <= history_index < len(history)
    - history[history_index].movie.id == current_movie.id
    - history is never empty
    - edges only grow (until reset)

Commands signal failure through their return value and never raise for
an invalid sequence of calls; the caller branches on the result to drive
"edge reached" feedback.

The session is owned by one event loop and is not locked.  It performs
no I/O: prefetch fan-out and recommendation calls belong to the
OrbitNavigator, which writes into ``prefetch_cache`` using tickets.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from orbit_nav.domain.enums import ConnectionType, SwipeDirection, connection_type_for
from orbit_nav.domain.history import Edge, HistoryNode, utc_now
from orbit_nav.domain.movie import Candidate, Movie
from orbit_nav.domain.prefetch import PrefetchCache

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    """Explicit states of the orbit state machine."""

    INACTIVE = "inactive"
    IDLE = "idle"
    TRANSITIONING = "transitioning"


class SessionSnapshot(BaseModel):
    """Immutable point-in-time copy of every observable session field."""

    is_active: bool
    state: SessionState
    entry_movie: Optional[Movie] = None
    current_movie: Optional[Movie] = None
    history: list[HistoryNode] = Field(default_factory=list)
    history_index: int = -1
    edges: list[Edge] = Field(default_factory=list)
    is_transitioning: bool = False
    pending_direction: Optional[SwipeDirection] = None
    show_constellation: bool = False
    prefetch_cache: dict[ConnectionType, Optional[Candidate]] = Field(default_factory=dict)

    model_config = {"frozen": True}


class OrbitSession:
    """A mutable, single-run exploration session."""

    __slots__ = (
        "session_id",
        "created_at",
        "last_activity",
        "is_active",
        "entry_movie",
        "current_movie",
        "history",
        "history_index",
        "edges",
        "is_transitioning",
        "pending_direction",
        "show_constellation",
        "prefetch_cache",
    )

    def __init__(self, session_id: UUID | None = None) -> None:
        self.session_id: UUID = session_id or uuid4()
        self.created_at: datetime = utc_now()
        self.last_activity: datetime = self.created_at
        # The cache survives reset so its epoch keeps increasing; tickets
        # issued before a reset can never match a later movie.
        self.prefetch_cache = PrefetchCache()
        self._reset_fields()

    def _reset_fields(self) -> None:
        self.is_active: bool = False
        self.entry_movie: Movie | None = None
        self.current_movie: Movie | None = None
        self.history: list[HistoryNode] = []
        self.history_index: int = -1
        self.edges: list[Edge] = []
        self.is_transitioning: bool = False
        self.pending_direction: SwipeDirection | None = None
        self.show_constellation: bool = False
        self.prefetch_cache.clear(None)

    # ── Lifecycle ────────────────────────────────────────────────────────

    def enter_orbit(self, movie: Movie) -> None:
        """Start a fresh exploration rooted at *movie*."""
        if movie is None:
            raise ValueError("enter_orbit requires a movie")
        self.is_active = True
        self.entry_movie = movie
        self.current_movie = movie
        self.history = [HistoryNode(movie=movie)]
        self.history_index = 0
        self.edges = []
        self.is_transitioning = False
        self.pending_direction = None
        self.show_constellation = False
        self.prefetch_cache.clear(movie.id)
        logger.info("Session %s entered orbit at %s", self.session_id, movie)

    def exit_orbit(self) -> None:
        """Return to the exact initial, inactive value."""
        self._reset_fields()
        logger.info("Session %s exited orbit", self.session_id)

    def reset(self) -> None:
        self.exit_orbit()

    def touch(self) -> None:
        """Record client activity on this session."""
        self.last_activity = utc_now()

    def is_expired(self, ttl: timedelta) -> bool:
        """True if the session has seen no activity within *ttl*."""
        return (utc_now() - self.last_activity) > ttl

    # ── Navigation ───────────────────────────────────────────────────────

    def navigate_to(
        self,
        movie: Movie,
        direction: SwipeDirection,
        connection_reason: str,
        similarity_score: float,
    ) -> bool:
        """Commit a forward step to *movie*.

        Any redo branch past the cursor is discarded.  The new edge is
        appended even though edges into the discarded branch are kept.
        """
        if self.current_movie is None or direction == SwipeDirection.RIGHT:
            return False

        edge = Edge(
            from_id=self.current_movie.id,
            to_id=movie.id,
            connection_type=connection_type_for(direction),
            connection_reason=connection_reason,
            similarity_score=similarity_score,
        )
        dropped = len(self.history) - (self.history_index + 1)

        self.history = self.history[: self.history_index + 1]
        self.history.append(HistoryNode(movie=movie))
        self.history_index = len(self.history) - 1
        self.edges.append(edge)
        self.current_movie = movie
        self.is_transitioning = False
        self.pending_direction = None
        self.prefetch_cache.clear(movie.id)

        logger.info(
            "Session %s navigated %s via %s (depth=%d, dropped=%d, edges=%d)",
            self.session_id,
            edge,
            direction.value,
            len(self.history),
            dropped,
            len(self.edges),
        )
        return True

    def navigate_to_candidate(self, candidate: Candidate, direction: SwipeDirection) -> bool:
        return self.navigate_to(
            candidate.movie,
            direction,
            candidate.connection_reason,
            candidate.similarity_score,
        )

    def go_back(self) -> bool:
        """Step the cursor one node back.  False at the start of history."""
        if self.history_index <= 0:
            return False
        self.history_index -= 1
        self.current_movie = self.history[self.history_index].movie
        self.is_transitioning = False
        self.pending_direction = None
        self.prefetch_cache.clear(self.current_movie.id)
        return True

    def jump_to_node(self, index: int) -> bool:
        """Move the cursor to *index* without touching nodes or edges."""
        if index < 0 or index >= len(self.history):
            return False
        self.history_index = index
        self.current_movie = self.history[index].movie
        self.show_constellation = False
        self.is_transitioning = False
        self.pending_direction = None
        self.prefetch_cache.clear(self.current_movie.id)
        return True

    # ── Saving ───────────────────────────────────────────────────────────

    def toggle_saved(self, movie_id: int) -> bool:
        """Flip ``saved`` on every visit of *movie_id*.

        Returns the new saved state of the first matching node, or False
        when the movie is not in history.
        """
        result: bool | None = None
        toggled: list[HistoryNode] = []
        for node in self.history:
            if node.movie.id == movie_id:
                node = node.model_copy(update={"saved": not node.saved})
                if result is None:
                    result = node.saved
            toggled.append(node)
        self.history = toggled
        return bool(result)

    def get_saved_movies(self) -> list[HistoryNode]:
        return [node for node in self.history if node.saved]

    def is_saved(self, movie_id: int) -> bool:
        return any(n.saved for n in self.history if n.movie.id == movie_id)

    # ── Transient UI state ───────────────────────────────────────────────

    def set_transitioning(self, value: bool) -> None:
        self.is_transitioning = value

    def set_pending_direction(self, direction: SwipeDirection | None) -> None:
        self.pending_direction = direction

    def set_show_constellation(self, value: bool) -> None:
        self.show_constellation = value

    # ── Queries ──────────────────────────────────────────────────────────

    @property
    def state(self) -> SessionState:
        if not self.is_active:
            return SessionState.INACTIVE
        if self.is_transitioning:
            return SessionState.TRANSITIONING
        return SessionState.IDLE

    @property
    def can_go_back(self) -> bool:
        return self.history_index > 0

    @property
    def depth(self) -> int:
        return len(self.history)

    def check_invariants(self) -> None:
        """Raise AssertionError if a session invariant is broken."""
        if not self.is_active:
            return
        assert self.history, "active session has empty history"
        assert 0 <= self.history_index < len(self.history), (
            f"history_index {self.history_index} out of range {len(self.history)}"
        )
        assert self.current_movie is not None
        assert self.history[self.history_index].movie.id == self.current_movie.id

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            is_active=self.is_active,
            state=self.state,
            entry_movie=self.entry_movie,
            current_movie=self.current_movie,
            history=list(self.history),
            history_index=self.history_index,
            edges=list(self.edges),
            is_transitioning=self.is_transitioning,
            pending_direction=self.pending_direction,
            show_constellation=self.show_constellation,
            prefetch_cache=self.prefetch_cache.as_dict(),
        )

    def summary(self) -> dict:
        """Lightweight summary suitable for acknowledgements and logging."""
        return {
            "session_id": str(self.session_id),
            "state": self.state.value,
            "entry_movie_id": self.entry_movie.id if self.entry_movie else None,
            "current_movie_id": self.current_movie.id if self.current_movie else None,
            "depth": self.depth,
            "history_index": self.history_index,
            "edge_count": len(self.edges),
            "saved_count": len(self.get_saved_movies()),
            "prefetched": self.prefetch_cache.filled_count,
        }

    # ── Dunder ───────────────────────────────────────────────────────────

    def __repr__(self) -> str:
        return (
            f"OrbitSession(id={self.session_id!s}, "
            f"state={self.state.value}, "
            f"index={self.history_index}/{len(self.history)}, "
            f"edges={len(self.edges)})"
        )
