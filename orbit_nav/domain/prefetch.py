"""PrefetchCache — speculative candidates for the current movie only.

The cache holds at most one Candidate per forward connection type.  It
carries an epoch counter that is bumped on every clear; each outstanding
recommendation request is issued with a PrefetchTicket naming the epoch
and movie it was requested for.  A write whose ticket no longer matches
is stale and is dropped.

The cache is mutated only from the event loop thread.  It is not locked.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from orbit_nav.domain.enums import ConnectionType
from orbit_nav.domain.movie import Candidate

logger = logging.getLogger(__name__)

PREFETCH_SLOTS: tuple[ConnectionType, ...] = (
    ConnectionType.VIBE,
    ConnectionType.AESTHETIC,
    ConnectionType.AUTEUR,
)


@dataclass(frozen=True)
class PrefetchTicket:
    """Tag attached to an outstanding request."""

    epoch: int
    movie_id: int


class PrefetchCache:
    """Epoch-tagged three-slot cache."""

    __slots__ = ("_epoch", "_movie_id", "_slots")

    def __init__(self) -> None:
        self._epoch: int = 0
        self._movie_id: int | None = None
        self._slots: dict[ConnectionType, Candidate | None] = {
            ctype: None for ctype in PREFETCH_SLOTS
        }

    # ── Mutation ─────────────────────────────────────────────────────────

    def clear(self, movie_id: int | None = None) -> int:
        """Empty every slot, rebind to *movie_id* and start a new epoch."""
        for ctype in PREFETCH_SLOTS:
            self._slots[ctype] = None
        self._movie_id = movie_id
        self._epoch += 1
        return self._epoch

    def ticket(self) -> PrefetchTicket | None:
        """Issue a ticket for the current epoch, or None if unbound."""
        if self._movie_id is None:
            return None
        return PrefetchTicket(epoch=self._epoch, movie_id=self._movie_id)

    def is_current(self, ticket: PrefetchTicket) -> bool:
        return ticket.epoch == self._epoch and ticket.movie_id == self._movie_id

    def store(
        self,
        ticket: PrefetchTicket,
        connection_type: ConnectionType,
        candidate: Candidate | None,
    ) -> bool:
        """Write *candidate* into its slot if *ticket* is still current.

        Returns False (and writes nothing) for stale tickets.
        """
        if connection_type not in self._slots:
            raise ValueError(f"{connection_type.value} is not a prefetch slot")
        if not self.is_current(ticket):
            logger.debug(
                "Dropped stale prefetch %s for movie %d (epoch %d, current %d)",
                connection_type.value,
                ticket.movie_id,
                ticket.epoch,
                self._epoch,
            )
            return False
        self._slots[connection_type] = candidate
        return True

    def take(self, connection_type: ConnectionType) -> Candidate | None:
        """Consume a slot.  The candidate is never handed out twice."""
        candidate = self._slots.get(connection_type)
        if candidate is not None:
            self._slots[connection_type] = None
        return candidate

    # ── Queries ──────────────────────────────────────────────────────────

    @property
    def epoch(self) -> int:
        return self._epoch

    @property
    def movie_id(self) -> int | None:
        return self._movie_id

    def get(self, connection_type: ConnectionType) -> Candidate | None:
        return self._slots.get(connection_type)

    def as_dict(self) -> dict[ConnectionType, Candidate | None]:
        return dict(self._slots)

    @property
    def filled_count(self) -> int:
        return sum(1 for c in self._slots.values() if c is not None)

    def __repr__(self) -> str:
        return (
            f"PrefetchCache(epoch={self._epoch}, movie={self._movie_id}, "
            f"filled={self.filled_count})"
        )
