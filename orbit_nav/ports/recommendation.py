"""Recommendation port — "which film is similar in this direction?".

The navigator depends on this protocol only.  Implementations may call
an LLM, a vector index or a fixture table; each call may fail or time
out independently.  A failure surfaces as ``None``, never as an
exception the caller has to handle, although callers still guard
against misbehaving implementations.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Protocol

from orbit_nav.domain.enums import ConnectionType, SwipeDirection
from orbit_nav.domain.movie import Candidate, Movie, MovieContext

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ThreeWayCandidates:
    """One candidate (or None) per forward connection type."""

    vibe: Candidate | None = None
    aesthetic: Candidate | None = None
    auteur: Candidate | None = None

    def get(self, connection_type: ConnectionType) -> Candidate | None:
        return {
            ConnectionType.VIBE: self.vibe,
            ConnectionType.AESTHETIC: self.aesthetic,
            ConnectionType.AUTEUR: self.auteur,
        }.get(connection_type)


class RecommendationPort(Protocol):
    """Protocol for directional recommendation."""

    async def find_candidate(
        self,
        movie: Movie,
        direction: SwipeDirection,
        context: MovieContext | None = None,
    ) -> Candidate | None:
        """Return the next film for *direction*, or None if nothing was found."""
        ...

    async def find_three_candidates(
        self,
        movie: Movie,
        context: MovieContext | None = None,
    ) -> ThreeWayCandidates:
        """Query all three forward directions at once."""
        ...


async def gather_three(
    port: RecommendationPort,
    movie: Movie,
    context: MovieContext | None = None,
) -> ThreeWayCandidates:
    """Run the three directional queries concurrently with per-slot isolation.

    A slot whose call raises is reported as None; the others are kept.
    """
    results = await asyncio.gather(
        port.find_candidate(movie, SwipeDirection.LEFT, context),
        port.find_candidate(movie, SwipeDirection.DOWN, context),
        port.find_candidate(movie, SwipeDirection.UP, context),
        return_exceptions=True,
    )
    slots: list[Candidate | None] = []
    for name, result in zip(("vibe", "aesthetic", "auteur"), results):
        if isinstance(result, BaseException):
            logger.warning("Recommendation %s failed for movie %d: %s", name, movie.id, result)
            slots.append(None)
        else:
            slots.append(result)
    return ThreeWayCandidates(vibe=slots[0], aesthetic=slots[1], auteur=slots[2])
