"""History nodes and edges of an orbit exploration.

Nodes are the visited films in cursor order; edges record *how* each
forward step was taken.  Edges outlive the nodes they reference: when a
branch is truncated from history its edges remain, so the edge list is a
graph over every id ever visited in the session.
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, Field

from orbit_nav.domain.enums import ConnectionType
from orbit_nav.domain.movie import Movie


def utc_now() -> datetime:
    """Timezone-aware "now"; every session timestamp goes through here."""
    return datetime.now(timezone.utc)


class HistoryNode(BaseModel):
    """One visit to a movie.  Replaced, not mutated, when saved is toggled."""

    movie: Movie
    entered_at: datetime = Field(default_factory=utc_now)
    saved: bool = False

    model_config = {"frozen": True}


class Edge(BaseModel):
    """A committed forward step from one movie to another."""

    from_id: int
    to_id: int
    connection_type: ConnectionType
    connection_reason: str
    similarity_score: float

    model_config = {"frozen": True}

    def __str__(self) -> str:
        return f"{self.from_id}->{self.to_id}:{self.connection_type.value}"
