"""Constellation — graph data for visualising an orbit session.

Nodes follow history order and are laid out on a spiral.  Edges are
resolved by movie id against the *current* history; an edge whose
endpoint was truncated away is skipped, never an error.  Rendering is
left to the client.
"""

from __future__ import annotations

import math

from pydantic import BaseModel, Field

from orbit_nav.domain.enums import ConnectionType
from orbit_nav.domain.session import OrbitSession

CONNECTION_COLOURS: dict[ConnectionType, str] = {
    ConnectionType.VIBE: "#3b82f6",
    ConnectionType.AUTEUR: "#f59e0b",
    ConnectionType.AESTHETIC: "#ec4899",
}
FALLBACK_EDGE_COLOUR = "#6b7280"


class ConstellationNode(BaseModel):
    index: int
    movie_id: int
    title: str
    dominant_hex: str
    position: tuple[float, float, float]
    is_active: bool
    saved: bool

    model_config = {"frozen": True}


class ConstellationEdge(BaseModel):
    from_index: int
    to_index: int
    connection_type: ConnectionType
    connection_reason: str
    colour: str

    model_config = {"frozen": True}


class Constellation(BaseModel):
    nodes: list[ConstellationNode] = Field(default_factory=list)
    edges: list[ConstellationEdge] = Field(default_factory=list)
    skipped_edges: int = Field(0, description="Edges whose endpoints are no longer in history")
    active_index: int = -1
    depth: int = 0
    can_go_back: bool = False

    model_config = {"frozen": True}


def spiral_position(index: int) -> tuple[float, float, float]:
    """Spiral layout: each step turns 0.8 rad and moves outward and back."""
    angle = index * 0.8
    radius = 1 + index * 0.3
    return (
        math.cos(angle) * radius,
        math.sin(angle) * radius * 0.5,
        -index * 0.5,
    )


def build_constellation(session: OrbitSession) -> Constellation:
    """Project a session onto constellation nodes and resolvable edges."""
    nodes = [
        ConstellationNode(
            index=i,
            movie_id=node.movie.id,
            title=node.movie.title,
            dominant_hex=node.movie.dominant_hex,
            position=spiral_position(i),
            is_active=i == session.history_index,
            saved=node.saved,
        )
        for i, node in enumerate(session.history)
    ]

    # First visit wins when a movie appears more than once.
    first_index: dict[int, int] = {}
    for i, node in enumerate(session.history):
        first_index.setdefault(node.movie.id, i)

    edges: list[ConstellationEdge] = []
    skipped = 0
    for edge in session.edges:
        src = first_index.get(edge.from_id)
        dst = first_index.get(edge.to_id)
        if src is None or dst is None:
            skipped += 1
            continue
        edges.append(
            ConstellationEdge(
                from_index=src,
                to_index=dst,
                connection_type=edge.connection_type,
                connection_reason=edge.connection_reason,
                colour=CONNECTION_COLOURS.get(edge.connection_type, FALLBACK_EDGE_COLOUR),
            )
        )

    return Constellation(
        nodes=nodes,
        edges=edges,
        skipped_edges=skipped,
        active_index=session.history_index,
        depth=session.depth,
        can_go_back=session.can_go_back,
    )
