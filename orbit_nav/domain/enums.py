"""Controlled enumerations for the orbit domain.

Every categorical field in the domain references an enum defined here.
"""

from __future__ import annotations

from enum import Enum


class SwipeDirection(str, Enum):
    """The four swipe directions.  RIGHT rewinds, the others explore."""

    LEFT = "left"
    RIGHT = "right"
    UP = "up"
    DOWN = "down"


class ConnectionType(str, Enum):
    """Similarity dimension that links two movies in the orbit graph."""

    VIBE = "vibe"
    AESTHETIC = "aesthetic"
    AUTEUR = "auteur"
    ENTRY = "entry"


class MediaType(str, Enum):
    MOVIE = "movie"
    TV = "tv"


# Forward directions in fan-out order.
FORWARD_DIRECTIONS: tuple[SwipeDirection, ...] = (
    SwipeDirection.LEFT,
    SwipeDirection.DOWN,
    SwipeDirection.UP,
)

_DIRECTION_TO_CONNECTION: dict[SwipeDirection, ConnectionType] = {
    SwipeDirection.LEFT: ConnectionType.VIBE,
    SwipeDirection.UP: ConnectionType.AUTEUR,
    SwipeDirection.DOWN: ConnectionType.AESTHETIC,
}


def connection_type_for(direction: SwipeDirection) -> ConnectionType:
    """Map a forward swipe direction to its connection type.

    Raises:
        ValueError: for RIGHT, which is history navigation.
    """
    try:
        return _DIRECTION_TO_CONNECTION[direction]
    except KeyError:
        raise ValueError(f"{direction.value} is not a forward direction") from None
