"""Two-finger pinch recognition.

A pinch starts only when exactly two touch points are down.  The scale
is the ratio of the current finger distance to the starting distance.
On release a PinchIn (scale < 1) or PinchOut (scale > 1) is emitted if
the scale moved at least ``threshold`` away from 1.
"""

from __future__ import annotations

import math
from typing import Sequence

from orbit_nav.config import settings
from orbit_nav.gestures.events import GestureEvent, GestureKind

Point = tuple[float, float]


def touch_distance(points: Sequence[Point]) -> float:
    if len(points) < 2:
        return 0.0
    (x1, y1), (x2, y2) = points[0], points[1]
    return math.hypot(x1 - x2, y1 - y2)


class PinchRecognizer:
    __slots__ = ("threshold", "enabled", "is_pinching", "scale", "_initial_distance")

    def __init__(self, threshold: float = settings.pinch_threshold) -> None:
        self.threshold = threshold
        self.enabled: bool = True
        self.is_pinching: bool = False
        self.scale: float = 1.0
        self._initial_distance: float = 0.0

    @property
    def suppress_native_zoom(self) -> bool:
        """True while the platform's own pinch-zoom must be blocked."""
        return self.is_pinching

    def touch_start(self, points: Sequence[Point]) -> bool:
        if not self.enabled or len(points) != 2:
            return False
        distance = touch_distance(points)
        if distance == 0.0:
            return False
        self.is_pinching = True
        self.scale = 1.0
        self._initial_distance = distance
        return True

    def touch_move(self, points: Sequence[Point]) -> float | None:
        if not self.enabled or not self.is_pinching or len(points) != 2:
            return None
        self.scale = touch_distance(points) / self._initial_distance
        return self.scale

    def touch_end(self) -> GestureEvent | None:
        if not self.is_pinching:
            return None
        final_scale = self.scale
        self._clear()
        if not self.enabled or abs(1 - final_scale) < self.threshold:
            return None
        kind = GestureKind.PINCH_IN if final_scale < 1 else GestureKind.PINCH_OUT
        return GestureEvent(kind, scale=final_scale)

    def cancel(self) -> None:
        self._clear()

    def _clear(self) -> None:
        self.is_pinching = False
        self.scale = 1.0
        self._initial_distance = 0.0
