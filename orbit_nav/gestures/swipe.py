"""Swipe and long-press recognition for a single dragged card.

Per gesture:  idle → dragging → resolved(direction) | spring_back

A long-press timer runs only while dragging.  It is cancelled as soon
as the drag moves past the tolerance on either axis, and on every exit
from dragging.  If it fires first, the gesture is a long press and its
release emits no swipe.

Offsets passed to drag_move/drag_end are measured from the drag origin.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Callable

from orbit_nav.config import settings
from orbit_nav.domain.enums import SwipeDirection
from orbit_nav.gestures.events import GestureEvent

logger = logging.getLogger(__name__)

GestureCallback = Callable[[GestureEvent], None]


class SwipePhase(str, Enum):
    IDLE = "idle"
    DRAGGING = "dragging"
    RESOLVED = "resolved"
    SPRING_BACK = "spring_back"


def swipe_threshold(viewport_width: float, viewport_height: float, ratio: float) -> float:
    return min(viewport_width, viewport_height) * ratio


def classify_swipe(dx: float, dy: float, threshold: float) -> SwipeDirection | None:
    """Map a final drag offset to a direction, or None below threshold.

    The horizontal branch is taken only when |dx| strictly exceeds |dy|.
    """
    if abs(dx) > abs(dy):
        if dx < -threshold:
            return SwipeDirection.LEFT
        if dx > threshold:
            return SwipeDirection.RIGHT
    else:
        if dy < -threshold:
            return SwipeDirection.UP
        if dy > threshold:
            return SwipeDirection.DOWN
    return None


class SwipeRecognizer:
    """Recognises swipes and long presses from drag offsets.

    Args:
        viewport_width: Width of the swipe surface in px.
        viewport_height: Height of the swipe surface in px.
        on_event: Receives LongPress events, which fire from the timer
            rather than from a drag callback.
        threshold_ratio: Fraction of the shorter viewport side a drag
            must travel to count as a swipe.
        long_press_ms: Hold time before a long press fires.
        long_press_tolerance_px: Movement that cancels the long press.
        loop: Event loop for the long-press timer (defaults to the
            running loop at drag start).
    """

    def __init__(
        self,
        viewport_width: float,
        viewport_height: float,
        on_event: GestureCallback | None = None,
        threshold_ratio: float = settings.swipe_threshold_ratio,
        long_press_ms: int = settings.long_press_ms,
        long_press_tolerance_px: float = settings.long_press_tolerance_px,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        if viewport_width <= 0 or viewport_height <= 0:
            raise ValueError("viewport dimensions must be positive")
        self._width = viewport_width
        self._height = viewport_height
        self._on_event = on_event
        self._ratio = threshold_ratio
        self._long_press_delay = long_press_ms / 1000.0
        self._tolerance = long_press_tolerance_px
        self._loop = loop

        self.enabled: bool = True
        self.phase: SwipePhase = SwipePhase.IDLE
        self.hint: SwipeDirection | None = None
        self._timer: asyncio.TimerHandle | None = None
        self._long_pressed: bool = False

    # ── Geometry ─────────────────────────────────────────────────────────

    def resize(self, viewport_width: float, viewport_height: float) -> None:
        if viewport_width <= 0 or viewport_height <= 0:
            raise ValueError("viewport dimensions must be positive")
        self._width = viewport_width
        self._height = viewport_height

    @property
    def threshold(self) -> float:
        return swipe_threshold(self._width, self._height, self._ratio)

    # ── Drag lifecycle ───────────────────────────────────────────────────

    def drag_start(self) -> None:
        if not self.enabled:
            return
        self._cancel_timer()
        self.phase = SwipePhase.DRAGGING
        self.hint = None
        self._long_pressed = False
        loop = self._loop or asyncio.get_running_loop()
        self._timer = loop.call_later(self._long_press_delay, self._fire_long_press)

    def drag_move(self, dx: float, dy: float) -> SwipeDirection | None:
        """Track an intermediate offset; returns the direction hint."""
        if self.phase != SwipePhase.DRAGGING:
            return None
        if abs(dx) > self._tolerance or abs(dy) > self._tolerance:
            self._cancel_timer()
        self.hint = classify_swipe(dx, dy, self.threshold)
        return self.hint

    def drag_end(self, dx: float, dy: float) -> GestureEvent | None:
        """Finish the drag.  Returns a Swipe event, or None for spring back."""
        if self.phase != SwipePhase.DRAGGING:
            return None
        self._cancel_timer()
        self.hint = None

        if self._long_pressed:
            self.phase = SwipePhase.SPRING_BACK
            return None

        direction = classify_swipe(dx, dy, self.threshold)
        if direction is None or not self.enabled:
            self.phase = SwipePhase.SPRING_BACK
            return None

        self.phase = SwipePhase.RESOLVED
        logger.debug("Swipe %s (dx=%.1f, dy=%.1f)", direction.value, dx, dy)
        return GestureEvent.swipe(direction)

    def cancel(self) -> None:
        """Abort the gesture in flight (pointer lost, view hidden)."""
        self._cancel_timer()
        self.hint = None
        if self.phase == SwipePhase.DRAGGING:
            self.phase = SwipePhase.SPRING_BACK

    # ── Long press ───────────────────────────────────────────────────────

    @property
    def long_press_pending(self) -> bool:
        return self._timer is not None

    def _fire_long_press(self) -> None:
        self._timer = None
        if self.phase != SwipePhase.DRAGGING:
            return
        self._long_pressed = True
        logger.debug("Long press")
        if self._on_event is not None:
            self._on_event(GestureEvent.long_press())

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
