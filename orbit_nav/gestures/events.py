"""Semantic gesture events emitted by the recognizers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from orbit_nav.domain.enums import SwipeDirection


class GestureKind(str, Enum):
    SWIPE = "swipe"
    LONG_PRESS = "long_press"
    PINCH_IN = "pinch_in"
    PINCH_OUT = "pinch_out"


@dataclass(frozen=True)
class GestureEvent:
    kind: GestureKind
    direction: SwipeDirection | None = None
    scale: float | None = None

    @classmethod
    def swipe(cls, direction: SwipeDirection) -> "GestureEvent":
        return cls(GestureKind.SWIPE, direction=direction)

    @classmethod
    def long_press(cls) -> "GestureEvent":
        return cls(GestureKind.LONG_PRESS)

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "direction": self.direction.value if self.direction else None,
            "scale": self.scale,
        }
