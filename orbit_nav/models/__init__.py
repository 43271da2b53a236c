from orbit_nav.models.requests import (
    ConstellationRequest,
    EnterOrbitRequest,
    FrameType,
    GestureFrame,
    JumpRequest,
    SwipeRequest,
)

__all__ = [
    "ConstellationRequest",
    "EnterOrbitRequest",
    "FrameType",
    "GestureFrame",
    "JumpRequest",
    "SwipeRequest",
]
