"""Pydantic models for requests arriving over HTTP and WebSocket."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from orbit_nav.domain.enums import SwipeDirection
from orbit_nav.domain.movie import Movie, MovieContext


class EnterOrbitRequest(BaseModel):
    """Start a session from a full movie or from a TMDB id."""

    movie: Optional[Movie] = None
    tmdb_id: Optional[int] = Field(default=None, gt=0)
    context: Optional[MovieContext] = None

    @model_validator(mode="after")
    def movie_or_id(self) -> "EnterOrbitRequest":
        if self.movie is None and self.tmdb_id is None:
            raise ValueError("either movie or tmdb_id is required")
        return self


class SwipeRequest(BaseModel):
    direction: SwipeDirection


class JumpRequest(BaseModel):
    index: int


class ConstellationRequest(BaseModel):
    show: bool


class FrameType(str, Enum):
    VIEWPORT = "viewport"
    DRAG_START = "drag_start"
    DRAG_MOVE = "drag_move"
    DRAG_END = "drag_end"
    DRAG_CANCEL = "drag_cancel"
    TOUCH_START = "touch_start"
    TOUCH_MOVE = "touch_move"
    TOUCH_END = "touch_end"


class GestureFrame(BaseModel):
    """One raw pointer/touch frame from the client."""

    type: FrameType
    dx: float = 0.0
    dy: float = 0.0
    points: list[tuple[float, float]] = Field(default_factory=list, max_length=10)
    width: Optional[float] = Field(default=None, gt=0)
    height: Optional[float] = Field(default=None, gt=0)
