"""Movie, MovieContext and Candidate — the values the orbit moves between.

A Movie is opaque to the navigation core beyond its identity.  It is
validated once at the boundary (hydration or API input) and immutable
afterwards.  A Candidate is a recommendation result that has not yet been
committed to history.
"""

from __future__ import annotations

import re
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from orbit_nav.domain.enums import MediaType

DEFAULT_DOMINANT_HEX = "#1a1a2e"
HEX_COLOUR = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")


def normalise_hex(value: str) -> str | None:
    """Return *value* as a lowercase ``#rgb``/``#rrggbb`` colour, or None."""
    value = value.strip()
    if not value.startswith("#"):
        value = "#" + value
    if not HEX_COLOUR.match(value):
        return None
    return value.lower()


class Movie(BaseModel):
    """A hydrated film.  Immutable after creation."""

    id: int = Field(..., description="TMDB identifier")
    title: str = Field(..., min_length=1, max_length=512)
    year: str = Field(default="----", max_length=8)
    poster_path: Optional[str] = None
    backdrop_path: Optional[str] = None
    dominant_hex: str = Field(default=DEFAULT_DOMINANT_HEX)
    media_type: MediaType = MediaType.MOVIE
    director: Optional[str] = None
    cinematographer: Optional[str] = None
    genres: list[str] = Field(default_factory=list)

    model_config = {"frozen": True}

    @field_validator("dominant_hex")
    @classmethod
    def hex_must_have_hash(cls, v: str) -> str:
        colour = normalise_hex(v)
        if colour is None:
            raise ValueError(f"not a hex colour: {v}")
        return colour

    def __str__(self) -> str:
        return f"{self.title} ({self.year})"


class MovieContext(BaseModel):
    """Extra hints passed to the recommender alongside a movie."""

    cinematographer: Optional[str] = None
    writer: Optional[str] = None
    visual_style: Optional[str] = None

    model_config = {"frozen": True}


class Candidate(BaseModel):
    """A recommendation result, not yet part of history."""

    movie: Movie
    connection_reason: str = Field(default="Spiritual successor", max_length=256)
    similarity_score: float = Field(default=75.0, ge=0.0, le=100.0)

    model_config = {"frozen": True}
