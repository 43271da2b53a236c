"""GeminiRecommender — RecommendationPort backed by Gemini Flash + TMDB.

Each direction has its own compact prompt.  The model answers with a
single JSON object naming a film; the title is then hydrated through
TMDB.  Any failure along the way (LLM error, timeout, unparsable JSON,
unknown title) yields ``None`` for that direction only.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import re
from typing import Any, Callable, Optional

from pydantic import BaseModel, Field, ValidationError

from orbit_nav.adapters.tmdb import TMDBClient
from orbit_nav.config import settings
from orbit_nav.domain.enums import SwipeDirection
from orbit_nav.domain.movie import Candidate, Movie, MovieContext, normalise_hex
from orbit_nav.ports.recommendation import ThreeWayCandidates, gather_three

logger = logging.getLogger(__name__)

LLMFactory = Callable[[], Any]

# ── Prompts ──────────────────────────────────────────────────────────────────

_VIBE_PROMPT = """Movie: "{title}" ({year}), {genres}, dir: {director}
Recommend 1 similar vibe movie. Output RAW JSON only:
{{"next_movie_title":"Title","year":"YYYY","dominant_hex_color":"#HEX","connection_reason":"max 8 words","similarity_score":85}}"""

_AESTHETIC_PROMPT = """Movie: "{title}" ({year}), cinematography by {cinematographer}, style: {visual_style}
Recommend 1 visually similar movie (same color palette/lighting). Output RAW JSON only:
{{"next_movie_title":"Title","year":"YYYY","dominant_hex_color":"#HEX","connection_reason":"visual connection","similarity_score":85}}"""

_AUTEUR_PROMPT = """Movie: "{title}" ({year}), dir: {director}, writer: {writer}
Recommend 1 movie by same director OR same narrative style. Output RAW JSON only:
{{"next_movie_title":"Title","year":"YYYY","dominant_hex_color":"#HEX","connection_reason":"auteur connection","similarity_score":85}}"""

_PROMPTS: dict[SwipeDirection, str] = {
    SwipeDirection.LEFT: _VIBE_PROMPT,
    SwipeDirection.DOWN: _AESTHETIC_PROMPT,
    SwipeDirection.UP: _AUTEUR_PROMPT,
}

_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)


def build_prompt(
    movie: Movie,
    direction: SwipeDirection,
    context: MovieContext | None = None,
) -> str:
    """Fill the prompt template for *direction*.

    Raises:
        ValueError: for RIGHT, which never queries the recommender.
    """
    template = _PROMPTS.get(direction)
    if template is None:
        raise ValueError(f"no prompt for direction {direction.value}")
    context = context or MovieContext()
    return template.format(
        title=movie.title,
        year=movie.year,
        genres=", ".join(movie.genres) or "Unknown",
        director=movie.director or "Unknown",
        cinematographer=context.cinematographer or movie.cinematographer or "Unknown",
        writer=context.writer or "Unknown",
        visual_style=context.visual_style or "distinctive visual style",
    )


# ── Response parsing ────────────────────────────────────────────────────────

class OrbitResponse(BaseModel):
    """The JSON object the model is asked to produce."""

    next_movie_title: str = Field(..., min_length=1)
    year: str = Field(..., min_length=1)
    dominant_hex_color: str = Field(..., min_length=1)
    connection_reason: str = "Spiritual successor"
    similarity_score: float = Field(default=75.0, ge=0.0, le=100.0)
    tmdb_id: Optional[int] = None


def parse_orbit_response(text: str) -> OrbitResponse | None:
    """Extract the first JSON object in *text*, or None if unusable."""
    match = _JSON_OBJECT.search(text or "")
    if not match:
        return None
    try:
        raw = json.loads(match.group(0))
        if not isinstance(raw, dict):
            return None
        hex_colour = str(raw.get("dominant_hex_color") or "")
        colour = normalise_hex(hex_colour)
        if colour is None:
            logger.debug("Unusable colour %r; using %s", hex_colour, settings.default_dominant_hex)
            colour = settings.default_dominant_hex
        raw["dominant_hex_color"] = colour
        if not raw.get("connection_reason"):
            raw.pop("connection_reason", None)
        if not raw.get("similarity_score"):
            raw.pop("similarity_score", None)
        raw["year"] = str(raw.get("year") or "")
        return OrbitResponse.model_validate(raw)
    except (json.JSONDecodeError, ValidationError, TypeError) as exc:
        logger.warning("Failed to parse orbit response: %s", exc)
        return None


def _default_llm_factory():
    """Create a Gemini Flash instance from environment config."""
    from langchain_google_genai import ChatGoogleGenerativeAI

    api_key = os.environ.get("GOOGLE_API_KEY") or os.environ.get("ORBIT_GEMINI_API_KEY")
    if not api_key:
        raise RuntimeError(
            "Gemini API key not found. Set GOOGLE_API_KEY or ORBIT_GEMINI_API_KEY "
            "in your environment variables."
        )

    return ChatGoogleGenerativeAI(
        model=settings.gemini_model,
        google_api_key=api_key,
        temperature=settings.gemini_temperature,
        max_output_tokens=settings.gemini_max_output_tokens,
    )


class GeminiRecommender:
    """RecommendationPort implementation.

    Args:
        tmdb: Client used to hydrate recommended titles.
        llm_factory: Optional override for LLM construction (for testing).
        timeout: Upper bound in seconds for one directional query.
    """

    def __init__(
        self,
        tmdb: TMDBClient,
        llm_factory: LLMFactory | None = None,
        timeout: float = settings.recommendation_timeout_seconds,
    ) -> None:
        self._tmdb = tmdb
        self._llm_factory = llm_factory or _default_llm_factory
        self._llm = None
        self._timeout = timeout

    def _get_llm(self):
        if self._llm is None:
            self._llm = self._llm_factory()
        return self._llm

    async def find_candidate(
        self,
        movie: Movie,
        direction: SwipeDirection,
        context: MovieContext | None = None,
    ) -> Candidate | None:
        if direction == SwipeDirection.RIGHT:
            return None
        try:
            return await asyncio.wait_for(
                self._find(movie, direction, context), timeout=self._timeout
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Recommendation %s for %s timed out after %.1fs",
                direction.value, movie, self._timeout,
            )
            return None
        except Exception as exc:
            logger.error("Recommendation %s for %s failed: %s", direction.value, movie, exc)
            return None

    async def find_three_candidates(
        self,
        movie: Movie,
        context: MovieContext | None = None,
    ) -> ThreeWayCandidates:
        return await gather_three(self, movie, context)

    async def _find(
        self,
        movie: Movie,
        direction: SwipeDirection,
        context: MovieContext | None,
    ) -> Candidate | None:
        prompt = build_prompt(movie, direction, context)
        response = await self._get_llm().ainvoke(prompt)
        text = response.content if hasattr(response, "content") else str(response)
        if isinstance(text, list):
            text = "".join(
                part.get("text", "") if isinstance(part, dict) else str(part) for part in text
            )
        if not text:
            logger.warning("Gemini returned no text for %s %s", direction.value, movie)
            return None

        parsed = parse_orbit_response(text)
        if parsed is None:
            return None

        hydrated = await self._tmdb.hydrate(
            parsed.next_movie_title,
            parsed.year,
            dominant_hex=parsed.dominant_hex_color,
            tmdb_id=parsed.tmdb_id,
        )
        if hydrated is None:
            return None

        logger.debug(
            "Recommended %s -> %s via %s (%.0f)",
            movie, hydrated, direction.value, parsed.similarity_score,
        )
        return Candidate(
            movie=hydrated,
            connection_reason=parsed.connection_reason,
            similarity_score=parsed.similarity_score,
        )
