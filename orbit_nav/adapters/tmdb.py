"""TMDB adapter — turns raw TMDB payloads into canonical Movies.

Architectural rules:
    1. Payload dicts returned by TMDB are never mutated.
    2. Every lookup failure (HTTP error, timeout, missing field) ends in
       ``None``; nothing here raises into the navigator.
    3. HTTP runs on ``requests`` in a worker thread so the event loop is
       never blocked.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import requests
from pydantic import ValidationError

from orbit_nav.config import settings
from orbit_nav.domain.movie import Movie, MovieContext, normalise_hex

logger = logging.getLogger(__name__)

_VISUAL_STYLES: tuple[tuple[str, str], ...] = (
    ("Science Fiction", "futuristic, high-tech visuals"),
    ("Horror", "dark, atmospheric tension"),
    ("Romance", "warm, intimate cinematography"),
    ("Action", "dynamic, high-energy visuals"),
    ("Drama", "naturalistic, character-focused framing"),
)
DEFAULT_VISUAL_STYLE = "cinematic visuals"


def crew_member(details: dict[str, Any], *jobs: str) -> str | None:
    """Name of the first crew member whose job is one of *jobs*."""
    crew = (details.get("credits") or {}).get("crew") or []
    for person in crew:
        if person.get("job") in jobs:
            return person.get("name")
    return None


def genre_names(details: dict[str, Any]) -> list[str]:
    return [g["name"] for g in details.get("genres") or [] if g.get("name")]


def visual_style_for(genres: list[str]) -> str:
    for genre, style in _VISUAL_STYLES:
        if genre in genres:
            return style
    return DEFAULT_VISUAL_STYLE


def movie_from_details(
    details: dict[str, Any],
    dominant_hex: str = settings.default_dominant_hex,
    fallback_year: str = "----",
) -> Movie:
    """Build a Movie from a TMDB ``/movie/{id}?append_to_response=credits`` payload.

    Raises:
        ValidationError: If required fields are missing or malformed.
    """
    release = details.get("release_date") or ""
    return Movie.model_validate({
        "id": details.get("id"),
        "title": details.get("title") or details.get("name"),
        "year": release[:4] or fallback_year,
        "poster_path": details.get("poster_path"),
        "backdrop_path": details.get("backdrop_path"),
        "dominant_hex": normalise_hex(dominant_hex) or settings.default_dominant_hex,
        "media_type": "movie",
        "director": crew_member(details, "Director"),
        "cinematographer": crew_member(details, "Director of Photography"),
        "genres": genre_names(details),
    })


class TMDBClient:
    """Minimal TMDB client for orbit hydration.

    Args:
        api_key: TMDB v3 API key (defaults to ``ORBIT_TMDB_API_KEY``).
        base_url: API root.
        http: Optional ``requests.Session`` (injected in tests).
        timeout: Per-request timeout in seconds.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str = settings.tmdb_base_url,
        http: requests.Session | None = None,
        timeout: float = settings.tmdb_timeout_seconds,
    ) -> None:
        self._api_key = api_key if api_key is not None else settings.tmdb_api_key
        self._base_url = base_url.rstrip("/")
        self._http = http or requests.Session()
        self._timeout = timeout

    # ── Raw lookups (blocking) ───────────────────────────────────────────

    def _get(self, path: str, **params: Any) -> dict[str, Any] | None:
        params["api_key"] = self._api_key
        try:
            response = self._http.get(
                f"{self._base_url}{path}", params=params, timeout=self._timeout
            )
            response.raise_for_status()
            return response.json()
        except requests.RequestException as exc:
            logger.warning("TMDB request %s failed: %s", path, exc)
            return None
        except ValueError as exc:
            logger.warning("TMDB response for %s was not JSON: %s", path, exc)
            return None

    def get_movie_details(self, tmdb_id: int) -> dict[str, Any] | None:
        return self._get(f"/movie/{tmdb_id}", append_to_response="credits")

    def search_movie(self, title: str, year: str | None = None) -> dict[str, Any] | None:
        params: dict[str, Any] = {"query": title}
        if year:
            params["year"] = year
        data = self._get("/search/movie", **params)
        if not data:
            return None
        results = data.get("results") or []
        return results[0] if results else None

    # ── Async API ────────────────────────────────────────────────────────

    async def fetch_movie(
        self,
        tmdb_id: int,
        dominant_hex: str = settings.default_dominant_hex,
    ) -> Movie | None:
        """Load and validate a Movie by TMDB id."""
        details = await asyncio.to_thread(self.get_movie_details, tmdb_id)
        if not details:
            return None
        try:
            return movie_from_details(details, dominant_hex)
        except ValidationError as exc:
            logger.warning("TMDB movie %d did not validate: %s", tmdb_id, exc)
            return None

    async def hydrate(
        self,
        title: str,
        year: str | None = None,
        dominant_hex: str = settings.default_dominant_hex,
        tmdb_id: int | None = None,
    ) -> Movie | None:
        """Resolve a recommended title to a full Movie.

        Uses *tmdb_id* directly when given, otherwise searches by title
        and year and loads the first hit.
        """
        details = None
        if tmdb_id:
            details = await asyncio.to_thread(self.get_movie_details, tmdb_id)
        if not details:
            hit = await asyncio.to_thread(self.search_movie, title, year)
            if hit and hit.get("id"):
                details = await asyncio.to_thread(self.get_movie_details, hit["id"])
        if not details:
            logger.info("Could not find %r (%s) on TMDB", title, year)
            return None
        try:
            return movie_from_details(details, dominant_hex, fallback_year=year or "----")
        except ValidationError as exc:
            logger.warning("Hydrated movie %r did not validate: %s", title, exc)
            return None

    async def movie_context(self, tmdb_id: int) -> MovieContext | None:
        """Cinematographer, writer and a genre-derived visual style."""
        details = await asyncio.to_thread(self.get_movie_details, tmdb_id)
        if not details:
            return None
        return MovieContext(
            cinematographer=crew_member(details, "Director of Photography"),
            writer=crew_member(details, "Screenplay", "Writer"),
            visual_style=visual_style_for(genre_names(details)),
        )
