"""orbit-nav — swipe-driven film exploration service.

This is the application entry point.  It wires the TMDB client, the
Gemini recommender, the SessionStore and the HTTP/WebSocket endpoints
together.

Run with:  uvicorn orbit_nav.main:app
"""

from __future__ import annotations

import logging
from datetime import timedelta

from fastapi import FastAPI

from orbit_nav.adapters.gemini import GeminiRecommender
from orbit_nav.adapters.tmdb import TMDBClient
from orbit_nav.api.sessions import create_orbit_router
from orbit_nav.api.ws_gestures import create_gesture_router
from orbit_nav.config import settings
from orbit_nav.core.navigator import OrbitNavigator
from orbit_nav.domain.session import OrbitSession
from orbit_nav.ports.feedback import RecordingFeedback
from orbit_nav.store.session_store import SessionStore

# ── Logging ──────────────────────────────────────────────────────────────────

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)

# ── Recommendation ───────────────────────────────────────────────────────────

tmdb = TMDBClient()
recommender = GeminiRecommender(tmdb)

# ── State ────────────────────────────────────────────────────────────────────


def _navigator_factory(session: OrbitSession) -> OrbitNavigator:
    return OrbitNavigator(recommender, feedback=RecordingFeedback(), session=session)


store = SessionStore(
    _navigator_factory, ttl=timedelta(minutes=settings.session_ttl_minutes)
)

# ── App ──────────────────────────────────────────────────────────────────────

app = FastAPI(
    title=settings.app_name,
    debug=settings.debug,
    description="Orbit navigation: swipe-driven film exploration",
    version="0.1.0",
)

# ── Routes ───────────────────────────────────────────────────────────────────

app.include_router(create_orbit_router(store, tmdb))
app.include_router(create_gesture_router(store))


# ── Health ───────────────────────────────────────────────────────────────────

@app.get("/health")
async def health() -> dict:
    return {
        "status": "ok",
        "active_sessions": await store.active_count(),
        "gemini_model": settings.gemini_model,
    }
