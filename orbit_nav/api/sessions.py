"""REST endpoints for orbit sessions.

Path prefix: /api/orbit

Every command returns the outcome of the command together with the
session summary.  Invalid commands (back at the start of history,
jumping out of range) are not HTTP errors: they come back with an
``ignored`` or ``edge_of_history`` outcome so the client can drive its
feedback.  Only an unknown session is a 404.
"""

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from fastapi import APIRouter, HTTPException

from orbit_nav.adapters.tmdb import TMDBClient
from orbit_nav.core.navigator import NavigationResult, OrbitNavigator
from orbit_nav.domain.constellation import build_constellation
from orbit_nav.models.requests import (
    ConstellationRequest,
    EnterOrbitRequest,
    JumpRequest,
    SwipeRequest,
)
from orbit_nav.store.session_store import SessionStore

logger = logging.getLogger(__name__)


def _payload(navigator: OrbitNavigator, result: NavigationResult | None = None) -> dict[str, Any]:
    body: dict[str, Any] = {"session": navigator.session.summary()}
    if result is not None:
        body["result"] = result.to_dict()
    return body


def create_orbit_router(store: SessionStore, tmdb: TMDBClient | None = None) -> APIRouter:
    """Factory that wires the orbit endpoints to a concrete SessionStore.

    Args:
        store: Registry of active sessions.
        tmdb: Optional client used to start a session from a TMDB id.
    """

    router = APIRouter(prefix="/api/orbit", tags=["orbit"])

    async def _navigator(session_id: UUID) -> OrbitNavigator:
        navigator = await store.get(session_id)
        if navigator is None:
            raise HTTPException(status_code=404, detail=f"Session {session_id} not found")
        return navigator

    @router.get("/sessions")
    async def list_sessions() -> dict[str, Any]:
        sessions = await store.summaries()
        return {"sessions": sessions, "count": len(sessions)}

    @router.post("/sessions", status_code=201)
    async def enter_orbit(request: EnterOrbitRequest) -> dict[str, Any]:
        movie = request.movie
        context = request.context
        if movie is None:
            if tmdb is None:
                raise HTTPException(status_code=400, detail="TMDB lookup is not configured")
            movie = await tmdb.fetch_movie(request.tmdb_id)
            if movie is None:
                raise HTTPException(status_code=404, detail=f"Movie {request.tmdb_id} not found")
            if context is None:
                context = await tmdb.movie_context(request.tmdb_id)
        navigator = await store.create(movie, context)
        return _payload(navigator)

    @router.get("/sessions/{session_id}")
    async def get_session(session_id: UUID) -> dict[str, Any]:
        navigator = await _navigator(session_id)
        return {"snapshot": navigator.session.snapshot().model_dump(mode="json")}

    @router.delete("/sessions/{session_id}")
    async def exit_orbit(session_id: UUID) -> dict[str, Any]:
        if not await store.remove(session_id):
            raise HTTPException(status_code=404, detail=f"Session {session_id} not found")
        return {"status": "exited", "session_id": str(session_id)}

    @router.post("/sessions/{session_id}/swipe")
    async def swipe(session_id: UUID, request: SwipeRequest) -> dict[str, Any]:
        navigator = await _navigator(session_id)
        result = await navigator.swipe(request.direction)
        return _payload(navigator, result)

    @router.post("/sessions/{session_id}/back")
    async def go_back(session_id: UUID) -> dict[str, Any]:
        navigator = await _navigator(session_id)
        return _payload(navigator, navigator.go_back())

    @router.post("/sessions/{session_id}/jump")
    async def jump(session_id: UUID, request: JumpRequest) -> dict[str, Any]:
        navigator = await _navigator(session_id)
        return _payload(navigator, navigator.jump_to_node(request.index))

    @router.post("/sessions/{session_id}/saved/{movie_id}")
    async def toggle_saved(session_id: UUID, movie_id: int) -> dict[str, Any]:
        navigator = await _navigator(session_id)
        return _payload(navigator, navigator.toggle_saved(movie_id))

    @router.get("/sessions/{session_id}/saved")
    async def saved(session_id: UUID) -> dict[str, Any]:
        navigator = await _navigator(session_id)
        nodes = navigator.session.get_saved_movies()
        return {
            "saved": [n.model_dump(mode="json") for n in nodes],
            "count": len(nodes),
        }

    @router.get("/sessions/{session_id}/constellation")
    async def constellation(session_id: UUID) -> dict[str, Any]:
        navigator = await _navigator(session_id)
        return build_constellation(navigator.session).model_dump(mode="json")

    @router.post("/sessions/{session_id}/constellation")
    async def show_constellation(session_id: UUID, request: ConstellationRequest) -> dict[str, Any]:
        navigator = await _navigator(session_id)
        return _payload(navigator, navigator.set_show_constellation(request.show))

    return router
