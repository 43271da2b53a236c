"""Tests for the REST and WebSocket surfaces."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from orbit_nav.api.sessions import create_orbit_router
from orbit_nav.api.ws_gestures import create_gesture_router
from orbit_nav.core.navigator import OrbitNavigator
from orbit_nav.domain.enums import SwipeDirection
from orbit_nav.ports.feedback import RecordingFeedback
from orbit_nav.store.session_store import SessionStore

from tests.test_movie import _candidate, _valid_movie
from tests.test_navigator import FakeRecommender


def _app(tmdb=None) -> FastAPI:
    recommender = FakeRecommender({
        (1, SwipeDirection.LEFT): _candidate(2, "r1", 80),
        (1, SwipeDirection.UP): _candidate(3, "r2", 70),
    })

    def factory(session):
        return OrbitNavigator(
            recommender, feedback=RecordingFeedback(), session=session, transition_delay=0
        )

    store = SessionStore(factory)
    app = FastAPI()
    app.include_router(create_orbit_router(store, tmdb))
    app.include_router(create_gesture_router(store))
    return app


@pytest.fixture
def client():
    with TestClient(_app()) as c:
        yield c


def _enter(client: TestClient) -> str:
    response = client.post("/api/orbit/sessions", json={"movie": _valid_movie(id=1, title="A")})
    assert response.status_code == 201
    return response.json()["session"]["session_id"]


class TestSessionEndpoints:
    def test_enter_orbit(self, client) -> None:
        sid = _enter(client)
        listing = client.get("/api/orbit/sessions").json()
        assert listing["count"] == 1
        assert listing["sessions"][0]["session_id"] == sid
        assert listing["sessions"][0]["current_movie_id"] == 1

    def test_enter_requires_movie_or_id(self, client) -> None:
        assert client.post("/api/orbit/sessions", json={}).status_code == 422

    def test_tmdb_id_without_client(self, client) -> None:
        assert client.post("/api/orbit/sessions", json={"tmdb_id": 550}).status_code == 400

    def test_tmdb_id_not_found(self) -> None:
        tmdb = MagicMock()
        tmdb.fetch_movie = AsyncMock(return_value=None)
        with TestClient(_app(tmdb)) as c:
            response = c.post("/api/orbit/sessions", json={"tmdb_id": 550})
        assert response.status_code == 404

    def test_swipe_back_and_edge(self, client) -> None:
        sid = _enter(client)
        body = client.post(f"/api/orbit/sessions/{sid}/swipe", json={"direction": "left"}).json()
        assert body["result"]["outcome"] == "navigated"
        assert body["result"]["movie_id"] == 2
        assert body["session"]["depth"] == 2
        assert body["session"]["edge_count"] == 1

        body = client.post(f"/api/orbit/sessions/{sid}/back").json()
        assert body["result"]["outcome"] == "went_back"
        assert body["session"]["current_movie_id"] == 1

        body = client.post(f"/api/orbit/sessions/{sid}/back").json()
        assert body["result"]["outcome"] == "edge_of_history"

    def test_invalid_direction(self, client) -> None:
        sid = _enter(client)
        response = client.post(f"/api/orbit/sessions/{sid}/swipe", json={"direction": "sideways"})
        assert response.status_code == 422

    def test_no_candidate(self, client) -> None:
        sid = _enter(client)
        body = client.post(f"/api/orbit/sessions/{sid}/swipe", json={"direction": "down"}).json()
        assert body["result"]["outcome"] == "no_candidate"
        assert body["session"]["depth"] == 1

    def test_jump(self, client) -> None:
        sid = _enter(client)
        client.post(f"/api/orbit/sessions/{sid}/swipe", json={"direction": "up"})
        assert client.post(f"/api/orbit/sessions/{sid}/jump", json={"index": 0}).json()[
            "result"
        ]["outcome"] == "jumped"
        assert client.post(f"/api/orbit/sessions/{sid}/jump", json={"index": 9}).json()[
            "result"
        ]["outcome"] == "ignored"

    def test_saved(self, client) -> None:
        sid = _enter(client)
        body = client.post(f"/api/orbit/sessions/{sid}/saved/1").json()
        assert body["result"]["outcome"] == "saved"
        saved = client.get(f"/api/orbit/sessions/{sid}/saved").json()
        assert saved["count"] == 1
        assert saved["saved"][0]["movie"]["id"] == 1
        body = client.post(f"/api/orbit/sessions/{sid}/saved/404").json()
        assert body["result"]["outcome"] == "ignored"

    def test_constellation(self, client) -> None:
        sid = _enter(client)
        client.post(f"/api/orbit/sessions/{sid}/swipe", json={"direction": "left"})
        graph = client.get(f"/api/orbit/sessions/{sid}/constellation").json()
        assert [n["movie_id"] for n in graph["nodes"]] == [1, 2]
        assert graph["edges"][0]["connection_type"] == "vibe"
        body = client.post(f"/api/orbit/sessions/{sid}/constellation", json={"show": True}).json()
        assert body["result"]["outcome"] == "constellation_shown"

    def test_snapshot(self, client) -> None:
        sid = _enter(client)
        snapshot = client.get(f"/api/orbit/sessions/{sid}").json()["snapshot"]
        assert snapshot["is_active"] is True
        assert snapshot["history_index"] == 0
        assert snapshot["current_movie"]["id"] == 1

    def test_exit_orbit(self, client) -> None:
        sid = _enter(client)
        assert client.delete(f"/api/orbit/sessions/{sid}").json()["status"] == "exited"
        assert client.get(f"/api/orbit/sessions/{sid}").status_code == 404
        assert client.delete(f"/api/orbit/sessions/{sid}").status_code == 404

    def test_unknown_session(self, client) -> None:
        response = client.post(f"/api/orbit/sessions/{uuid4()}/back")
        assert response.status_code == 404
        assert client.get("/api/orbit/sessions/not-a-uuid").status_code == 422


class TestGestureSocket:
    def test_drag_to_swipe(self, client) -> None:
        sid = _enter(client)
        with client.websocket_connect(f"/ws/orbit/{sid}/gestures") as ws:
            ws.send_json({"type": "viewport", "width": 400, "height": 800})
            ws.send_json({"type": "drag_start"})
            ws.send_json({"type": "drag_move", "dx": -200, "dy": 10})
            assert ws.receive_json() == {"status": "hint", "direction": "left"}
            ws.send_json({"type": "drag_end", "dx": -200, "dy": 10})
            message = ws.receive_json()
            assert message["status"] == "event"
            assert message["event"]["kind"] == "swipe"
            assert message["result"]["outcome"] == "navigated"
            assert message["session"]["current_movie_id"] == 2
            assert message["cues"] == ["swipe_complete"]

    def test_short_drag_springs_back(self, client) -> None:
        sid = _enter(client)
        with client.websocket_connect(f"/ws/orbit/{sid}/gestures") as ws:
            ws.send_json({"type": "drag_start"})
            ws.send_json({"type": "drag_end", "dx": 30, "dy": 0})
            assert ws.receive_json() == {"status": "spring_back"}

    def test_pinch_shows_constellation(self, client) -> None:
        sid = _enter(client)
        with client.websocket_connect(f"/ws/orbit/{sid}/gestures") as ws:
            ws.send_json({"type": "touch_start", "points": [[0, 0], [100, 0]]})
            assert ws.receive_json() == {"status": "pinch", "suppress_native_zoom": True}
            ws.send_json({"type": "touch_move", "points": [[0, 0], [50, 0]]})
            ws.send_json({"type": "touch_end"})
            messages = sorted((ws.receive_json(), ws.receive_json()), key=lambda m: m["status"])
            event, pinch = messages
            assert event["result"]["outcome"] == "constellation_shown"
            assert pinch == {"status": "pinch", "suppress_native_zoom": False}

    def test_single_finger_touch_end_is_silent(self, client) -> None:
        sid = _enter(client)
        with client.websocket_connect(f"/ws/orbit/{sid}/gestures") as ws:
            ws.send_json({"type": "touch_start", "points": [[10, 10]]})
            ws.send_json({"type": "touch_end"})
            ws.send_json({"type": "wiggle"})
            assert ws.receive_json()["status"] == "error"

    def test_invalid_frame(self, client) -> None:
        sid = _enter(client)
        with client.websocket_connect(f"/ws/orbit/{sid}/gestures") as ws:
            ws.send_json({"type": "wiggle"})
            assert ws.receive_json()["status"] == "error"

    def test_unknown_session(self, client) -> None:
        with client.websocket_connect(f"/ws/orbit/{uuid4()}/gestures") as ws:
            message = ws.receive_json()
        assert message["status"] == "error"
        assert "not found" in message["detail"]


class TestHealth:
    def test_health(self) -> None:
        from orbit_nav.main import app

        with TestClient(app) as c:
            body = c.get("/health").json()
        assert body["status"] == "ok"
        assert body["active_sessions"] == 0
