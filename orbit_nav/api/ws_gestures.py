"""WebSocket endpoint for raw gesture frames.

Path: /ws/orbit/{session_id}/gestures

Accepts JSON matching GestureFrame, feeds drag frames to a
SwipeRecognizer and touch frames to a PinchRecognizer, and dispatches
every recognised event to the session's navigator.  Each dispatched
event is acknowledged with its outcome, the feedback cues it raised and
the session summary.

Recognisers are per connection.  They are disabled while the session is
transitioning, so a drag during a pending swipe springs back.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any
from uuid import UUID

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from orbit_nav.core.navigator import OrbitNavigator
from orbit_nav.gestures.events import GestureEvent
from orbit_nav.gestures.pinch import PinchRecognizer
from orbit_nav.gestures.swipe import SwipeRecognizer
from orbit_nav.models.requests import FrameType, GestureFrame
from orbit_nav.ports.feedback import RecordingFeedback
from orbit_nav.store.session_store import SessionStore

logger = logging.getLogger(__name__)

DEFAULT_VIEWPORT = (390.0, 844.0)


class GestureChannel:
    """Recognisers and outbound queue for one connected client."""

    def __init__(self, websocket: WebSocket, navigator: OrbitNavigator) -> None:
        self._ws = websocket
        self._navigator = navigator
        self._send_lock = asyncio.Lock()
        self._tasks: set[asyncio.Task] = set()
        self.swipe = SwipeRecognizer(*DEFAULT_VIEWPORT, on_event=self._on_timer_event)
        self.pinch = PinchRecognizer()

    async def send(self, data: dict[str, Any]) -> None:
        async with self._send_lock:
            await self._ws.send_json(data)

    def _on_timer_event(self, event: GestureEvent) -> None:
        self._spawn(event)

    def _spawn(self, event: GestureEvent) -> None:
        task = asyncio.create_task(self.dispatch(event))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def dispatch(self, event: GestureEvent) -> None:
        result = await self._navigator.handle_gesture(event)
        body: dict[str, Any] = {
            "status": "event",
            "event": event.to_dict(),
            "result": result.to_dict(),
            "session": self._navigator.session.summary(),
        }
        feedback = self._navigator.feedback
        if isinstance(feedback, RecordingFeedback):
            body["cues"] = [c.value for c in feedback.drain()]
        await self.send(body)

    async def handle(self, frame: GestureFrame) -> None:
        self._navigator.session.touch()
        enabled = self._navigator.gestures_enabled
        self.swipe.enabled = enabled
        self.pinch.enabled = enabled

        if frame.type == FrameType.VIEWPORT:
            if frame.width and frame.height:
                self.swipe.resize(frame.width, frame.height)
        elif frame.type == FrameType.DRAG_START:
            self.swipe.drag_start()
        elif frame.type == FrameType.DRAG_MOVE:
            before = self.swipe.hint
            hint = self.swipe.drag_move(frame.dx, frame.dy)
            if hint != before:
                await self.send({"status": "hint", "direction": hint.value if hint else None})
        elif frame.type == FrameType.DRAG_END:
            event = self.swipe.drag_end(frame.dx, frame.dy)
            if event is None:
                await self.send({"status": "spring_back"})
            else:
                self._spawn(event)
        elif frame.type == FrameType.DRAG_CANCEL:
            self.swipe.cancel()
            await self.send({"status": "spring_back"})
        elif frame.type == FrameType.TOUCH_START:
            if self.pinch.touch_start(frame.points):
                await self.send({"status": "pinch", "suppress_native_zoom": True})
        elif frame.type == FrameType.TOUCH_MOVE:
            self.pinch.touch_move(frame.points)
        elif frame.type == FrameType.TOUCH_END:
            was_pinching = self.pinch.is_pinching
            event = self.pinch.touch_end()
            if event is not None:
                self._spawn(event)
            if was_pinching:
                await self.send({"status": "pinch", "suppress_native_zoom": False})

    async def close(self) -> None:
        self.swipe.cancel()
        self.pinch.cancel()
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


def create_gesture_router(store: SessionStore) -> APIRouter:
    """Factory that wires the gesture endpoint to a concrete SessionStore."""

    router = APIRouter()

    @router.websocket("/ws/orbit/{session_id}/gestures")
    async def gestures(websocket: WebSocket, session_id: UUID) -> None:
        navigator = await store.get(session_id)
        await websocket.accept()
        if navigator is None:
            await websocket.send_json({"status": "error", "detail": f"Session {session_id} not found"})
            await websocket.close()
            return

        channel = GestureChannel(websocket, navigator)
        logger.info("Gesture client connected to session %s", session_id)

        try:
            while True:
                raw = await websocket.receive_json()

                # ── Validate at the boundary ─────────────────────────────
                try:
                    frame = GestureFrame.model_validate(raw)
                except ValidationError as exc:
                    await channel.send({"status": "error", "detail": str(exc)})
                    continue

                await channel.handle(frame)

        except WebSocketDisconnect:
            logger.info("Gesture client disconnected from session %s", session_id)
        finally:
            await channel.close()

    return router
