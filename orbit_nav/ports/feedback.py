"""Feedback port — fire-and-forget notifications for haptics and UI cues.

The navigator never reads a return value and never lets a feedback
failure interrupt navigation.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Protocol

logger = logging.getLogger(__name__)


class FeedbackCue(str, Enum):
    SWIPE_COMPLETE = "swipe_complete"
    EDGE_OF_HISTORY = "edge_of_history"
    SAVED = "saved"
    HISTORY_NAVIGATED = "history_navigated"


class FeedbackPort(Protocol):
    def on_swipe_complete(self) -> None: ...

    def on_edge_of_history_reached(self) -> None: ...

    def on_saved(self) -> None: ...

    def on_history_navigated(self) -> None: ...


class NullFeedback:
    """Discards every cue."""

    def on_swipe_complete(self) -> None:
        pass

    def on_edge_of_history_reached(self) -> None:
        pass

    def on_saved(self) -> None:
        pass

    def on_history_navigated(self) -> None:
        pass


class RecordingFeedback:
    """Keeps every cue in order; backs the WebSocket acknowledgements."""

    def __init__(self) -> None:
        self.cues: list[FeedbackCue] = []

    def on_swipe_complete(self) -> None:
        self.cues.append(FeedbackCue.SWIPE_COMPLETE)

    def on_edge_of_history_reached(self) -> None:
        self.cues.append(FeedbackCue.EDGE_OF_HISTORY)

    def on_saved(self) -> None:
        self.cues.append(FeedbackCue.SAVED)

    def on_history_navigated(self) -> None:
        self.cues.append(FeedbackCue.HISTORY_NAVIGATED)

    def drain(self) -> list[FeedbackCue]:
        cues, self.cues = self.cues, []
        return cues


def notify(port: FeedbackPort, cue: FeedbackCue) -> None:
    """Deliver *cue* to *port*, logging instead of raising on failure."""
    handler = {
        FeedbackCue.SWIPE_COMPLETE: port.on_swipe_complete,
        FeedbackCue.EDGE_OF_HISTORY: port.on_edge_of_history_reached,
        FeedbackCue.SAVED: port.on_saved,
        FeedbackCue.HISTORY_NAVIGATED: port.on_history_navigated,
    }[cue]
    try:
        handler()
    except Exception as exc:
        logger.warning("Feedback cue %s failed: %s", cue.value, exc)
