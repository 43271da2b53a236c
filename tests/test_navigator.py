"""Tests for the OrbitNavigator: prefetch fan-out, swipes and feedback.

The recommender is a scripted fake.  Per-call gates let a test hold a
request open and release it after the session has moved on, to exercise
out-of-order results.
"""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from orbit_nav.core.navigator import OrbitNavigator, Outcome
from orbit_nav.domain.enums import ConnectionType, SwipeDirection
from orbit_nav.domain.movie import Candidate, Movie, MovieContext
from orbit_nav.gestures.events import GestureEvent, GestureKind
from orbit_nav.ports.feedback import FeedbackCue, RecordingFeedback
from orbit_nav.ports.recommendation import ThreeWayCandidates, gather_three

from tests.test_movie import _candidate, _movie

LEFT, RIGHT, UP, DOWN = (
    SwipeDirection.LEFT,
    SwipeDirection.RIGHT,
    SwipeDirection.UP,
    SwipeDirection.DOWN,
)

A = _movie(1, "A")


class FakeRecommender:
    """Scripted RecommendationPort.

    ``table[(movie_id, direction)]`` is a Candidate, None, or a list of
    results handed out one per call.
    """

    def __init__(self, table: dict[tuple[int, SwipeDirection], Any] | None = None) -> None:
        self.table = table or {}
        self.calls: list[tuple[int, SwipeDirection]] = []
        self.contexts: list[MovieContext | None] = []
        self.gates: dict[tuple[int, SwipeDirection], asyncio.Event] = {}
        self.failing: set[tuple[int, SwipeDirection]] = set()

    def gate(self, movie_id: int, direction: SwipeDirection) -> asyncio.Event:
        event = asyncio.Event()
        self.gates[(movie_id, direction)] = event
        return event

    async def find_candidate(
        self,
        movie: Movie,
        direction: SwipeDirection,
        context: MovieContext | None = None,
    ) -> Candidate | None:
        key = (movie.id, direction)
        self.calls.append(key)
        self.contexts.append(context)
        gate = self.gates.get(key)
        if gate is not None:
            await gate.wait()
        if key in self.failing:
            raise RuntimeError("recommender down")
        result = self.table.get(key)
        if isinstance(result, list):
            return result.pop(0) if result else None
        return result

    async def find_three_candidates(
        self,
        movie: Movie,
        context: MovieContext | None = None,
    ) -> ThreeWayCandidates:
        return await gather_three(self, movie, context)


def _full_table() -> dict:
    return {
        (1, LEFT): _candidate(2, "r1", 80),
        (1, DOWN): _candidate(3, "palette", 60),
        (1, UP): _candidate(4, "r2", 70),
        (2, LEFT): _candidate(5, "next", 50),
    }


async def _navigator(
    recommender: FakeRecommender,
    feedback: RecordingFeedback | None = None,
    settle: bool = True,
) -> OrbitNavigator:
    nav = OrbitNavigator(recommender, feedback=feedback, transition_delay=0)
    nav.enter_orbit(A)
    if settle:
        await nav.settle()
    return nav


async def _spin(times: int = 5) -> None:
    for _ in range(times):
        await asyncio.sleep(0)


class TestPrefetch:
    @pytest.mark.asyncio
    async def test_enter_orbit_fans_out_three_queries(self) -> None:
        rec = FakeRecommender(_full_table())
        nav = await _navigator(rec)
        assert sorted(d.value for _, d in rec.calls) == ["down", "left", "up"]
        cache = nav.session.prefetch_cache
        assert cache.get(ConnectionType.VIBE).movie.id == 2
        assert cache.get(ConnectionType.AESTHETIC).movie.id == 3
        assert cache.get(ConnectionType.AUTEUR).movie.id == 4

    @pytest.mark.asyncio
    async def test_partial_failure_keeps_other_slots(self) -> None:
        rec = FakeRecommender(_full_table())
        rec.failing.add((1, UP))
        nav = await _navigator(rec)
        cache = nav.session.prefetch_cache
        assert cache.get(ConnectionType.AUTEUR) is None
        assert cache.filled_count == 2

    @pytest.mark.asyncio
    async def test_slots_fill_independently(self) -> None:
        rec = FakeRecommender(_full_table())
        gate = rec.gate(1, DOWN)
        nav = await _navigator(rec, settle=False)
        await _spin()
        cache = nav.session.prefetch_cache
        assert cache.get(ConnectionType.VIBE) is not None
        assert cache.get(ConnectionType.AESTHETIC) is None
        assert nav.pending_prefetches == 1
        gate.set()
        await nav.settle()
        assert nav.pending_prefetches == 0
        assert cache.get(ConnectionType.AESTHETIC).movie.id == 3

    @pytest.mark.asyncio
    async def test_entry_context_is_passed_to_queries(self) -> None:
        rec = FakeRecommender(_full_table())
        nav = OrbitNavigator(rec, transition_delay=0)
        ctx = MovieContext(cinematographer="Roger Deakins", writer="Someone")
        nav.enter_orbit(A, ctx)
        await nav.settle()
        assert all(c == ctx for c in rec.contexts)

    @pytest.mark.asyncio
    async def test_late_result_after_navigation_is_dropped(self) -> None:
        rec = FakeRecommender(_full_table())
        gate = rec.gate(1, DOWN)
        nav = await _navigator(rec, settle=False)
        await _spin()

        result = await nav.swipe(LEFT)
        assert result.outcome == Outcome.NAVIGATED
        assert nav.session.current_movie.id == 2

        gate.set()
        await nav.settle()
        # A's aesthetic result must not land in B's cache.
        assert nav.session.prefetch_cache.get(ConnectionType.AESTHETIC) is None
        assert nav.session.prefetch_cache.movie_id == 2

    @pytest.mark.asyncio
    async def test_late_result_after_exit_is_dropped(self) -> None:
        rec = FakeRecommender(_full_table())
        gates = [rec.gate(1, d) for d in (LEFT, DOWN, UP)]
        nav = await _navigator(rec, settle=False)
        nav.exit_orbit()
        for g in gates:
            g.set()
        await nav.settle()
        assert nav.session.prefetch_cache.filled_count == 0
        assert not nav.session.is_active


class TestSwipe:
    @pytest.mark.asyncio
    async def test_swipe_consumes_prefetched_candidate(self) -> None:
        rec = FakeRecommender(_full_table())
        nav = await _navigator(rec)
        calls_before = len(rec.calls)

        result = await nav.swipe(LEFT)

        assert result.outcome == Outcome.NAVIGATED
        assert result.from_prefetch
        session = nav.session
        assert [n.movie.id for n in session.history] == [1, 2]
        assert [str(e) for e in session.edges] == ["1->2:vibe"]
        assert session.edges[0].connection_reason == "r1"
        assert session.edges[0].similarity_score == 80
        # No fallback call for A; the new fan-out targets B.
        await nav.settle()
        new_calls = rec.calls[calls_before:]
        assert sorted(d.value for _, d in new_calls) == ["down", "left", "up"]
        assert {m for m, _ in new_calls} == {2}

    @pytest.mark.asyncio
    async def test_swipe_clears_cache_before_new_fan_out(self) -> None:
        rec = FakeRecommender(_full_table())
        nav = await _navigator(rec)
        await nav.swipe(LEFT)
        cache = nav.session.prefetch_cache
        assert cache.movie_id == 2
        assert cache.get(ConnectionType.AESTHETIC) is None
        assert cache.get(ConnectionType.AUTEUR) is None

    @pytest.mark.asyncio
    async def test_swipe_falls_back_when_slot_empty(self) -> None:
        table = _full_table()
        table[(1, UP)] = [None, _candidate(7, "late find", 65)]
        rec = FakeRecommender(table)
        nav = await _navigator(rec)
        assert nav.session.prefetch_cache.get(ConnectionType.AUTEUR) is None

        result = await nav.swipe(UP)

        assert result.outcome == Outcome.NAVIGATED
        assert not result.from_prefetch
        assert rec.calls.count((1, UP)) == 2
        assert [str(e) for e in nav.session.edges] == ["1->7:auteur"]

    @pytest.mark.asyncio
    async def test_transitioning_during_fallback(self) -> None:
        table = _full_table()
        table[(1, UP)] = [None, _candidate(7)]
        rec = FakeRecommender(table)
        nav = await _navigator(rec)
        gate = rec.gate(1, UP)

        task = asyncio.create_task(nav.swipe(UP))
        await _spin()
        assert nav.session.is_transitioning
        assert nav.session.pending_direction == UP
        assert not nav.gestures_enabled
        assert (await nav.swipe(LEFT)).outcome == Outcome.IGNORED

        gate.set()
        result = await task
        assert result.outcome == Outcome.NAVIGATED
        assert not nav.session.is_transitioning

    @pytest.mark.asyncio
    async def test_no_candidate_leaves_session_unchanged(self) -> None:
        rec = FakeRecommender({(1, LEFT): _candidate(2)})
        nav = await _navigator(rec)
        before = nav.session.snapshot()

        result = await nav.swipe(DOWN)

        assert result.outcome == Outcome.NO_CANDIDATE
        assert nav.session.snapshot() == before
        assert not nav.session.is_transitioning
        assert nav.session.pending_direction is None

    @pytest.mark.asyncio
    async def test_fallback_failure_is_absorbed(self) -> None:
        rec = FakeRecommender({})
        nav = await _navigator(rec)
        rec.failing.add((1, LEFT))
        result = await nav.swipe(LEFT)
        assert result.outcome == Outcome.NO_CANDIDATE
        assert len(nav.session.history) == 1

    @pytest.mark.asyncio
    async def test_fallback_superseded_by_jump(self) -> None:
        rec = FakeRecommender({})
        nav = await _navigator(rec)
        rec.table[(1, LEFT)] = _candidate(2)
        gate = rec.gate(1, LEFT)

        task = asyncio.create_task(nav.swipe(LEFT))
        await _spin()
        assert nav.jump_to_node(0).outcome == Outcome.JUMPED
        gate.set()
        result = await task

        assert result.outcome == Outcome.SUPERSEDED
        assert [n.movie.id for n in nav.session.history] == [1]
        assert nav.session.edges == []
        assert not nav.session.is_transitioning

    @pytest.mark.asyncio
    async def test_consumed_slot_is_not_reused(self) -> None:
        table = _full_table()
        table[(2, RIGHT)] = None
        rec = FakeRecommender(table)
        nav = await _navigator(rec)
        await nav.swipe(LEFT)
        nav.go_back()
        # Back at A the cache was cleared and no fan-out was issued.
        assert nav.session.prefetch_cache.get(ConnectionType.VIBE) is None

    @pytest.mark.asyncio
    async def test_swipe_ignored_when_inactive(self) -> None:
        nav = OrbitNavigator(FakeRecommender(), transition_delay=0)
        assert (await nav.swipe(LEFT)).outcome == Outcome.IGNORED

    @pytest.mark.asyncio
    async def test_transition_delay_then_commit(self) -> None:
        rec = FakeRecommender(_full_table())
        nav = OrbitNavigator(rec, transition_delay=0.01)
        nav.enter_orbit(A)
        await nav.settle()
        result = await nav.swipe(DOWN)
        assert result.outcome == Outcome.NAVIGATED
        assert nav.session.current_movie.id == 3


class TestHistoryCommands:
    @pytest.mark.asyncio
    async def test_right_swipe_goes_back_without_queries(self) -> None:
        rec = FakeRecommender(_full_table())
        fb = RecordingFeedback()
        nav = await _navigator(rec, fb)
        await nav.swipe(LEFT)
        await nav.settle()
        calls = len(rec.calls)
        fb.drain()

        result = await nav.swipe(RIGHT)

        assert result.outcome == Outcome.WENT_BACK
        assert nav.session.current_movie.id == 1
        await nav.settle()
        assert len(rec.calls) == calls
        assert fb.drain() == [FeedbackCue.HISTORY_NAVIGATED]

    @pytest.mark.asyncio
    async def test_edge_of_history_feedback(self) -> None:
        fb = RecordingFeedback()
        nav = await _navigator(FakeRecommender(), fb)
        result = nav.go_back()
        assert result.outcome == Outcome.EDGE_OF_HISTORY
        assert fb.cues == [FeedbackCue.EDGE_OF_HISTORY]

    @pytest.mark.asyncio
    async def test_jump_issues_no_queries(self) -> None:
        rec = FakeRecommender(_full_table())
        nav = await _navigator(rec)
        await nav.swipe(LEFT)
        await nav.settle()
        calls = len(rec.calls)
        assert nav.jump_to_node(0).outcome == Outcome.JUMPED
        assert nav.jump_to_node(5).outcome == Outcome.IGNORED
        await nav.settle()
        assert len(rec.calls) == calls

    @pytest.mark.asyncio
    async def test_swipe_after_back_branches(self) -> None:
        rec = FakeRecommender(_full_table())
        nav = await _navigator(rec)
        await nav.swipe(LEFT)
        nav.go_back()
        rec.table[(1, UP)] = _candidate(4, "r2", 70)
        result = await nav.swipe(UP)
        assert result.outcome == Outcome.NAVIGATED
        assert not result.from_prefetch
        assert [n.movie.id for n in nav.session.history] == [1, 4]
        assert [str(e) for e in nav.session.edges] == ["1->2:vibe", "1->4:auteur"]


class TestGestureDispatch:
    @pytest.mark.asyncio
    async def test_long_press_toggles_saved(self) -> None:
        fb = RecordingFeedback()
        nav = await _navigator(FakeRecommender(), fb)
        result = await nav.handle_gesture(GestureEvent.long_press())
        assert result.outcome == Outcome.SAVED
        assert nav.session.history[0].saved
        assert fb.cues == [FeedbackCue.SAVED]
        result = await nav.handle_gesture(GestureEvent.long_press())
        assert result.outcome == Outcome.UNSAVED

    @pytest.mark.asyncio
    async def test_pinch_toggles_constellation(self) -> None:
        nav = await _navigator(FakeRecommender())
        result = await nav.handle_gesture(GestureEvent(GestureKind.PINCH_IN, scale=0.5))
        assert result.outcome == Outcome.CONSTELLATION_SHOWN
        assert nav.session.show_constellation
        again = await nav.handle_gesture(GestureEvent(GestureKind.PINCH_IN, scale=0.5))
        assert again.outcome == Outcome.IGNORED
        result = await nav.handle_gesture(GestureEvent(GestureKind.PINCH_OUT, scale=1.5))
        assert result.outcome == Outcome.CONSTELLATION_HIDDEN

    @pytest.mark.asyncio
    async def test_swipe_gesture_navigates(self) -> None:
        fb = RecordingFeedback()
        nav = await _navigator(FakeRecommender(_full_table()), fb)
        result = await nav.handle_gesture(GestureEvent.swipe(LEFT))
        assert result.outcome == Outcome.NAVIGATED
        assert fb.cues == [FeedbackCue.SWIPE_COMPLETE]

    @pytest.mark.asyncio
    async def test_broken_feedback_does_not_break_navigation(self) -> None:
        class Exploding(RecordingFeedback):
            def on_swipe_complete(self) -> None:
                raise RuntimeError("no haptics engine")

        nav = await _navigator(FakeRecommender(_full_table()), Exploding())
        result = await nav.swipe(LEFT)
        assert result.outcome == Outcome.NAVIGATED
