"""Tests for the epoch-tagged PrefetchCache."""

import pytest

from orbit_nav.domain.enums import ConnectionType
from orbit_nav.domain.prefetch import PrefetchCache, PrefetchTicket

from tests.test_movie import _candidate


@pytest.fixture
def cache() -> PrefetchCache:
    c = PrefetchCache()
    c.clear(1)
    return c


class TestPrefetchCache:
    def test_unbound_cache_issues_no_ticket(self) -> None:
        assert PrefetchCache().ticket() is None

    def test_store_with_current_ticket(self, cache: PrefetchCache) -> None:
        ticket = cache.ticket()
        assert cache.store(ticket, ConnectionType.VIBE, _candidate(2))
        assert cache.get(ConnectionType.VIBE).movie.id == 2
        assert cache.filled_count == 1

    def test_clear_bumps_epoch_and_empties(self, cache: PrefetchCache) -> None:
        cache.store(cache.ticket(), ConnectionType.AUTEUR, _candidate(2))
        before = cache.epoch
        cache.clear(3)
        assert cache.epoch == before + 1
        assert cache.movie_id == 3
        assert all(c is None for c in cache.as_dict().values())

    def test_stale_ticket_is_dropped(self, cache: PrefetchCache) -> None:
        old = cache.ticket()
        cache.clear(2)
        assert not cache.store(old, ConnectionType.VIBE, _candidate(9))
        assert cache.get(ConnectionType.VIBE) is None

    def test_ticket_for_other_movie_is_stale(self, cache: PrefetchCache) -> None:
        wrong = PrefetchTicket(epoch=cache.epoch, movie_id=999)
        assert not cache.is_current(wrong)

    def test_take_consumes_slot(self, cache: PrefetchCache) -> None:
        cache.store(cache.ticket(), ConnectionType.AESTHETIC, _candidate(5))
        assert cache.take(ConnectionType.AESTHETIC).movie.id == 5
        assert cache.take(ConnectionType.AESTHETIC) is None

    def test_entry_is_not_a_slot(self, cache: PrefetchCache) -> None:
        with pytest.raises(ValueError):
            cache.store(cache.ticket(), ConnectionType.ENTRY, _candidate(5))
