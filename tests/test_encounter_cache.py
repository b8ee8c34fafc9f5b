"""Tests for encounter cache."""

import pytest

from nearby_notifier.encounter_cache import EncounterCache
from nearby_notifier.models import Encounter


def make_encounter(identity=1, detected_at_ms=100_000, visible_duration_ms=5000, is_new=True):
    return Encounter(
        identity=identity,
        latitude=52.0,
        longitude=4.0,
        species_id=25,
        visible_duration_ms=visible_duration_ms,
        detected_at_ms=detected_at_ms,
        is_new=is_new,
    )


@pytest.fixture
def cache():
    return EncounterCache()


def test_put_and_contains(cache):
    """Test storing and looking up an encounter."""
    assert not cache.contains(1)

    encounter = make_encounter(identity=1)
    cache.put(1, encounter)

    assert cache.contains(1)
    assert 1 in cache
    assert cache.get(1) is encounter
    assert len(cache) == 1


def test_contains_has_no_side_effects(cache):
    """Test that lookups never create entries."""
    assert cache.contains(7) is False
    assert cache.get(7) is None
    assert len(cache) == 0


def test_put_overwrites(cache):
    """Test that a second put replaces the stored encounter."""
    first = make_encounter(identity=1, is_new=True)
    second = make_encounter(identity=1, detected_at_ms=200_000, is_new=False)

    cache.put(1, first)
    cache.put(1, second)

    assert len(cache) == 1
    assert cache.get(1) is second


def test_sweep_expiry_boundary(cache):
    """Test retention before T+D and eviction at T+D."""
    cache.put(1, make_encounter(identity=1, detected_at_ms=100_000, visible_duration_ms=5000))

    assert cache.sweep(104_999) == []
    assert cache.contains(1)

    assert cache.sweep(105_000) == [1]
    assert not cache.contains(1)


def test_sweep_after_expiry(cache):
    """Test eviction well past the expiry instant."""
    cache.put(1, make_encounter(identity=1, detected_at_ms=100_000, visible_duration_ms=5000))

    assert cache.sweep(900_000) == [1]
    assert len(cache) == 0


def test_sweep_is_idempotent(cache):
    """Test that a second sweep at the same instant removes nothing."""
    cache.put(1, make_encounter(identity=1, detected_at_ms=0, visible_duration_ms=1000))
    cache.put(2, make_encounter(identity=2, detected_at_ms=0, visible_duration_ms=9000))

    first = cache.sweep(5000)
    second = cache.sweep(5000)

    assert first == [1]
    assert second == []
    assert cache.contains(2)


def test_clear(cache):
    """Test cache clearing."""
    cache.put(1, make_encounter(identity=1))
    cache.clear()
    assert cache.get(1) is None
