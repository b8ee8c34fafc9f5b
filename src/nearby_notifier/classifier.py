"""New-vs-existing classification of raw sightings."""

from typing import Optional

from .encounter_cache import EncounterCache
from .models import Encounter, RawSighting


def classify(raw: RawSighting, cache: EncounterCache, now: int) -> Optional[Encounter]:
    """
    Turn a raw sighting into an Encounter and track it.

    Sightings with no remaining visible time are already gone (or malformed)
    and are skipped without touching the cache. Every other sighting is
    stored under its identity, replacing any earlier record, and returned
    for reporting whether it is new or a repeat.

    Args:
        raw: Sighting decoded from a map response
        cache: Cache consulted and updated for the sighting's identity
        now: Detection timestamp in epoch milliseconds

    Returns:
        The classified Encounter, or None when the sighting is skipped
    """
    if raw.time_till_hidden_ms <= 0:
        return None

    encounter = Encounter(
        identity=raw.encounter_id,
        latitude=raw.latitude,
        longitude=raw.longitude,
        species_id=raw.species_id,
        visible_duration_ms=raw.time_till_hidden_ms,
        detected_at_ms=now,
        is_new=not cache.contains(raw.encounter_id),
    )
    cache.put(raw.encounter_id, encounter)
    return encounter
