"""Sighting, map and encounter data types."""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, NamedTuple, Tuple

from .species import species_name


def now_ms() -> int:
    """Current wall-clock time in integer milliseconds."""
    return int(time.time() * 1000)


class Waypoint(NamedTuple):
    """A coordinate visited by the walk loop."""
    latitude: float
    longitude: float


def to_waypoints(steps: Iterable[Tuple[float, float]]) -> Tuple[Waypoint, ...]:
    """Normalize ``(lat, lon)`` pairs into a waypoint plan."""
    return tuple(Waypoint(float(step[0]), float(step[1])) for step in steps)


@dataclass(frozen=True)
class RawSighting:
    """Wild creature sighting as decoded from a map response."""
    encounter_id: Any
    latitude: float
    longitude: float
    species_id: int
    time_till_hidden_ms: int


@dataclass(frozen=True)
class MapCell:
    """One cell of a map response."""
    cell_id: Any
    wild_sightings: Tuple[RawSighting, ...] = ()

    @property
    def wild_sightings_count(self) -> int:
        return len(self.wild_sightings)


@dataclass(frozen=True)
class MapResponse:
    """Map objects returned for the current location."""
    map_cells: Tuple[MapCell, ...] = ()


@dataclass(frozen=True)
class Encounter:
    """
    Classified record of a sighting.

    Immutable once created. The expiry instant is
    ``detected_at_ms + visible_duration_ms``; an encounter is expired at
    that instant and any time after it.

    Attributes:
        identity: Encounter id reported by the map service
        latitude: Latitude at detection time
        longitude: Longitude at detection time
        species_id: Species of the creature
        visible_duration_ms: Remaining visible time reported at detection
        detected_at_ms: Detection timestamp (epoch milliseconds)
        is_new: True if the identity was not tracked when classified
    """
    identity: Any
    latitude: float
    longitude: float
    species_id: int
    visible_duration_ms: int
    detected_at_ms: int
    is_new: bool = field(default=True)

    @property
    def expires_at_ms(self) -> int:
        return self.detected_at_ms + self.visible_duration_ms

    @property
    def name(self) -> str:
        return species_name(self.species_id)

    @property
    def state(self) -> str:
        return "New" if self.is_new else "Existing"

    def has_expired(self, now: int) -> bool:
        return now >= self.expires_at_ms

    def remaining_ms(self, now: int) -> int:
        """Milliseconds left before the sighting disappears (never negative)."""
        return max(0, self.expires_at_ms - now)

    def to_dict(self) -> Dict[str, Any]:
        """Serializable representation used by outbound handlers."""
        return {
            "identity": str(self.identity),
            "latitude": self.latitude,
            "longitude": self.longitude,
            "species_id": self.species_id,
            "name": self.name,
            "visible_duration_ms": self.visible_duration_ms,
            "detected_at_ms": self.detected_at_ms,
            "expires_at_ms": self.expires_at_ms,
            "is_new": self.is_new,
        }
