"""In-memory encounter cache with expiry sweep."""

import logging
from typing import Any, Dict, List, Optional

from .models import Encounter

logger = logging.getLogger(__name__)


class EncounterCache:
    """
    In-memory cache of tracked encounters by identity.

    Used by the classifier to tell first sightings from repeat sightings.
    Expired encounters are removed by ``sweep``, which the walk loop runs
    once per waypoint cycle, so an expired entry may linger until the next
    sweep.

    Attributes:
        encounters: Dictionary mapping identity to Encounter objects

    Note:
        Cache is lost on restart. Owned by a single walk loop, so no locking.
    """

    def __init__(self):
        self.encounters: Dict[Any, Encounter] = {}

    def __contains__(self, identity: Any) -> bool:
        return identity in self.encounters

    def __len__(self) -> int:
        return len(self.encounters)

    def contains(self, identity: Any) -> bool:
        """Check whether an identity is tracked."""
        return identity in self.encounters

    def get(self, identity: Any) -> Optional[Encounter]:
        """Get the tracked encounter for an identity."""
        return self.encounters.get(identity)

    def put(self, identity: Any, encounter: Encounter):
        """Store an encounter, replacing any previous entry."""
        self.encounters[identity] = encounter

    def sweep(self, now: int) -> List[Any]:
        """
        Remove every encounter whose expiry instant is at or before ``now``.

        Args:
            now: Current time in epoch milliseconds

        Returns:
            Identities that were removed
        """
        expired = [
            identity
            for identity, encounter in self.encounters.items()
            if encounter.has_expired(now)
        ]
        for identity in expired:
            del self.encounters[identity]
        if expired:
            logger.debug(f"Swept {len(expired)} expired encounters, {len(self.encounters)} remain")
        return expired

    def clear(self):
        """Clear all encounters."""
        self.encounters.clear()
