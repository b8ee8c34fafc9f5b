"""Error kinds raised by sighting sources and the walk loop."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .models import MapResponse


class ErrorKind(str, Enum):
    """How the walk loop should react to a failed source call."""

    TRANSIENT = "transient"
    NO_RESPONSE = "no_response"
    FATAL = "fatal"
    MALFORMED_DATA = "malformed_data"


class SightingSourceError(Exception):
    """Base error for sighting source failures."""

    kind = ErrorKind.FATAL


class TransientApiError(SightingSourceError):
    """Network or remote-side issue; the next request may succeed."""

    kind = ErrorKind.TRANSIENT


class NoResponseError(SightingSourceError):
    """The remote service did not answer (raised during the handshake)."""

    kind = ErrorKind.NO_RESPONSE


class FatalApiError(SightingSourceError):
    """Request rejected in a way retrying will not fix."""

    kind = ErrorKind.FATAL


class MalformedResponseError(SightingSourceError):
    """Response body could not be decoded into map objects."""

    kind = ErrorKind.MALFORMED_DATA


class CircuitOpenError(Exception):
    """Too many consecutive polling failures."""

    def __init__(self, failures: int):
        self.failures = failures
        super().__init__(f"Giving up after {failures} consecutive polling failures")


@dataclass(frozen=True)
class PollResult:
    """
    Outcome of one map-objects request.

    Exactly one of ``response`` and ``error`` is set. The walk loop branches
    on ``kind`` instead of catching specific exception classes.
    """
    response: Optional[MapResponse] = None
    error: Optional[SightingSourceError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def kind(self) -> Optional[ErrorKind]:
        if self.error is None:
            return None
        return self.error.kind

    @classmethod
    def success(cls, response: MapResponse) -> "PollResult":
        return cls(response=response)

    @classmethod
    def failure(cls, error: SightingSourceError) -> "PollResult":
        return cls(error=error)
