"""Map API clients that report wild sightings around a location."""

import time
import logging
import requests
from typing import Any, Dict, Optional, Protocol, runtime_checkable

from .errors import (
    FatalApiError,
    MalformedResponseError,
    NoResponseError,
    TransientApiError,
)
from .models import MapCell, MapResponse, RawSighting

logger = logging.getLogger(__name__)


@runtime_checkable
class SightingSource(Protocol):
    """
    Remote map service the walk loop polls.

    The three handshake calls must succeed once before the service accepts
    location queries.
    """

    def set_location(self, latitude: float, longitude: float) -> None:
        ...

    def get_map_objects(self) -> MapResponse:
        ...

    def get_player_data(self) -> Any:
        ...

    def get_inventory(self) -> Any:
        ...

    def download_settings(self) -> Any:
        ...


def decode_map_response(data: Dict[str, Any]) -> MapResponse:
    """
    Decode a JSON map-objects payload.

    Only ``map_cells[].wild_pokemons[]`` is read; other entities in the
    payload are ignored.

    Raises:
        MalformedResponseError: If the payload does not have the expected shape
    """
    try:
        cells = []
        for cell in data.get("map_cells", []):
            sightings = tuple(
                RawSighting(
                    encounter_id=wild["encounter_id"],
                    latitude=float(wild["latitude"]),
                    longitude=float(wild["longitude"]),
                    species_id=int(wild["pokemon_data"]["pokemon_id"]),
                    time_till_hidden_ms=int(wild.get("time_till_hidden_ms", 0)),
                )
                for wild in cell.get("wild_pokemons", [])
            )
            cells.append(MapCell(cell_id=cell.get("s2_cell_id"), wild_sightings=sightings))
        return MapResponse(map_cells=tuple(cells))
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        raise MalformedResponseError(f"Unexpected map response shape: {e}") from e


class HttpSightingSource:
    """
    JSON-over-HTTP map API client.

    Endpoints (relative to ``base_url``):
        GET /player, GET /inventory, GET /settings: startup handshake
        GET /map_objects?lat=..&lon=..: sightings around the current location

    Attributes:
        base_url: API root URL
        latitude: Current latitude sent with map queries
        longitude: Current longitude sent with map queries
        session: requests session reused across calls

    Note:
        Requests are spaced at least ``rate_limit_seconds`` apart.
    """

    def __init__(
        self,
        base_url: str,
        latitude: float = 0.0,
        longitude: float = 0.0,
        token: Optional[str] = None,
        timeout: float = 10,
        rate_limit_seconds: float = 0.5,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.latitude = latitude
        self.longitude = longitude
        self.timeout = timeout
        self.rate_limit_seconds = rate_limit_seconds
        self.session = session or requests.Session()
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"
        self.last_request_time = 0.0

    def set_location(self, latitude: float, longitude: float):
        """Set the location used by subsequent map queries."""
        self.latitude = latitude
        self.longitude = longitude

    def _rate_limit(self):
        now = time.time()
        time_since_last = now - self.last_request_time
        if time_since_last < self.rate_limit_seconds:
            sleep_time = self.rate_limit_seconds - time_since_last
            logger.debug(f"Map API rate limiting: sleeping {sleep_time:.1f}s")
            time.sleep(sleep_time)

    def _handshake(self, path: str) -> Dict[str, Any]:
        """Run one handshake request; any missing answer is a NoResponseError."""
        self._rate_limit()
        try:
            response = self.session.get(f"{self.base_url}/{path}", timeout=self.timeout)
            self.last_request_time = time.time()
        except requests.exceptions.Timeout as e:
            raise NoResponseError(f"Timeout calling /{path}") from e
        except requests.exceptions.ConnectionError as e:
            raise NoResponseError(f"Connection error calling /{path}") from e
        except requests.exceptions.RequestException as e:
            raise NoResponseError(f"Request to /{path} failed: {e}") from e

        if response.status_code != 200:
            raise NoResponseError(f"/{path} returned {response.status_code}")
        try:
            return response.json()
        except ValueError as e:
            raise NoResponseError(f"/{path} returned an empty or invalid body") from e

    def get_player_data(self) -> Dict[str, Any]:
        return self._handshake("player")

    def get_inventory(self) -> Dict[str, Any]:
        return self._handshake("inventory")

    def download_settings(self) -> Dict[str, Any]:
        return self._handshake("settings")

    def get_map_objects(self) -> MapResponse:
        """
        Fetch map objects around the current location.

        Raises:
            TransientApiError: Transport failure, HTTP 429 or 5xx
            FatalApiError: Any other non-200 status
            MalformedResponseError: Body is not a decodable map response
        """
        self._rate_limit()
        params = {"lat": self.latitude, "lon": self.longitude}
        try:
            response = self.session.get(
                f"{self.base_url}/map_objects",
                params=params,
                timeout=self.timeout,
            )
            self.last_request_time = time.time()
        except requests.exceptions.Timeout as e:
            raise TransientApiError("Map API timeout") from e
        except requests.exceptions.ConnectionError as e:
            raise TransientApiError("Map API connection error") from e
        except requests.exceptions.RequestException as e:
            raise TransientApiError(f"Map API request failed: {e}") from e

        if response.status_code == 429 or response.status_code >= 500:
            raise TransientApiError(f"Map API error {response.status_code}: {response.text[:100]}")
        if response.status_code != 200:
            raise FatalApiError(f"Map API error {response.status_code}: {response.text[:100]}")

        try:
            data = response.json()
        except ValueError as e:
            raise MalformedResponseError("Map API returned invalid JSON") from e
        if not isinstance(data, dict):
            raise MalformedResponseError("Map API returned a non-object body")
        return decode_map_response(data)
