"""Tests for the HTTP sighting source."""

import pytest
import requests
from unittest.mock import Mock

from nearby_notifier.errors import (
    ErrorKind,
    FatalApiError,
    MalformedResponseError,
    NoResponseError,
    TransientApiError,
)
from nearby_notifier.notifier import Notifier
from nearby_notifier.sighting_source import HttpSightingSource, SightingSource, decode_map_response


MAP_PAYLOAD = {
    "map_cells": [
        {"s2_cell_id": 111, "wild_pokemons": [], "forts": [{"id": "gym"}]},
        {
            "s2_cell_id": 222,
            "wild_pokemons": [
                {
                    "encounter_id": 9001,
                    "latitude": 52.37,
                    "longitude": 4.89,
                    "pokemon_data": {"pokemon_id": 16},
                    "time_till_hidden_ms": 120000,
                },
            ],
        },
    ],
}


def json_response(payload, status_code=200):
    response = Mock(status_code=status_code, text=str(payload))
    response.json.return_value = payload
    return response


@pytest.fixture
def session():
    session = Mock()
    session.headers = {}
    return session


@pytest.fixture
def source(session):
    return HttpSightingSource("http://map.invalid/api/", rate_limit_seconds=0, session=session)


def test_source_satisfies_protocol(source):
    """Test protocol conformance."""
    assert isinstance(source, SightingSource)


def test_token_sets_authorization_header(session):
    """Test bearer token header."""
    HttpSightingSource("http://map.invalid/api", token="secret", session=session)
    assert session.headers["Authorization"] == "Bearer secret"


def test_decode_map_response():
    """Test decoding of cells and sightings."""
    response = decode_map_response(MAP_PAYLOAD)

    assert len(response.map_cells) == 2
    assert response.map_cells[0].wild_sightings_count == 0
    raw = response.map_cells[1].wild_sightings[0]
    assert raw.encounter_id == 9001
    assert raw.species_id == 16
    assert raw.time_till_hidden_ms == 120000
    assert (raw.latitude, raw.longitude) == (52.37, 4.89)


def test_decode_missing_fields():
    """Test that incomplete sightings raise MalformedResponseError."""
    with pytest.raises(MalformedResponseError):
        decode_map_response({"map_cells": [{"wild_pokemons": [{"encounter_id": 1}]}]})


def test_get_map_objects_uses_location(source, session):
    """Test that the current location is sent with the query."""
    session.get.return_value = json_response(MAP_PAYLOAD)

    source.set_location(1.5, 2.5)
    response = source.get_map_objects()

    assert session.get.call_args[0][0] == "http://map.invalid/api/map_objects"
    assert session.get.call_args[1]["params"] == {"lat": 1.5, "lon": 2.5}
    assert len(response.map_cells) == 2


@pytest.mark.parametrize("error", [
    requests.exceptions.Timeout(),
    requests.exceptions.ConnectionError(),
])
def test_get_map_objects_network_errors_are_transient(source, session, error):
    """Test network failures during polling."""
    session.get.side_effect = error

    with pytest.raises(TransientApiError) as exc_info:
        source.get_map_objects()
    assert exc_info.value.kind is ErrorKind.TRANSIENT


@pytest.mark.parametrize("status_code", [429, 500, 503])
def test_get_map_objects_server_errors_are_transient(source, session, status_code):
    """Test retryable HTTP statuses."""
    session.get.return_value = json_response({}, status_code=status_code)

    with pytest.raises(TransientApiError):
        source.get_map_objects()


def test_get_map_objects_client_error_is_fatal(source, session):
    """Test non-retryable HTTP statuses."""
    session.get.return_value = json_response({}, status_code=403)

    with pytest.raises(FatalApiError):
        source.get_map_objects()


def test_get_map_objects_invalid_json(source, session):
    """Test undecodable bodies."""
    response = json_response(None)
    response.json.side_effect = ValueError("No JSON")
    session.get.return_value = response

    with pytest.raises(MalformedResponseError) as exc_info:
        source.get_map_objects()
    assert exc_info.value.kind is ErrorKind.MALFORMED_DATA


def test_handshake_calls(source, session):
    """Test handshake endpoints."""
    session.get.return_value = json_response({"ok": True})

    source.get_player_data()
    source.get_inventory()
    source.download_settings()

    urls = [call[0][0] for call in session.get.call_args_list]
    assert urls == [
        "http://map.invalid/api/player",
        "http://map.invalid/api/inventory",
        "http://map.invalid/api/settings",
    ]


@pytest.mark.parametrize("error", [
    requests.exceptions.Timeout(),
    requests.exceptions.ConnectionError(),
])
def test_handshake_no_response(source, session, error):
    """Test that handshake network failures are NoResponseError."""
    session.get.side_effect = error

    with pytest.raises(NoResponseError):
        source.get_player_data()


def test_handshake_bad_status(source, session):
    """Test that a non-200 handshake answer is NoResponseError."""
    session.get.return_value = json_response({}, status_code=502)

    with pytest.raises(NoResponseError):
        source.download_settings()


@pytest.mark.parametrize("error", [
    requests.exceptions.ChunkedEncodingError("IncompleteRead"),
    requests.exceptions.ContentDecodingError("bad gzip"),
    requests.exceptions.TooManyRedirects("redirect loop"),
])
def test_get_map_objects_other_transport_errors_are_transient(source, session, error):
    """Test that any requests failure during polling is transient."""
    session.get.side_effect = error

    with pytest.raises(TransientApiError):
        source.get_map_objects()


@pytest.mark.parametrize("error", [
    requests.exceptions.ChunkedEncodingError("IncompleteRead"),
    requests.exceptions.TooManyRedirects("redirect loop"),
])
def test_handshake_other_transport_errors(source, session, error):
    """Test that any requests failure during the handshake is NoResponseError."""
    session.get.side_effect = error

    with pytest.raises(NoResponseError):
        source.get_inventory()


def test_truncated_response_skips_waypoint(source, session):
    """Test that a truncated map response does not stop the walk."""
    handshake_ok = json_response({"ok": True})
    session.get.side_effect = [
        handshake_ok,
        handshake_ok,
        handshake_ok,
        requests.exceptions.ChunkedEncodingError("IncompleteRead"),
        json_response(MAP_PAYLOAD),
    ]
    handler = Mock()
    notifier = Notifier(source, steps=[(1.0, 2.0), (3.0, 4.0)], sleep=lambda seconds: None)
    notifier.attach(handler)

    notifier.run(max_cycles=1)

    assert session.get.call_count == 5
    assert handler.notify.call_count == 1
    assert notifier.cache.contains(9001)
