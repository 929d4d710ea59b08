"""
Unit tests for the FlightAware client.

The requests.Session is mocked, so these verify request construction,
response parsing and error translation without network access.
"""
from dataclasses import FrozenInstanceError
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
import requests

from tailwatch.services.flightaware import (
    FlightAwareClient,
    FlightAwareConfigError,
    FlightAwareError,
    format_timestamp,
)


def _response(status=200, body=None, reason="OK"):
    response = MagicMock()
    response.status_code = status
    response.ok = status < 400
    response.reason = reason
    if isinstance(body, Exception):
        response.json.side_effect = body
    else:
        response.json.return_value = body if body is not None else {}
    return response


def _client(*responses):
    session = MagicMock(spec=requests.Session)
    session.get.side_effect = list(responses)
    return FlightAwareClient(api_key="test-key", base_url="https://aero.test/aeroapi", session=session), session


FLIGHTS_BODY = {
    "flights": [
        {
            "ident": "N424BB",
            "fa_flight_id": "N424BB-1700000000-adhoc-0",
            "status": "En Route",
            "operator": "NGF",
            "route_distance": 520,
            "origin": {"code": "KPSM", "name": "Portsmouth Intl"},
            "destination": {"code": "KFAY", "name": "Fayetteville Rgnl"},
            "actual_off": "2025-05-01T13:05:00Z",
        },
        {
            "ident": "N424BB",
            "fa_flight_id": "N424BB-1699000000-adhoc-0",
            "status": "Arrived",
        },
    ],
    "num_pages": 1,
    "links": None,
}


def test_missing_api_key_fails_before_network():
    session = MagicMock(spec=requests.Session)
    client = FlightAwareClient(api_key=None, session=session)

    with pytest.raises(FlightAwareConfigError) as exc:
        client.get_flights_by_ident("N424BB")

    assert exc.value.status == 503
    assert exc.value.code == "not_configured"
    session.get.assert_not_called()


def test_get_flights_by_ident_builds_request_and_parses():
    client, session = _client(_response(body=FLIGHTS_BODY))
    start = datetime(2024, 1, 1, tzinfo=timezone.utc)
    end = datetime(2025, 6, 1, 12, 30, tzinfo=timezone.utc)

    page = client.get_flights_by_ident("N424BB", start=start, end=end, max_pages=10)

    args, kwargs = session.get.call_args
    assert args[0] == "https://aero.test/aeroapi/flights/N424BB"
    assert kwargs["headers"]["x-apikey"] == "test-key"
    assert kwargs["params"] == {
        "start": "2024-01-01T00:00:00Z",
        "end": "2025-06-01T12:30:00Z",
        "max_pages": 10,
    }

    assert page.num_pages == 1
    assert len(page.flights) == 2
    first = page.flights[0]
    assert first.operator == "NGF"
    assert first.route_distance == 520
    assert first.origin.code == "KPSM"
    assert first.time("actual_off") == "2025-05-01T13:05:00Z"
    assert first.is_in_flight


def test_flight_record_round_trips_provider_shape():
    client, _ = _client(_response(body=FLIGHTS_BODY))
    flight = client.get_flights_by_ident("N424BB").flights[0]

    data = flight.to_dict()
    assert data["destination"]["code"] == "KFAY"
    assert data["actual_off"] == "2025-05-01T13:05:00Z"
    assert data["scheduled_in"] is None


def test_http_error_carries_status_message_and_code():
    client, _ = _client(_response(
        status=400,
        reason="Bad Request",
        body={"title": "Invalid argument", "detail": "max_pages must be positive", "code": "invalid_argument"},
    ))

    with pytest.raises(FlightAwareError) as exc:
        client.get_flights_by_ident("N424BB")

    assert exc.value.status == 400
    assert exc.value.message == "max_pages must be positive"
    assert exc.value.code == "invalid_argument"


def test_http_error_without_json_body_uses_status_line():
    client, _ = _client(_response(status=503, reason="Service Unavailable", body=ValueError("no json")))

    with pytest.raises(FlightAwareError) as exc:
        client.get_current_flights("N424BB")

    assert exc.value.status == 503
    assert exc.value.message == "HTTP 503: Service Unavailable"
    assert exc.value.code is None


def test_network_error_has_no_status():
    session = MagicMock(spec=requests.Session)
    session.get.side_effect = requests.exceptions.ConnectionError("connection refused")
    client = FlightAwareClient(api_key="test-key", session=session)

    with pytest.raises(FlightAwareError) as exc:
        client.get_flight_track("N424BB-1")

    assert exc.value.status is None
    assert exc.value.message.startswith("Network error")


def test_current_flights_sends_no_date_filter():
    client, session = _client(_response(body=FLIGHTS_BODY))

    flights = client.get_current_flights("N424BB")

    assert len(flights) == 2
    assert session.get.call_args.kwargs["params"] is None


def test_current_position_uses_last_sample_of_active_flight():
    track = {
        "positions": [
            {"latitude": 43.0, "longitude": -70.8, "altitude": 10, "timestamp": "2025-05-01T13:10:00Z"},
            {"latitude": None, "longitude": None},
            {"latitude": 41.5, "longitude": -72.1, "altitude": 85, "groundspeed": 170,
             "heading": 220, "altitude_change": "-", "timestamp": "2025-05-01T13:40:00Z"},
        ]
    }
    client, session = _client(_response(body=FLIGHTS_BODY), _response(body=track))

    tracked = client.get_current_position("N424BB")
    sample = tracked.sample

    track_url = session.get.call_args_list[1].args[0]
    assert track_url.endswith("/flights/N424BB-1700000000-adhoc-0/track")
    assert sample.latitude == 41.5
    assert sample.groundspeed == 170
    assert sample.altitude_change == "-"
    assert tracked.in_flight
    assert tracked.flight.fa_flight_id == "N424BB-1700000000-adhoc-0"


def test_current_position_none_without_flights():
    client, session = _client(_response(body={"flights": []}))
    assert client.get_current_position("N424BB") is None
    assert session.get.call_count == 1


def test_format_timestamp_treats_naive_as_utc():
    assert format_timestamp(datetime(2024, 1, 1)) == "2024-01-01T00:00:00Z"


@pytest.mark.parametrize("body", [["not", "a", "dict"], "flights", 42])
def test_non_object_body_is_a_provider_error(body):
    client, _ = _client(_response(body=body))

    with pytest.raises(FlightAwareError) as exc:
        client.get_flights_by_ident("N424BB")

    assert exc.value.status == 502


def test_malformed_entries_are_skipped():
    client, _ = _client(
        _response(body={"flights": [None, "x", FLIGHTS_BODY["flights"][1]], "links": "bad"}),
        _response(body={"positions": [None, {"latitude": 43.0, "longitude": -70.8}]}),
    )

    page = client.get_flights_by_ident("N424BB")
    track = client.get_flight_track("N424BB-1699000000-adhoc-0")

    assert [f.fa_flight_id for f in page.flights] == ["N424BB-1699000000-adhoc-0"]
    assert page.next_link is None
    assert [(s.latitude, s.longitude) for s in track] == [(43.0, -70.8)]


def test_current_position_of_landed_leg_is_not_in_flight():
    arrived_only = {"flights": [FLIGHTS_BODY["flights"][1]]}
    track = {"positions": [{"latitude": 42.47, "longitude": -71.29, "timestamp": "2025-05-01T15:00:00Z"}]}
    client, _ = _client(_response(body=arrived_only), _response(body=track))

    tracked = client.get_current_position("N424BB")

    assert tracked.sample.latitude == 42.47
    assert tracked.in_flight is False


def test_airports_are_immutable_like_their_flights():
    client, _ = _client(_response(body=FLIGHTS_BODY))
    flight = client.get_flights_by_ident("N424BB").flights[0]

    with pytest.raises(FrozenInstanceError):
        flight.origin.code = "KBOS"
