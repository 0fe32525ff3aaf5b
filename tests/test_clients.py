import asyncio

import aiohttp
import pytest

from flight_tracker.aerodatabox_client import AeroDataBoxClient
from flight_tracker.errors import ErrorKind
from flight_tracker.models import BoundingBox
from flight_tracker.opensky_client import OpenSkyClient, parse_state_vectors
from flight_tracker.utils import _fetch_json, _parse_provider_time
from flight_tracker.weather_client import OpenMeteoClient

from conftest import ADB_BASE, METEO_BASE, OPENSKY_BASE, FakeResponse, FakeSession

BBOX = BoundingBox(lamin=37.0, lomin=-41.0, lamax=53.0, lomax=-25.0)


@pytest.mark.parametrize(
    "reply,kind,status",
    [
        (FakeResponse(200, text="not json"), ErrorKind.PARSE, 200),
        (FakeResponse(200, raw=b"\xff"), ErrorKind.PARSE, 200),
        (FakeResponse(503, {"message": "down"}), ErrorKind.PROVIDER, 503),
        (FakeResponse(200, []), ErrorKind.PROVIDER, 200),
        (FakeResponse(204, text=""), ErrorKind.PROVIDER, 204),
        (aiohttp.ClientConnectionError("refused"), ErrorKind.NETWORK, 0),
        (asyncio.TimeoutError(), ErrorKind.NETWORK, 0),
    ],
)
def test_fetch_json_classifies_failures(reply, kind, status):
    session = FakeSession(lambda url, params: reply)

    resp = asyncio.run(_fetch_json(session, "test", "https://x.test/y"))

    assert resp.ok is False
    assert resp.error == kind
    assert resp.status == status


def test_fetch_json_success():
    session = FakeSession(lambda url, params: FakeResponse(200, {"a": 1}))

    resp = asyncio.run(_fetch_json(session, "test", "https://x.test/y", params={"q": "1"}))

    assert resp.ok
    assert resp.body == {"a": 1}
    assert session.calls[0]["params"] == {"q": "1"}


def test_provider_time_parsing():
    assert _parse_provider_time({"utc": "2025-10-11 11:20Z"}).isoformat() == "2025-10-11T11:20:00+00:00"
    assert _parse_provider_time({"local": "2025-10-11 13:20+02:00"}).hour == 11
    assert _parse_provider_time("garbage") is None
    assert _parse_provider_time(None) is None


def test_aerodatabox_request_shape():
    session = FakeSession(lambda url, params: FakeResponse(404))
    client = AeroDataBoxClient(" secret ", base_url=ADB_BASE + "/", session=session)

    asyncio.run(client.flight_by_number("LH402", "2025-10-11", "Icao"))
    asyncio.run(client.search_term("UA8839"))

    by_number, search = session.calls
    assert by_number["url"] == f"{ADB_BASE}/flights/number/LH402/2025-10-11"
    assert by_number["params"] == {"withLocation": "true", "withCodeshares": "true", "searchBy": "Icao"}
    assert by_number["headers"]["x-rapidapi-key"] == "secret"
    assert by_number["headers"]["x-rapidapi-host"] == "aerodatabox.p.rapidapi.com"
    assert search["url"] == f"{ADB_BASE}/flights/search/term"
    assert search["params"] == {"q": "UA8839"}


def test_parse_state_vectors_drops_malformed_rows():
    payload = {
        "time": 1760180000,
        "states": [
            ["3c6444", "DLH402  ", "Germany", 1, 1, -30.5, 48.25, 11000.0],
            ["a1b2c3", None, "United States", 1, 1, None, None],
            ["short"],
            "not-a-row",
        ],
    }

    vectors = parse_state_vectors(payload)

    assert [v.callsign for v in vectors] == ["DLH402", ""]
    assert vectors[0].lat == 48.25
    assert vectors[0].lon == -30.5
    assert vectors[0].icao24 == "3c6444"
    assert vectors[1].lat is None
    assert parse_state_vectors({"states": None}) == []
    assert parse_state_vectors("nope") == []


def test_opensky_sends_bbox_and_tolerates_failures():
    session = FakeSession(lambda url, params: aiohttp.ClientConnectionError("refused"))
    client = OpenSkyClient(base_url=OPENSKY_BASE, session=session)

    assert asyncio.run(client.fetch_state_vectors(BBOX)) == []
    assert session.calls[0]["url"] == f"{OPENSKY_BASE}/states/all"
    assert session.calls[0]["params"] == {"lamin": "37.0", "lomin": "-41.0", "lamax": "53.0", "lomax": "-25.0"}


def test_opensky_returns_parsed_vectors():
    body = {"states": [["abc", "UAL8839", "US", 1, 1, -40.0, 45.0]]}
    client = OpenSkyClient(base_url=OPENSKY_BASE, session=FakeSession(lambda url, params: FakeResponse(200, body)))

    vectors = asyncio.run(client.fetch_state_vectors(BBOX))

    assert len(vectors) == 1
    assert vectors[0].callsign == "UAL8839"


def test_weather_current_parses_brief():
    body = {"current_weather": {"temperature": 14.2, "windspeed": 21.0, "time": "2025-10-11T13:00"}}
    session = FakeSession(lambda url, params: FakeResponse(200, body))
    client = OpenMeteoClient(base_url=METEO_BASE, session=session)

    brief = asyncio.run(client.current(50.03, 8.56, "Europe/Berlin"))

    assert (brief.temp_c, brief.wind_kph, brief.time) == (14.2, 21.0, "2025-10-11T13:00")
    assert session.calls[0]["url"] == f"{METEO_BASE}/v1/forecast"
    assert session.calls[0]["params"]["current_weather"] == "true"
    assert session.calls[0]["params"]["timezone"] == "Europe/Berlin"


@pytest.mark.parametrize(
    "reply",
    [FakeResponse(500, {"error": True}), FakeResponse(200, text="{bad"), FakeResponse(200, {"hourly": {}})],
)
def test_weather_is_best_effort(reply):
    client = OpenMeteoClient(base_url=METEO_BASE, session=FakeSession(lambda url, params: reply))

    brief = asyncio.run(client.current(50.03, 8.56, "Europe/Berlin"))

    assert brief.temp_c is None
    assert brief.wind_kph is None
