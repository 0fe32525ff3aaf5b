import json
from typing import Any, Callable, Dict, List, Optional

import pytest

from flight_tracker.itinerary import default_itinerary
from flight_tracker.models import WeatherBrief

ADB_BASE = "https://adb.test"
OPENSKY_BASE = "https://opensky.test/api"
METEO_BASE = "https://meteo.test"


class FakeResponse:
    def __init__(
        self,
        status: int = 200,
        body: Any = None,
        text: Optional[str] = None,
        raw: Optional[bytes] = None,
    ):
        self.status = status
        if raw is None:
            if text is None:
                text = "" if body is None else json.dumps(body)
            raw = text.encode("utf-8")
        self._raw = raw

    async def read(self) -> bytes:
        return self._raw

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class _Raising:
    def __init__(self, exc: BaseException):
        self._exc = exc

    async def __aenter__(self):
        raise self._exc

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeSession:
    """Stands in for aiohttp.ClientSession; `handler(url, params)` builds each reply."""

    def __init__(self, handler: Callable[[str, Dict[str, str]], Any]):
        self._handler = handler
        self.calls: List[Dict[str, Any]] = []

    def get(self, url, params=None, headers=None):
        params = dict(params or {})
        self.calls.append({"url": url, "params": params, "headers": dict(headers or {})})
        result = self._handler(url, params)
        if isinstance(result, BaseException):
            return _Raising(result)
        return result


def adb_handler(responses: Dict[Any, FakeResponse]):
    """
    Keys are (designator, "Iata"|"Icao") for by-number lookups and
    ("search", term) for the search endpoint. Anything else is a 404.
    """

    def handler(url: str, params: Dict[str, str]):
        if url.endswith("/flights/search/term"):
            return responses.get(("search", params.get("q")), FakeResponse(404))
        designator = url.split("/flights/number/")[1].split("/")[0]
        return responses.get((designator, params.get("searchBy")), FakeResponse(404))

    return handler


def lh402_leg(**overrides) -> Dict[str, Any]:
    leg = {
        "number": "LH 402",
        "status": "EnRoute",
        "airline": {"name": "Lufthansa", "iata": "LH"},
        "departure": {
            "airport": {"iata": "FRA", "name": "Frankfurt-am-Main"},
            "scheduledTime": {"utc": "2025-10-11 11:20Z", "local": "2025-10-11 13:20+02:00"},
            "terminal": "1",
            "gate": "Z25",
        },
        "arrival": {
            "airport": {"iata": "EWR", "name": "Newark Liberty"},
            "scheduledTime": {"utc": "2025-10-12 01:40Z", "local": "2025-10-11 21:40-04:00"},
            "revisedTime": {"utc": "2025-10-12 01:25Z", "local": "2025-10-11 21:25-04:00"},
            "terminal": "B",
            "gate": "C71",
        },
        "location": {"lat": 55.12, "lon": -20.34},
    }
    leg.update(overrides)
    return leg


class FakeResolver:
    def __init__(self, outcome=None, exc: Optional[Exception] = None):
        self.outcome = outcome
        self.exc = exc
        self.calls: List[Dict[str, Any]] = []

    async def resolve(self, designator, date, *, origin_hint=None, dest_hint=None):
        self.calls.append(
            {"designator": designator, "date": date, "origin_hint": origin_hint, "dest_hint": dest_hint}
        )
        if self.exc is not None:
            raise self.exc
        return self.outcome


class FakeOpenSky:
    def __init__(self, vectors=None):
        self.vectors = list(vectors or [])
        self.calls = []

    async def fetch_state_vectors(self, bbox):
        self.calls.append(bbox)
        return list(self.vectors)


class FakeWeather:
    def __init__(self, brief: Optional[WeatherBrief] = None):
        self.brief = brief or WeatherBrief(temp_c=12.5, wind_kph=18.0, time="2025-10-11T13:00")
        self.calls = []

    async def current(self, lat, lon, tz):
        self.calls.append((lat, lon, tz))
        return self.brief


@pytest.fixture
def itinerary():
    return default_itinerary()
