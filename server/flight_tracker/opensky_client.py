"""OpenSky bulk state-vector client (unauthenticated bounding-box queries)."""
from __future__ import annotations

import logging
from typing import Any, List, Optional

import aiohttp

from logging_utils import log_event

from .config import OPENSKY_BASE_URL
from .models import BoundingBox, ProviderResponse, StateVector
from .utils import _fetch_json

logger = logging.getLogger("flighttracker.opensky")

# state vector format (documented by OpenSky):
# [icao24, callsign, origin_country, time_position, last_contact, longitude, latitude, baro_altitude, ...]
_IDX_ICAO24 = 0
_IDX_CALLSIGN = 1
_IDX_LON = 5
_IDX_LAT = 6


def _as_float(v: Any) -> Optional[float]:
    if isinstance(v, bool) or not isinstance(v, (int, float)):
        return None
    return float(v)


def parse_state_vectors(payload: Any) -> List[StateVector]:
    """Rows that are not lists or are too short are dropped, never raised on."""
    states = payload.get("states") if isinstance(payload, dict) else None
    if not isinstance(states, list):
        return []

    out: List[StateVector] = []
    for s in states:
        if not isinstance(s, list) or len(s) <= _IDX_LAT:
            continue
        callsign = s[_IDX_CALLSIGN] if isinstance(s[_IDX_CALLSIGN], str) else ""
        out.append(
            StateVector(
                icao24=s[_IDX_ICAO24] if isinstance(s[_IDX_ICAO24], str) else None,
                callsign=callsign.strip(),
                lat=_as_float(s[_IDX_LAT]),
                lon=_as_float(s[_IDX_LON]),
                raw=s,
            )
        )
    return out


class OpenSkyClient:
    def __init__(
        self,
        *,
        base_url: str = OPENSKY_BASE_URL,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> "OpenSkyClient":
        if self._session is None:
            self._session = aiohttp.ClientSession(headers={"Accept": "application/json"})
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._owns_session and self._session:
            await self._session.close()
            self._session = None

    async def states_in_bbox(self, bbox: BoundingBox) -> ProviderResponse:
        if self._session is None:
            raise RuntimeError("OpenSkyClient used outside 'async with' and without a session")
        url = f"{self._base_url}/states/all"
        return await _fetch_json(self._session, "opensky", url, params=bbox.as_params())

    async def fetch_state_vectors(self, bbox: BoundingBox) -> List[StateVector]:
        """Empty list on any failure; absence of data is not an error."""
        resp = await self.states_in_bbox(bbox)
        if not resp.ok:
            return []
        vectors = parse_state_vectors(resp.body)
        log_event(logger, "opensky_states_received", count=len(vectors), **bbox.as_params())
        return vectors
