"""Open-Meteo current-weather client."""
from __future__ import annotations

import logging
from typing import Optional

import aiohttp

from logging_utils import log_event

from .config import OPEN_METEO_BASE_URL
from .models import WeatherBrief
from .utils import _fetch_json

logger = logging.getLogger("flighttracker.weather")


class OpenMeteoClient:
    def __init__(
        self,
        *,
        base_url: str = OPEN_METEO_BASE_URL,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> "OpenMeteoClient":
        if self._session is None:
            self._session = aiohttp.ClientSession(headers={"Accept": "application/json"})
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._owns_session and self._session:
            await self._session.close()
            self._session = None

    async def current(self, lat: float, lon: float, tz: str) -> WeatherBrief:
        """Best effort: an empty brief on any failure."""
        if self._session is None:
            raise RuntimeError("OpenMeteoClient used outside 'async with' and without a session")

        params = {
            "latitude": str(lat),
            "longitude": str(lon),
            "current_weather": "true",
            "timezone": tz,
        }
        resp = await _fetch_json(self._session, "open_meteo", f"{self._base_url}/v1/forecast", params=params)
        if not resp.ok or not isinstance(resp.body, dict):
            return WeatherBrief()

        cw = resp.body.get("current_weather")
        if not isinstance(cw, dict):
            log_event(logger, "open_meteo_no_current_weather", level=logging.WARNING, lat=lat, lon=lon)
            return WeatherBrief()

        temp = cw.get("temperature")
        wind = cw.get("windspeed")
        return WeatherBrief(
            temp_c=temp if isinstance(temp, (int, float)) else None,
            wind_kph=wind if isinstance(wind, (int, float)) else None,
            time=cw.get("time") if isinstance(cw.get("time"), str) else None,
        )
