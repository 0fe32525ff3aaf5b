from __future__ import annotations

import logging
from typing import Dict, Optional
from urllib.parse import quote

import aiohttp

from logging_utils import log_event

from .config import AERODATABOX_BASE_URL, AERODATABOX_HOST
from .errors import ConfigurationError
from .models import ProviderResponse
from .utils import _fetch_json

logger = logging.getLogger("flighttracker.aerodatabox")


class AeroDataBoxClient:
    """
    AeroDataBox (RapidAPI) client, read-only.

    Endpoints used:
      - GET /flights/number/{designator}/{date}?withLocation=true&withCodeshares=true&searchBy={Iata|Icao}
      - GET /flights/search/term?q={term}

    Pass `session` to share one aiohttp session with other clients; otherwise
    use the client as an async context manager.
    """

    def __init__(
        self,
        api_key: Optional[str],
        *,
        base_url: str = AERODATABOX_BASE_URL,
        host: str = AERODATABOX_HOST,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        self._api_key = (api_key or "").strip()
        self._base_url = base_url.rstrip("/")
        self._host = host
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> "AeroDataBoxClient":
        if self._session is None:
            self._session = aiohttp.ClientSession(headers={"Accept": "application/json"})
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._owns_session and self._session:
            await self._session.close()
            self._session = None

    @property
    def has_key(self) -> bool:
        return bool(self._api_key)

    def require_key(self) -> None:
        if not self._api_key:
            log_event(logger, "aerodatabox_key_missing", level=logging.WARNING)
            raise ConfigurationError("missing AERODATABOX_KEY env")

    def _headers(self) -> Dict[str, str]:
        return {
            "x-rapidapi-key": self._api_key,
            "x-rapidapi-host": self._host,
            "Accept": "application/json",
        }

    async def flight_by_number(self, designator: str, date: str, search_by: str) -> ProviderResponse:
        self.require_key()
        url = f"{self._base_url}/flights/number/{quote(designator, safe='')}/{quote(date, safe='')}"
        params = {
            "withLocation": "true",
            "withCodeshares": "true",
            "searchBy": search_by,
        }
        return await _fetch_json(self._get_session(), "aerodatabox", url, params=params, headers=self._headers())

    async def search_term(self, term: str) -> ProviderResponse:
        self.require_key()
        url = f"{self._base_url}/flights/search/term"
        return await _fetch_json(self._get_session(), "aerodatabox", url, params={"q": term}, headers=self._headers())

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            raise RuntimeError("AeroDataBoxClient used outside 'async with' and without a session")
        return self._session
