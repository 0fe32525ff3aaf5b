from __future__ import annotations

import asyncio
import json
import logging
import time
from datetime import date, datetime, timezone
from functools import lru_cache
from typing import Any, Dict, Optional

import aiohttp

from zoneinfo import ZoneInfo

from logging_utils import log_event

from .errors import ErrorKind
from .models import ProviderResponse

logger = logging.getLogger("flighttracker.http")


@lru_cache(maxsize=64)
def _zone(tz_name: str) -> ZoneInfo:
    return ZoneInfo(tz_name)


def _local_to_utc(local_iso: str, tz_name: str) -> datetime:
    """
    "2025-10-11T13:20" in Europe/Berlin -> 2025-10-11 11:20 UTC
    """
    naive = datetime.fromisoformat(local_iso)
    if naive.tzinfo is None:
        naive = naive.replace(tzinfo=_zone(tz_name))
    return naive.astimezone(timezone.utc)


def _as_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_calendar_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        return None


def _parse_provider_time(obj: Any) -> Optional[datetime]:
    """
    AeroDataBox times look like
        {"utc": "2025-10-11 11:20Z", "local": "2025-10-11 13:20+02:00"}
    Returns an aware UTC datetime, preferring the "utc" member.
    """
    if isinstance(obj, dict):
        raw = obj.get("utc") or obj.get("local")
    else:
        raw = obj
    if not isinstance(raw, str) or not raw.strip():
        return None
    s = raw.strip().replace(" ", "T")
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    try:
        return _as_utc(datetime.fromisoformat(s))
    except ValueError:
        return None


def _is_empty(body: Any) -> bool:
    return body is None or (isinstance(body, (list, dict, str)) and not body)


async def _fetch_json(
    session: aiohttp.ClientSession,
    provider: str,
    url: str,
    *,
    params: Optional[Dict[str, str]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> ProviderResponse:
    """
    Single GET, no retry. Failures are classified instead of raised:
      - transport failure           -> NETWORK (status 0)
      - non-2xx or empty body       -> PROVIDER
      - body that is not UTF-8 JSON -> PARSE
    """
    t0 = time.perf_counter()
    status = 0
    raw = b""
    try:
        async with session.get(url, params=params, headers=headers) as r:
            status = r.status
            raw = await r.read()
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        elapsed_ms = int((time.perf_counter() - t0) * 1000)
        log_event(
            logger,
            f"{provider}_network_error",
            level=logging.WARNING,
            provider=provider,
            endpoint=url,
            error=str(e) or type(e).__name__,
            duration_ms=elapsed_ms,
        )
        return ProviderResponse(
            provider=provider, url=url, status=0, error=ErrorKind.NETWORK, elapsed_ms=elapsed_ms
        )

    elapsed_ms = int((time.perf_counter() - t0) * 1000)
    log_event(
        logger,
        f"{provider}_http_call",
        provider=provider,
        endpoint=url,
        params=params,
        status_code=status,
        duration_ms=elapsed_ms,
    )

    body: Any = None
    error: Optional[ErrorKind] = None
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError:
        body = raw.decode("utf-8", errors="replace")
        error = ErrorKind.PARSE
    else:
        if text.strip():
            try:
                body = json.loads(text)
            except ValueError:
                body = text
                error = ErrorKind.PARSE

    if not 200 <= status < 300:
        error = ErrorKind.PROVIDER
    elif error is None and _is_empty(body):
        error = ErrorKind.PROVIDER

    if error is not None:
        preview = body if isinstance(body, str) else json.dumps(body)[:200] if body is not None else ""
        log_event(
            logger,
            f"{provider}_error",
            level=logging.WARNING,
            provider=provider,
            status_code=status,
            kind=error.value,
            error_preview=preview[:200],
        )

    return ProviderResponse(
        provider=provider, url=url, status=status, body=body, error=error, elapsed_ms=elapsed_ms
    )
