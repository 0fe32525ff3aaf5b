from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from logging_utils import log_event

from .aerodatabox_client import AeroDataBoxClient
from .errors import InputError
from .models import Coordinate, ProviderResponse, ResolutionOutcome, ResolvedFlightRecord
from .normalizer import normalize
from .utils import _parse_calendar_date, _parse_provider_time

logger = logging.getLogger("flighttracker.resolver")

# Order matters: IATA-style lookup first, ICAO-style second
IDENTIFIER_SCHEMES: Tuple[str, ...] = ("Iata", "Icao")


# ─────────────────────────────────────────────────────────────────────────────
# RESPONSE PARSING
# ─────────────────────────────────────────────────────────────────────────────


def _legs(body: Any) -> List[Dict[str, Any]]:
    if isinstance(body, dict):
        body = [body]
    if not isinstance(body, list):
        return []
    return [
        leg
        for leg in body
        if isinstance(leg, dict) and any(k in leg for k in ("number", "departure", "arrival"))
    ]


def _airport_iata(side: Dict[str, Any]) -> str:
    return ((side.get("airport") or {}).get("iata") or "").upper()


def _pick_leg(
    legs: List[Dict[str, Any]], origin: Optional[str], dest: Optional[str]
) -> Optional[Dict[str, Any]]:
    """Leg matching the requested origin/destination, else the first one."""
    if not legs:
        return None
    o = (origin or "").upper()
    d = (dest or "").upper()
    if o or d:
        for leg in legs:
            dep_iata = _airport_iata(leg.get("departure") or {})
            arr_iata = _airport_iata(leg.get("arrival") or {})
            if (not o or dep_iata == o) and (not d or arr_iata == d):
                return leg
    return legs[0]


def _location(leg: Dict[str, Any]) -> Optional[Coordinate]:
    loc = leg.get("location")
    if not isinstance(loc, dict):
        return None
    lat, lon = loc.get("lat"), loc.get("lon")
    if isinstance(lat, (int, float)) and isinstance(lon, (int, float)):
        return Coordinate(lat=float(lat), lon=float(lon))
    return None


def _parse_record(
    body: Any,
    designator: str,
    origin_hint: Optional[str] = None,
    dest_hint: Optional[str] = None,
) -> Optional[ResolvedFlightRecord]:
    leg = _pick_leg(_legs(body), origin_hint, dest_hint)
    if leg is None:
        return None

    dep = leg.get("departure") or {}
    arr = leg.get("arrival") or {}
    airline = leg.get("airline") or {}

    eta = (
        _parse_provider_time(arr.get("revisedTime"))
        or _parse_provider_time(arr.get("predictedTime"))
        or _parse_provider_time(arr.get("scheduledTime"))
    )

    return ResolvedFlightRecord(
        number=str(leg.get("number") or designator),
        carrier=airline.get("name") or airline.get("iata"),
        status=leg.get("status") or None,
        dep_airport=_airport_iata(dep) or None,
        arr_airport=_airport_iata(arr) or None,
        dep_scheduled=_parse_provider_time(dep.get("scheduledTime")),
        dep_revised=_parse_provider_time(dep.get("revisedTime")),
        arr_scheduled=_parse_provider_time(arr.get("scheduledTime")),
        eta=eta,
        gate_dep=dep.get("gate") or None,
        gate_arr=arr.get("gate") or None,
        terminal_dep=dep.get("terminal") or None,
        terminal_arr=arr.get("terminal") or None,
        location=_location(leg),
        raw=leg,
    )


def _extract_candidates(body: Any) -> List[Dict[str, Any]]:
    """Search results are a JSON array, or an object wrapping one in "items"."""
    if isinstance(body, dict):
        body = body.get("items")
    if not isinstance(body, list):
        return []
    return [c for c in body if isinstance(c, dict)]


def _candidate_number(candidate: Dict[str, Any]) -> Optional[str]:
    """Operating-carrier number wins over the marketing number."""
    for key in ("operatingFlight", "operating"):
        op = candidate.get(key)
        if isinstance(op, dict) and op.get("number"):
            return str(op["number"])
    number = candidate.get("number")
    return str(number) if number else None


def _failure_status(attempts: List[ProviderResponse]) -> int:
    for resp in attempts:
        if resp.status >= 400:
            return resp.status
    if any(200 <= resp.status < 300 for resp in attempts):
        return 404
    return 502


def _attempt_summary(designator: str, scheme: str, resp: ProviderResponse) -> Dict[str, Any]:
    return {
        "designator": designator,
        "searchBy": scheme,
        "status": resp.status,
        "error": resp.error.value if resp.error else None,
    }


# ─────────────────────────────────────────────────────────────────────────────
# RESOLVER
# ─────────────────────────────────────────────────────────────────────────────


class FlightResolver:
    """
    Resolves a designator to one flight record through an ordered cascade:

      1. by-number lookup, IATA scheme
      2. by-number lookup, ICAO scheme
      3. free-text search; the first candidate's number is looked up once more
         (steps 1-2 only, no further search)

    Nothing is cached between calls.
    """

    def __init__(self, client: AeroDataBoxClient) -> None:
        self._client = client

    async def _lookup(
        self,
        designator: str,
        date: str,
        attempts: List[ProviderResponse],
        summaries: List[Dict[str, Any]],
        origin_hint: Optional[str],
        dest_hint: Optional[str],
    ) -> Optional[Tuple[ResolvedFlightRecord, ProviderResponse]]:
        for scheme in IDENTIFIER_SCHEMES:
            resp = await self._client.flight_by_number(designator, date, scheme)
            attempts.append(resp)
            summaries.append(_attempt_summary(designator, scheme, resp))
            if not resp.ok:
                continue
            record = _parse_record(resp.body, designator, origin_hint, dest_hint)
            if record:
                log_event(
                    logger,
                    "resolver_lookup_hit",
                    designator=designator,
                    search_by=scheme,
                    number=record.number,
                )
                return record, resp
            log_event(
                logger,
                "resolver_lookup_unusable_body",
                level=logging.WARNING,
                designator=designator,
                search_by=scheme,
            )
        return None

    async def resolve(
        self,
        designator: str,
        date: str,
        *,
        origin_hint: Optional[str] = None,
        dest_hint: Optional[str] = None,
    ) -> ResolutionOutcome:
        # Credentials first, then parameters; neither touches the network
        self._client.require_key()
        term = normalize(designator)
        if not term or _parse_calendar_date(date) is None:
            raise InputError("missing params flight,date")
        date = date.strip()

        log_event(logger, "resolver_started", designator=term, date=date)

        attempts: List[ProviderResponse] = []
        summaries: List[Dict[str, Any]] = []

        hit = await self._lookup(term, date, attempts, summaries, origin_hint, dest_hint)
        if hit:
            record, resp = hit
            return ResolutionOutcome(
                kind="flight",
                status_code=200,
                designator=term,
                record=record,
                body=resp.body,
                diagnostics={"attempted": summaries},
            )

        search = await self._client.search_term(term)
        candidates = _extract_candidates(search.body) if search.ok else []
        search_summary = {
            "term": term,
            "status": search.status,
            "error": search.error.value if search.error else None,
            "candidates": len(candidates),
        }

        if candidates:
            number = _candidate_number(candidates[0])
            candidate = normalize(number)
            log_event(
                logger,
                "resolver_search_candidates",
                designator=term,
                count=len(candidates),
                candidate=candidate,
            )
            if candidate:
                hit = await self._lookup(candidate, date, attempts, summaries, origin_hint, dest_hint)
                if hit:
                    record, resp = hit
                    return ResolutionOutcome(
                        kind="flight",
                        status_code=200,
                        designator=candidate,
                        record=record,
                        body=resp.body,
                        diagnostics={"attempted": summaries, "search": search_summary},
                    )

            return ResolutionOutcome(
                kind="candidates",
                status_code=_failure_status(attempts),
                designator=term,
                candidates=candidates,
                body=search.body,
                diagnostics={"attempted": summaries, "search": search_summary},
            )

        status_code = _failure_status(attempts)
        log_event(
            logger,
            "resolver_exhausted",
            level=logging.WARNING,
            designator=term,
            date=date,
            status_code=status_code,
            attempts=len(summaries),
        )
        first_body = next((r.body for r in attempts if r.body), None)
        return ResolutionOutcome(
            kind="failure",
            status_code=status_code,
            designator=term,
            body=first_body,
            diagnostics={"attempted": summaries, "search": search_summary, "provider_body": first_body},
        )
