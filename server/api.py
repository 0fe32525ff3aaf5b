from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import aiohttp
from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from config import CORS_ORIGINS
from logging_utils import configure_logging, log_event, new_request_id
from flight_tracker import (
    AeroDataBoxClient,
    FlightResolver,
    FlightTrackerError,
    ItineraryTracker,
    OpenMeteoClient,
    OpenSkyClient,
    build_ics,
    default_itinerary,
)
from flight_tracker.config import AERODATABOX_KEY, POSITION_POLL_SECONDS, USE_OPENSKY
from flight_tracker.errors import ErrorKind
from flight_tracker.models import BoundingBox

# ------------------------------------------------------------------------------
# APP + LOGGING SETUP
# ------------------------------------------------------------------------------

configure_logging()
logger = logging.getLogger("flighttracker.api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    session = aiohttp.ClientSession(headers={"Accept": "application/json"})
    aerodatabox = AeroDataBoxClient(AERODATABOX_KEY, session=session)
    opensky = OpenSkyClient(session=session)
    weather = OpenMeteoClient(session=session)
    resolver = FlightResolver(aerodatabox)
    tracker = ItineraryTracker(
        default_itinerary(),
        resolver,
        opensky,
        weather,
        poll_interval=POSITION_POLL_SECONDS,
        use_opensky=USE_OPENSKY,
    )

    app.state.resolver = resolver
    app.state.opensky = opensky
    app.state.weather = weather
    app.state.tracker = tracker

    tracker.start()
    log_event(logger, "app_started", segments=len(tracker.itinerary.segments))
    try:
        yield
    finally:
        await tracker.stop()
        await session.close()
        log_event(logger, "app_stopped")


app = FastAPI(title="Family Flight Tracker", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_origin_regex=r"http://localhost:\d+",
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ------------------------------------------------------------------------------
# REQUEST LOGGING MIDDLEWARE (Loki-ready)
# ------------------------------------------------------------------------------

@app.middleware("http")
async def request_logging_middleware(request: Request, call_next):
    rid = new_request_id()
    start = time.time()

    log_event(
        logger,
        "http_request_started",
        method=request.method,
        path=request.url.path,
        client_ip=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
        request_id=rid,
    )

    status_code = 500
    try:
        response = await call_next(request)
        status_code = response.status_code
        return response
    finally:
        duration_ms = int((time.time() - start) * 1000)
        log_event(
            logger,
            "http_request_finished",
            method=request.method,
            path=request.url.path,
            status_code=status_code,
            duration_ms=duration_ms,
            request_id=rid,
        )


@app.exception_handler(FlightTrackerError)
async def flight_tracker_error_handler(request: Request, exc: FlightTrackerError) -> JSONResponse:
    log_event(
        logger,
        "request_rejected",
        level=logging.WARNING,
        path=request.url.path,
        kind=exc.kind.value,
        error=exc.message,
    )
    return JSONResponse(exc.to_payload(), status_code=exc.status_code)


# ------------------------------------------------------------------------------
# DEPENDENCIES (overridden in tests)
# ------------------------------------------------------------------------------

def get_resolver(request: Request) -> FlightResolver:
    return request.app.state.resolver


def get_opensky(request: Request) -> OpenSkyClient:
    return request.app.state.opensky


def get_weather(request: Request) -> OpenMeteoClient:
    return request.app.state.weather


def get_tracker(request: Request) -> ItineraryTracker:
    return request.app.state.tracker


def _parse_bbox(*values: Optional[str]) -> Optional[BoundingBox]:
    if any(v is None or not v.strip() for v in values):
        return None
    try:
        lamin, lomin, lamax, lomax = (float(v) for v in values)
    except ValueError:
        return None
    return BoundingBox(lamin=lamin, lomin=lomin, lamax=lamax, lomax=lomax)


# ------------------------------------------------------------------------------
# ROUTES
# ------------------------------------------------------------------------------

@app.get("/health")
async def health() -> Dict[str, Any]:
    return {
        "status": "ok",
        "version": app.version,
        "aerodatabox_key": bool(AERODATABOX_KEY),
        "opensky": USE_OPENSKY,
        "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
    }


@app.get("/aerodatabox")
async def aerodatabox_proxy(
    flight: Optional[str] = Query(None),
    date: Optional[str] = Query(None),
    resolver: FlightResolver = Depends(get_resolver),
) -> JSONResponse:
    outcome = await resolver.resolve(flight or "", date or "")
    log_event(
        logger,
        "aerodatabox_proxy_result",
        designator=outcome.designator,
        outcome=outcome.kind,
        status_code=outcome.status_code,
    )
    return JSONResponse(outcome.payload(), status_code=outcome.status_code)


@app.get("/opensky")
async def opensky_proxy(
    lamin: Optional[str] = Query(None),
    lomin: Optional[str] = Query(None),
    lamax: Optional[str] = Query(None),
    lomax: Optional[str] = Query(None),
    opensky: OpenSkyClient = Depends(get_opensky),
) -> Response:
    bbox = _parse_bbox(lamin, lomin, lamax, lomax)
    if bbox is None:
        return JSONResponse({"error": "missing bbox"}, status_code=400)

    resp = await opensky.states_in_bbox(bbox)
    if resp.error == ErrorKind.NETWORK:
        return JSONResponse({"error": "fetch_failed"}, status_code=502)
    if resp.body is None or isinstance(resp.body, str):
        # Provider text (e.g. a rate-limit page) is passed through as is
        return Response(content=resp.body or "", media_type="text/plain", status_code=200)
    return JSONResponse(resp.body, status_code=200)


@app.get("/weather")
async def weather(
    latitude: float = Query(...),
    longitude: float = Query(...),
    timezone_name: str = Query("auto", alias="timezone"),
    client: OpenMeteoClient = Depends(get_weather),
) -> Dict[str, Any]:
    brief = await client.current(latitude, longitude, timezone_name)
    return brief.model_dump(mode="json")


@app.get("/segments")
async def list_segments(tracker: ItineraryTracker = Depends(get_tracker)) -> List[Dict[str, Any]]:
    return [view.model_dump(mode="json") for view in tracker.snapshots()]


@app.get("/segments/{segment_id}")
async def get_segment(segment_id: str, tracker: ItineraryTracker = Depends(get_tracker)) -> Dict[str, Any]:
    t = tracker.tracker(segment_id)
    if t is None:
        raise HTTPException(404, f"Unknown segment '{segment_id}'")
    return t.snapshot().model_dump(mode="json")


@app.post("/segments/{segment_id}/refresh")
async def refresh_segment(segment_id: str, tracker: ItineraryTracker = Depends(get_tracker)) -> Dict[str, Any]:
    view = await tracker.refresh(segment_id)
    if view is None:
        raise HTTPException(404, f"Unknown segment '{segment_id}'")
    return view.model_dump(mode="json")


@app.get("/countdown")
async def countdown(tracker: ItineraryTracker = Depends(get_tracker)) -> Dict[str, Any]:
    cd = tracker.countdown()
    if cd is None:
        raise HTTPException(404, "Itinerary has no segments")
    return cd.model_dump(mode="json")


@app.get("/calendar.ics")
async def calendar(tracker: ItineraryTracker = Depends(get_tracker)) -> Response:
    body = build_ics(tracker.itinerary, tracker.scheduler)
    return Response(
        content=body,
        media_type="text/calendar",
        headers={"Content-Disposition": 'attachment; filename="flights.ics"'},
    )
