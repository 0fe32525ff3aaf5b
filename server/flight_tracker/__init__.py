from __future__ import annotations

"""
flight_tracker package

Public API:
    - FlightResolver, ResolutionOutcome
    - AeroDataBoxClient, OpenSkyClient, OpenMeteoClient
    - ItineraryTracker, SegmentTracker
    - TimeWindowScheduler
    - Itinerary, default_itinerary
    - build_ics
"""

import logging

from logging_utils import log_event

from .config import AERODATABOX_KEY, POSITION_POLL_SECONDS, USE_OPENSKY
from .errors import ConfigurationError, ErrorKind, FlightTrackerError, InputError
from .models import ResolutionOutcome, ResolvedFlightRecord, SegmentView
from .itinerary import Airport, Itinerary, Segment, default_itinerary
from .normalizer import normalize, resolve_codeshare
from .aerodatabox_client import AeroDataBoxClient
from .opensky_client import OpenSkyClient
from .weather_client import OpenMeteoClient
from .resolver import FlightResolver
from .correlator import correlate, route_bounding_box
from .scheduler import TimeWindowScheduler
from .aggregator import ItineraryTracker, SegmentTracker
from .calendar_export import build_ics

# Which credentials are configured (length only, never the value)
log_event(
    logging.getLogger("flighttracker"),
    "flight_tracker_config",
    aerodatabox_key="SET" if AERODATABOX_KEY else "MISSING",
    aerodatabox_key_len=len(AERODATABOX_KEY or ""),
    use_opensky=USE_OPENSKY,
    position_poll_s=POSITION_POLL_SECONDS,
)

__all__ = [
    "AeroDataBoxClient",
    "Airport",
    "ConfigurationError",
    "ErrorKind",
    "FlightResolver",
    "FlightTrackerError",
    "InputError",
    "Itinerary",
    "ItineraryTracker",
    "OpenMeteoClient",
    "OpenSkyClient",
    "ResolutionOutcome",
    "ResolvedFlightRecord",
    "Segment",
    "SegmentTracker",
    "SegmentView",
    "TimeWindowScheduler",
    "build_ics",
    "correlate",
    "default_itinerary",
    "normalize",
    "resolve_codeshare",
    "route_bounding_box",
]
