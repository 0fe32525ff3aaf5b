from __future__ import annotations

import logging
from typing import Iterable, Optional

from logging_utils import log_event

from .config import BBOX_SPAN_DEG
from .itinerary import Airport, Segment
from .models import BoundingBox, Coordinate, StateVector
from .normalizer import numeric_part

logger = logging.getLogger("flighttracker.correlator")


def route_bounding_box(origin: Airport, dest: Airport, span: float = BBOX_SPAN_DEG) -> BoundingBox:
    """Square of +/- `span` degrees around the midpoint of the two airports."""
    lat_mid = (origin.lat + dest.lat) / 2
    lon_mid = (origin.lon + dest.lon) / 2
    return BoundingBox(
        lamin=lat_mid - span,
        lomin=lon_mid - span,
        lamax=lat_mid + span,
        lomax=lon_mid + span,
    )


def correlate(segment: Segment, state_vectors: Iterable[StateVector]) -> Optional[Coordinate]:
    """
    First state vector whose callsign contains the segment's flight digits.

    Matching is by substring: "UA 8839" matches "UAL8839",
    "DLH8839" or " 8839  ". Two flights sharing those digits inside the same
    box cannot be told apart.
    """
    num = numeric_part(segment.flight)
    if not num:
        return None

    for sv in state_vectors or ():
        if num in (sv.callsign or "").upper() and sv.lat is not None and sv.lon is not None:
            log_event(
                logger,
                "correlator_match",
                segment=segment.id,
                callsign=sv.callsign,
                icao24=sv.icao24,
            )
            return Coordinate(lat=sv.lat, lon=sv.lon)
    return None
