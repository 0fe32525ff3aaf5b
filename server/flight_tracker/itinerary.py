from __future__ import annotations

from datetime import datetime
from typing import Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .models import Coordinate
from .utils import _local_to_utc


class Airport(BaseModel):
    model_config = ConfigDict(frozen=True)

    iata: str
    name: str
    lat: float
    lon: float
    tz: str

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(lat=self.lat, lon=self.lon)


class Segment(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    label: str
    flight: str = Field(..., description="Designator as written, e.g. 'UA 8839'")
    origin: str = Field(..., description="Origin airport IATA code")
    dest: str = Field(..., description="Destination airport IATA code")
    dep_local: str = Field(..., description="Scheduled departure, origin wall clock")
    arr_local: str = Field(..., description="Scheduled arrival, destination wall clock")

    @property
    def flight_date(self) -> str:
        """Operating date (YYYY-MM-DD) in the origin's local calendar."""
        return datetime.fromisoformat(self.dep_local).date().isoformat()


class Itinerary(BaseModel):
    """
    Static trip configuration, fixed for the lifetime of the process.
    Segments reference airports by code; lookups go through `airport()`.
    """

    model_config = ConfigDict(frozen=True)

    title: str = ""
    airports: Dict[str, Airport]
    segments: Tuple[Segment, ...]
    codeshares: Dict[str, str] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_segments(self) -> "Itinerary":
        for ap in self.airports.values():
            try:
                ZoneInfo(ap.tz)
            except (ZoneInfoNotFoundError, ValueError) as e:
                raise ValueError(f"airport {ap.iata}: unknown time zone {ap.tz!r}") from e

        seen = set()
        for seg in self.segments:
            if seg.id in seen:
                raise ValueError(f"duplicate segment id {seg.id!r}")
            seen.add(seg.id)
            for code in (seg.origin, seg.dest):
                if code not in self.airports:
                    raise ValueError(f"segment {seg.id}: unknown airport {code!r}")
            try:
                dep = _local_to_utc(seg.dep_local, self.airports[seg.origin].tz)
                arr = _local_to_utc(seg.arr_local, self.airports[seg.dest].tz)
            except ValueError as e:
                raise ValueError(f"segment {seg.id}: bad timestamp ({e})") from e
            if arr < dep:
                raise ValueError(f"segment {seg.id}: arrives before it departs")
        return self

    def airport(self, code: str) -> Airport:
        return self.airports[code]

    def segment(self, segment_id: str) -> Optional[Segment]:
        for seg in self.segments:
            if seg.id == segment_id:
                return seg
        return None

    @property
    def first_segment(self) -> Optional[Segment]:
        return self.segments[0] if self.segments else None


AIRPORTS: Dict[str, Airport] = {
    "DRS": Airport(iata="DRS", name="Dresden", lat=51.1343, lon=13.7671, tz="Europe/Berlin"),
    "FRA": Airport(iata="FRA", name="Frankfurt/Main", lat=50.0379, lon=8.5622, tz="Europe/Berlin"),
    "EWR": Airport(iata="EWR", name="Newark Liberty", lat=40.6895, lon=-74.1745, tz="America/New_York"),
}

# United-marketed designators -> Lufthansa operating flight
CODESHARES: Dict[str, str] = {
    "UA8839": "LH402",
    "UA8838": "LH403",
}

SEGMENTS: Tuple[Segment, ...] = (
    Segment(id="out1", label="Outbound 1", flight="UA 9001", origin="DRS", dest="FRA",
            dep_local="2025-10-11T10:45", arr_local="2025-10-11T11:50"),
    Segment(id="out2", label="Outbound 2", flight="UA 8839", origin="FRA", dest="EWR",
            dep_local="2025-10-11T13:20", arr_local="2025-10-11T21:40"),
    Segment(id="ret1", label="Return 1", flight="UA 8838", origin="EWR", dest="FRA",
            dep_local="2025-10-18T18:00", arr_local="2025-10-19T07:30"),
    Segment(id="ret2", label="Return 2", flight="UA 9050", origin="FRA", dest="DRS",
            dep_local="2025-10-19T09:15", arr_local="2025-10-19T10:15"),
)


def default_itinerary() -> Itinerary:
    return Itinerary(
        title="Family visit, DRS - EWR via FRA, October 2025",
        airports=dict(AIRPORTS),
        segments=SEGMENTS,
        codeshares=dict(CODESHARES),
    )
