from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from .errors import ErrorKind


class Coordinate(BaseModel):
    model_config = ConfigDict(frozen=True)

    lat: float
    lon: float


class BoundingBox(BaseModel):
    model_config = ConfigDict(frozen=True)

    lamin: float
    lomin: float
    lamax: float
    lomax: float

    def as_params(self) -> Dict[str, str]:
        return {
            "lamin": str(self.lamin),
            "lomin": str(self.lomin),
            "lamax": str(self.lamax),
            "lomax": str(self.lomax),
        }


class ProviderResponse(BaseModel):
    """Outcome of one outbound call; `error` is None only on success."""

    provider: str
    url: str
    status: int = 0
    body: Any = None
    error: Optional[ErrorKind] = None
    elapsed_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None


class ResolvedFlightRecord(BaseModel):
    number: str
    carrier: Optional[str] = None
    status: Optional[str] = None
    dep_airport: Optional[str] = None
    arr_airport: Optional[str] = None
    dep_scheduled: Optional[datetime] = None
    dep_revised: Optional[datetime] = None
    arr_scheduled: Optional[datetime] = None
    eta: Optional[datetime] = None
    gate_dep: Optional[str] = None
    gate_arr: Optional[str] = None
    terminal_dep: Optional[str] = None
    terminal_arr: Optional[str] = None
    location: Optional[Coordinate] = None
    raw: Dict[str, Any] = Field(default_factory=dict)


class ResolutionOutcome(BaseModel):
    kind: Literal["flight", "candidates", "failure"]
    status_code: int
    designator: str
    record: Optional[ResolvedFlightRecord] = None
    candidates: List[Dict[str, Any]] = Field(default_factory=list)
    body: Any = None
    diagnostics: Dict[str, Any] = Field(default_factory=dict)

    def payload(self) -> Any:
        """Response body for the HTTP proxy."""
        if self.kind == "flight":
            return self.body
        if self.kind == "candidates":
            return {"kind": "candidates", "designator": self.designator, "candidates": self.candidates}
        return {"error": "flight_not_found", "designator": self.designator, **self.diagnostics}


class StateVector(BaseModel):
    callsign: str = ""
    lat: Optional[float] = None
    lon: Optional[float] = None
    icao24: Optional[str] = None
    raw: List[Any] = Field(default_factory=list)


class WeatherBrief(BaseModel):
    temp_c: Optional[float] = None
    wind_kph: Optional[float] = None
    time: Optional[str] = None


class LiveStatus(BaseModel):
    status: Optional[str] = None
    gate_dep: Optional[str] = None
    gate_arr: Optional[str] = None
    eta: Optional[datetime] = None
    position: Optional[Coordinate] = None
    position_source: Optional[Literal["primary", "secondary"]] = None
    updated_at: Optional[datetime] = None


class Countdown(BaseModel):
    days: int
    hours: int
    minutes: int
    seconds: int
    is_past: bool
    target_utc: datetime


class SegmentView(BaseModel):
    id: str
    label: str
    flight: str
    origin: str
    dest: str
    departure_local: str
    arrival_local: str
    departure_utc: datetime
    arrival_utc: datetime
    status_text: str
    gate_dep: str
    gate_arr: str
    eta: Optional[datetime] = None
    position: Optional[Coordinate] = None
    position_source: Optional[str] = None
    in_window: bool = False
    weather_dep: WeatherBrief = Field(default_factory=WeatherBrief)
    weather_arr: WeatherBrief = Field(default_factory=WeatherBrief)
