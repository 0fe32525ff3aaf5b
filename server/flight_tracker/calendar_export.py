"""iCalendar export of every itinerary segment."""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from .itinerary import Itinerary
from .scheduler import TimeWindowScheduler
from .utils import _as_utc, _utcnow

PRODID = "-//Family Flight Tracker//EN"
UID_DOMAIN = "family-flight-tracker"
CRLF = "\r\n"


def _ics_time(dt: datetime) -> str:
    return _as_utc(dt).strftime("%Y%m%dT%H%M%SZ")


def _escape(text: str) -> str:
    return (
        text.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\n", "\\n")
    )


def build_ics(
    itinerary: Itinerary,
    scheduler: Optional[TimeWindowScheduler] = None,
    now: Optional[datetime] = None,
) -> str:
    """
    One VEVENT per segment, start/end in UTC:

        SUMMARY:UA 8839 FRA->EWR
        LOCATION:Frankfurt/Main (FRA)->Newark Liberty (EWR)
    """
    scheduler = scheduler or TimeWindowScheduler(itinerary)
    stamp = _ics_time(now or _utcnow())

    lines: List[str] = ["BEGIN:VCALENDAR", "VERSION:2.0", f"PRODID:{PRODID}"]
    for seg in itinerary.segments:
        origin = itinerary.airport(seg.origin)
        dest = itinerary.airport(seg.dest)
        lines += [
            "BEGIN:VEVENT",
            f"UID:{seg.id}@{UID_DOMAIN}",
            f"DTSTAMP:{stamp}",
            f"DTSTART:{_ics_time(scheduler.departure_utc(seg))}",
            f"DTEND:{_ics_time(scheduler.arrival_utc(seg))}",
            f"SUMMARY:{_escape(f'{seg.flight} {origin.iata}->{dest.iata}')}",
            f"LOCATION:{_escape(f'{origin.name} ({origin.iata})->{dest.name} ({dest.iata})')}",
            "END:VEVENT",
        ]
    lines.append("END:VCALENDAR")
    return CRLF.join(lines) + CRLF
