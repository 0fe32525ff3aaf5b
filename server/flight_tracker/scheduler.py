from __future__ import annotations

from datetime import datetime, timedelta

from .config import LIVE_WINDOW
from .itinerary import Itinerary, Segment
from .models import Countdown
from .utils import _as_utc, _local_to_utc

STATUS_SCHEDULED = "Scheduled"
STATUS_AIRBORNE = "Likely airborne"
STATUS_LANDED = "Likely landed"


class TimeWindowScheduler:
    """
    Decides when live tracking is worth a network call for a segment, and
    infers a coarse status from the clock alone when nothing better is known.
    """

    def __init__(self, itinerary: Itinerary, window: timedelta = LIVE_WINDOW) -> None:
        self._itinerary = itinerary
        self._window = window

    def departure_utc(self, segment: Segment) -> datetime:
        return _local_to_utc(segment.dep_local, self._itinerary.airport(segment.origin).tz)

    def arrival_utc(self, segment: Segment) -> datetime:
        return _local_to_utc(segment.arr_local, self._itinerary.airport(segment.dest).tz)

    def in_window(self, segment: Segment, now: datetime) -> bool:
        now = _as_utc(now)
        start = self.departure_utc(segment) - self._window
        end = self.arrival_utc(segment) + self._window
        return start <= now <= end

    def infer_status(self, segment: Segment, now: datetime) -> str:
        now = _as_utc(now)
        dep = self.departure_utc(segment)
        arr = self.arrival_utc(segment)
        if dep <= now <= arr:
            return STATUS_AIRBORNE
        if now < dep:
            return STATUS_SCHEDULED
        return STATUS_LANDED

    def countdown(self, segment: Segment, now: datetime) -> Countdown:
        target = self.departure_utc(segment)
        remaining = int((target - _as_utc(now)).total_seconds())
        is_past = remaining < 0
        remaining = max(0, remaining)
        days, rest = divmod(remaining, 86400)
        hours, rest = divmod(rest, 3600)
        minutes, seconds = divmod(rest, 60)
        return Countdown(
            days=days,
            hours=hours,
            minutes=minutes,
            seconds=seconds,
            is_past=is_past,
            target_utc=target,
        )
