from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Callable, Dict, List, Optional

from logging_utils import log_event, set_segment_id

from .config import PLACEHOLDER, POSITION_POLL_SECONDS, USE_OPENSKY
from .correlator import correlate, route_bounding_box
from .errors import FlightTrackerError
from .itinerary import Itinerary, Segment
from .models import (
    Coordinate,
    Countdown,
    LiveStatus,
    ResolutionOutcome,
    ResolvedFlightRecord,
    SegmentView,
    WeatherBrief,
)
from .normalizer import normalize, resolve_codeshare
from .opensky_client import OpenSkyClient
from .resolver import FlightResolver
from .scheduler import TimeWindowScheduler
from .tasks import PeriodicTask
from .utils import _utcnow
from .weather_client import OpenMeteoClient

logger = logging.getLogger("flighttracker.aggregator")

SECONDARY_FEED_STATUS = "Likely airborne (secondary feed)"


class SegmentTracker:
    """
    Owns the live status of one segment.

    Detail resolution and weather run once per `start()` (or on an explicit
    `refresh_details()`); position correlation runs on its own periodic task.
    Results that come back after `stop()` are dropped.
    """

    def __init__(
        self,
        segment: Segment,
        itinerary: Itinerary,
        resolver: FlightResolver,
        opensky: OpenSkyClient,
        weather: OpenMeteoClient,
        *,
        scheduler: Optional[TimeWindowScheduler] = None,
        poll_interval: float = POSITION_POLL_SECONDS,
        use_opensky: bool = USE_OPENSKY,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.segment = segment
        self._itinerary = itinerary
        self._resolver = resolver
        self._opensky = opensky
        self._weather = weather
        self._scheduler = scheduler or TimeWindowScheduler(itinerary)
        self._clock = clock

        self.status = LiveStatus()
        self.weather_dep = WeatherBrief()
        self.weather_arr = WeatherBrief()

        # Bumped by stop(); in-flight work compares before applying results
        self._generation = 0
        self._details_task: Optional[asyncio.Task] = None
        self._position_task: Optional[PeriodicTask] = (
            PeriodicTask(f"position:{segment.id}", poll_interval, self.poll_position)
            if use_opensky
            else None
        )

    # ── lifecycle ────────────────────────────────────────────────────────────

    def start(self) -> None:
        if self._details_task is not None and not self._details_task.done():
            return
        log_event(logger, "tracker_starting", segment=self.segment.id, flight=self.segment.flight)
        self._details_task = asyncio.create_task(self._initial_refresh(), name=f"details:{self.segment.id}")
        if self._position_task:
            self._position_task.start()

    async def stop(self) -> None:
        self._generation += 1
        if self._details_task is not None:
            self._details_task.cancel()
            try:
                await self._details_task
            except asyncio.CancelledError:
                pass
            self._details_task = None
        if self._position_task:
            await self._position_task.stop()
        log_event(logger, "tracker_stopped", segment=self.segment.id)

    async def _initial_refresh(self) -> None:
        set_segment_id(self.segment.id)
        try:
            await asyncio.gather(self.refresh_weather(), self.refresh_details())
        except Exception as e:
            log_event(
                logger,
                "tracker_initial_refresh_failed",
                level=logging.ERROR,
                segment=self.segment.id,
                error=str(e),
            )

    # ── polling ──────────────────────────────────────────────────────────────

    async def refresh_details(self) -> Optional[ResolutionOutcome]:
        """Resolve the segment through the provider cascade and merge the record."""
        set_segment_id(self.segment.id)
        generation = self._generation

        canonical = normalize(self.segment.flight)
        designator = resolve_codeshare(canonical, self._itinerary.codeshares)
        if designator != canonical:
            log_event(logger, "tracker_codeshare_applied", marketing=canonical, operating=designator)

        try:
            outcome = await self._resolver.resolve(
                designator,
                self.segment.flight_date,
                origin_hint=self.segment.origin,
                dest_hint=self.segment.dest,
            )
        except FlightTrackerError as e:
            log_event(
                logger,
                "tracker_details_unavailable",
                level=logging.WARNING,
                segment=self.segment.id,
                kind=e.kind.value,
                error=e.message,
            )
            return None

        if generation != self._generation:
            log_event(logger, "tracker_result_discarded", segment=self.segment.id, source="details")
            return outcome

        if outcome.record is not None:
            self.apply_primary(outcome.record)
        else:
            log_event(
                logger,
                "tracker_details_not_resolved",
                segment=self.segment.id,
                kind=outcome.kind,
                status_code=outcome.status_code,
            )
        return outcome

    async def refresh_weather(self) -> None:
        generation = self._generation
        origin = self._itinerary.airport(self.segment.origin)
        dest = self._itinerary.airport(self.segment.dest)
        dep, arr = await asyncio.gather(
            self._weather.current(origin.lat, origin.lon, origin.tz),
            self._weather.current(dest.lat, dest.lon, dest.tz),
        )
        if generation != self._generation:
            return
        self.weather_dep, self.weather_arr = dep, arr

    async def poll_position(self, now: Optional[datetime] = None) -> Optional[Coordinate]:
        """One correlation tick; returns the coordinate found, if any."""
        set_segment_id(self.segment.id)
        now = now or self._clock()

        if not self._scheduler.in_window(self.segment, now):
            self._clear_secondary()
            return None
        if self.status.position_source == "primary":
            return None

        generation = self._generation
        bbox = route_bounding_box(
            self._itinerary.airport(self.segment.origin),
            self._itinerary.airport(self.segment.dest),
        )
        states = await self._opensky.fetch_state_vectors(bbox)
        if generation != self._generation:
            log_event(logger, "tracker_result_discarded", segment=self.segment.id, source="position")
            return None

        coord = correlate(self.segment, states)
        if coord is not None:
            self.apply_secondary(coord, now)
        return coord

    # ── merging ──────────────────────────────────────────────────────────────

    def apply_primary(self, record: ResolvedFlightRecord, now: Optional[datetime] = None) -> None:
        """
        Replaces the live status with the record's fields. Only a secondary
        coordinate survives, and only while the record carries no location.
        """
        prev = self.status
        st = LiveStatus(
            status=record.status,
            gate_dep=record.gate_dep,
            gate_arr=record.gate_arr,
            eta=record.eta,
            updated_at=now or self._clock(),
        )
        if record.location is not None:
            st.position = record.location
            st.position_source = "primary"
        elif prev.position_source == "secondary":
            st.position = prev.position
            st.position_source = "secondary"
            if not st.status:
                st.status = SECONDARY_FEED_STATUS
        self.status = st
        log_event(
            logger,
            "tracker_primary_applied",
            segment=self.segment.id,
            number=record.number,
            status=st.status,
            has_position=record.location is not None,
        )

    def apply_secondary(self, coord: Coordinate, now: Optional[datetime] = None) -> None:
        st = self.status
        if st.position_source == "primary":
            return
        st.position = coord
        st.position_source = "secondary"
        if not st.status:
            st.status = SECONDARY_FEED_STATUS
        st.updated_at = now or self._clock()

    def _clear_secondary(self) -> None:
        st = self.status
        if st.position_source == "secondary":
            st.position = None
            st.position_source = None
            if st.status == SECONDARY_FEED_STATUS:
                st.status = None

    # ── view ─────────────────────────────────────────────────────────────────

    def snapshot(self, now: Optional[datetime] = None) -> SegmentView:
        now = now or self._clock()
        seg = self.segment
        st = self.status
        return SegmentView(
            id=seg.id,
            label=seg.label,
            flight=seg.flight,
            origin=seg.origin,
            dest=seg.dest,
            departure_local=seg.dep_local,
            arrival_local=seg.arr_local,
            departure_utc=self._scheduler.departure_utc(seg),
            arrival_utc=self._scheduler.arrival_utc(seg),
            status_text=st.status or self._scheduler.infer_status(seg, now),
            gate_dep=st.gate_dep or PLACEHOLDER,
            gate_arr=st.gate_arr or PLACEHOLDER,
            eta=st.eta,
            position=st.position,
            position_source=st.position_source,
            in_window=self._scheduler.in_window(seg, now),
            weather_dep=self.weather_dep,
            weather_arr=self.weather_arr,
        )


class ItineraryTracker:
    """One SegmentTracker per itinerary segment, sharing the provider clients."""

    def __init__(
        self,
        itinerary: Itinerary,
        resolver: FlightResolver,
        opensky: OpenSkyClient,
        weather: OpenMeteoClient,
        *,
        poll_interval: float = POSITION_POLL_SECONDS,
        use_opensky: bool = USE_OPENSKY,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.itinerary = itinerary
        self.resolver = resolver
        self.opensky = opensky
        self.weather = weather
        self.scheduler = TimeWindowScheduler(itinerary)
        self._clock = clock
        self._trackers: Dict[str, SegmentTracker] = {
            seg.id: SegmentTracker(
                seg,
                itinerary,
                resolver,
                opensky,
                weather,
                scheduler=self.scheduler,
                poll_interval=poll_interval,
                use_opensky=use_opensky,
                clock=clock,
            )
            for seg in itinerary.segments
        }

    def tracker(self, segment_id: str) -> Optional[SegmentTracker]:
        return self._trackers.get(segment_id)

    def start(self) -> None:
        log_event(logger, "itinerary_tracking_started", segments=len(self._trackers))
        for t in self._trackers.values():
            t.start()

    async def stop(self) -> None:
        await asyncio.gather(*(t.stop() for t in self._trackers.values()))
        log_event(logger, "itinerary_tracking_stopped", segments=len(self._trackers))

    def snapshots(self, now: Optional[datetime] = None) -> List[SegmentView]:
        now = now or self._clock()
        return [t.snapshot(now) for t in self._trackers.values()]

    async def refresh(self, segment_id: str) -> Optional[SegmentView]:
        t = self._trackers.get(segment_id)
        if t is None:
            return None
        await t.refresh_details()
        return t.snapshot()

    def countdown(self, now: Optional[datetime] = None) -> Optional[Countdown]:
        first = self.itinerary.first_segment
        if first is None:
            return None
        return self.scheduler.countdown(first, now or self._clock())
