import pytest
from pydantic import ValidationError

from flight_tracker.itinerary import AIRPORTS, Airport, Itinerary, Segment


def _seg(**kw):
    base = dict(
        id="a", label="A", flight="LH 402", origin="FRA", dest="EWR",
        dep_local="2025-10-11T13:20", arr_local="2025-10-11T21:40",
    )
    base.update(kw)
    return Segment(**base)


def test_default_itinerary(itinerary):
    assert [s.id for s in itinerary.segments] == ["out1", "out2", "ret1", "ret2"]
    assert itinerary.first_segment.id == "out1"
    assert itinerary.segment("out2").flight_date == "2025-10-11"
    assert itinerary.segment("missing") is None
    assert itinerary.codeshares["UA8839"] == "LH402"


def test_itinerary_is_immutable(itinerary):
    with pytest.raises(ValidationError):
        itinerary.segment("out2").flight = "XX1"


def test_duplicate_segment_ids_rejected():
    with pytest.raises(ValidationError, match="duplicate segment id"):
        Itinerary(airports=AIRPORTS, segments=(_seg(), _seg()))


def test_unknown_airport_rejected():
    with pytest.raises(ValidationError, match="unknown airport"):
        Itinerary(airports=AIRPORTS, segments=(_seg(dest="JFK"),))


def test_unknown_time_zone_rejected():
    airports = dict(AIRPORTS)
    airports["XXX"] = Airport(iata="XXX", name="Nowhere", lat=0.0, lon=0.0, tz="Mars/Olympus")
    with pytest.raises(ValidationError, match="unknown time zone"):
        Itinerary(airports=airports, segments=(_seg(),))


def test_arrival_before_departure_rejected():
    with pytest.raises(ValidationError, match="arrives before it departs"):
        Itinerary(airports=AIRPORTS, segments=(_seg(arr_local="2025-10-11T05:00"),))
