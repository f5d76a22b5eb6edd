"""Tests for the geographic, mode and date filters and their cascades."""

from __future__ import annotations

import pytest

from transit_feed.models import Date
from transit_feed.services.gtfs_static.errors import ParseError
from transit_feed.services.gtfs_static.feed import Feed

from .fixtures.gtfs_fixture import DOWNTOWN_RING, build_gtfs_zip, make_settings


def _parse(settings: dict, **tables: object) -> Feed:
    feed = Feed(make_settings(**settings))
    feed.parse(build_gtfs_zip(**tables))
    return feed


class TestPolygonFilter:
    """Stops outside the polygons are removed together with everything referencing them."""

    EXTRA = {
        "transfers.txt": "from_stop_id,to_stop_id,transfer_type\n50001,50003,0\n50001,50002,0\n",
        "pathways.txt": (
            "pathway_id,from_stop_id,to_stop_id,pathway_mode,is_bidirectional\n"
            "P1,50001,50003,1,1\n"
        ),
        "fare_attributes.txt": "fare_id,price,currency_type,payment_method\nF1,2.50,CAD,0\n",
        "fare_rules.txt": "fare_id,origin_id,destination_id\nF1,ZN1,ZN1\nF1,ZN1,ZN2\n",
    }

    def test_outside_stops_filtered(self) -> None:
        feed = _parse({"polygons": [DOWNTOWN_RING]})
        assert "50003" not in feed.stops
        assert feed.filtered_stops == {"50003"}
        assert {"STN1", "50001", "50002"} <= set(feed.stops)

    def test_references_to_filtered_stops_are_skipped_silently(self) -> None:
        feed = _parse({"polygons": [DOWNTOWN_RING]}, extra_files=self.EXTRA)
        assert [st.stop_id for st in feed.trips["trip-001-001"].stop_times] == ["50001", "50002"]
        assert [st.stop_id for st in feed.trips["trip-001-002"].stop_times] == ["50002", "50001"]
        assert [k.to_stop_id for k in feed.transfers] == ["50002"]
        assert feed.pathways == {}
        assert all(count == 0 for count in feed.dropped_counts().values())
        assert feed.report is not None
        assert feed.report.counts["stop_times.txt"]["filtered"] == 2
        assert feed.report.incomplete_trips == {"trip-001-001": 1, "trip-001-002": 1}

    def test_zone_of_filtered_stops_only_suppresses_fare_rule(self) -> None:
        feed = _parse({"polygons": [DOWNTOWN_RING]}, extra_files=self.EXTRA)
        assert feed.filtered_zones == {"ZN2"}
        rules = feed.fare_attributes["F1"].rules
        assert [(r.origin_id, r.destination_id) for r in rules] == [("ZN1", "ZN1")]

    def test_unknown_zone_still_fatal(self) -> None:
        extra = {**self.EXTRA, "fare_rules.txt": "fare_id,origin_id\nF1,ZN9\n"}
        with pytest.raises(ParseError, match="No zone with id 'ZN9'"):
            _parse({"polygons": [DOWNTOWN_RING]}, extra_files=extra)

    def test_unknown_stop_still_fatal(self) -> None:
        extra = {"transfers.txt": "from_stop_id,to_stop_id\n50001,99999\n"}
        with pytest.raises(ParseError, match="No stop with id '99999'"):
            _parse({"polygons": [DOWNTOWN_RING]}, extra_files=extra)

    def test_stops_without_coordinates_are_kept(self) -> None:
        stops = """\
stop_id,stop_name,stop_lat,stop_lon,location_type,parent_station
FAR,Far away,10.0,10.0,1,
N1,Node,,,3,FAR
50001,Waterfront,49.2856580,-123.1115350,0,
50002,Burrard,49.2855110,-123.1205140,0,
50003,Granville,49.2856,-123.1161,0,
"""
        feed = _parse({"polygons": [DOWNTOWN_RING]}, stops=stops)
        assert "FAR" in feed.filtered_stops
        assert feed.stops["N1"].parent_id is None


class TestModeFilter:
    """Routes of other modes are removed together with their trips."""

    EXTRA = {
        "frequencies.txt": (
            "trip_id,start_time,end_time,headway_secs\n"
            "trip-002-001,25:00:00,26:00:00,600\n"
            "trip-001-001,06:00:00,09:00:00,900\n"
        ),
        "fare_attributes.txt": "fare_id,price,currency_type,payment_method\nF1,2.50,CAD,0\n",
        "fare_rules.txt": "fare_id,route_id\nF1,002\nF1,001\n",
        "attributions.txt": "organization_name,is_operator,route_id\nSkyTrain,1,002\n",
        "transfers.txt": (
            "from_stop_id,to_stop_id,from_trip_id,to_trip_id\n"
            "50001,50002,trip-002-001,trip-001-001\n"
        ),
    }

    def test_route_and_dependents_filtered(self) -> None:
        feed = _parse({"route_types": [3]}, extra_files=self.EXTRA)
        assert set(feed.routes) == {"001"}
        assert feed.filtered_routes == {"002"}
        assert feed.filtered_trips == {"trip-002-001"}
        assert "trip-002-001" not in feed.trips
        assert [f.headway_secs for f in feed.trips["trip-001-001"].frequencies] == [900]
        assert [r.route_id for r in feed.fare_attributes["F1"].rules] == ["001"]
        assert feed.attributions == []
        assert feed.transfers == {}
        assert all(count == 0 for count in feed.dropped_counts().values())

    def test_extended_type_matches_basic_type(self) -> None:
        routes = "route_id,route_short_name,route_type\n001,1,700\n002,2,401\n"
        feed = _parse({"route_types": [3]}, routes=routes)
        assert set(feed.routes) == {"001"}
        assert feed.routes["001"].type == 700

    def test_standard_route_types(self) -> None:
        routes = "route_id,route_short_name,route_type\n001,1,700\n002,2,401\n"
        feed = _parse({"use_standard_route_types": True}, routes=routes)
        assert feed.routes["001"].type == 3
        assert feed.routes["002"].type == 1

    def test_duplicate_of_filtered_route_is_collision(self) -> None:
        routes = "route_id,route_short_name,route_type\n001,1,3\n002,2,1\n002,2b,1\n"
        with pytest.raises(ParseError, match="ID collision, route_id '002'"):
            _parse({"route_types": [3]}, routes=routes)


class TestDateFilter:
    """Calendars are clipped to the window and trips without service are pruned."""

    WINDOW = {"date_filter_start": "20240701", "date_filter_end": "20241231"}

    def test_calendar_clipped(self) -> None:
        feed = _parse(self.WINDOW)
        service = feed.services["WD"]
        assert service.start_date == Date(2024, 7, 1)
        assert service.end_date == Date(2024, 12, 31)

    def test_trips_without_active_days_pruned(self) -> None:
        frequencies = (
            "trip_id,start_time,end_time,headway_secs\ntrip-002-001,25:00:00,26:00:00,600\n"
        )
        feed = _parse(self.WINDOW, extra_files={"frequencies.txt": frequencies})
        assert "trip-002-001" not in feed.trips
        assert "trip-002-001" in feed.filtered_trips
        assert "WE" not in feed.services
        assert feed.report is not None
        assert feed.report.counts["frequencies.txt"]["filtered"] == 1
        assert all(count == 0 for count in feed.dropped_counts().values())

    def test_exceptions_outside_window_ignored(self) -> None:
        calendar_dates = (
            "service_id,date,exception_type\n"
            "WD,20240101,2\n"
            "WD,20240704,2\n"
            "HOL,20240101,1\n"
        )
        trips = (
            "route_id,service_id,trip_id\n"
            "001,WD,trip-001-001\n"
            "001,HOL,trip-hol\n"
            "002,WE,trip-002-001\n"
            "001,WD,trip-001-002\n"
        )
        feed = _parse(
            self.WINDOW, trips=trips, extra_files={"calendar_dates.txt": calendar_dates}
        )
        assert set(feed.services["WD"].exceptions) == {Date(2024, 7, 4)}
        assert "trip-hol" not in feed.trips
        assert "HOL" not in feed.services

    def test_no_window_keeps_everything(self) -> None:
        feed = _parse({})
        assert feed.services["WE"].end_date == Date(2024, 6, 30)
        assert "trip-002-001" in feed.trips

    def test_open_ended_window(self) -> None:
        feed = _parse({"date_filter_end": "20231231"})
        assert feed.trips == {}
        assert feed.services == {}
