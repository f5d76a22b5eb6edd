"""Tests for extra-column retention, entity deletion and dry runs."""

from __future__ import annotations

from transit_feed.models import Date
from transit_feed.services.gtfs_static.feed import Feed

from .fixtures.gtfs_fixture import build_gtfs_zip, make_settings

STOPS_WITH_EXTRA = """\
stop_id,stop_name,stop_lat,stop_lon,location_type,parent_station,platform_color
STN1,Waterfront Station,49.2856580,-123.1115350,1,,
50001,Waterfront Platform 1,49.2856580,-123.1115350,0,STN1,red
50002,Burrard Station,49.2855110,-123.1205140,0,,blue
50003,Granville Station,49.2832750,-123.1161310,0,,
"""

STOP_TIMES_WITH_EXTRA = """\
trip_id,arrival_time,departure_time,stop_id,stop_sequence,note
trip-001-001,06:30:00,06:30:00,50001,1,first
trip-001-001,06:35:00,06:35:00,50002,2,
trip-001-002,07:00:00,07:00:00,50003,1,other
"""

EXTRA_FILES = {
    "calendar_dates.txt": "service_id,date,exception_type,reason\nWD,20240701,2,Canada Day\n",
    "fare_attributes.txt": (
        "fare_id,price,currency_type,payment_method,zone_label\nF1,2.50,CAD,0,One zone\n"
    ),
    "fare_rules.txt": "fare_id,route_id,rule_note\nF1,001,bus\n",
    "attributions.txt": "organization_name,is_producer,contact\nOpenData,1,desk\n",
    "feed_info.txt": (
        "feed_publisher_name,feed_publisher_url,feed_lang,build\n"
        "TransLink,https://www.translink.ca,en,42\n"
    ),
}


def _parse(**settings: object) -> Feed:
    feed = Feed(make_settings(**settings))
    feed.parse(
        build_gtfs_zip(
            stops=STOPS_WITH_EXTRA, stop_times=STOP_TIMES_WITH_EXTRA, extra_files=EXTRA_FILES
        )
    )
    return feed


class TestExtraColumns:
    """Tests for keeping columns no builder interprets."""

    def test_not_kept_by_default(self) -> None:
        feed = _parse()
        assert feed.extra_fields == {}

    def test_values_keyed_by_record(self) -> None:
        feed = _parse(keep_extra_columns=True)
        extra = feed.extra_fields
        assert extra["stops.txt"]["platform_color"] == {"50001": "red", "50002": "blue"}
        assert extra["stop_times.txt"]["note"] == {
            ("trip-001-001", 1): "first",
            ("trip-001-002", 1): "other",
        }
        assert extra["calendar_dates.txt"]["reason"] == {("WD", Date(2024, 7, 1)): "Canada Day"}
        assert extra["fare_attributes.txt"]["zone_label"] == {"F1": "One zone"}
        assert extra["fare_rules.txt"]["rule_note"] == {("F1", 0): "bus"}
        assert extra["attributions.txt"]["contact"] == {2: "desk"}
        assert extra["feed_info.txt"]["build"] == {2: "42"}

    def test_column_order_recorded(self) -> None:
        feed = _parse()
        assert feed.column_order["stops.txt"][-1] == "platform_color"
        assert feed.column_order["stop_times.txt"][0] == "trip_id"


class TestDeletion:
    """Deleting an entity also removes its own and its children's extra values."""

    def test_delete_stop(self) -> None:
        feed = _parse(keep_extra_columns=True)
        feed.delete_stop("50001")
        assert "50001" not in feed.stops
        assert feed.extra_fields["stops.txt"]["platform_color"] == {"50002": "blue"}

    def test_delete_trip_removes_stop_time_values(self) -> None:
        feed = _parse(keep_extra_columns=True)
        feed.delete_trip("trip-001-001")
        assert "trip-001-001" not in feed.trips
        assert feed.extra_fields["stop_times.txt"]["note"] == {("trip-001-002", 1): "other"}

    def test_delete_service_removes_exception_values(self) -> None:
        feed = _parse(keep_extra_columns=True)
        feed.delete_service("WD")
        assert "WD" not in feed.services
        assert feed.extra_fields["calendar_dates.txt"]["reason"] == {}

    def test_delete_fare_attribute_removes_rule_values(self) -> None:
        feed = _parse(keep_extra_columns=True)
        feed.delete_fare_attribute("F1")
        assert feed.fare_attributes == {}
        assert feed.extra_fields["fare_rules.txt"]["rule_note"] == {}
        assert feed.extra_fields["fare_attributes.txt"]["zone_label"] == {}

    def test_delete_attribution(self) -> None:
        feed = _parse(keep_extra_columns=True)
        feed.delete_attribution(feed.attributions[0])
        assert feed.attributions == []
        assert feed.extra_fields["attributions.txt"]["contact"] == {}

    def test_delete_unknown_ids_is_noop(self) -> None:
        feed = _parse()
        feed.delete_route("nope")
        feed.delete_agency("nope")
        feed.delete_level("nope")
        feed.delete_shape("nope")
        feed.delete_pathway("nope")
        assert len(feed.routes) == 2


class TestDryRun:
    """A dry run validates everything but keeps no bulk data."""

    def test_bulk_data_released(self) -> None:
        feed = _parse(dry_run=True, keep_extra_columns=True)
        assert all(trip.stop_times == [] for trip in feed.trips.values())
        assert feed.feed_infos == []
        assert feed.extra_fields == {}
        assert feed.report is not None
        assert feed.report.counts["stop_times.txt"]["kept"] == 3

    def test_translations_counted_not_kept(self) -> None:
        translations = (
            "table_name,field_name,language,translation,record_id\n"
            "stops,stop_name,fr,Gare,STN1\n"
        )
        feed = Feed(make_settings(dry_run=True))
        feed.parse(build_gtfs_zip(extra_files={"translations.txt": translations}))
        assert feed.translations == []
        assert feed.translation_count == 1

    def test_shape_points_released(self) -> None:
        shapes = "shape_id,shape_pt_lat,shape_pt_lon,shape_pt_sequence\nS1,49.28,-123.11,1\n"
        feed = Feed(make_settings(dry_run=True))
        feed.parse(build_gtfs_zip(extra_files={"shapes.txt": shapes}))
        assert feed.shapes["S1"].points == []
