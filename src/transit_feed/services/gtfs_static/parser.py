"""GTFS CSV record source with column validation and streaming."""

from __future__ import annotations

import csv
import zipfile
import zlib
from typing import IO, TYPE_CHECKING

from transit_feed.logging import get_logger
from transit_feed.services.gtfs_static.errors import FeedIOError, MissingColumnError

if TYPE_CHECKING:
    from collections.abc import Iterator

logger = get_logger(__name__)

_BOMS = ("\ufeff", "\ufffe")

# Columns without which a table cannot be interpreted at all
REQUIRED_COLUMNS: dict[str, tuple[str, ...]] = {
    "agency.txt": ("agency_name", "agency_url", "agency_timezone"),
    "stops.txt": ("stop_id",),
    "routes.txt": ("route_id", "route_type"),
    "trips.txt": ("route_id", "service_id", "trip_id"),
    "stop_times.txt": ("trip_id", "stop_id", "stop_sequence"),
    "calendar.txt": (
        "service_id",
        "monday",
        "tuesday",
        "wednesday",
        "thursday",
        "friday",
        "saturday",
        "sunday",
        "start_date",
        "end_date",
    ),
    "calendar_dates.txt": ("service_id", "date", "exception_type"),
    "shapes.txt": ("shape_id", "shape_pt_lat", "shape_pt_lon", "shape_pt_sequence"),
    "frequencies.txt": ("trip_id", "start_time", "end_time", "headway_secs"),
    "transfers.txt": ("from_stop_id", "to_stop_id"),
    "fare_attributes.txt": ("fare_id", "price", "currency_type", "payment_method"),
    "fare_rules.txt": ("fare_id",),
    "pathways.txt": ("pathway_id", "from_stop_id", "to_stop_id", "pathway_mode"),
    "levels.txt": ("level_id",),
    "feed_info.txt": ("feed_publisher_name", "feed_publisher_url", "feed_lang"),
    "attributions.txt": ("organization_name",),
    "translations.txt": ("table_name", "field_name", "language", "translation"),
}

# Every column the builders interpret; anything else is an extra column
KNOWN_COLUMNS: dict[str, frozenset[str]] = {
    "agency.txt": frozenset(
        {
            "agency_id",
            "agency_name",
            "agency_url",
            "agency_timezone",
            "agency_lang",
            "agency_phone",
            "agency_fare_url",
            "agency_email",
        }
    ),
    "stops.txt": frozenset(
        {
            "stop_id",
            "stop_code",
            "stop_name",
            "stop_desc",
            "stop_lat",
            "stop_lon",
            "zone_id",
            "stop_url",
            "location_type",
            "parent_station",
            "stop_timezone",
            "wheelchair_boarding",
            "level_id",
            "platform_code",
        }
    ),
    "routes.txt": frozenset(
        {
            "route_id",
            "agency_id",
            "route_short_name",
            "route_long_name",
            "route_desc",
            "route_type",
            "route_url",
            "route_color",
            "route_text_color",
            "route_sort_order",
            "continuous_pickup",
            "continuous_drop_off",
        }
    ),
    "trips.txt": frozenset(
        {
            "route_id",
            "service_id",
            "trip_id",
            "trip_headsign",
            "trip_short_name",
            "direction_id",
            "block_id",
            "shape_id",
            "wheelchair_accessible",
            "bikes_allowed",
        }
    ),
    "stop_times.txt": frozenset(
        {
            "trip_id",
            "arrival_time",
            "departure_time",
            "stop_id",
            "stop_sequence",
            "stop_headsign",
            "pickup_type",
            "drop_off_type",
            "continuous_pickup",
            "continuous_drop_off",
            "shape_dist_traveled",
            "timepoint",
        }
    ),
    "calendar.txt": frozenset(REQUIRED_COLUMNS["calendar.txt"]),
    "calendar_dates.txt": frozenset(REQUIRED_COLUMNS["calendar_dates.txt"]),
    "shapes.txt": frozenset(
        {"shape_id", "shape_pt_lat", "shape_pt_lon", "shape_pt_sequence", "shape_dist_traveled"}
    ),
    "frequencies.txt": frozenset(
        {"trip_id", "start_time", "end_time", "headway_secs", "exact_times"}
    ),
    "transfers.txt": frozenset(
        {
            "from_stop_id",
            "to_stop_id",
            "from_route_id",
            "to_route_id",
            "from_trip_id",
            "to_trip_id",
            "transfer_type",
            "min_transfer_time",
        }
    ),
    "fare_attributes.txt": frozenset(
        {
            "fare_id",
            "price",
            "currency_type",
            "payment_method",
            "transfers",
            "agency_id",
            "transfer_duration",
        }
    ),
    "fare_rules.txt": frozenset(
        {"fare_id", "route_id", "origin_id", "destination_id", "contains_id"}
    ),
    "pathways.txt": frozenset(
        {
            "pathway_id",
            "from_stop_id",
            "to_stop_id",
            "pathway_mode",
            "is_bidirectional",
            "length",
            "traversal_time",
            "stair_count",
            "max_slope",
            "min_width",
            "signposted_as",
            "reversed_signposted_as",
        }
    ),
    "levels.txt": frozenset({"level_id", "level_index", "level_name"}),
    "feed_info.txt": frozenset(
        {
            "feed_publisher_name",
            "feed_publisher_url",
            "feed_lang",
            "feed_start_date",
            "feed_end_date",
            "feed_version",
            "feed_contact_email",
            "feed_contact_url",
        }
    ),
    "attributions.txt": frozenset(
        {
            "attribution_id",
            "agency_id",
            "route_id",
            "trip_id",
            "organization_name",
            "is_producer",
            "is_operator",
            "is_authority",
            "attribution_url",
            "attribution_email",
            "attribution_phone",
        }
    ),
    "translations.txt": frozenset(
        {
            "table_name",
            "field_name",
            "language",
            "translation",
            "record_id",
            "record_sub_id",
            "field_value",
        }
    ),
}


class CsvRecordSource:
    """Streams one GTFS table as ``column -> value`` records.

    Cells are stripped, blank lines are skipped and short rows are padded
    with empty strings. ``line`` is the 1-based physical line of the record
    returned last (the header is line 1).
    """

    def __init__(self, stream: IO[str], table: str) -> None:
        self.table = table
        self._reader = csv.reader(stream)
        self.line = 0
        header = self._next_row()
        if header is None:
            msg = f"Empty CSV file: {table}"
            raise MissingColumnError(msg)
        if header and header[0][:1] in _BOMS:
            header[0] = header[0][1:]
        self.columns: list[str] = header
        self.column_index: dict[str, int] = {}
        for i, name in enumerate(header):
            self.column_index.setdefault(name, i)

    def _next_row(self) -> list[str] | None:
        try:
            for row in self._reader:
                self.line = self._reader.line_num
                if not row or all(not cell.strip() for cell in row):
                    continue
                return [cell.strip() for cell in row]
        except csv.Error as exc:
            msg = f"{self.table}:{self._reader.line_num}: {exc}"
            raise FeedIOError(msg) from exc
        except UnicodeDecodeError as exc:
            msg = f"{self.table}: could not decode file as UTF-8: {exc}"
            raise FeedIOError(msg) from exc
        except (zipfile.BadZipFile, zlib.error, OSError) as exc:
            msg = f"{self.table}:{self._reader.line_num}: could not read file: {exc}"
            raise FeedIOError(msg) from exc
        return None

    def require_columns(self) -> None:
        """Raise MissingColumnError if any required column is absent from the header."""
        required = REQUIRED_COLUMNS.get(self.table, ())
        missing = [name for name in required if name not in self.column_index]
        if missing:
            msg = f"Missing required columns in {self.table}: {missing}"
            raise MissingColumnError(msg)

    @property
    def extra_columns(self) -> list[str]:
        """Header columns not interpreted by any builder, in file order."""
        known = KNOWN_COLUMNS.get(self.table, frozenset())
        return [name for name in self.columns if name and name not in known]

    def read_next_record(self) -> dict[str, str] | None:
        """Return the next record, or None at end of data."""
        row = self._next_row()
        if row is None:
            return None
        width = len(row)
        return {
            name: row[i] if i < width else "" for name, i in self.column_index.items()
        }

    def __iter__(self) -> Iterator[dict[str, str]]:
        while (record := self.read_next_record()) is not None:
            yield record


def open_record_source(stream: IO[str], table: str) -> CsvRecordSource:
    """Open a record source and validate its header."""
    source = CsvRecordSource(stream, table)
    source.require_columns()
    extra = source.extra_columns
    logger.info(
        "Parsing GTFS file",
        filename=table,
        required_columns=list(REQUIRED_COLUMNS.get(table, ())),
        extra_columns=extra or None,
    )
    return source
