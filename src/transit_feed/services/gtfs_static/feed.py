"""GTFS feed orchestrator - parses tables in dependency order into one entity graph."""

from __future__ import annotations

import math
from collections import Counter
from operator import attrgetter
from typing import TYPE_CHECKING, Any

from transit_feed.config import get_settings
from transit_feed.logging import bind_parse_context, clear_parse_context, get_logger
from transit_feed.models.route_types import to_basic_route_type
from transit_feed.services.gtfs_static.builders import (
    build_agency,
    build_attribution,
    build_calendar_date,
    build_fare_attribute,
    build_fare_rule,
    build_feed_info,
    build_frequency,
    build_level,
    build_pathway,
    build_route,
    build_service,
    build_shape_point,
    build_stop,
    build_stop_time,
    build_transfer,
    build_translation,
    build_trip,
    check_parent,
    reserve_shape_point,
    reserve_stop_time,
)
from transit_feed.services.gtfs_static.errors import (
    ConsistencyError,
    ErrorPolicy,
    FeedIOError,
    FieldError,
    IdCollisionError,
    MissingColumnError,
    MissingTableError,
    MonotonicityViolationError,
    ParseError,
    UnresolvedReferenceError,
)
from transit_feed.services.gtfs_static.parser import open_record_source
from transit_feed.services.gtfs_static.polygon import PolygonFilter
from transit_feed.services.gtfs_static.reader import GtfsFeedReader
from transit_feed.services.gtfs_static.report import ParseReport

if TYPE_CHECKING:
    import os
    from collections.abc import Callable, Collection, Hashable, Mapping

    from transit_feed.config import ParseSettings
    from transit_feed.models import (
        Agency,
        Attribution,
        FareAttribute,
        FeedInfo,
        Level,
        Pathway,
        Route,
        Service,
        Shape,
        Stop,
        Transfer,
        TransferKey,
        Translation,
        Trip,
    )

    # Returns the key of the stored record, or None if a filter excluded it
    RecordHandler = Callable[[Mapping[str, str], int], "Hashable | None"]

logger = get_logger(__name__)

# Kind under which dropped records of a table are counted
TABLE_KINDS = {
    "agency.txt": "agencies",
    "feed_info.txt": "feed_infos",
    "levels.txt": "levels",
    "stops.txt": "stops",
    "shapes.txt": "shapes",
    "routes.txt": "routes",
    "calendar.txt": "services",
    "calendar_dates.txt": "services",
    "trips.txt": "trips",
    "stop_times.txt": "stop_times",
    "fare_attributes.txt": "fare_attributes",
    "fare_rules.txt": "fare_rules",
    "frequencies.txt": "frequencies",
    "transfers.txt": "transfers",
    "pathways.txt": "pathways",
    "attributions.txt": "attributions",
    "translations.txt": "translations",
}


class Feed:
    """An in-memory GTFS feed.

    Owns every entity collection. Entities refer to each other by id; use
    :meth:`parent_of`, :meth:`route_of` and :meth:`agency_of` to follow the
    references.

    Tables are read in a fixed order since each table resolves references
    into the collections built from the tables before it. Ids excluded by the
    geographic or mode filters are remembered so that later references to
    them are skipped silently instead of being reported as broken.
    """

    def __init__(self, settings: ParseSettings | None = None) -> None:
        self.settings = settings or get_settings()
        self.policy = ErrorPolicy.from_settings(self.settings)
        self.polygon_filter = PolygonFilter(self.settings.polygons)

        self.agencies: dict[str, Agency] = {}
        self.levels: dict[str, Level] = {}
        self.stops: dict[str, Stop] = {}
        self.shapes: dict[str, Shape] = {}
        self.routes: dict[str, Route] = {}
        self.services: dict[str, Service] = {}
        self.trips: dict[str, Trip] = {}
        self.fare_attributes: dict[str, FareAttribute] = {}
        self.transfers: dict[TransferKey, Transfer] = {}
        self.pathways: dict[str, Pathway] = {}
        self.feed_infos: list[FeedInfo] = []
        self.attributions: list[Attribution] = []
        self.translations: list[Translation] = []

        self.filtered_stops: set[str] = set()
        self.filtered_routes: set[str] = set()
        self.filtered_trips: set[str] = set()
        self.filtered_zones: set[str] = set()

        self.column_order: dict[str, list[str]] = {}
        # table -> column -> record key -> value
        self.extra_fields: dict[str, dict[str, dict[Any, str]]] = {}
        self.translation_count = 0
        self.report: ParseReport | None = None

        self._dropped: Counter[str] = Counter()
        self._prefix = ""
        self._reader: GtfsFeedReader | None = None
        self._pending_parents: dict[str, tuple[str, int]] = {}
        self._filtered_stop_zones: set[str] = set()
        self._sequences: dict[str, set[int]] = {}
        self._zones: set[str] = set()
        self._attribution_ids: set[str] = set()

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------

    def parse(self, source: str | os.PathLike[str] | bytes, prefix: str = "") -> ParseReport:
        """Parse a feed directory, ZIP file or ZIP bytes into this feed.

        ``prefix`` is prepended to every identifier, which allows several
        feeds to be merged into one :class:`Feed`.

        Raises:
            ParseError: On the first fatal error, with table and line context.
        """
        label = "<bytes>" if isinstance(source, bytes) else str(source)
        self._prefix = prefix
        report = self.report = ParseReport(label)
        bind_parse_context(feed=label)
        logger.info(
            "Parsing GTFS feed",
            prefix=prefix or None,
            use_default_on_error=self.policy.use_default,
            drop_erroneous=self.policy.drop_erroneous,
            dry_run=self.policy.dry_run,
            polygons=len(self.polygon_filter.polygons),
            route_types=self.settings.route_types or None,
        )

        try:
            try:
                reader = GtfsFeedReader(source, zip_fix=self.settings.zip_fix)
            except FeedIOError as exc:
                raise ParseError(label, 0, str(exc)) from exc
            with reader:
                self._reader = reader
                self._parse_tables()
        except ParseError as exc:
            report.finish(self.policy.warnings, error=str(exc))
            logger.error(
                "GTFS feed parse failed", table=exc.table, line=exc.line, error=exc.message
            )
            raise
        finally:
            self._reader = None
            clear_parse_context()

        report.finish(self.policy.warnings)
        logger.info(
            "GTFS feed parsed",
            agencies=len(self.agencies),
            stops=len(self.stops),
            routes=len(self.routes),
            trips=len(self.trips),
            services=len(self.services),
            shapes=len(self.shapes),
            dropped={kind: n for kind, n in self._dropped.items() if n},
            filtered_stops=len(self.filtered_stops),
            filtered_routes=len(self.filtered_routes),
            filtered_trips=len(self.filtered_trips),
            warnings=self.policy.warning_count,
            duration_ms=report.duration_ms,
        )
        return report

    def _parse_tables(self) -> None:
        self._parse_table("agency.txt", self._on_agency, required=True)
        self._parse_table("feed_info.txt", self._on_feed_info)
        self._parse_table("levels.txt", self._on_level)

        self._parse_table("stops.txt", self._on_stop, required=True)
        self._resolve_parents()
        self._collect_filtered_zones()

        self._parse_table("shapes.txt", self._reserve_shape_point, reserve=True)
        self._parse_table("shapes.txt", self._on_shape_point)
        self._sweep_shapes()

        self._parse_table("routes.txt", self._on_route, required=True)
        self._parse_table("calendar.txt", self._on_service)
        self._parse_table("calendar_dates.txt", self._on_calendar_date)
        self._clip_calendars()

        self._parse_table("trips.txt", self._on_trip, required=True)
        self._parse_table("stop_times.txt", self._reserve_stop_time, reserve=True)
        self._parse_table("stop_times.txt", self._on_stop_time, required=True)
        self._sweep_stop_times()
        self._prune_inactive_trips()

        self._zones = {stop.zone_id for stop in self.stops.values() if stop.zone_id}
        self._parse_table("fare_attributes.txt", self._on_fare_attribute)
        self._parse_table("fare_rules.txt", self._on_fare_rule)
        self._parse_table("frequencies.txt", self._on_frequency)
        self._parse_table("transfers.txt", self._on_transfer)
        self._parse_table("pathways.txt", self._on_pathway)
        self._parse_table("attributions.txt", self._on_attribution)
        self._parse_table("translations.txt", self._on_translation)

    def _parse_table(
        self,
        table: str,
        handler: RecordHandler,
        *,
        required: bool = False,
        reserve: bool = False,
    ) -> None:
        """Run ``handler`` over every record of ``table`` under the error policy.

        With ``reserve`` set this is a reservation pass: records are only
        counted into placeholders and nothing is reported.
        """
        reader, report = self._reader, self.report
        if reader is None or report is None:
            msg = "Tables are only parsed from within Feed.parse"
            raise RuntimeError(msg)
        if not reader.has_table(table):
            if required:
                raise ParseError(table, 0, f"Could not open required file {table}")
            logger.debug("Optional GTFS file not present", filename=table)
            return

        bind_parse_context(table=table)
        try:
            source = open_record_source(reader.open_table(table), table)
        except (MissingColumnError, MissingTableError, FeedIOError) as exc:
            raise ParseError(table, 0, str(exc)) from exc

        extra: list[str] = []
        if not reserve:
            self.column_order[table] = list(source.columns)
            report.init_table(table)
            if self.settings.keep_extra_columns and not self.policy.dry_run:
                extra = source.extra_columns

        try:
            for record in source:
                if reserve:
                    handler(record, source.line)
                    continue
                report.count(table, "read")
                try:
                    key = handler(record, source.line)
                except UnresolvedReferenceError as exc:
                    if self._is_filtered(exc):
                        report.count(table, "filtered")
                        continue
                    self._reject(table, source.line, exc)
                    continue
                except FieldError as exc:
                    self._reject(table, source.line, exc)
                    continue
                if key is None:
                    report.count(table, "filtered")
                    continue
                report.count(table, "kept")
                if extra:
                    self._store_extra(table, extra, key, record)
        except (FeedIOError, ConsistencyError) as exc:
            raise ParseError(table, source.line, str(exc)) from exc

        if not reserve:
            logger.info("Parsed GTFS file", filename=table, **report.counts[table])

    def _is_filtered(self, exc: UnresolvedReferenceError) -> bool:
        excluded = {
            "stops": self.filtered_stops,
            "routes": self.filtered_routes,
            "trips": self.filtered_trips,
            "zones": self.filtered_zones,
        }.get(exc.table)
        return excluded is not None and exc.ref_id in excluded

    def _reject(self, table: str, line: int, exc: FieldError) -> None:
        """Count and skip the record under drop-erroneous, raise otherwise."""
        if not self.policy.drop_erroneous:
            raise ParseError(table, line, str(exc)) from exc
        self._dropped[TABLE_KINDS[table]] += 1
        if self.report is not None:
            self.report.count(table, "dropped")
        logger.debug("Dropped erroneous record", filename=table, line=line, error=str(exc))

    # ------------------------------------------------------------------
    # Record handlers
    # ------------------------------------------------------------------

    def _on_agency(self, record: Mapping[str, str], line: int) -> Hashable | None:
        agency = build_agency(record, self.policy, self._prefix)
        if agency.id in self.agencies:
            raise IdCollisionError(f"ID collision, agency_id '{agency.id}' already used")
        first = next(
            (a for a in self.agencies.values() if a.id.startswith(self._prefix)), None
        )
        if first is not None and first.timezone != agency.timezone:
            msg = (
                f"Agency '{agency.id}' uses timezone '{agency.timezone}', but agency "
                f"'{first.id}' uses '{first.timezone}'; all agencies must share one timezone"
            )
            raise ConsistencyError(msg)
        self.agencies[agency.id] = agency
        return agency.id

    def _on_feed_info(self, record: Mapping[str, str], line: int) -> Hashable | None:
        feed_info = build_feed_info(record, self.policy)
        if not self.policy.dry_run:
            self.feed_infos.append(feed_info)
        return line

    def _on_level(self, record: Mapping[str, str], line: int) -> Hashable | None:
        level = build_level(record, self.policy, self._prefix)
        if level.id in self.levels:
            raise IdCollisionError(f"ID collision, level_id '{level.id}' already used")
        self.levels[level.id] = level
        return level.id

    def _on_stop(self, record: Mapping[str, str], line: int) -> Hashable | None:
        stop, parent_id = build_stop(record, self.levels, self.policy, self._prefix)
        if stop.id in self.stops or stop.id in self.filtered_stops:
            raise IdCollisionError(f"ID collision, stop_id '{stop.id}' already used")
        if (
            stop.lat is not None
            and stop.lon is not None
            and not self.polygon_filter.contains(stop.lat, stop.lon)
        ):
            self.filtered_stops.add(stop.id)
            if stop.zone_id:
                self._filtered_stop_zones.add(stop.zone_id)
            return None
        self.stops[stop.id] = stop
        if parent_id:
            self._pending_parents[stop.id] = (parent_id, line)
        return stop.id

    def _resolve_parents(self) -> None:
        """Attach parent stations once every stop is known.

        Dropping a stop can orphan the stops below it, so validation repeats
        until a round deletes nothing.
        """
        pending = self._pending_parents
        for stop_id, (parent_id, _) in pending.items():
            self.stops[stop_id].parent_id = parent_id

        deleted = True
        while deleted:
            deleted = False
            for stop_id, (parent_id, line) in list(pending.items()):
                stop = self.stops.get(stop_id)
                if stop is None:
                    del pending[stop_id]
                    continue
                parent = self.stops.get(parent_id)
                try:
                    if parent is None:
                        if parent_id in self.filtered_stops:
                            stop.parent_id = None
                            del pending[stop_id]
                            continue
                        msg = (
                            f"No station with id '{parent_id}' found, cannot use as parent "
                            f"station for stop '{stop_id}'"
                        )
                        raise UnresolvedReferenceError("stops", parent_id, msg)
                    check_parent(stop, parent)
                except FieldError as exc:
                    if self.policy.use_default:
                        self.policy.warn(f"{exc}, using no parent", stop_id=stop_id)
                        stop.parent_id = None
                        del pending[stop_id]
                        continue
                    self._reject("stops.txt", line, exc)
                    self.delete_stop(stop_id)
                    del pending[stop_id]
                    deleted = True
        pending.clear()

    def _collect_filtered_zones(self) -> None:
        retained = {stop.zone_id for stop in self.stops.values() if stop.zone_id}
        self.filtered_zones = self._filtered_stop_zones - retained
        if self.polygon_filter.enabled:
            logger.info(
                "Polygon filter applied",
                kept_stops=len(self.stops),
                filtered_stops=len(self.filtered_stops),
                filtered_zones=len(self.filtered_zones),
            )

    def _reserve_shape_point(self, record: Mapping[str, str], line: int) -> Hashable | None:
        reserve_shape_point(record, self.shapes, self._prefix)
        return None

    def _on_shape_point(self, record: Mapping[str, str], line: int) -> Hashable | None:
        shape, point = build_shape_point(
            record, self.shapes, self._sequences, self.policy, self._prefix, line
        )
        shape.points.append(point)
        return (shape.id, point.sequence)

    def _on_route(self, record: Mapping[str, str], line: int) -> Hashable | None:
        route = build_route(record, self.agencies, self.policy, self._prefix)
        if route.id in self.routes or route.id in self.filtered_routes:
            raise IdCollisionError(f"ID collision, route_id '{route.id}' already used")
        allowed = self.settings.route_types
        if allowed and route.type not in allowed and to_basic_route_type(route.type) not in allowed:
            self.filtered_routes.add(route.id)
            return None
        if self.settings.use_standard_route_types:
            route.type = to_basic_route_type(route.type)
        self.routes[route.id] = route
        return route.id

    def _on_service(self, record: Mapping[str, str], line: int) -> Hashable | None:
        service = build_service(record, self.policy, self._prefix)
        if service.id in self.services:
            raise IdCollisionError(f"ID collision, service_id '{service.id}' already used")
        self.services[service.id] = service
        return service.id

    def _on_calendar_date(self, record: Mapping[str, str], line: int) -> Hashable | None:
        service, date, created = build_calendar_date(
            record,
            self.services,
            self.policy,
            self._prefix,
            window=(self.settings.filter_start, self.settings.filter_end),
        )
        if created:
            self.services[service.id] = service
        return (service.id, date)

    def _on_trip(self, record: Mapping[str, str], line: int) -> Hashable | None:
        try:
            trip = build_trip(
                record, self.routes, self.services, self.shapes, self.policy, self._prefix
            )
        except UnresolvedReferenceError as exc:
            if self._is_filtered(exc):
                # trips of a filtered route are filtered themselves
                self.filtered_trips.add(self._prefix + record.get("trip_id", "").strip())
            raise
        if trip.id in self.trips or trip.id in self.filtered_trips:
            raise IdCollisionError(f"ID collision, trip_id '{trip.id}' already used")
        self.trips[trip.id] = trip
        return trip.id

    def _reserve_stop_time(self, record: Mapping[str, str], line: int) -> Hashable | None:
        reserve_stop_time(record, self.trips, self._prefix)
        return None

    def _on_stop_time(self, record: Mapping[str, str], line: int) -> Hashable | None:
        trip, stop_time = build_stop_time(
            record, self.trips, self.stops, self._sequences, self.policy, self._prefix, line
        )
        trip.stop_times.append(stop_time)
        return (trip.id, stop_time.sequence)

    def _on_fare_attribute(self, record: Mapping[str, str], line: int) -> Hashable | None:
        fare = build_fare_attribute(record, self.agencies, self.policy, self._prefix)
        if fare.id in self.fare_attributes:
            raise IdCollisionError(f"ID collision, fare_id '{fare.id}' already used")
        self.fare_attributes[fare.id] = fare
        return fare.id

    def _on_fare_rule(self, record: Mapping[str, str], line: int) -> Hashable | None:
        fare, rule = build_fare_rule(
            record, self.fare_attributes, self.routes, self._zones, self.policy, self._prefix
        )
        fare.rules.append(rule)
        return (fare.id, len(fare.rules) - 1)

    def _on_frequency(self, record: Mapping[str, str], line: int) -> Hashable | None:
        trip, frequency = build_frequency(record, self.trips, self.policy, self._prefix)
        if not self.policy.dry_run:
            trip.frequencies.append(frequency)
        return (trip.id, str(frequency.start_time))

    def _on_transfer(self, record: Mapping[str, str], line: int) -> Hashable | None:
        key, transfer = build_transfer(
            record, self.stops, self.routes, self.trips, self.policy, self._prefix
        )
        if self.policy.dry_run:
            return key
        existing = self.transfers.get(key)
        if existing is not None and existing != transfer:
            msg = (
                f"Transfer from '{key.from_stop_id}' to '{key.to_stop_id}' defined twice "
                "with different values"
            )
            raise IdCollisionError(msg)
        self.transfers[key] = transfer
        return key

    def _on_pathway(self, record: Mapping[str, str], line: int) -> Hashable | None:
        pathway = build_pathway(record, self.stops, self.policy, self._prefix)
        if pathway.id in self.pathways:
            raise IdCollisionError(f"ID collision, pathway_id '{pathway.id}' already used")
        self.pathways[pathway.id] = pathway
        return pathway.id

    def _on_attribution(self, record: Mapping[str, str], line: int) -> Hashable | None:
        attribution = build_attribution(
            record, self.agencies, self.routes, self.trips, self.policy, self._prefix, line
        )
        if attribution.id:
            if attribution.id in self._attribution_ids:
                msg = f"ID collision, attribution_id '{attribution.id}' already used"
                raise IdCollisionError(msg)
            self._attribution_ids.add(attribution.id)
        self.attributions.append(attribution)
        return _attribution_key(attribution)

    def _on_translation(self, record: Mapping[str, str], line: int) -> Hashable | None:
        targets: dict[str, Collection[str]] = {
            "agencies": self.agencies,
            "stops": self.stops,
            "routes": self.routes,
            "trips": self.trips,
            "pathways": self.pathways,
            "levels": self.levels,
            "attributions": self._attribution_ids,
        }
        translation = build_translation(record, targets, self.policy, self._prefix)
        self.translation_count += 1
        if not self.policy.dry_run:
            self.translations.append(translation)
        return line

    # ------------------------------------------------------------------
    # Sweeps
    # ------------------------------------------------------------------

    def _sweep_shapes(self) -> None:
        for shape in list(self.shapes.values()):
            if not shape.points:
                # every point of the shape was dropped
                del self.shapes[shape.id]
                continue
            shape.points.sort(key=attrgetter("sequence"))
            self._check_shape_measure(shape)
            if self.policy.dry_run:
                shape.points = []
        self._sequences = {}

    def _check_shape_measure(self, shape: Shape) -> None:
        """Enforce non-decreasing shape_dist_traveled along the shape."""
        points = shape.points
        max_dist = -math.inf
        i = 1
        while i < len(points):
            prev, cur = points[i - 1], points[i]
            if prev.dist_traveled is not None and prev.dist_traveled > max_dist:
                max_dist = prev.dist_traveled
            if cur.dist_traveled is not None and max_dist > cur.dist_traveled:
                msg = (
                    f"In shape '{shape.id}' for point with seq={cur.sequence} "
                    f"shape_dist_traveled does not increase along with the sequence "
                    f"({max_dist} > {cur.dist_traveled})"
                )
                if self.policy.use_default:
                    self.policy.warn(msg, shape_id=shape.id)
                    cur.dist_traveled = None
                else:
                    self._reject("shapes.txt", cur.line, MonotonicityViolationError(msg))
                    del points[i]
                    self._discard_extra("shapes.txt", (shape.id, cur.sequence))
                    continue
            i += 1

    def _sweep_stop_times(self) -> None:
        incomplete: dict[str, int] = {}
        for trip in self.trips.values():
            trip.stop_times.sort(key=attrgetter("sequence"))
            self._check_stop_time_measure(trip)
            if len(trip.stop_times) < trip.reserved:
                incomplete[trip.id] = trip.reserved - len(trip.stop_times)
            if self.policy.dry_run:
                trip.stop_times = []
        self._sequences = {}
        if incomplete:
            logger.info(
                "Trips missing stop times",
                trips=len(incomplete),
                stop_times=sum(incomplete.values()),
            )
        if self.report is not None:
            self.report.incomplete_trips = incomplete

    def _check_stop_time_measure(self, trip: Trip) -> None:
        """Enforce chronological stop-times and non-decreasing shape_dist_traveled."""
        stop_times = trip.stop_times
        max_dist = -math.inf
        i = 1
        while i < len(stop_times):
            prev, cur = stop_times[i - 1], stop_times[i]
            if (
                prev.departure is not None
                and cur.arrival is not None
                and prev.departure > cur.arrival
            ):
                msg = (
                    f"In trip '{trip.id}' for stop time with seq={cur.sequence} the arrival "
                    f"time {cur.arrival} is before the departure {prev.departure} at the "
                    "previous stop"
                )
                self._reject("stop_times.txt", cur.line, MonotonicityViolationError(msg))
                del stop_times[i]
                self._discard_extra("stop_times.txt", (trip.id, cur.sequence))
                continue

            if prev.shape_dist_traveled is not None and prev.shape_dist_traveled > max_dist:
                max_dist = prev.shape_dist_traveled
            if cur.shape_dist_traveled is not None and max_dist > cur.shape_dist_traveled:
                msg = (
                    f"In trip '{trip.id}' for stop time with seq={cur.sequence} "
                    f"shape_dist_traveled does not increase along with the sequence "
                    f"({max_dist} > {cur.shape_dist_traveled})"
                )
                if self.policy.use_default:
                    self.policy.warn(msg, trip_id=trip.id)
                    cur.shape_dist_traveled = None
                else:
                    self._reject("stop_times.txt", cur.line, MonotonicityViolationError(msg))
                    del stop_times[i]
                    self._discard_extra("stop_times.txt", (trip.id, cur.sequence))
                    continue
            i += 1

    def _clip_calendars(self) -> None:
        """Intersect every service's date range with the configured date window."""
        if not self.settings.has_date_filter:
            return
        start, end = self.settings.filter_start, self.settings.filter_end
        deactivated = clamped = 0
        for service in self.services.values():
            if service.start_date is None or service.end_date is None:
                continue
            if (end is not None and service.start_date > end) or (
                start is not None and service.end_date < start
            ):
                service.daymap = 0
                deactivated += 1
                continue
            if start is not None and service.start_date < start:
                service.start_date = start
                clamped += 1
            if end is not None and service.end_date > end:
                service.end_date = end
                clamped += 1
        logger.info(
            "Calendars clipped to date filter",
            start=str(start) if start else None,
            end=str(end) if end else None,
            deactivated=deactivated,
            clamped=clamped,
        )

    def _prune_inactive_trips(self) -> None:
        """Remove trips without any active date, then their orphaned services."""
        if not self.settings.has_date_filter:
            return
        inactive: dict[str, bool] = {}
        candidates: set[str] = set()
        pruned = 0
        for trip in list(self.trips.values()):
            service_id = trip.service_id
            if service_id not in inactive:
                service = self.services.get(service_id)
                inactive[service_id] = (
                    service is None or service.is_empty() or service.first_active_date() is None
                )
            if inactive[service_id]:
                self.delete_trip(trip.id)
                self.filtered_trips.add(trip.id)
                candidates.add(service_id)
                pruned += 1

        used = {trip.service_id for trip in self.trips.values()}
        orphaned = candidates - used
        for service_id in orphaned:
            self.delete_service(service_id)
        logger.info("Pruned inactive trips", trips=pruned, services=len(orphaned))

    # ------------------------------------------------------------------
    # Extra columns
    # ------------------------------------------------------------------

    def _store_extra(
        self, table: str, columns: list[str], key: Hashable, record: Mapping[str, str]
    ) -> None:
        table_fields = self.extra_fields.setdefault(table, {})
        for column in columns:
            value = record.get(column, "")
            if value:
                table_fields.setdefault(column, {})[key] = value

    def _discard_extra(self, table: str, key: Hashable) -> None:
        for values in self.extra_fields.get(table, {}).values():
            values.pop(key, None)

    def _discard_extra_owned(self, table: str, owner_id: str) -> None:
        """Drop side data keyed by ``(owner_id, ...)`` tuples."""
        for values in self.extra_fields.get(table, {}).values():
            for key in [k for k in values if isinstance(k, tuple) and k[0] == owner_id]:
                del values[key]

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def dropped_counts(self) -> dict[str, int]:
        """Number of records dropped as erroneous, per entity kind."""
        counts = dict.fromkeys(sorted(set(TABLE_KINDS.values())), 0)
        counts.update(self._dropped)
        return counts

    def parent_of(self, stop: Stop) -> Stop | None:
        return self.stops.get(stop.parent_id) if stop.parent_id else None

    def route_of(self, trip: Trip) -> Route | None:
        return self.routes.get(trip.route_id)

    def agency_of(self, route: Route) -> Agency | None:
        return self.agencies.get(route.agency_id) if route.agency_id is not None else None

    # ------------------------------------------------------------------
    # Deletion: an entity goes together with its extra-column side data
    # ------------------------------------------------------------------

    def delete_agency(self, agency_id: str) -> None:
        self.agencies.pop(agency_id, None)
        self._discard_extra("agency.txt", agency_id)

    def delete_level(self, level_id: str) -> None:
        self.levels.pop(level_id, None)
        self._discard_extra("levels.txt", level_id)

    def delete_stop(self, stop_id: str) -> None:
        self.stops.pop(stop_id, None)
        self._discard_extra("stops.txt", stop_id)

    def delete_shape(self, shape_id: str) -> None:
        self.shapes.pop(shape_id, None)
        self._discard_extra_owned("shapes.txt", shape_id)

    def delete_route(self, route_id: str) -> None:
        self.routes.pop(route_id, None)
        self._discard_extra("routes.txt", route_id)

    def delete_service(self, service_id: str) -> None:
        self.services.pop(service_id, None)
        self._discard_extra("calendar.txt", service_id)
        self._discard_extra_owned("calendar_dates.txt", service_id)

    def delete_trip(self, trip_id: str) -> None:
        self.trips.pop(trip_id, None)
        self._discard_extra("trips.txt", trip_id)
        self._discard_extra_owned("stop_times.txt", trip_id)
        self._discard_extra_owned("frequencies.txt", trip_id)

    def delete_fare_attribute(self, fare_id: str) -> None:
        self.fare_attributes.pop(fare_id, None)
        self._discard_extra("fare_attributes.txt", fare_id)
        self._discard_extra_owned("fare_rules.txt", fare_id)

    def delete_transfer(self, key: TransferKey) -> None:
        self.transfers.pop(key, None)
        self._discard_extra("transfers.txt", key)

    def delete_pathway(self, pathway_id: str) -> None:
        self.pathways.pop(pathway_id, None)
        self._discard_extra("pathways.txt", pathway_id)

    def delete_attribution(self, attribution: Attribution) -> None:
        self.attributions = [a for a in self.attributions if a is not attribution]
        self._attribution_ids.discard(attribution.id)
        self._discard_extra("attributions.txt", _attribution_key(attribution))


def _attribution_key(attribution: Attribution) -> Hashable:
    """Attributions without an id are keyed by their line in attributions.txt."""
    return attribution.id or attribution.line
