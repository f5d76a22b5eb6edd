"""Entity builders - one per GTFS table.

Each builder turns one record into an entity, resolving foreign keys against
the collections already built from earlier tables. Failures are raised as
:class:`FieldError` subclasses; a foreign key that does not resolve raises
:class:`UnresolvedReferenceError` so the caller can tell deliberate exclusions
from broken references.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from transit_feed.models.calendar import Date, ExceptionType, Service
from transit_feed.models.gtfs import (
    Agency,
    Attribution,
    FareAttribute,
    FareAttributeRule,
    FeedInfo,
    Frequency,
    Level,
    LocationType,
    Pathway,
    Route,
    Shape,
    ShapePoint,
    Stop,
    StopTime,
    StopTimeFlags,
    Transfer,
    TransferKey,
    Translation,
    Trip,
)
from transit_feed.services.gtfs_static.decoders import (
    decode_bool,
    decode_color,
    decode_date,
    decode_email,
    decode_float,
    decode_int,
    decode_language,
    decode_non_negative_int,
    decode_nullable_float,
    decode_required_date,
    decode_required_int,
    decode_string,
    decode_time,
    decode_timezone,
    decode_url,
    parse_float,
    printable,
)
from transit_feed.services.gtfs_static.errors import (
    HierarchyViolationError,
    IdCollisionError,
    MissingRequiredFieldError,
    MonotonicityViolationError,
    OrderingViolationError,
    RangeViolationError,
    TypeViolationError,
    UnresolvedReferenceError,
)

if TYPE_CHECKING:
    from collections.abc import Collection, Mapping

    from transit_feed.services.gtfs_static.errors import ErrorPolicy

    Record = Mapping[str, str]

WEEKDAY_COLUMNS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

# translations.txt table_name -> referenced collection
TRANSLATABLE_TABLES = {
    "agency": "agencies",
    "stops": "stops",
    "routes": "routes",
    "trips": "trips",
    "stop_times": "trips",
    "feed_info": None,
    "pathways": "pathways",
    "levels": "levels",
    "attributions": "attributions",
}

NULL_COORDINATE_EPSILON = 0.0001


def _prefixed(prefix: str, value: str) -> str:
    """Prefix a non-empty identifier; empty stays empty."""
    return prefix + value if value else ""


def _check_coordinates(lat: float, lon: float, policy: ErrorPolicy) -> None:
    if abs(lat) > 90:
        msg = f"Expected coordinate (lat, lon), found ({lat}, {lon}); latitude not in [-90, 90]"
        raise RangeViolationError(msg)
    if abs(lon) > 180:
        msg = f"Expected coordinate (lat, lon), found ({lat}, {lon}); longitude not in [-180, 180]"
        raise RangeViolationError(msg)
    if (
        policy.check_null_coordinates
        and abs(lat) < NULL_COORDINATE_EPSILON
        and abs(lon) < NULL_COORDINATE_EPSILON
    ):
        msg = "Expected coordinate (lat, lon), found (0, 0)"
        raise RangeViolationError(msg)


def resolve_agency(
    raw_id: str,
    agencies: Mapping[str, Agency],
    policy: ErrorPolicy,
    prefix: str,
    *,
    owner: str,
    required: bool = True,
) -> str | None:
    """Resolve an ``agency_id`` cell, falling back to the feed's only agency.

    Without an explicit id the single agency of the feed (or the single agency
    carrying ``prefix`` when several feeds are merged) is used. With
    ``required`` unset a missing id in a single-agency feed yields no agency.
    """
    if raw_id:
        agency_id = prefix + raw_id
        if agency_id in agencies:
            return agency_id
        if policy.use_default and len(agencies) == 1:
            fallback = next(iter(agencies))
            policy.warn(
                f"No agency with id '{raw_id}' found, falling back to '{fallback}'",
                owner=owner,
            )
            return fallback
        raise UnresolvedReferenceError("agencies", agency_id)

    candidates = [a for a in agencies if a.startswith(prefix)] if prefix else list(agencies)
    if len(candidates) == 1:
        return candidates[0]
    if not candidates and not required:
        return None
    msg = (
        f"No agency given for {owner}, an agency is required as there is more "
        "than one agency in agency.txt"
    )
    raise MissingRequiredFieldError(msg)


def build_agency(record: Record, policy: ErrorPolicy, prefix: str = "") -> Agency:
    return Agency(
        id=prefix + decode_string(record, "agency_id"),
        name=decode_string(
            record,
            "agency_name",
            required=True,
            nonempty=True,
            replacement=policy.empty_string_replacement,
        ),
        url=decode_url(record, "agency_url", policy, required=True) or "",
        timezone=decode_timezone(record, "agency_timezone", policy, required=True),
        lang=decode_language(record, "agency_lang", policy),
        phone=decode_string(record, "agency_phone"),
        fare_url=decode_url(record, "agency_fare_url", policy),
        email=decode_email(record, "agency_email", policy),
    )


def build_feed_info(record: Record, policy: ErrorPolicy) -> FeedInfo:
    return FeedInfo(
        publisher_name=decode_string(
            record,
            "feed_publisher_name",
            required=True,
            nonempty=True,
            replacement=policy.empty_string_replacement,
        ),
        publisher_url=decode_url(record, "feed_publisher_url", policy, required=True) or "",
        lang=decode_string(
            record,
            "feed_lang",
            required=True,
            nonempty=True,
            replacement=policy.empty_string_replacement,
        ),
        start_date=decode_date(record, "feed_start_date", policy),
        end_date=decode_date(record, "feed_end_date", policy),
        version=decode_string(record, "feed_version"),
        contact_email=decode_email(record, "feed_contact_email", policy),
        contact_url=decode_url(record, "feed_contact_url", policy),
    )


def build_level(record: Record, policy: ErrorPolicy, prefix: str = "") -> Level:
    index = decode_nullable_float(record, "level_index", policy)
    return Level(
        id=prefix + decode_string(record, "level_id", required=True, nonempty=True),
        index=index if index is not None else 0.0,
        name=decode_string(record, "level_name"),
    )


def build_stop(
    record: Record,
    levels: Mapping[str, Level],
    policy: ErrorPolicy,
    prefix: str = "",
) -> tuple[Stop, str | None]:
    """Build a stop; the parent station is returned separately as an id.

    Parents are resolved once the whole table is read, since a stop may name
    a parent that appears later in the file.
    """
    stop_id = prefix + decode_string(record, "stop_id", required=True, nonempty=True)
    location_type = LocationType(
        decode_int(record, "location_type", policy, lower=0, upper=4, substitute=True)
    )
    named = location_type <= LocationType.ENTRANCE
    name = decode_string(
        record,
        "stop_name",
        required=named,
        nonempty=named,
        replacement=policy.empty_string_replacement,
    )

    lat: float | None
    lon: float | None
    if named:
        lat = decode_float(record, "stop_lat")
        lon = decode_float(record, "stop_lon")
    else:
        lat = decode_nullable_float(record, "stop_lat", policy)
        lon = decode_nullable_float(record, "stop_lon", policy)
        if (lat is None) != (lon is None):
            given, omitted = ("stop_lat", "stop_lon") if lon is None else ("stop_lon", "stop_lat")
            msg = (
                f"stop_lat and stop_lon are optional for location_type={int(location_type)}, "
                f"but only {omitted} was omitted and {given} was defined"
            )
            if not policy.use_default:
                raise MissingRequiredFieldError(msg)
            policy.warn(msg, stop_id=stop_id)
            lat = lon = None

    if lat is not None and lon is not None:
        _check_coordinates(lat, lon, policy)

    parent_raw = decode_string(record, "parent_station")
    parent_id: str | None = None
    if location_type == LocationType.STATION:
        if parent_raw:
            msg = "'parent_station' cannot be defined for location_type=1"
            raise HierarchyViolationError(msg)
    elif parent_raw:
        parent_id = prefix + parent_raw
    elif location_type != LocationType.STOP:
        msg = f"Expected required field 'parent_station' for location_type={int(location_type)}"
        raise MissingRequiredFieldError(msg)

    level_id: str | None = None
    level_raw = decode_string(record, "level_id")
    if level_raw:
        level_id = prefix + level_raw
        if level_id not in levels:
            if not policy.use_default:
                raise UnresolvedReferenceError("levels", level_id)
            policy.warn(f"No level with id '{level_raw}' found, using no level", stop_id=stop_id)
            level_id = None

    stop = Stop(
        id=stop_id,
        name=name,
        lat=lat,
        lon=lon,
        location_type=location_type,
        code=decode_string(record, "stop_code"),
        desc=decode_string(record, "stop_desc"),
        zone_id=_prefixed(prefix, decode_string(record, "zone_id")),
        url=decode_url(record, "stop_url", policy),
        timezone=decode_timezone(record, "stop_timezone", policy),
        wheelchair_boarding=decode_int(
            record, "wheelchair_boarding", policy, lower=0, upper=2, substitute=True
        )
        or 0,
        level_id=level_id,
        platform_code=decode_string(record, "platform_code"),
    )
    return stop, parent_id


def check_parent(stop: Stop, parent: Stop) -> None:
    """Validate the location-type pairing of a stop and its parent.

    Platforms, entrances and generic nodes belong to a station; a boarding
    area belongs to a platform.
    """
    if stop.location_type == LocationType.BOARDING_AREA:
        if parent.location_type != LocationType.STOP:
            msg = (
                f"Boarding area '{stop.id}' must have a stop/platform (location_type=0) as "
                f"parent, but '{parent.id}' has location_type={int(parent.location_type)}"
            )
            raise HierarchyViolationError(msg)
    elif parent.location_type != LocationType.STATION:
        msg = (
            f"Stop '{stop.id}' must have a station (location_type=1) as parent, "
            f"but '{parent.id}' has location_type={int(parent.location_type)}"
        )
        raise HierarchyViolationError(msg)


def reserve_shape_point(record: Record, shapes: dict[str, Shape], prefix: str = "") -> None:
    """First shapes pass: create placeholder shapes and count their points."""
    shape_id = decode_string(record, "shape_id")
    if not shape_id:
        return
    shape_id = prefix + shape_id
    shape = shapes.get(shape_id)
    if shape is None:
        shape = shapes[shape_id] = Shape(id=shape_id)
    shape.reserved += 1


def build_shape_point(
    record: Record,
    shapes: Mapping[str, Shape],
    sequences: dict[str, set[int]],
    policy: ErrorPolicy,
    prefix: str = "",
    line: int = 0,
) -> tuple[Shape, ShapePoint]:
    shape_id = prefix + decode_string(record, "shape_id", required=True, nonempty=True)
    shape = shapes.get(shape_id)
    if shape is None:
        raise UnresolvedReferenceError("shapes", shape_id)

    lat = decode_float(record, "shape_pt_lat")
    lon = decode_float(record, "shape_pt_lon")
    _check_coordinates(lat, lon, policy)

    sequence = decode_required_int(record, "shape_pt_sequence", lower=0)
    point = ShapePoint(
        lat=lat,
        lon=lon,
        sequence=sequence,
        dist_traveled=decode_nullable_float(record, "shape_dist_traveled", policy),
        line=line,
    )

    # registered only once the whole record has decoded
    seen = sequences.setdefault(shape_id, set())
    if sequence in seen:
        msg = f"Shape point sequence {sequence} used twice in shape '{shape_id}'"
        raise OrderingViolationError(msg)
    seen.add(sequence)
    return shape, point


def build_route(
    record: Record,
    agencies: Mapping[str, Agency],
    policy: ErrorPolicy,
    prefix: str = "",
) -> Route:
    route_id = prefix + decode_string(record, "route_id", required=True, nonempty=True)
    agency_id = resolve_agency(
        decode_string(record, "agency_id"),
        agencies,
        policy,
        prefix,
        owner=f"route '{route_id}'",
    )

    short_name = decode_string(record, "route_short_name")
    long_name = decode_string(record, "route_long_name")
    if not short_name and not long_name:
        msg = "Either route_short_name or route_long_name are required"
        raise MissingRequiredFieldError(msg)

    route_type = decode_required_int(record, "route_type", lower=0, upper=1702)
    sort_order = decode_non_negative_int(record, "route_sort_order", policy, substitute=True)

    return Route(
        id=route_id,
        agency_id=agency_id,
        type=route_type,
        short_name=short_name,
        long_name=long_name,
        desc=decode_string(record, "route_desc"),
        url=decode_url(record, "route_url", policy),
        color=decode_color(record, "route_color", policy, default="FFFFFF"),
        text_color=decode_color(record, "route_text_color", policy, default="000000"),
        sort_order=sort_order,
        continuous_pickup=_continuous(record, "continuous_pickup", policy),
        continuous_drop_off=_continuous(record, "continuous_drop_off", policy),
    )


def _continuous(record: Record, name: str, policy: ErrorPolicy) -> int:
    value = decode_int(record, name, policy, lower=0, upper=3, default=1, substitute=True)
    return 1 if value is None else value


def build_service(record: Record, policy: ErrorPolicy, prefix: str = "") -> Service:
    """Build a service from a calendar.txt record."""
    service = Service(
        id=prefix + decode_string(record, "service_id", required=True, nonempty=True)
    )
    for weekday, column in enumerate(WEEKDAY_COLUMNS):
        service.set_day(weekday, decode_bool(record, column, policy, required=True))
    start_date = decode_required_date(record, "start_date")
    end_date = decode_required_date(record, "end_date")
    if end_date < start_date:
        msg = f"Service '{service.id}' has the end date before the start date"
        raise RangeViolationError(msg)
    service.start_date = start_date
    service.end_date = end_date
    return service


def build_calendar_date(
    record: Record,
    services: Mapping[str, Service],
    policy: ErrorPolicy,
    prefix: str = "",
    window: tuple[Date | None, Date | None] = (None, None),
) -> tuple[Service, Date, bool]:
    """Apply a calendar_dates.txt record, creating the service if needed.

    Returns the service, the exception date and whether the service is new.
    Exceptions outside the configured date window are validated but ignored.
    """
    service_id = prefix + decode_string(record, "service_id", required=True, nonempty=True)
    kind = decode_required_int(record, "exception_type", lower=1, upper=2)
    date = decode_required_date(record, "date")

    service = services.get(service_id)
    created = service is None
    if service is None:
        service = Service(id=service_id)

    if date in service.exceptions:
        msg = f"Date exception for service '{service_id}' defined twice for {date}"
        raise IdCollisionError(msg)

    start, end = window
    if (start is None or date >= start) and (end is None or date <= end):
        service.set_exception(date, ExceptionType(kind))
    return service, date, created


def build_trip(
    record: Record,
    routes: Mapping[str, Route],
    services: Mapping[str, Service],
    shapes: Mapping[str, Shape],
    policy: ErrorPolicy,
    prefix: str = "",
) -> Trip:
    trip_id = prefix + decode_string(record, "trip_id", required=True, nonempty=True)

    route_id = prefix + decode_string(record, "route_id", required=True, nonempty=True)
    if route_id not in routes:
        raise UnresolvedReferenceError("routes", route_id)

    service_id = prefix + decode_string(record, "service_id", required=True, nonempty=True)
    if service_id not in services:
        raise UnresolvedReferenceError("services", service_id)

    shape_id: str | None = None
    shape_raw = decode_string(record, "shape_id")
    if shape_raw:
        shape_id = prefix + shape_raw
        if shape_id not in shapes:
            if not policy.use_default:
                raise UnresolvedReferenceError("shapes", shape_id)
            policy.warn(f"No shape with id '{shape_raw}' found, using no shape", trip_id=trip_id)
            shape_id = None

    return Trip(
        id=trip_id,
        route_id=route_id,
        service_id=service_id,
        shape_id=shape_id,
        headsign=decode_string(record, "trip_headsign"),
        short_name=decode_string(record, "trip_short_name"),
        direction_id=decode_int(record, "direction_id", policy, lower=0, upper=1, default=None),
        block_id=_prefixed(prefix, decode_string(record, "block_id")),
        wheelchair_accessible=decode_int(
            record, "wheelchair_accessible", policy, lower=0, upper=2, substitute=True
        )
        or 0,
        bikes_allowed=decode_int(
            record, "bikes_allowed", policy, lower=0, upper=2, substitute=True
        )
        or 0,
    )


def reserve_stop_time(record: Record, trips: Mapping[str, Trip], prefix: str = "") -> None:
    """First stop_times pass: count the stop-times of each known trip."""
    trip = trips.get(prefix + decode_string(record, "trip_id"))
    if trip is not None:
        trip.reserved += 1


def build_stop_time(
    record: Record,
    trips: Mapping[str, Trip],
    stops: Mapping[str, Stop],
    sequences: dict[str, set[int]],
    policy: ErrorPolicy,
    prefix: str = "",
    line: int = 0,
) -> tuple[Trip, StopTime]:
    trip_id = prefix + decode_string(record, "trip_id", required=True, nonempty=True)
    trip = trips.get(trip_id)
    if trip is None:
        raise UnresolvedReferenceError("trips", trip_id)

    stop_raw = decode_string(record, "stop_id", required=True, nonempty=True)
    stop = stops.get(prefix + stop_raw)
    if stop is None:
        raise UnresolvedReferenceError("stops", prefix + stop_raw)
    if stop.location_type != LocationType.STOP:
        msg = (
            f"Stop '{stop.id}' ({stop.name}) has location_type != 0, "
            "cannot be used in stop_times.txt"
        )
        raise HierarchyViolationError(msg)

    arrival = decode_time(record, "arrival_time")
    departure = decode_time(record, "departure_time")
    if (arrival is None) != (departure is None):
        missing = "arrival" if arrival is None else "departure"
        if not policy.use_default:
            msg = f"Missing {missing} time for stop '{stop_raw}'"
            raise MissingRequiredFieldError(msg)
        policy.warn(f"Missing {missing} time for stop '{stop_raw}', copying", trip_id=trip_id)
        arrival = arrival or departure
        departure = departure or arrival
    if arrival is not None and departure is not None and arrival > departure:
        msg = f"Departure before arrival at stop '{stop_raw}'"
        raise MonotonicityViolationError(msg)

    sequence = decode_required_int(record, "stop_sequence", lower=0)

    has_times = arrival is not None and departure is not None
    timepoint = decode_bool(record, "timepoint", policy, default=has_times)
    if timepoint and not has_times:
        msg = "Stops with timepoint=1 cannot have empty arrival or departure time"
        if not policy.use_default:
            raise TypeViolationError(msg)
        policy.warn(msg, trip_id=trip_id)
        timepoint = False

    flags = StopTimeFlags.pack(
        pickup_type=decode_int(record, "pickup_type", policy, lower=0, upper=3) or 0,
        drop_off_type=decode_int(record, "drop_off_type", policy, lower=0, upper=3) or 0,
        continuous_pickup=_continuous(record, "continuous_pickup", policy),
        continuous_drop_off=_continuous(record, "continuous_drop_off", policy),
        timepoint=timepoint,
    )

    headsign = decode_string(record, "stop_headsign")
    stop_time = StopTime(
        stop_id=stop.id,
        sequence=sequence,
        arrival=arrival,
        departure=departure,
        headsign=headsign if headsign != trip.headsign else "",
        flags=flags,
        shape_dist_traveled=decode_nullable_float(record, "shape_dist_traveled", policy),
        line=line,
    )

    seen = sequences.setdefault(trip_id, set())
    if sequence in seen:
        msg = f"Stop time sequence {sequence} used twice in trip '{trip_id}'"
        raise OrderingViolationError(msg)
    seen.add(sequence)
    return trip, stop_time


def build_frequency(
    record: Record,
    trips: Mapping[str, Trip],
    policy: ErrorPolicy,
    prefix: str = "",
) -> tuple[Trip, Frequency]:
    trip_id = prefix + decode_string(record, "trip_id", required=True, nonempty=True)
    trip = trips.get(trip_id)
    if trip is None:
        raise UnresolvedReferenceError("trips", trip_id)

    start = decode_time(record, "start_time")
    end = decode_time(record, "end_time")
    if start is None or end is None:
        name = "start_time" if start is None else "end_time"
        raise MissingRequiredFieldError(f"Expected required field '{name}'")
    if start > end:
        msg = f"Frequency has start_time {start} after end_time {end}"
        raise MonotonicityViolationError(msg)

    headway = decode_required_int(record, "headway_secs", lower=1)
    return trip, Frequency(
        start_time=start,
        end_time=end,
        headway_secs=headway,
        exact_times=decode_bool(record, "exact_times", policy),
    )


def build_fare_attribute(
    record: Record,
    agencies: Mapping[str, Agency],
    policy: ErrorPolicy,
    prefix: str = "",
) -> FareAttribute:
    fare_id = prefix + decode_string(record, "fare_id", required=True, nonempty=True)

    price = decode_string(record, "price", required=True, nonempty=True)
    try:
        amount = parse_float(price)
    except ValueError:
        msg = f"Expected decimal price for field 'price', found '{printable(price)}'"
        raise TypeViolationError(msg) from None
    if amount < 0:
        raise RangeViolationError(f"Expected non-negative price, found {price}")

    agency_raw = decode_string(record, "agency_id")
    try:
        agency_id = resolve_agency(
            agency_raw, agencies, policy, prefix, owner=f"fare '{fare_id}'", required=False
        )
    except UnresolvedReferenceError:
        if not policy.use_default:
            raise
        policy.warn(f"No agency with id '{agency_raw}' found, using no agency", fare_id=fare_id)
        agency_id = None

    return FareAttribute(
        id=fare_id,
        price=price,
        currency_type=decode_string(
            record,
            "currency_type",
            required=True,
            nonempty=True,
            replacement="XXX" if policy.use_default else "",
        ),
        payment_method=decode_int(record, "payment_method", policy, lower=0, upper=1) or 0,
        transfers=decode_int(
            record, "transfers", policy, lower=0, upper=2, default=None, substitute=True
        ),
        agency_id=agency_id,
        transfer_duration=decode_non_negative_int(record, "transfer_duration", policy),
    )


def build_fare_rule(
    record: Record,
    fare_attributes: Mapping[str, FareAttribute],
    routes: Mapping[str, Route],
    zones: Collection[str],
    policy: ErrorPolicy,
    prefix: str = "",
) -> tuple[FareAttribute, FareAttributeRule]:
    """Build a fare rule; zone ids must be zones of some retained stop."""
    fare_id = prefix + decode_string(record, "fare_id", required=True, nonempty=True)
    fare = fare_attributes.get(fare_id)
    if fare is None:
        raise UnresolvedReferenceError("fare_attributes", fare_id)

    route_id: str | None = None
    route_raw = decode_string(record, "route_id")
    if route_raw:
        route_id = prefix + route_raw
        if route_id not in routes:
            raise UnresolvedReferenceError("routes", route_id)

    zone_ids = []
    for column in ("origin_id", "destination_id", "contains_id"):
        zone_id = _prefixed(prefix, decode_string(record, column))
        if zone_id and zone_id not in zones:
            raise UnresolvedReferenceError("zones", zone_id)
        zone_ids.append(zone_id)

    origin_id, destination_id, contains_id = zone_ids
    return fare, FareAttributeRule(
        route_id=route_id,
        origin_id=origin_id,
        destination_id=destination_id,
        contains_id=contains_id,
    )


def build_transfer(
    record: Record,
    stops: Mapping[str, Stop],
    routes: Mapping[str, Route],
    trips: Mapping[str, Trip],
    policy: ErrorPolicy,
    prefix: str = "",
) -> tuple[TransferKey, Transfer]:
    def optional_ref(column: str, table: str, collection: Mapping[str, object]) -> str | None:
        raw = decode_string(record, column)
        if not raw:
            return None
        if prefix + raw not in collection:
            raise UnresolvedReferenceError(table, prefix + raw)
        return prefix + raw

    from_stop = prefix + decode_string(record, "from_stop_id", required=True, nonempty=True)
    if from_stop not in stops:
        raise UnresolvedReferenceError("stops", from_stop)
    to_stop = prefix + decode_string(record, "to_stop_id", required=True, nonempty=True)
    if to_stop not in stops:
        raise UnresolvedReferenceError("stops", to_stop)

    key = TransferKey(
        from_stop_id=from_stop,
        to_stop_id=to_stop,
        from_route_id=optional_ref("from_route_id", "routes", routes),
        to_route_id=optional_ref("to_route_id", "routes", routes),
        from_trip_id=optional_ref("from_trip_id", "trips", trips),
        to_trip_id=optional_ref("to_trip_id", "trips", trips),
    )
    transfer = Transfer(
        transfer_type=decode_int(record, "transfer_type", policy, lower=0, upper=5) or 0,
        min_transfer_time=decode_non_negative_int(
            record, "min_transfer_time", policy, substitute=True
        ),
    )
    return key, transfer


def build_pathway(
    record: Record,
    stops: Mapping[str, Stop],
    policy: ErrorPolicy,
    prefix: str = "",
) -> Pathway:
    pathway_id = prefix + decode_string(record, "pathway_id", required=True, nonempty=True)

    endpoints = []
    for column in ("from_stop_id", "to_stop_id"):
        stop_id = prefix + decode_string(record, column, required=True, nonempty=True)
        stop = stops.get(stop_id)
        if stop is None:
            raise UnresolvedReferenceError("stops", stop_id)
        if stop.location_type == LocationType.STATION:
            msg = (
                f"Stop for '{column}' with id '{stop_id}' is a station (location_type=1); "
                "pathways may only connect platforms, entrances, nodes and boarding areas"
            )
            raise HierarchyViolationError(msg)
        endpoints.append(stop_id)

    mode = decode_required_int(record, "pathway_mode", lower=1, upper=7)
    max_slope = decode_nullable_float(record, "max_slope", policy)

    return Pathway(
        id=pathway_id,
        from_stop_id=endpoints[0],
        to_stop_id=endpoints[1],
        mode=mode,
        is_bidirectional=decode_bool(record, "is_bidirectional", policy, required=True),
        length=decode_nullable_float(record, "length", policy, non_negative=True),
        traversal_time=decode_non_negative_int(record, "traversal_time", policy, substitute=True),
        stair_count=decode_int(record, "stair_count", policy, substitute=True) or 0,
        max_slope=max_slope if max_slope is not None else 0.0,
        min_width=decode_nullable_float(record, "min_width", policy, non_negative=True),
        signposted_as=decode_string(record, "signposted_as"),
        reversed_signposted_as=decode_string(record, "reversed_signposted_as"),
    )


def build_attribution(
    record: Record,
    agencies: Mapping[str, Agency],
    routes: Mapping[str, Route],
    trips: Mapping[str, Trip],
    policy: ErrorPolicy,
    prefix: str = "",
    line: int = 0,
) -> Attribution:
    attribution = Attribution(
        id=_prefixed(prefix, decode_string(record, "attribution_id")),
        organization_name=decode_string(
            record,
            "organization_name",
            required=True,
            nonempty=True,
            replacement=policy.empty_string_replacement,
        ),
        is_producer=decode_bool(record, "is_producer", policy),
        is_operator=decode_bool(record, "is_operator", policy),
        is_authority=decode_bool(record, "is_authority", policy),
        url=decode_url(record, "attribution_url", policy),
        email=decode_email(record, "attribution_email", policy),
        phone=decode_string(record, "attribution_phone"),
        line=line,
    )
    if not (attribution.is_producer or attribution.is_operator or attribution.is_authority):
        msg = "One of is_producer, is_operator or is_authority must be set"
        raise MissingRequiredFieldError(msg)

    targets = [
        (column, table, collection, _prefixed(prefix, decode_string(record, column)))
        for column, table, collection in (
            ("agency_id", "agencies", agencies),
            ("route_id", "routes", routes),
            ("trip_id", "trips", trips),
        )
    ]
    given = [target for target in targets if target[3]]
    if len(given) > 1:
        msg = "Only one of agency_id, route_id or trip_id can be set"
        raise TypeViolationError(msg)
    for column, table, collection, ref_id in given:
        if ref_id not in collection:
            raise UnresolvedReferenceError(table, ref_id)
        setattr(attribution, column, ref_id)
    return attribution


def build_translation(
    record: Record,
    targets: Mapping[str, Collection[str]],
    policy: ErrorPolicy,
    prefix: str = "",
) -> Translation:
    """Build a translation; ``targets`` maps referenced collections to their ids."""
    table_name = decode_string(record, "table_name", required=True, nonempty=True)
    table_name = table_name.lower().removesuffix(".txt")
    if table_name not in TRANSLATABLE_TABLES:
        msg = (
            f"table_name must be one of {', '.join(repr(t) for t in TRANSLATABLE_TABLES)} "
            f"(found '{printable(table_name)}')"
        )
        raise TypeViolationError(msg)

    translation = Translation(
        table_name=table_name,
        field_name=decode_string(record, "field_name", required=True, nonempty=True),
        language=decode_language(record, "language", policy, required=True),
        translation=decode_string(record, "translation", required=True, nonempty=True),
        record_id=_prefixed(prefix, decode_string(record, "record_id")),
        record_sub_id=decode_string(record, "record_sub_id"),
        field_value=decode_string(record, "field_value"),
    )

    if translation.record_id:
        target = TRANSLATABLE_TABLES[table_name]
        if target is None:
            msg = f"Cannot use record_id for table_name '{table_name}'"
            raise TypeViolationError(msg)
        if translation.field_value:
            msg = "record_id and field_value cannot both be defined"
            raise TypeViolationError(msg)
        if table_name == "stop_times" and not translation.record_sub_id:
            msg = "Expected required field 'record_sub_id' for table_name 'stop_times'"
            raise MissingRequiredFieldError(msg)
        if translation.record_id not in targets.get(target, ()):
            raise UnresolvedReferenceError(target, translation.record_id)
    return translation
