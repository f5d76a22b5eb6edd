"""GTFS static entity types.

Entities reference each other by identifier only; the owning collections live
on :class:`transit_feed.services.gtfs_static.feed.Feed`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import TYPE_CHECKING, NamedTuple

if TYPE_CHECKING:
    from transit_feed.models.calendar import Date, Time


class LocationType(IntEnum):
    STOP = 0
    STATION = 1
    ENTRANCE = 2
    NODE = 3
    BOARDING_AREA = 4


@dataclass(slots=True)
class Agency:
    """Transit agency."""

    id: str
    name: str
    url: str
    timezone: str
    lang: str = ""
    phone: str = ""
    fare_url: str | None = None
    email: str | None = None


@dataclass(slots=True)
class Level:
    """Station level."""

    id: str
    index: float = 0.0
    name: str = ""


@dataclass(slots=True)
class Stop:
    """Stop, station, entrance, generic node or boarding area."""

    id: str
    name: str = ""
    lat: float | None = None
    lon: float | None = None
    location_type: LocationType = LocationType.STOP
    parent_id: str | None = None
    code: str = ""
    desc: str = ""
    zone_id: str = ""
    url: str | None = None
    timezone: str = ""
    wheelchair_boarding: int = 0
    level_id: str | None = None
    platform_code: str = ""

    @property
    def has_lat_lon(self) -> bool:
        return self.lat is not None and self.lon is not None


@dataclass(slots=True)
class Route:
    """Transit route."""

    id: str
    agency_id: str | None
    type: int
    short_name: str = ""
    long_name: str = ""
    desc: str = ""
    url: str | None = None
    color: str = "FFFFFF"
    text_color: str = "000000"
    sort_order: int | None = None
    continuous_pickup: int = 1
    continuous_drop_off: int = 1


@dataclass(slots=True)
class ShapePoint:
    lat: float
    lon: float
    sequence: int
    dist_traveled: float | None = None
    line: int = field(default=0, repr=False, compare=False)

    @property
    def has_dist(self) -> bool:
        return self.dist_traveled is not None


@dataclass(slots=True)
class Shape:
    """Geographic path; ``reserved`` is the point count seen in the reservation pass."""

    id: str
    points: list[ShapePoint] = field(default_factory=list)
    reserved: int = 0


class StopTimeFlags(int):
    """Traffic-control codes of one stop-time packed into a small integer.

    ======  ============================
    bits    field
    ======  ============================
    0-1     pickup_type
    2-3     drop_off_type
    4-5     continuous_pickup
    6-7     continuous_drop_off
    8       timepoint
    ======  ============================
    """

    PICKUP_SHIFT = 0
    DROP_OFF_SHIFT = 2
    CONTINUOUS_PICKUP_SHIFT = 4
    CONTINUOUS_DROP_OFF_SHIFT = 6
    TIMEPOINT_BIT = 1 << 8
    CODE_MASK = 0b11

    @classmethod
    def pack(
        cls,
        pickup_type: int = 0,
        drop_off_type: int = 0,
        continuous_pickup: int = 1,
        continuous_drop_off: int = 1,
        timepoint: bool = True,
    ) -> StopTimeFlags:
        for code in (pickup_type, drop_off_type, continuous_pickup, continuous_drop_off):
            if not 0 <= code <= cls.CODE_MASK:
                msg = f"Traffic-control code must be within 0..3, got {code}"
                raise ValueError(msg)
        value = (
            pickup_type << cls.PICKUP_SHIFT
            | drop_off_type << cls.DROP_OFF_SHIFT
            | continuous_pickup << cls.CONTINUOUS_PICKUP_SHIFT
            | continuous_drop_off << cls.CONTINUOUS_DROP_OFF_SHIFT
        )
        if timepoint:
            value |= cls.TIMEPOINT_BIT
        return cls(value)

    def _code(self, shift: int) -> int:
        return int(self) >> shift & self.CODE_MASK

    @property
    def pickup_type(self) -> int:
        return self._code(self.PICKUP_SHIFT)

    @property
    def drop_off_type(self) -> int:
        return self._code(self.DROP_OFF_SHIFT)

    @property
    def continuous_pickup(self) -> int:
        return self._code(self.CONTINUOUS_PICKUP_SHIFT)

    @property
    def continuous_drop_off(self) -> int:
        return self._code(self.CONTINUOUS_DROP_OFF_SHIFT)

    @property
    def timepoint(self) -> bool:
        return bool(int(self) & self.TIMEPOINT_BIT)

    def with_timepoint(self, timepoint: bool) -> StopTimeFlags:
        if timepoint:
            return StopTimeFlags(int(self) | self.TIMEPOINT_BIT)
        return StopTimeFlags(int(self) & ~self.TIMEPOINT_BIT)


@dataclass(slots=True)
class StopTime:
    """A single scheduled call of a trip at a stop."""

    stop_id: str
    sequence: int
    arrival: Time | None = None
    departure: Time | None = None
    headsign: str = ""
    flags: StopTimeFlags = field(default_factory=StopTimeFlags.pack)
    shape_dist_traveled: float | None = None
    line: int = field(default=0, repr=False, compare=False)

    @property
    def pickup_type(self) -> int:
        return self.flags.pickup_type

    @property
    def drop_off_type(self) -> int:
        return self.flags.drop_off_type

    @property
    def continuous_pickup(self) -> int:
        return self.flags.continuous_pickup

    @property
    def continuous_drop_off(self) -> int:
        return self.flags.continuous_drop_off

    @property
    def timepoint(self) -> bool:
        return self.flags.timepoint

    @property
    def has_dist(self) -> bool:
        return self.shape_dist_traveled is not None


@dataclass(slots=True)
class Frequency:
    start_time: Time
    end_time: Time
    headway_secs: int
    exact_times: bool = False


@dataclass(slots=True)
class Trip:
    """A vehicle trip; ``reserved`` is the stop-time count seen in the reservation pass."""

    id: str
    route_id: str
    service_id: str
    shape_id: str | None = None
    headsign: str = ""
    short_name: str = ""
    direction_id: int | None = None
    block_id: str = ""
    wheelchair_accessible: int = 0
    bikes_allowed: int = 0
    stop_times: list[StopTime] = field(default_factory=list)
    frequencies: list[Frequency] = field(default_factory=list)
    reserved: int = 0


@dataclass(slots=True)
class FareAttributeRule:
    route_id: str | None = None
    origin_id: str = ""
    destination_id: str = ""
    contains_id: str = ""


@dataclass(slots=True)
class FareAttribute:
    """Fare definition; ``transfers`` is None when unlimited transfers are allowed."""

    id: str
    price: str
    currency_type: str
    payment_method: int
    transfers: int | None = None
    agency_id: str | None = None
    transfer_duration: int | None = None
    rules: list[FareAttributeRule] = field(default_factory=list)


class TransferKey(NamedTuple):
    from_stop_id: str
    to_stop_id: str
    from_route_id: str | None = None
    to_route_id: str | None = None
    from_trip_id: str | None = None
    to_trip_id: str | None = None


@dataclass(slots=True)
class Transfer:
    transfer_type: int = 0
    min_transfer_time: int | None = None


@dataclass(slots=True)
class Pathway:
    """Edge of a station's internal walking graph."""

    id: str
    from_stop_id: str
    to_stop_id: str
    mode: int
    is_bidirectional: bool
    length: float | None = None
    traversal_time: int | None = None
    stair_count: int = 0
    max_slope: float = 0.0
    min_width: float | None = None
    signposted_as: str = ""
    reversed_signposted_as: str = ""


@dataclass(slots=True)
class FeedInfo:
    publisher_name: str
    publisher_url: str
    lang: str
    start_date: Date | None = None
    end_date: Date | None = None
    version: str = ""
    contact_email: str | None = None
    contact_url: str | None = None


@dataclass(slots=True)
class Attribution:
    """Organisation credited for the feed, an agency, a route or a trip."""

    organization_name: str
    id: str = ""
    is_producer: bool = False
    is_operator: bool = False
    is_authority: bool = False
    url: str | None = None
    email: str | None = None
    phone: str = ""
    agency_id: str | None = None
    route_id: str | None = None
    trip_id: str | None = None
    line: int = field(default=0, repr=False, compare=False)


@dataclass(slots=True)
class Translation:
    table_name: str
    field_name: str
    language: str
    translation: str
    record_id: str = ""
    record_sub_id: str = ""
    field_value: str = ""
