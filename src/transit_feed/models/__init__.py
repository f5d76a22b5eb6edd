"""In-memory entity types for parsed GTFS feeds."""

from transit_feed.models.calendar import Date, ExceptionType, Service, Time
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
from transit_feed.models.route_types import to_basic_route_type

__all__ = [
    "Agency",
    "Attribution",
    "Date",
    "ExceptionType",
    "FareAttribute",
    "FareAttributeRule",
    "FeedInfo",
    "Frequency",
    "Level",
    "LocationType",
    "Pathway",
    "Route",
    "Service",
    "Shape",
    "ShapePoint",
    "Stop",
    "StopTime",
    "StopTimeFlags",
    "Time",
    "Transfer",
    "TransferKey",
    "Translation",
    "Trip",
    "to_basic_route_type",
]
