"""Static GTFS feed parsing pipeline."""

from transit_feed.services.gtfs_static.errors import ErrorPolicy, ParseError
from transit_feed.services.gtfs_static.feed import Feed
from transit_feed.services.gtfs_static.parser import CsvRecordSource
from transit_feed.services.gtfs_static.polygon import Polygon, PolygonFilter
from transit_feed.services.gtfs_static.reader import GtfsFeedReader
from transit_feed.services.gtfs_static.report import ParseReport

__all__ = [
    "CsvRecordSource",
    "ErrorPolicy",
    "Feed",
    "GtfsFeedReader",
    "ParseError",
    "ParseReport",
    "Polygon",
    "PolygonFilter",
]
