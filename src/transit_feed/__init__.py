"""GTFS static feed ingestion into a validated in-memory entity graph."""

from transit_feed.config import ParseSettings, get_settings
from transit_feed.services.gtfs_static import Feed, ParseError, ParseReport

__all__ = [
    "Feed",
    "ParseError",
    "ParseReport",
    "ParseSettings",
    "get_settings",
]
