"""Tests for GtfsFeedReader - ZIP and directory access, table root discovery."""

from __future__ import annotations

import io
import zipfile
from typing import TYPE_CHECKING

import pytest

from transit_feed.services.gtfs_static.errors import FeedIOError, MissingTableError
from transit_feed.services.gtfs_static.reader import GtfsFeedReader

from .fixtures.gtfs_fixture import build_gtfs_zip, build_invalid_zip, write_gtfs_dir

if TYPE_CHECKING:
    from pathlib import Path


class TestGtfsFeedReader:
    """Tests for opening feeds from the supported locations."""

    def test_zip_bytes_open_successfully(self) -> None:
        with GtfsFeedReader(build_gtfs_zip()) as reader:
            files = reader.list_files()
        assert "stops.txt" in files
        assert "routes.txt" in files
        assert "stop_times.txt" in files

    def test_zip_file_on_disk(self, tmp_path: Path) -> None:
        path = tmp_path / "feed.zip"
        path.write_bytes(build_gtfs_zip())
        with GtfsFeedReader(path) as reader:
            assert reader.has_table("agency.txt")

    def test_directory_feed(self, tmp_path: Path) -> None:
        feed_dir = write_gtfs_dir(tmp_path / "feed")
        with GtfsFeedReader(str(feed_dir)) as reader:
            assert reader.has_table("trips.txt")
            assert not reader.has_table("shapes.txt")
            header = reader.open_table("trips.txt").readline()
        assert header.startswith("route_id,service_id,trip_id")

    def test_invalid_zip_bytes_raises(self) -> None:
        with pytest.raises(FeedIOError, match="Could not open feed"):
            GtfsFeedReader(build_invalid_zip())

    def test_nonexistent_path_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FeedIOError):
            GtfsFeedReader(tmp_path / "missing.zip")

    def test_missing_table_raises(self) -> None:
        with GtfsFeedReader(build_gtfs_zip(exclude_files={"stops.txt"})) as reader:
            assert not reader.has_table("stops.txt")
            with pytest.raises(MissingTableError, match=r"stops\.txt"):
                reader.open_table("stops.txt")

    def test_open_table_strips_bom(self) -> None:
        zip_bytes = build_gtfs_zip(agency="\ufeffagency_id,agency_name\nTL,TransLink\n")
        with GtfsFeedReader(zip_bytes) as reader:
            header = reader.open_table("agency.txt").readline()
        assert header.startswith("agency_id")

    def test_opening_a_table_closes_the_previous_one(self) -> None:
        with GtfsFeedReader(build_gtfs_zip()) as reader:
            first = reader.open_table("stops.txt")
            reader.open_table("routes.txt")
            assert first.closed


class TestZipFix:
    """Tests for locating tables inside a nested archive directory."""

    def test_nested_tables_not_found_without_fix(self) -> None:
        with GtfsFeedReader(build_gtfs_zip(root="export/gtfs/")) as reader:
            assert not reader.has_table("stops.txt")

    def test_nested_tables_found_with_fix(self) -> None:
        with GtfsFeedReader(build_gtfs_zip(root="export/gtfs/"), zip_fix=True) as reader:
            assert reader.has_table("stops.txt")
            assert reader.has_table("agency.txt")

    def test_shallowest_directory_wins(self) -> None:
        buf = io.BytesIO()
        with zipfile.ZipFile(buf, "w") as zf:
            zf.writestr("a/b/stops.txt", "stop_id,stop_name\nDEEP,Deep\n")
            zf.writestr("c/stops.txt", "stop_id,stop_name\nSHALLOW,Shallow\n")
        with GtfsFeedReader(buf.getvalue(), zip_fix=True) as reader:
            stream = reader.open_table("stops.txt")
            stream.readline()
            first = stream.readline()
        assert first.startswith("SHALLOW")

    def test_root_tables_take_precedence(self) -> None:
        with GtfsFeedReader(build_gtfs_zip(), zip_fix=True) as reader:
            assert reader.has_table("stops.txt")
