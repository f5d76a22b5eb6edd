"""GTFS feed reader - locates tables in a directory or ZIP archive."""

from __future__ import annotations

import io
import posixpath
import zipfile
from pathlib import Path
from typing import IO, TYPE_CHECKING

from transit_feed.logging import get_logger
from transit_feed.services.gtfs_static.errors import FeedIOError, MissingTableError

if TYPE_CHECKING:
    import os

logger = get_logger(__name__)

# Tables the parser cannot do without
REQUIRED_TABLES = ("agency.txt", "stops.txt", "routes.txt", "trips.txt", "stop_times.txt")

# Used to find the table root when zip_fix is enabled
ANCHOR_TABLE = "stops.txt"


class GtfsFeedReader:
    """Opens GTFS tables from a directory, a ZIP file or ZIP bytes.

    Only one table stream is open at a time: opening a table closes the
    previous one. The archive itself stays open until :meth:`close`.
    """

    def __init__(self, source: str | os.PathLike[str] | bytes, zip_fix: bool = False) -> None:
        """Initialize reader for a feed location.

        Raises:
            FeedIOError: If the location does not exist or is not a valid ZIP.
        """
        self._zip: zipfile.ZipFile | None = None
        # directory root, used only when the feed is not a ZIP
        self._dir = Path()
        self._current: IO[str] | None = None
        self._prefix = ""

        try:
            if isinstance(source, bytes):
                self._zip = zipfile.ZipFile(io.BytesIO(source))
            else:
                path = Path(source)
                if path.is_dir():
                    self._dir = path
                else:
                    self._zip = zipfile.ZipFile(path)
        except (OSError, zipfile.BadZipFile) as exc:
            msg = f"Could not open feed {source if not isinstance(source, bytes) else '<bytes>'}"
            raise FeedIOError(f"{msg}: {exc}") from exc

        if zip_fix:
            self._locate_table_root()

        logger.info(
            "GTFS feed opened",
            kind="zip" if self._zip is not None else "directory",
            table_root=self._prefix or ".",
            missing_required=sorted(t for t in REQUIRED_TABLES if not self.has_table(t)),
        )

    def _locate_table_root(self) -> None:
        """Use the shallowest subdirectory holding the anchor table as table root."""
        if self.has_table(ANCHOR_TABLE):
            return
        candidates = [
            name for name in self.list_files() if posixpath.basename(name) == ANCHOR_TABLE
        ]
        if not candidates:
            return
        best = min(candidates, key=lambda name: (name.count("/"), name))
        self._prefix = posixpath.dirname(best)
        logger.info("Table root relocated", table_root=self._prefix)

    def _member(self, filename: str) -> str:
        return posixpath.join(self._prefix, filename) if self._prefix else filename

    def list_files(self) -> list[str]:
        """List all file names in the feed, relative to the feed root."""
        if self._zip is not None:
            return [name for name in self._zip.namelist() if not name.endswith("/")]
        return sorted(
            p.relative_to(self._dir).as_posix() for p in self._dir.rglob("*") if p.is_file()
        )

    def has_table(self, filename: str) -> bool:
        member = self._member(filename)
        if self._zip is not None:
            try:
                self._zip.getinfo(member)
            except KeyError:
                return False
            return True
        return (self._dir / member).is_file()

    def open_table(self, filename: str) -> IO[str]:
        """Open a table for text reading, closing any previously opened table.

        Raises:
            MissingTableError: If the table is not part of the feed.
            FeedIOError: If the file cannot be opened.
        """
        self._close_current()
        if not self.has_table(filename):
            msg = f"Could not open table {filename}"
            raise MissingTableError(msg)

        member = self._member(filename)
        try:
            if self._zip is not None:
                binary_stream = self._zip.open(member)
                stream: IO[str] = io.TextIOWrapper(binary_stream, encoding="utf-8-sig", newline="")
            else:
                stream = open(self._dir / member, encoding="utf-8-sig", newline="")  # noqa: SIM115
        except (OSError, zipfile.BadZipFile) as exc:
            raise FeedIOError(f"Could not read {filename}: {exc}") from exc

        self._current = stream
        return stream

    def _close_current(self) -> None:
        if self._current is not None:
            self._current.close()
            self._current = None

    def close(self) -> None:
        """Close the open table stream and the archive."""
        self._close_current()
        if self._zip is not None:
            self._zip.close()

    def __enter__(self) -> GtfsFeedReader:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
