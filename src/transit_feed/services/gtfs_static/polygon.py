"""Point-in-polygon filter for restricting a feed to an area of interest."""

from __future__ import annotations

from typing import TYPE_CHECKING

from shapely.geometry import Point
from shapely.geometry import Polygon as ShapelyPolygon
from shapely.prepared import prep

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence


class Polygon:
    """A single outer ring of ``(lat, lon)`` vertices.

    Containment uses longitude as x and latitude as y. Points on the boundary
    count as contained.
    """

    def __init__(self, ring: Sequence[tuple[float, float]]) -> None:
        if len(ring) < 3:
            msg = f"Polygon ring needs at least 3 vertices, got {len(ring)}"
            raise ValueError(msg)
        # shapely takes (x, y) = (lon, lat)
        self.geometry = ShapelyPolygon([(float(lon), float(lat)) for lat, lon in ring])
        self._prepared = prep(self.geometry)
        self.min_x, self.min_y, self.max_x, self.max_y = self.geometry.bounds
        self._size = len(ring)

    def __len__(self) -> int:
        return self._size

    def contains(self, lat: float, lon: float) -> bool:
        if lon < self.min_x or lon > self.max_x or lat < self.min_y or lat > self.max_y:
            return False
        return self._prepared.covers(Point(lon, lat))


class PolygonFilter:
    """Accepts a point if it lies in any of the configured polygons.

    With no polygons configured every point is accepted.
    """

    def __init__(self, rings: Iterable[Sequence[tuple[float, float]]] = ()) -> None:
        self.polygons = [Polygon(ring) for ring in rings]

    @property
    def enabled(self) -> bool:
        return bool(self.polygons)

    def contains(self, lat: float, lon: float) -> bool:
        if not self.polygons:
            return True
        return any(polygon.contains(lat, lon) for polygon in self.polygons)
