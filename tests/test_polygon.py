"""Tests for the point-in-polygon filter."""

from __future__ import annotations

import pytest

from transit_feed.services.gtfs_static.polygon import Polygon, PolygonFilter

# (lat, lon) vertices
SQUARE = [(0.0, 0.0), (0.0, 10.0), (10.0, 10.0), (10.0, 0.0)]
TRIANGLE = [(0.0, 0.0), (0.0, 10.0), (10.0, 0.0)]


class TestPolygon:
    """Tests for containment including the boundary cases."""

    def test_inside(self) -> None:
        assert Polygon(SQUARE).contains(5.0, 5.0)

    def test_outside_bounding_box(self) -> None:
        assert not Polygon(SQUARE).contains(15.0, 5.0)

    def test_outside_within_bounding_box(self) -> None:
        triangle = Polygon(TRIANGLE)
        assert triangle.contains(2.0, 2.0)
        assert not triangle.contains(8.0, 8.0)

    @pytest.mark.parametrize(
        ("lat", "lon"),
        [(0.0, 5.0), (10.0, 5.0), (5.0, 0.0), (5.0, 10.0), (10.0, 10.0), (0.0, 0.0)],
    )
    def test_boundary_counts_as_inside(self, lat: float, lon: float) -> None:
        assert Polygon(SQUARE).contains(lat, lon)

    def test_needs_three_vertices(self) -> None:
        with pytest.raises(ValueError, match="at least 3"):
            Polygon([(0.0, 0.0), (1.0, 1.0)])

    def test_len(self) -> None:
        assert len(Polygon(TRIANGLE)) == 3

    def test_concave_ring(self) -> None:
        # U shape open to the north
        ring = [
            (0.0, 0.0),
            (10.0, 0.0),
            (10.0, 3.0),
            (3.0, 3.0),
            (3.0, 7.0),
            (10.0, 7.0),
            (10.0, 10.0),
            (0.0, 10.0),
        ]
        polygon = Polygon(ring)
        assert polygon.contains(8.0, 1.0)
        assert not polygon.contains(8.0, 5.0)
        assert polygon.contains(3.0, 5.0)

    def test_latitude_is_y(self) -> None:
        polygon = Polygon([(49.0, -124.0), (49.0, -123.0), (50.0, -123.0), (50.0, -124.0)])
        assert polygon.geometry.bounds == (-124.0, 49.0, -123.0, 50.0)
        assert polygon.contains(49.5, -123.5)
        assert not polygon.contains(-123.5, 49.5)


class TestPolygonFilter:
    def test_no_polygons_accepts_everything(self) -> None:
        polygon_filter = PolygonFilter()
        assert not polygon_filter.enabled
        assert polygon_filter.contains(89.0, 179.0)

    def test_any_polygon_may_contain_the_point(self) -> None:
        far_square = [(20.0, 20.0), (20.0, 30.0), (30.0, 30.0), (30.0, 20.0)]
        polygon_filter = PolygonFilter([SQUARE, far_square])
        assert polygon_filter.enabled
        assert polygon_filter.contains(25.0, 25.0)
        assert polygon_filter.contains(5.0, 5.0)
        assert not polygon_filter.contains(15.0, 15.0)
