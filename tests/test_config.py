"""Tests for ParseSettings loading and validation."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from transit_feed.models import Date
from transit_feed.services.gtfs_static.errors import ErrorPolicy

from .fixtures.gtfs_fixture import make_settings


class TestParseSettings:
    def test_defaults(self) -> None:
        settings = make_settings()
        assert not settings.use_default_on_error
        assert not settings.drop_erroneous
        assert settings.polygons == []
        assert not settings.has_date_filter

    def test_environment_variables(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("GTFS_DROP_ERRONEOUS", "true")
        monkeypatch.setenv("GTFS_ROUTE_TYPES", "[3, 700]")
        monkeypatch.setenv("GTFS_DATE_FILTER_START", "20240101")
        settings = make_settings()
        assert settings.drop_erroneous
        assert settings.route_types == [3, 700]
        assert settings.filter_start == Date(2024, 1, 1)
        assert settings.filter_end is None
        assert settings.has_date_filter

    def test_legacy_default_on_error_variable(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("GTFS_USE_DEF_VALUE_ON_ERROR", "1")
        assert make_settings().use_default_on_error

    def test_unprefixed_variable_is_ignored(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("USE_DEFAULT_ON_ERROR", "1")
        assert not make_settings().use_default_on_error
        monkeypatch.setenv("GTFS_USE_DEFAULT_ON_ERROR", "1")
        assert make_settings().use_default_on_error

    def test_keyword_by_field_name(self) -> None:
        assert make_settings(use_default_on_error=True).use_default_on_error


    def test_polygons_from_json(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("GTFS_POLYGONS", "[[[0, 0], [0, 1], [1, 1]]]")
        assert make_settings().polygons == [[(0.0, 0.0), (0.0, 1.0), (1.0, 1.0)]]

    def test_invalid_date(self) -> None:
        with pytest.raises(ValidationError, match="YYYYMMDD"):
            make_settings(date_filter_start="2024-01-01")

    def test_empty_date_means_unset(self) -> None:
        assert make_settings(date_filter_end="").filter_end is None

    def test_window_end_before_start(self) -> None:
        with pytest.raises(ValidationError, match="before date_filter_start"):
            make_settings(date_filter_start="20240201", date_filter_end="20240101")

    def test_degenerate_polygon(self) -> None:
        with pytest.raises(ValidationError, match="at least 3 vertices"):
            make_settings(polygons=[[(0.0, 0.0), (1.0, 1.0)]])

    def test_policy_from_settings(self) -> None:
        policy = ErrorPolicy.from_settings(
            make_settings(use_default_on_error=True, empty_string_replacement="-")
        )
        assert policy.use_default
        assert not policy.strict
        assert policy.empty_string_replacement == "-"
        assert ErrorPolicy().strict
