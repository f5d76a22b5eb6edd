"""Parser configuration via environment variables."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal, Optional

from pydantic import AliasChoices, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from transit_feed.models.calendar import Date


class ParseSettings(BaseSettings):
    """Feed parsing options loaded from environment variables (``GTFS_`` prefix)."""

    model_config = SettingsConfigDict(
        env_prefix="GTFS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Logging
    environment: Literal["development", "production"] = "development"
    log_level: str = "INFO"

    # Error policy
    use_default_on_error: bool = Field(
        default=False,
        validation_alias=AliasChoices("GTFS_USE_DEFAULT_ON_ERROR", "GTFS_USE_DEF_VALUE_ON_ERROR"),
    )
    drop_erroneous: bool = False
    dry_run: bool = False
    check_null_coordinates: bool = False
    empty_string_replacement: str = ""

    # Discovery / retention
    zip_fix: bool = False
    keep_extra_columns: bool = False

    # Filters
    polygons: list[list[tuple[float, float]]] = Field(default_factory=list)
    route_types: list[int] = Field(default_factory=list)
    use_standard_route_types: bool = False
    date_filter_start: Optional[str] = None
    date_filter_end: Optional[str] = None

    @field_validator("date_filter_start", "date_filter_end")
    @classmethod
    def _check_date(cls, value: Optional[str]) -> Optional[str]:
        if value is None or value == "":
            return None
        Date.parse(value)
        return value

    @field_validator("polygons")
    @classmethod
    def _check_rings(
        cls, value: list[list[tuple[float, float]]]
    ) -> list[list[tuple[float, float]]]:
        for ring in value:
            if len(ring) < 3:
                msg = f"Polygon ring needs at least 3 vertices, got {len(ring)}"
                raise ValueError(msg)
        return value

    @model_validator(mode="after")
    def _check_window(self) -> ParseSettings:
        start, end = self.filter_start, self.filter_end
        if start is not None and end is not None and end < start:
            msg = f"date_filter_end {end} is before date_filter_start {start}"
            raise ValueError(msg)
        return self

    @property
    def filter_start(self) -> Date | None:
        """Start of the date window, if configured."""
        return Date.parse(self.date_filter_start) if self.date_filter_start else None

    @property
    def filter_end(self) -> Date | None:
        """End of the date window, if configured."""
        return Date.parse(self.date_filter_end) if self.date_filter_end else None

    @property
    def has_date_filter(self) -> bool:
        return self.filter_start is not None or self.filter_end is not None


@lru_cache
def get_settings() -> ParseSettings:
    """Get cached settings instance."""
    return ParseSettings()
