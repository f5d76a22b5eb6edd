"""Error taxonomy and the per-parse error policy."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from transit_feed.logging import get_logger

if TYPE_CHECKING:
    from transit_feed.config import ParseSettings

logger = get_logger(__name__)

MAX_KEPT_WARNINGS = 100


class FeedError(Exception):
    """Base class for everything raised while reading a feed."""


class FieldError(FeedError):
    """A single record failed validation."""


class MissingRequiredFieldError(FieldError):
    """A required value is absent or empty."""


class TypeViolationError(FieldError):
    """A value has the wrong shape or cannot be parsed."""


class RangeViolationError(FieldError):
    """A numeric value lies outside its declared bounds."""


class IdCollisionError(FieldError):
    """An identifier is declared twice within one table."""


class UnresolvedReferenceError(FieldError):
    """A foreign key does not name an entity of the referenced table."""

    def __init__(self, table: str, ref_id: str, message: str | None = None) -> None:
        self.table = table
        self.ref_id = ref_id
        super().__init__(message or f"No {_SINGULAR.get(table, table)} with id '{ref_id}' found")


class OrderingViolationError(FieldError):
    """A sequence number is used twice within one shape or trip."""


class MonotonicityViolationError(FieldError):
    """A cumulative distance decreases, or times run backwards."""


class HierarchyViolationError(FieldError):
    """A stop is linked to a stop of a location type it may not be linked to."""


class ConsistencyError(FeedError):
    """Entities of one feed contradict each other (e.g. agency timezones)."""


class FeedIOError(FeedError):
    """Reading the underlying file, archive or CSV stream failed."""


class MissingTableError(FeedError):
    """A table required by the format is not present in the feed."""


class MissingColumnError(FeedError):
    """A required CSV column is missing from a table header."""


class ParseError(FeedError):
    """Terminal parse failure with its originating table and 1-based line.

    ``line`` is 0 when the failure concerns the file as a whole.
    """

    def __init__(self, table: str, line: int, message: str) -> None:
        self.table = table
        self.line = line
        self.message = message
        super().__init__(f"{table}:{line}: {message}")


_SINGULAR = {
    "agencies": "agency",
    "stops": "stop",
    "routes": "route",
    "trips": "trip",
    "services": "service",
    "shapes": "shape",
    "levels": "level",
    "fare_attributes": "fare attribute",
    "pathways": "pathway",
    "zones": "zone",
}


@dataclass
class ErrorPolicy:
    """How validation failures are handled, threaded through every decoder and builder.

    ``use_default`` substitutes a default where the field has one;
    ``drop_erroneous`` skips the offending record instead of failing. With
    neither set the first failure is fatal.
    """

    use_default: bool = False
    drop_erroneous: bool = False
    dry_run: bool = False
    check_null_coordinates: bool = False
    empty_string_replacement: str = ""
    warnings: list[str] = field(default_factory=list)
    warning_count: int = 0

    @classmethod
    def from_settings(cls, settings: ParseSettings) -> ErrorPolicy:
        return cls(
            use_default=settings.use_default_on_error,
            drop_erroneous=settings.drop_erroneous,
            dry_run=settings.dry_run,
            check_null_coordinates=settings.check_null_coordinates,
            empty_string_replacement=settings.empty_string_replacement,
        )

    @property
    def strict(self) -> bool:
        return not (self.use_default or self.drop_erroneous)

    def warn(self, message: str, **context: Any) -> None:
        """Record a substitution or other non-fatal finding."""
        self.warning_count += 1
        if len(self.warnings) < MAX_KEPT_WARNINGS:
            self.warnings.append(message)
        logger.warning(message, **context)
