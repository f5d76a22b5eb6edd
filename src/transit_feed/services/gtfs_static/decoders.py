"""Field decoders: policy-aware conversion of CSV cells into typed values.

Every decoder takes the record, the column name and the active
:class:`ErrorPolicy`. A decoder either returns a value, returns a substituted
default (only when the policy allows it and the field has one; a warning is
emitted), or raises a :class:`FieldError` subclass.
"""

from __future__ import annotations

import math
import re
from email.utils import parseaddr
from typing import TYPE_CHECKING
from urllib.parse import urlsplit
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from transit_feed.models.calendar import Date, DateParseError, Time, TimeParseError
from transit_feed.services.gtfs_static.errors import (
    FieldError,
    MissingRequiredFieldError,
    RangeViolationError,
    TypeViolationError,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

    from transit_feed.services.gtfs_static.errors import ErrorPolicy

_HEX_COLOR_RE = re.compile(r"^[0-9a-fA-F]{6}$")
_INT_RE = re.compile(r"[+-]?[0-9]+")
_EMBEDDED_URL_RE = re.compile(
    r"(https?://)?(www\.)?[-a-zA-Z0-9@:%._+~#=]{1,256}\.[a-zA-Z0-9()]{1,6}\b"
    r"([-a-zA-Z0-9()@:%_+.~#?&/=]*)"
)
_QUOTES = "«»'\"`‹›„“‟”’‘‛"

ISO_639_1 = frozenset(
    "ab aa af ak sq am ar an hy as av ae ay az bm ba eu be bn bh bi bs br bg my ca ch ce "
    "ny zh cv kw co cr hr cs da dv nl dz en eo et ee fo fj fi fr ff gl ka de el gn gu ht "
    "ha he hz hi ho hu ia id ie ga ig ik io is it iu ja jv kl kn kr ks kk km ki rw ky kv "
    "kg ko ku kj la lb lg li ln lo lt lu lv gv mk mg ms ml mt mi mr mh mn na nv nd ne ng "
    "nb nn no ii nr oc oj cu om or os pa pi fa pl ps pt qu rm rn ro ru sa sc sd se sm sg "
    "sr gd sn si sk sl so st es su sw ss sv ta te tg th ti bo tk tl tn to tr ts tt tw ty "
    "ug uk ur uz ve vi vo wa cy wo fy xh yi yo za zu".split()
)


def printable(value: str) -> str:
    """Make control characters in a cell visible inside error messages."""
    return value.replace("\r", "<CR>").replace("\n", "<LF>").replace("\x15", "<NL>")


def _raw(record: Mapping[str, str], name: str) -> str | None:
    """Stripped cell value, or None if the table has no such column."""
    value = record.get(name)
    if value is None:
        return None
    return value.strip()


def _missing(name: str) -> MissingRequiredFieldError:
    return MissingRequiredFieldError(f"Expected required field '{name}'")


def decode_string(
    record: Mapping[str, str],
    name: str,
    *,
    required: bool = False,
    nonempty: bool = False,
    replacement: str = "",
) -> str:
    """Decode a string cell.

    ``required`` demands the column; ``nonempty`` additionally demands a value,
    falling back to ``replacement`` if one is given.
    """
    value = _raw(record, name)
    if value is None:
        if required:
            raise _missing(name)
        return ""
    if nonempty and not value:
        if replacement:
            return replacement
        msg = f"Expected non-empty string for field '{name}'"
        raise MissingRequiredFieldError(msg)
    return value


def _parse_int(value: str, name: str, lower: int | None, upper: int | None) -> int:
    if not _INT_RE.fullmatch(value):
        msg = f"Expected integer for field '{name}', found '{printable(value)}'"
        raise TypeViolationError(msg)
    number = int(value)
    if (lower is not None and number < lower) or (upper is not None and number > upper):
        msg = (
            f"Expected integer {_bounds(lower, upper)} for field '{name}', found {printable(value)}"
        )
        raise RangeViolationError(msg)
    return number


def decode_int(
    record: Mapping[str, str],
    name: str,
    policy: ErrorPolicy,
    *,
    required: bool = False,
    lower: int | None = None,
    upper: int | None = None,
    default: int | None = 0,
    substitute: bool = False,
) -> int | None:
    """Decode an integer, optionally bounded to ``[lower, upper]``.

    An empty optional cell yields ``default``. With ``substitute`` set and a
    policy that allows it, malformed or out-of-range values yield ``default``
    too instead of raising.
    """
    value = _raw(record, name)
    if not value:
        if required:
            if substitute and policy.use_default and default is not None:
                policy.warn(f"Missing required field '{name}', using default {default}", field=name)
                return default
            raise _missing(name)
        return default

    try:
        return _parse_int(value, name, lower, upper)
    except FieldError as err:
        if substitute and policy.use_default:
            policy.warn(f"{err}, using default {default}", field=name)
            return default
        raise


def decode_required_int(
    record: Mapping[str, str],
    name: str,
    *,
    lower: int | None = None,
    upper: int | None = None,
) -> int:
    """Decode a required integer that has no default."""
    value = _raw(record, name)
    if not value:
        raise _missing(name)
    return _parse_int(value, name, lower, upper)


def _bounds(lower: int | None, upper: int | None) -> str:
    if lower is not None and upper is not None:
        return f"between {lower} and {upper}"
    if lower is not None:
        return f">= {lower}"
    return f"<= {upper}"


def decode_non_negative_int(
    record: Mapping[str, str],
    name: str,
    policy: ErrorPolicy,
    *,
    required: bool = False,
    default: int | None = None,
    substitute: bool = False,
) -> int | None:
    return decode_int(
        record,
        name,
        policy,
        required=required,
        lower=0,
        default=default,
        substitute=substitute,
    )


def parse_float(value: str) -> float:
    # float() also takes digit separators and non-ASCII digits
    if not value.isascii() or "_" in value:
        raise ValueError(value)
    return float(value)


def decode_float(record: Mapping[str, str], name: str) -> float:
    """Decode a required float; a comma is accepted as decimal separator."""
    value = _raw(record, name)
    if not value:
        raise _missing(name)
    try:
        number = parse_float(value)
    except ValueError:
        try:
            number = parse_float(value.replace(",", ".", 1))
        except ValueError:
            msg = f"Expected float for field '{name}', found '{printable(value)}'"
            raise TypeViolationError(msg) from None
    if math.isnan(number) or math.isinf(number):
        msg = f"Expected finite float for field '{name}', found '{printable(value)}'"
        raise TypeViolationError(msg)
    return number


def decode_nullable_float(
    record: Mapping[str, str],
    name: str,
    policy: ErrorPolicy,
    *,
    non_negative: bool = False,
) -> float | None:
    """Decode an optional float; ``None`` is the null state, distinct from zero.

    Unparsable values become ``None`` under default substitution.
    """
    value = _raw(record, name)
    if not value:
        return None
    try:
        number = parse_float(value)
    except ValueError:
        number = math.nan
    if math.isnan(number) or math.isinf(number) or (non_negative and number < 0):
        kind = "non-negative float" if non_negative else "float"
        msg = f"Expected {kind} for field '{name}', found '{printable(value)}'"
        if policy.use_default:
            policy.warn(msg, field=name)
            return None
        raise TypeViolationError(msg)
    return number


def decode_bool(
    record: Mapping[str, str],
    name: str,
    policy: ErrorPolicy,
    *,
    required: bool = False,
    default: bool = False,
) -> bool:
    """Decode a boolean written as the literal digit ``0`` or ``1``."""
    value = _raw(record, name)
    if not value:
        if required:
            if policy.use_default:
                policy.warn(f"Missing required field '{name}', using default", field=name)
                return default
            raise _missing(name)
        return default
    if value in ("0", "1"):
        return value == "1"
    msg = f"Expected 1 or 0 for field '{name}', found '{printable(value)}'"
    if policy.use_default:
        policy.warn(msg, field=name)
        return default
    raise TypeViolationError(msg)


def _parse_date(value: str, name: str) -> Date:
    try:
        return Date.parse(value)
    except DateParseError as exc:
        msg = f"Expected YYYYMMDD date for field '{name}', found '{printable(value)}'"
        raise TypeViolationError(msg) from exc


def decode_date(
    record: Mapping[str, str],
    name: str,
    policy: ErrorPolicy,
    *,
    substitute: bool = True,
) -> Date | None:
    """Decode an optional ``YYYYMMDD`` date; a malformed one becomes None under substitution."""
    value = _raw(record, name)
    if not value:
        return None
    try:
        return _parse_date(value, name)
    except TypeViolationError as err:
        if substitute and policy.use_default:
            policy.warn(str(err), field=name)
            return None
        raise


def decode_required_date(record: Mapping[str, str], name: str) -> Date:
    """Decode a required ``YYYYMMDD`` date. Never substituted."""
    value = _raw(record, name)
    if not value:
        raise _missing(name)
    return _parse_date(value, name)


def decode_time(record: Mapping[str, str], name: str) -> Time | None:
    """Decode an ``H:MM:SS`` time; empty yields None. Never substituted."""
    value = _raw(record, name)
    if not value:
        return None
    try:
        return Time.parse(value)
    except TimeParseError as exc:
        msg = f"Expected HH:MM:SS time for field '{name}', found '{printable(value)}'"
        raise TypeViolationError(msg) from exc


def decode_color(
    record: Mapping[str, str],
    name: str,
    policy: ErrorPolicy,
    *,
    default: str,
) -> str:
    """Decode a six-digit hex color, upper-cased; empty yields ``default``."""
    value = _raw(record, name)
    if not value:
        return default.upper()
    if _HEX_COLOR_RE.match(value):
        return value.upper()
    msg = (
        f"Expected six-character hexadecimal color for field '{name}', "
        f"found '{printable(value)}'"
    )
    if policy.use_default:
        policy.warn(msg, field=name)
        return default.upper()
    raise TypeViolationError(msg)


def _trim_quotes(value: str) -> str:
    return value.strip().strip(_QUOTES).strip()


def _valid_url(value: str) -> bool:
    if any(ch.isspace() for ch in value):
        return False
    parts = urlsplit(value)
    return parts.scheme in ("http", "https") and "." in parts.netloc


def decode_url(
    record: Mapping[str, str],
    name: str,
    policy: ErrorPolicy,
    *,
    required: bool = False,
) -> str | None:
    """Decode a URL, repairing a missing scheme or surrounding noise where possible."""
    raw = _raw(record, name) or ""
    value = _trim_quotes(raw)
    if not value:
        if required:
            raise _missing(name)
        return None

    if _valid_url(value):
        return value
    if _valid_url("http://" + value):
        return "http://" + value
    found = _EMBEDDED_URL_RE.search(value)
    if found:
        candidate = found.group(0)
        if not candidate.startswith(("http://", "https://")):
            candidate = "http://" + candidate
        if _valid_url(candidate):
            return candidate

    msg = f"'{printable(raw)}' is not a valid url"
    if not required and policy.use_default:
        policy.warn(msg, field=name)
        return None
    raise TypeViolationError(msg)


def decode_email(
    record: Mapping[str, str],
    name: str,
    policy: ErrorPolicy,
) -> str | None:
    value = _raw(record, name)
    if not value:
        return None
    _, address = parseaddr(value)
    local, _, domain = address.rpartition("@")
    if local and domain and "." in domain and not any(ch.isspace() for ch in address):
        return address
    msg = f"'{printable(value)}' is not a valid email address"
    if policy.use_default:
        policy.warn(msg, field=name)
        return None
    raise TypeViolationError(msg)


def decode_timezone(
    record: Mapping[str, str],
    name: str,
    policy: ErrorPolicy,
    *,
    required: bool = False,
) -> str:
    """Decode an IANA timezone name, validated against the zone database."""
    value = _raw(record, name)
    if not value:
        if required:
            raise _missing(name)
        return ""
    try:
        ZoneInfo(value)
    except (ZoneInfoNotFoundError, ValueError):
        msg = f"'{printable(value)}' is not a valid timezone"
        if not required and policy.use_default:
            policy.warn(msg, field=name)
            return ""
        raise TypeViolationError(msg) from None
    return value


def decode_language(
    record: Mapping[str, str],
    name: str,
    policy: ErrorPolicy,
    *,
    required: bool = False,
) -> str:
    """Decode a language tag whose primary subtag is an ISO 639-1 code."""
    value = _raw(record, name)
    if not value:
        if required:
            raise _missing(name)
        return ""
    primary = value.replace("_", "-").split("-", 1)[0].lower()
    if primary in ISO_639_1:
        return value
    msg = f"'{printable(value)}' is not a valid ISO 639-1 language code"
    if not required and policy.use_default:
        policy.warn(msg, field=name)
        return ""
    raise TypeViolationError(msg)
