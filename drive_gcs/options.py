"""
Option and header transformations between the Drive contract and GCS.

Also converts duration expressions ("6 days", "2h", 3600) into absolute
expiry timestamps for signed URLs.
"""
import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Union

from drive_gcs.base import ContentHeaders, Visibility, WriteOptions

logger = logging.getLogger(__name__)

DEFAULT_SIGNED_URL_EXPIRY = "6 days"

PREDEFINED_ACLS = {
    Visibility.PUBLIC: "publicRead",
    Visibility.PRIVATE: "private",
}

_DURATION_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([a-z]*)\s*$", re.IGNORECASE)

_UNIT_SECONDS = {
    "": 1,
    "ms": 0.001, "msec": 0.001, "msecs": 0.001,
    "millisecond": 0.001, "milliseconds": 0.001,
    "s": 1, "sec": 1, "secs": 1, "second": 1, "seconds": 1,
    "m": 60, "min": 60, "mins": 60, "minute": 60, "minutes": 60,
    "h": 3600, "hr": 3600, "hrs": 3600, "hour": 3600, "hours": 3600,
    "d": 86400, "day": 86400, "days": 86400,
    "w": 604800, "week": 604800, "weeks": 604800,
    "y": 31557600, "yr": 31557600, "yrs": 31557600, "year": 31557600, "years": 31557600,
}

Duration = Union[str, int, float, timedelta]


def parse_duration(value: Duration) -> timedelta:
    """
    Convert a duration expression to a timedelta.

    Numbers are seconds. Strings are a number followed by an optional unit
    ("500ms", "30 mins", "2h", "6days", "1.5 weeks").

    Raises:
        ValueError: If the expression cannot be parsed or is negative
    """
    if isinstance(value, timedelta):
        duration = value
    elif isinstance(value, bool):
        raise ValueError(f"Invalid duration: {value!r}")
    elif isinstance(value, (int, float)):
        duration = timedelta(seconds=value)
    else:
        match = _DURATION_PATTERN.match(str(value))
        if not match:
            raise ValueError(f"Invalid duration expression: {value!r}")
        amount, unit = match.groups()
        unit = unit.lower()
        if unit not in _UNIT_SECONDS:
            raise ValueError(f"Unknown duration unit {unit!r} in {value!r}")
        duration = timedelta(seconds=float(amount) * _UNIT_SECONDS[unit])

    if duration < timedelta(0):
        raise ValueError(f"Duration must not be negative: {value!r}")
    return duration


def expires_at(expires_in: Optional[Duration] = None, now: Optional[datetime] = None) -> datetime:
    """Absolute UTC expiry for a duration counted from ``now``."""
    now = now or datetime.now(timezone.utc)
    return now + parse_duration(expires_in if expires_in is not None else DEFAULT_SIGNED_URL_EXPIRY)


def transform_write_options(
    options: Optional[WriteOptions],
    default_visibility: Visibility,
    using_uniform_acl: bool,
    log: Optional[logging.Logger] = None
) -> Dict[str, Any]:
    """
    Transform Drive write options into backend upload options.

    ``content_type`` is a top-level option because GCS treats it specially;
    the remaining content headers are nested under ``metadata``. A
    ``predefined_acl`` hint is attached only for buckets using per-object
    ACLs, since uniform buckets reject it.
    """
    options = options or WriteOptions()
    visibility = options.visibility if options.is_set("visibility") else default_visibility

    backend_options: Dict[str, Any] = options.passthrough
    backend_options["metadata"] = {}

    if options.is_set("content_type"):
        backend_options["content_type"] = options.content_type

    for name in ("content_disposition", "content_encoding", "content_language"):
        if options.is_set(name):
            backend_options["metadata"][name] = getattr(options, name)

    if not using_uniform_acl and visibility is not None:
        backend_options["predefined_acl"] = PREDEFINED_ACLS[Visibility(visibility)]

    (log or logger).debug("drive-gcs write options: %s", backend_options)
    return backend_options


def transform_content_headers(
    headers: Optional[ContentHeaders],
    log: Optional[logging.Logger] = None
) -> Dict[str, str]:
    """Map content headers onto signed URL response overrides."""
    response_headers: Dict[str, str] = {}
    if headers is not None:
        if headers.content_type:
            response_headers["response_type"] = headers.content_type
        if headers.content_disposition:
            response_headers["response_disposition"] = headers.content_disposition

    (log or logger).debug("drive-gcs content headers: %s", response_headers)
    return response_headers
