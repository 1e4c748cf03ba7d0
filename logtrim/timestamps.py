"""Timestamp normalizer: ordered strptime layouts, always returns UTC.

Layouts are tried top to bottom and the first one that parses wins, so a
string that fits more than one layout always resolves the same way.
"""

import re
from datetime import datetime, timezone
from typing import Callable


class TimestampError(ValueError):
    """No known layout matched the timestamp text."""

    def __init__(self, text: str):
        super().__init__(f"unable to parse timestamp: {text!r}")
        self.text = text


# strptime's %f stops at microseconds; RFC 3339 allows nanoseconds
_LONG_FRACTION_RE = re.compile(r"(\.\d{6})\d+")

# Zone names that are unambiguous aliases for UTC. Anything else is rejected
# rather than guessed.
UTC_ZONE_NAMES = frozenset({"UTC", "GMT", "UT", "Z"})


def _strptime(fmt: str) -> Callable[[str], datetime]:
    def parse(text: str) -> datetime:
        return datetime.strptime(text, fmt)

    return parse


def _parse_named_zone(text: str) -> datetime:
    stamp, _, zone = text.rpartition(" ")
    if zone.upper() not in UTC_ZONE_NAMES:
        raise ValueError(f"unknown zone name {zone!r}")
    return datetime.strptime(stamp, "%Y-%m-%d %H:%M:%S.%f").replace(tzinfo=timezone.utc)


# (name, parser) in priority order
_LAYOUTS: list[tuple[str, Callable[[str], datetime]]] = [
    ("rfc3339", _strptime("%Y-%m-%dT%H:%M:%S%z")),
    ("rfc3339_fraction", _strptime("%Y-%m-%dT%H:%M:%S.%f%z")),
    ("slash_date", _strptime("%Y/%m/%d %H:%M:%S")),
    ("bracket_utc", _strptime("%Y-%m-%d %H:%M:%S.%f Z")),
    ("bracket_named_zone", _parse_named_zone),
    ("bracket_offset", _strptime("%Y-%m-%d %H:%M:%S.%f %z")),
    ("bracket_offset_no_fraction", _strptime("%Y-%m-%d %H:%M:%S %z")),
]

TIMESTAMP_LAYOUTS: tuple[str, ...] = tuple(name for name, _ in _LAYOUTS)


def _to_utc(dt: datetime) -> datetime:
    # Layouts without an offset are read as UTC
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def match_layout(text: str) -> tuple[str, datetime]:
    """Return (layout name, UTC datetime) for the first layout that parses *text*.

    Raises TimestampError when no layout matches.
    """
    candidate = _LONG_FRACTION_RE.sub(r"\1", text.strip(), count=1)
    for name, parse in _LAYOUTS:
        try:
            return name, _to_utc(parse(candidate))
        except ValueError:
            continue
    raise TimestampError(text)


def parse_timestamp(text: str) -> datetime:
    """Parse *text* with the ordered layouts and return an aware UTC datetime."""
    _, dt = match_layout(text)
    return dt
