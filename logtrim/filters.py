"""Filter predicates for log records: level, user, search, regex, time range."""

import re
from datetime import datetime, timezone
from typing import Callable

from logtrim.models import LogRecord
from logtrim.timestamps import TimestampError, parse_timestamp

TIME_BOUND_FORMAT = "%Y-%m-%dT%H:%M:%S"


def parse_time_bound(text: str) -> datetime:
    """Parse a YYYY-MM-DDTHH:MM:SS bound (read as UTC) or any log timestamp layout.

    Raises ValueError if nothing matches.
    """
    try:
        return datetime.strptime(text.strip(), TIME_BOUND_FORMAT).replace(tzinfo=timezone.utc)
    except ValueError:
        pass
    try:
        return parse_timestamp(text)
    except TimestampError as e:
        raise ValueError(f"invalid time bound {text!r}, expected {TIME_BOUND_FORMAT}") from e


def _as_utc(bound: datetime) -> datetime:
    if bound.tzinfo is None:
        return bound.replace(tzinfo=timezone.utc)
    return bound


def filter_by_level(record: LogRecord, level: str) -> bool:
    """True if record level matches (case-insensitive)."""
    return record.level.lower() == level.lower()


def filter_by_user(record: LogRecord, user: str) -> bool:
    """True if *user* is a case-insensitive substring of the record's user."""
    return user.lower() in (record.user or "").lower()


def filter_by_search(record: LogRecord, keyword: str) -> bool:
    """True if keyword appears in message, source or extras (case-insensitive)."""
    keyword = keyword.lower()
    return (
        keyword in record.message.lower()
        or keyword in (record.source or "").lower()
        or keyword in record.extras_to_string().lower()
    )


def filter_by_regex(record: LogRecord, pattern: re.Pattern) -> bool:
    """True if the pattern matches message, source, extras or user."""
    fields = (record.message, record.source or "", record.extras_to_string(), record.user or "")
    return any(pattern.search(text) for text in fields)


def filter_by_time_range(record: LogRecord, start: datetime | None, end: datetime | None) -> bool:
    """True if start <= timestamp <= end. A None bound is open."""
    if start is not None and record.timestamp < start:
        return False
    if end is not None and record.timestamp > end:
        return False
    return True


def build_filter_chain(
    level: str | None = None,
    user: str | None = None,
    search: str | None = None,
    regex: str | None = None,
    start: datetime | str | None = None,
    end: datetime | str | None = None,
) -> Callable[[LogRecord], bool]:
    """Combine all active filters into a single callable that ANDs them.

    String bounds go through parse_time_bound. Raises ValueError on an
    invalid regex or time bound.
    """
    predicates = []

    if level:
        predicates.append(lambda record, l=level: filter_by_level(record, l))

    if user:
        predicates.append(lambda record, u=user: filter_by_user(record, u))

    if isinstance(start, str):
        start = parse_time_bound(start) if start else None
    if isinstance(end, str):
        end = parse_time_bound(end) if end else None
    if start is not None or end is not None:
        lo = _as_utc(start) if start is not None else None
        hi = _as_utc(end) if end is not None else None
        predicates.append(lambda record: filter_by_time_range(record, lo, hi))

    if search:
        predicates.append(lambda record, k=search: filter_by_search(record, k))

    if regex:
        try:
            compiled = re.compile(regex)
        except re.error as e:
            raise ValueError(f"invalid regex pattern: {e}") from e
        predicates.append(lambda record: filter_by_regex(record, compiled))

    if not predicates:
        return lambda record: True

    def combined(record: LogRecord) -> bool:
        return all(p(record) for p in predicates)

    return combined
