"""Line decoder: plain-text and JSON log lines into LogRecord.

Plain-text grammar:
  level [timestamp] free text message key=value key="value" ...

  debug [2025-02-27 15:42:40.076 Z] Received HTTP request caller="web/handlers.go:187" method=GET

Lines whose trimmed form starts with '{' go to the JSON decoder instead.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Iterator

from logtrim.errors import ParseError
from logtrim.json_parser import decode_json_line
from logtrim.models import LogRecord
from logtrim.timestamps import TimestampError, parse_timestamp

LEVEL_SEPARATOR = " ["
TIMESTAMP_SEPARATOR = "] "


@dataclass
class DecodeStats:
    parsed: int = 0
    failed: int = 0
    skipped_blank: int = 0


def _strip_quotes(value: str) -> str:
    """Remove one layer of surrounding double quotes."""
    if len(value) >= 2 and value[0] == '"' and value[-1] == '"':
        return value[1:-1]
    return value


def parse_text_line(line: str) -> LogRecord:
    """Decode a plain-text log line. Raises ParseError."""
    level, sep, remainder = line.partition(LEVEL_SEPARATOR)
    if not sep:
        raise ParseError("missing level separator", line)
    level = level.strip()
    if not level:
        raise ParseError("empty level", line)

    timestamp_text, sep, payload = remainder.partition(TIMESTAMP_SEPARATOR)
    if not sep:
        raise ParseError("missing timestamp terminator", line)
    try:
        timestamp = parse_timestamp(timestamp_text.strip())
    except TimestampError as e:
        raise ParseError(str(e), line) from e

    tokens = payload.split()
    kv_start = next((i for i, tok in enumerate(tokens) if "=" in tok), None)
    if kv_start is None:
        return LogRecord(timestamp=timestamp, level=level, message=payload.strip())

    source = None
    user = None
    extras: dict[str, str] = {}
    for token in tokens[kv_start:]:
        key, sep, value = token.partition("=")
        if not sep:
            raise ParseError(f"malformed key/value token {token!r}", line)
        if key == "caller":
            source = _strip_quotes(value)
        elif key == "user_id":
            user = value
        else:
            extras[key] = value

    return LogRecord(
        timestamp=timestamp,
        level=level,
        message=" ".join(tokens[:kv_start]),
        source=source,
        user=user,
        extras=extras,
    )


class LineDecoder:
    """Decodes raw log lines, choosing the JSON or plain-text grammar per line."""

    def __init__(self, logger: logging.Logger | None = None):
        self._logger = logger or logging.getLogger(__name__)
        self.stats = DecodeStats()

    def decode(self, line: str) -> LogRecord:
        """Decode one line. Raises ParseError if it is not a log entry."""
        if line.strip().startswith("{"):
            return decode_json_line(line, log=self._logger)
        return parse_text_line(line.rstrip("\r\n"))

    def decode_lines(self, lines: Iterable[str]) -> Iterator[LogRecord]:
        """Yield a record per decodable line; bad lines are counted and skipped."""
        for lineno, line in enumerate(lines, 1):
            if not line.strip():
                self.stats.skipped_blank += 1
                continue
            try:
                record = self.decode(line)
            except ParseError as e:
                self.stats.failed += 1
                self._logger.debug("Skipping line %d: %s", lineno, e.reason)
                continue
            self.stats.parsed += 1
            yield record


def parse_line(line: str, logger: logging.Logger | None = None) -> LogRecord:
    """Decode a single line with a fresh decoder. Raises ParseError."""
    return LineDecoder(logger).decode(line)
