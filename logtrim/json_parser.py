"""JSON line decoder: one JSON object per line into LogRecord.

Two passes over the same line:
  1. typed: declared fields validated against LOG_LINE_SCHEMA
  2. generic: every undeclared key is kept in extras as text
"""

import json
import logging
from typing import Any

import jsonschema

from logtrim.errors import ParseError
from logtrim.models import LogRecord
from logtrim.timestamps import TimestampError, parse_timestamp

logger = logging.getLogger(__name__)

# JSON key -> LogRecord attribute
DECLARED_FIELDS = {
    "timestamp": "timestamp",
    "level": "level",
    "msg": "message",
    "caller": "source",
    "user_id": "user",
    "logSource": "log_source",
    "ackId": "ack_id",
    "type": "type",
    "status": "status",
}

LOG_LINE_SCHEMA = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "properties": {key: {"type": "string"} for key in DECLARED_FIELDS},
}

_validator = jsonschema.Draft202012Validator(LOG_LINE_SCHEMA)


def _load_typed(text: str) -> dict[str, Any]:
    """json.loads + schema check. Raises ValueError on either failure."""
    data = json.loads(text)
    error = next(_validator.iter_errors(data), None)
    if error is not None:
        raise ValueError(error.message)
    return data


def _repair(line: str) -> str:
    """Swap escaped double quotes for single quotes."""
    return line.replace('\\"', "'")


def _to_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, separators=(",", ":"), sort_keys=True, ensure_ascii=False)


def _collect_extras(line: str, log: logging.Logger) -> dict[str, str]:
    try:
        data = json.loads(line)
    except ValueError as e:
        log.debug("Generic JSON pass failed, extras left empty: %s", e)
        return {}
    if not isinstance(data, dict):
        return {}
    return {k: _to_text(v) for k, v in data.items() if k not in DECLARED_FIELDS}


def decode_json_line(line: str, log: logging.Logger | None = None) -> LogRecord:
    """Decode a JSON log line. Raises ParseError."""
    log = log or logger

    try:
        data = _load_typed(line)
    except ValueError as first_error:
        try:
            data = _load_typed(_repair(line))
        except ValueError as e:
            raise ParseError(f"failed to parse JSON log: {e}", line) from e
        log.debug("JSON line parsed after quote repair (%s)", first_error)

    extras = _collect_extras(line, log)

    try:
        timestamp = parse_timestamp(data.get("timestamp", "").strip())
    except TimestampError as e:
        raise ParseError(str(e), line) from e

    fields = {
        attr: data[key]
        for key, attr in DECLARED_FIELDS.items()
        if key not in ("timestamp", "level", "msg") and data.get(key)
    }

    return LogRecord(
        timestamp=timestamp,
        level=data.get("level", ""),
        message=data.get("msg", ""),
        extras=extras,
        **fields,
    )
