"""Parsed log record, the one structure every downstream component reads."""

from dataclasses import asdict, dataclass, field, replace
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class LogRecord:
    timestamp: datetime
    level: str
    message: str
    source: str | None = None
    user: str | None = None
    extras: dict[str, str] = field(default_factory=dict)

    # Notification log variant only
    log_source: str | None = None
    ack_id: str | None = None
    type: str | None = None
    status: str | None = None

    # 0 until the record has been through deduplication
    duplicate_count: int = 0

    def with_duplicate_count(self, count: int) -> "LogRecord":
        """Shallow copy carrying a new duplicate count."""
        return replace(self, duplicate_count=count)

    def extras_to_string(self) -> str:
        """Render extras as 'key=value' pairs sorted by key."""
        return ", ".join(f"{k}={v}" for k, v in sorted(self.extras.items()))


def record_to_dict(record: LogRecord) -> dict[str, Any]:
    """Convert a LogRecord to a JSON-ready dict, dropping unset fields."""
    data = asdict(record)
    data["timestamp"] = record.timestamp.isoformat()
    if not data["duplicate_count"]:
        del data["duplicate_count"]
    return {k: v for k, v in data.items() if v is not None}
