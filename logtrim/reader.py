"""Generator-based file reading, glob expansion, and record loading."""

import glob
import logging
import os
from typing import Callable, Generator, Iterable

from logtrim.config import ReaderConfig
from logtrim.models import LogRecord
from logtrim.parser import LineDecoder

logger = logging.getLogger(__name__)


def read_lines(filepath: str, encoding: str = "utf-8") -> Generator[str, None, None]:
    """Yield each line of a single file. Undecodable bytes are replaced."""
    with open(filepath, "r", encoding=encoding, errors="replace") as f:
        yield from f


def expand_paths(raw_paths: list[str]) -> list[str]:
    """Expand globs, deduplicate, and validate that files exist.

    Raises FileNotFoundError if a non-glob path doesn't exist.
    Raises FileNotFoundError if expansion produces zero files.
    """
    expanded = []
    seen = set()

    for raw in raw_paths:
        if any(c in raw for c in ("*", "?", "[")):
            candidates = sorted(m for m in glob.glob(raw) if os.path.isfile(m))
        else:
            if not os.path.isfile(raw):
                raise FileNotFoundError(f"File not found: {raw}")
            candidates = [raw]
        for path in candidates:
            if path not in seen:
                seen.add(path)
                expanded.append(path)

    if not expanded:
        raise FileNotFoundError("No log files found matching the given paths")

    return expanded


def read_log_file(
    filepath: str,
    decoder: LineDecoder | None = None,
    record_filter: Callable[[LogRecord], bool] | None = None,
    config: ReaderConfig | None = None,
) -> list[LogRecord]:
    """Decode every line of a file, skipping bad lines and applying an optional filter."""
    decoder = decoder or LineDecoder()
    config = config or ReaderConfig()
    failed_before = decoder.stats.failed
    records = [
        record
        for record in decoder.decode_lines(read_lines(filepath, config.encoding))
        if record_filter is None or record_filter(record)
    ]
    logger.info(
        "Read %d records from %s (%d lines skipped)",
        len(records), filepath, decoder.stats.failed - failed_before,
    )
    return records


def sort_by_timestamp(records: Iterable[LogRecord]) -> list[LogRecord]:
    """Stable sort by timestamp; ties keep their input order."""
    return sorted(records, key=lambda record: record.timestamp)


def read_log_files(
    paths: list[str],
    decoder: LineDecoder | None = None,
    record_filter: Callable[[LogRecord], bool] | None = None,
    config: ReaderConfig | None = None,
) -> list[LogRecord]:
    """Read every file matched by *paths* and merge the records by timestamp."""
    decoder = decoder or LineDecoder()
    records: list[LogRecord] = []
    for path in expand_paths(paths):
        records.extend(read_log_file(path, decoder, record_filter, config))
    return sort_by_timestamp(records)
