from datetime import datetime, timezone

import pytest

from logtrim.config import DedupConfig
from logtrim.models import LogRecord

BASE_TIME = datetime(2025, 1, 1, 11, 0, 0, tzinfo=timezone.utc)


def make_record(message="System check complete", level="info", source="system/checks.go:42",
                user=None, extras=None, timestamp=BASE_TIME) -> LogRecord:
    """Helper to create a LogRecord for testing."""
    return LogRecord(
        timestamp=timestamp,
        level=level,
        message=message,
        source=source,
        user=user,
        extras=extras or {},
    )


@pytest.fixture
def plain_line():
    return (
        'debug [2025-02-27 15:42:40.076 Z] Received HTTP request '
        'caller="web/handlers.go:187" method=GET user_id=abc123'
    )


@pytest.fixture
def license_json_line():
    return (
        '{"timestamp":"2025-02-19 13:00:19.541 +01:00","level":"info","msg":"Set license",'
        '"caller":"platform/license.go:392","id":"ntisr7wfwbghpyakh87fazbqma",'
        '"issued_at":"2023-03-06 18:51:19.000 +01:00","sku_name":"Enterprise Dev",'
        '"is_trial":false,"features.users":200000,'
        '"features":{"saml":true,"cloud":false,"mfa":true}}'
    )


@pytest.fixture
def sample_log_text(plain_line):
    return "\n".join([
        plain_line,
        "",
        "not a valid log line",
        'info [2025-02-27 15:40:00.000 Z] Server started caller="app/server.go:10"',
        '{"timestamp":"2025-02-27T15:45:00Z","level":"error","msg":"Disk full","caller":"store/disk.go:9"}',
    ]) + "\n"


@pytest.fixture
def small_parallel_config():
    """Forces the parallel path for small inputs."""
    return DedupConfig(parallel_threshold=10, inline_group_threshold=5, workers=3)
