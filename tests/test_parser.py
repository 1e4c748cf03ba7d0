"""Tests for logtrim/parser.py"""

import unittest
from datetime import datetime, timezone
from unittest import mock

import pytest

import logtrim.parser as parser_module
from logtrim.errors import ParseError
from logtrim.parser import LineDecoder, parse_line, parse_text_line


class TestParseTextLine:
    def test_basic_line(self, plain_line):
        record = parse_line(plain_line)
        assert record.level == "debug"
        assert record.timestamp == datetime(2025, 2, 27, 15, 42, 40, 76000, tzinfo=timezone.utc)
        assert record.message == "Received HTTP request"
        assert record.source == "web/handlers.go:187"
        assert record.user == "abc123"
        assert record.extras == {"method": "GET"}
        assert record.duplicate_count == 0

    def test_line_with_many_extras(self):
        line = (
            'debug [2025-02-27 15:42:40.076 Z] Received HTTP request caller="web/handlers.go:187" '
            "method=GET url=/api/v4/groups request_id=1yuo8z88cp8nzxza6w9ij6khnr "
            "user_id=gyd6suh8a3fcukcaqkn3zo3o9y status_code=200"
        )
        record = parse_text_line(line)
        assert record.user == "gyd6suh8a3fcukcaqkn3zo3o9y"
        assert record.extras == {
            "method": "GET",
            "url": "/api/v4/groups",
            "request_id": "1yuo8z88cp8nzxza6w9ij6khnr",
            "status_code": "200",
        }

    def test_line_without_caller(self):
        line = "info [2025-02-27 15:42:40.076 Z] User logged in user_id=abc123 ip_address=192.168.1.1"
        record = parse_text_line(line)
        assert record.message == "User logged in"
        assert record.source is None
        assert record.user == "abc123"
        assert record.extras == {"ip_address": "192.168.1.1"}

    def test_line_without_key_values(self):
        record = parse_text_line("warn [2025-02-27 15:42:40.076 Z]   Cache is cold  ")
        assert record.level == "warn"
        assert record.message == "Cache is cold"
        assert record.extras == {}

    def test_extra_values_keep_quotes(self):
        record = parse_text_line('info [2025-01-01 11:00:00.000 Z] Check caller="a.go:1" status="ok"')
        assert record.source == "a.go:1"
        assert record.extras == {"status": '"ok"'}

    def test_offset_timestamp(self):
        record = parse_text_line("info [2025-03-20 11:02:02.785 +01:00] Set license")
        assert record.timestamp == datetime(2025, 3, 20, 10, 2, 2, 785000, tzinfo=timezone.utc)

    def test_level_whitespace_trimmed(self):
        record = parse_text_line("info  [2025-03-20 11:02:02.785 Z] Padded level")
        assert record.level == "info"


class TestParseTextLineErrors:
    @pytest.mark.parametrize("line", [
        "not a valid log line",
        "",
        " [2025-02-27 15:42:40.076 Z] no level",
        "info [2025-02-27 15:42:40.076 Z no terminator",
        "info [tomorrow] bad timestamp",
        "info [2025-02-27 15:42:40.076 Z] msg key=value stray",
    ])
    def test_rejected(self, line):
        with pytest.raises(ParseError) as exc_info:
            parse_line(line)
        assert exc_info.value.line == line
        assert exc_info.value.reason

    def test_timestamp_error_chained(self):
        with pytest.raises(ParseError) as exc_info:
            parse_text_line("info [tomorrow] bad timestamp")
        assert isinstance(exc_info.value.__cause__, ValueError)


class TestLineDecoder(unittest.TestCase):
    def setUp(self):
        self.logger = mock.MagicMock()
        self.decoder = LineDecoder(logger=self.logger)

    def test_json_line_routed(self):
        record = self.decoder.decode('  {"timestamp":"2025-02-27T15:42:40Z","level":"info","msg":"hi"}')
        self.assertEqual(record.message, "hi")

    def test_trailing_newline_stripped(self):
        record = self.decoder.decode("info [2025-02-27 15:42:40.076 Z] Server started\r\n")
        self.assertEqual(record.message, "Server started")

    def test_decode_lines_skips_and_counts(self):
        lines = [
            "info [2025-02-27 15:42:40.076 Z] one\n",
            "\n",
            "garbage\n",
            '{"timestamp":"2025-02-27T15:42:41Z","level":"info","msg":"two"}\n',
        ]
        records = list(self.decoder.decode_lines(lines))
        self.assertEqual([r.message for r in records], ["one", "two"])
        self.assertEqual(self.decoder.stats.parsed, 2)
        self.assertEqual(self.decoder.stats.failed, 1)
        self.assertEqual(self.decoder.stats.skipped_blank, 1)
        self.logger.debug.assert_called_once()
        self.assertEqual(self.logger.debug.call_args[0][1], 3)


class TestParseLine(unittest.TestCase):
    def test_fresh_decoder_per_call(self):
        logger = mock.MagicMock()
        with mock.patch("logtrim.parser.LineDecoder", wraps=LineDecoder) as decoder_cls:
            parse_line("info [2025-02-27 15:42:40.076 Z] one")
            parse_line("info [2025-02-27 15:42:41.076 Z] two", logger)
        self.assertEqual(decoder_cls.call_count, 2)
        self.assertEqual(decoder_cls.call_args_list[1].args, (logger,))

    def test_no_module_level_decoder(self):
        self.assertFalse(any(isinstance(v, LineDecoder) for v in vars(parser_module).values()))
