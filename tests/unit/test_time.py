# PATH: tests/unit/test_time.py
"""
Unit tests for time utilities.
"""

import time
import unittest
from datetime import timedelta

from core.time import now_ms, now_utc, parse_block_time


class TestNowFunctions(unittest.TestCase):
    """Tests for now_* functions."""

    def test_now_utc(self):
        """now_utc returns aware datetime."""
        self.assertIsNotNone(now_utc().tzinfo)

    def test_now_ms(self):
        """now_ms is close to time.time()."""
        self.assertLess(abs(now_ms() - time.time() * 1000), 1000)


class TestParseBlockTime(unittest.TestCase):
    """Tests for parse_block_time."""

    def test_nanoseconds_are_truncated(self):
        dt = parse_block_time("2024-05-01T12:34:56.123456789Z")

        self.assertEqual((dt.year, dt.month, dt.day), (2024, 5, 1))
        self.assertEqual((dt.hour, dt.minute, dt.second), (12, 34, 56))
        self.assertEqual(dt.microsecond, 123456)
        self.assertEqual(dt.utcoffset(), timedelta(0))

    def test_short_fraction(self):
        self.assertEqual(parse_block_time("2024-05-01T12:34:56.5Z").microsecond, 500000)

    def test_no_fraction(self):
        self.assertEqual(parse_block_time("2024-05-01T12:34:56Z").microsecond, 0)

    def test_offset(self):
        dt = parse_block_time("2024-05-01T12:34:56.1+02:00")
        self.assertEqual(dt.utcoffset(), timedelta(hours=2))

    def test_naive_is_utc(self):
        self.assertEqual(parse_block_time("2024-05-01T12:34:56").utcoffset(), timedelta(0))

    def test_invalid(self):
        self.assertIsNone(parse_block_time(""))
        self.assertIsNone(parse_block_time(None))
        self.assertIsNone(parse_block_time("yesterday"))
        self.assertIsNone(parse_block_time("2024-13-01T00:00:00Z"))

    def test_non_string(self):
        self.assertIsNone(parse_block_time(12345))
        self.assertIsNone(parse_block_time(["2024-05-01T12:34:56Z"]))
