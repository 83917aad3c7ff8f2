"""
Unit tests for typed exceptions.
"""

import unittest

from core.constants import ErrorCode
from core.exceptions import (
    ConfigError,
    EndpointRequestError,
    InfraError,
    NoBlockHeaderError,
    NoLatestHeightError,
    UnknownChainError,
    WatcherError,
)


class TestExceptions(unittest.TestCase):
    """Error codes and details."""

    def test_base_str_includes_code(self):
        err = WatcherError("boom")
        self.assertEqual(str(err), "[UNKNOWN] boom")
        self.assertEqual(err.details, {})

    def test_endpoint_request_error_is_infra(self):
        err = EndpointRequestError("https://rpc.test/block", "timed out")

        self.assertIsInstance(err, InfraError)
        self.assertEqual(err.code, ErrorCode.INFRA_TRANSPORT_ERROR)
        self.assertEqual(err.details["url"], "https://rpc.test/block")
        self.assertIn("timed out", str(err))

    def test_unknown_chain(self):
        err = UnknownChainError("nochain", ["https://registry.test"])

        self.assertEqual(err.code, ErrorCode.UNKNOWN_CHAIN)
        self.assertEqual(err.details["sources"], ["https://registry.test"])

    def test_no_latest_height(self):
        err = NoLatestHeightError("osmosis", ["https://a.test"])

        self.assertEqual(err.code, ErrorCode.NO_LATEST_HEIGHT)
        self.assertEqual(err.details, {"chain": "osmosis", "endpoints": ["https://a.test"]})

    def test_no_block_header(self):
        err = NoBlockHeaderError("osmosis", 42)

        self.assertEqual(err.height, 42)
        self.assertEqual(err.code, ErrorCode.NO_BLOCK_HEADER)
        self.assertIn("42", str(err))

    def test_config_error(self):
        self.assertEqual(ConfigError("bad").code, ErrorCode.CONFIG_INVALID)
