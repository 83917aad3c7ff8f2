# PATH: tests/conftest.py
"""
Pytest configuration and fixtures for blockwatch tests.
"""

import base64
import sys
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from chains.endpoints import ChainEndpoints, Endpoint, EndpointRegistry  # noqa: E402
from core.constants import EndpointType  # noqa: E402


def pytest_configure(config):
    """Configure pytest."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )


@pytest.fixture
def b64():
    """Encode text the way Tendermint encodes event attributes."""
    def _encode(text: str) -> str:
        return base64.b64encode(text.encode("utf-8")).decode("ascii")
    return _encode


@pytest.fixture
def registry():
    """Registry without any registry sources."""
    return EndpointRegistry(registry_urls=[])


@pytest.fixture
def make_view(registry):
    """Build a ChainEndpoints view from plain URLs."""
    def _make(rest=(), rpc=(), chain="testchain"):
        rest_eps = [Endpoint(chain, EndpointType.REST, url) for url in rest]
        rpc_eps = [Endpoint(chain, EndpointType.RPC, url) for url in rpc]
        return ChainEndpoints(registry, chain, rest_eps, rpc_eps)
    return _make
