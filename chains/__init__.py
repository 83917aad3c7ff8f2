"""
chains/ - Gateway access layer.

Modules:
- endpoints: Endpoint registry with health-aware ordering
- client: Block acquisition with endpoint failover
- decoding: Best-effort transaction decoding
"""

from chains.client import ChainApiClient, parse_block_header
from chains.decoding import decode_transaction
from chains.endpoints import (
    ChainEndpoints,
    Endpoint,
    EndpointRegistry,
    EndpointStats,
)

__all__ = [
    # Endpoints
    "ChainEndpoints",
    "Endpoint",
    "EndpointRegistry",
    "EndpointStats",
    # Client
    "ChainApiClient",
    "parse_block_header",
    # Decoding
    "decode_transaction",
]
