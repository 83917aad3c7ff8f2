# PATH: core/constants.py
"""
Constants for blockwatch.

Contains enums, wire paths and timing defaults.
"""

from enum import Enum
from typing import Final, List

# =============================================================================
# ENDPOINT DISCOVERY
# =============================================================================

# Deployed chain-registry mirrors ({url}/{chain}/chain.json)
DEFAULT_REGISTRY_URLS: List[str] = [
    "https://raw.githubusercontent.com/cosmos/chain-registry/master",
]

CHAIN_DOCUMENT_NAME: Final = "chain.json"

# =============================================================================
# WIRE PATHS
# =============================================================================

LATEST_BLOCK_PATH: Final = "/cosmos/base/tendermint/v1beta1/blocks/latest"
BLOCK_PATH: Final = "/block"
TX_SEARCH_PATH: Final = "/tx_search"

# =============================================================================
# TIMING DEFAULTS
# =============================================================================

DEFAULT_REQUEST_TIMEOUT_SECONDS = 2.0
DEFAULT_IDLE_INTERVAL_SECONDS = 1.0
DEFAULT_EMPTY_BLOCK_GRACE_SECONDS = 0.2
DEFAULT_FAILURE_COOLDOWN_SECONDS = 30.0

# Tendermint caps per_page at 100
DEFAULT_TX_PAGE_SIZE = 100

# Result codes are stored as SQL smallint downstream
SMALL_INT_MIN = -32768
SMALL_INT_MAX = 32767


class EndpointType(str, Enum):
    """Kind of gateway an endpoint speaks."""
    REST = "rest"
    RPC = "rpc"


class AcquisitionMode(str, Enum):
    """What the watcher fetches for every new height."""
    HEIGHT = "HEIGHT"
    HEADERS = "HEADERS"
    HEADERS_AND_TRANSACTIONS = "HEADERS_AND_TRANSACTIONS"


class ErrorCode(str, Enum):
    """Error codes carried by WatcherError."""
    UNKNOWN = "UNKNOWN"

    # Infrastructure
    INFRA_TRANSPORT_ERROR = "INFRA_TRANSPORT_ERROR"
    INFRA_MALFORMED_RESPONSE = "INFRA_MALFORMED_RESPONSE"

    # Acquisition
    UNKNOWN_CHAIN = "UNKNOWN_CHAIN"
    NO_LATEST_HEIGHT = "NO_LATEST_HEIGHT"
    NO_BLOCK_HEADER = "NO_BLOCK_HEADER"

    # Configuration
    CONFIG_INVALID = "CONFIG_INVALID"
