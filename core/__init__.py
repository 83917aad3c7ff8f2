"""
core - Core utilities and models for blockwatch.

This package contains:
- models.py: Data models (BlockHeader, Transaction, Block)
- constants.py: Enums, wire paths and defaults
- exceptions.py: Typed exceptions with error codes
- time.py: Clock helpers and block time parsing
- logging.py: Structured JSON logging
"""

from core.constants import (
    AcquisitionMode,
    EndpointType,
    ErrorCode,
)
from core.exceptions import (
    ConfigError,
    EndpointRequestError,
    InfraError,
    NoBlockHeaderError,
    NoLatestHeightError,
    UnknownChainError,
    WatcherError,
)
from core.logging import get_logger, setup_logging
from core.models import (
    Block,
    BlockHeader,
    EventAttribute,
    Transaction,
    TxEvent,
)

__all__ = [
    # Constants
    "AcquisitionMode",
    "EndpointType",
    "ErrorCode",
    # Exceptions
    "ConfigError",
    "EndpointRequestError",
    "InfraError",
    "NoBlockHeaderError",
    "NoLatestHeightError",
    "UnknownChainError",
    "WatcherError",
    # Models
    "Block",
    "BlockHeader",
    "EventAttribute",
    "Transaction",
    "TxEvent",
    # Logging
    "get_logger",
    "setup_logging",
]
