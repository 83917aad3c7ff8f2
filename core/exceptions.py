# PATH: core/exceptions.py
"""
Typed exceptions for blockwatch.

Transport problems stay inside the chain client; only the aggregate
"every endpoint failed" errors reach the watcher.
"""

from typing import Optional, Sequence

from core.constants import ErrorCode


class WatcherError(Exception):
    """Base exception for blockwatch."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.UNKNOWN,
        details: Optional[dict] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def __str__(self):
        return f"[{self.code.value}] {self.message}"


class InfraError(WatcherError):
    """Infrastructure-related errors (transport, malformed payloads)."""
    pass


class EndpointRequestError(InfraError):
    """A single request to one endpoint failed at the transport level."""

    def __init__(self, url: str, message: str, details: Optional[dict] = None):
        super().__init__(
            f"Request to {url} failed: {message}",
            ErrorCode.INFRA_TRANSPORT_ERROR,
            {"url": url, **(details or {})},
        )
        self.url = url


class UnknownChainError(WatcherError):
    """No REST or RPC endpoint could be resolved for a chain."""

    def __init__(self, chain: str, sources: Sequence[str] = ()):
        super().__init__(
            f"No endpoints resolved for chain {chain}",
            ErrorCode.UNKNOWN_CHAIN,
            {"chain": chain, "sources": list(sources)},
        )
        self.chain = chain


class NoLatestHeightError(WatcherError):
    """Every REST endpoint failed and no lower bound was known."""

    def __init__(self, chain: str, endpoints: Sequence[str] = ()):
        super().__init__(
            f"Can't get latest height of {chain}",
            ErrorCode.NO_LATEST_HEIGHT,
            {"chain": chain, "endpoints": list(endpoints)},
        )
        self.chain = chain


class NoBlockHeaderError(WatcherError):
    """Every RPC endpoint failed to return the header for a height."""

    def __init__(self, chain: str, height: int, endpoints: Sequence[str] = ()):
        super().__init__(
            f"Can't get header of block {height} in {chain}",
            ErrorCode.NO_BLOCK_HEADER,
            {"chain": chain, "height": height, "endpoints": list(endpoints)},
        )
        self.chain = chain
        self.height = height


class ConfigError(WatcherError):
    """Configuration is missing or invalid."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message, ErrorCode.CONFIG_INVALID, details)
