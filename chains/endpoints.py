"""
chains/endpoints.py - Endpoint registry with health-aware ordering.

Provides:
- Endpoint discovery from chain-registry documents
- Custom (operator supplied) endpoints
- Per-endpoint statistics shared by every chain task
- Candidate ordering by consecutive failures
"""

import os
import re
from dataclasses import dataclass
from typing import Iterable, Sequence

import httpx
from dotenv import load_dotenv

from core.constants import (
    CHAIN_DOCUMENT_NAME,
    DEFAULT_REGISTRY_URLS,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    EndpointType,
)
from core.exceptions import UnknownChainError
from core.logging import get_logger, log_endpoint_error
from core.time import now_ms

logger = get_logger(__name__)

# Load environment variables
load_dotenv()

_PLACEHOLDER = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


@dataclass(frozen=True)
class Endpoint:
    """Base URL of a gateway serving one chain."""
    chain: str
    type: EndpointType
    url: str

    def __str__(self) -> str:
        return self.url


@dataclass
class EndpointStats:
    """Statistics for an endpoint."""
    url: str
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    consecutive_failures: int = 0
    total_latency_ms: int = 0
    last_error: str | None = None
    last_success_ts: int | None = None

    @property
    def avg_latency_ms(self) -> int:
        if self.successful_requests == 0:
            return 0
        return self.total_latency_ms // self.successful_requests

    @property
    def success_rate(self) -> float:
        if self.total_requests == 0:
            return 0.0
        return self.successful_requests / self.total_requests


def normalize_url(url: str) -> str | None:
    """
    Strip whitespace and trailing slashes, expand ${VAR} placeholders.

    Returns None when a placeholder has no value in the environment or
    the result is not a usable http(s) URL.
    """
    missing = False

    def _expand(match: re.Match) -> str:
        nonlocal missing
        value = os.getenv(match.group(1), "")
        if not value:
            missing = True
        return value

    resolved = _PLACEHOLDER.sub(_expand, url.strip())
    if missing or not resolved:
        return None

    resolved = resolved.rstrip("/")
    try:
        parsed = httpx.URL(resolved)
    except httpx.InvalidURL:
        return None
    if parsed.scheme not in ("http", "https") or not parsed.host:
        return None
    return resolved


def _addresses(apis: dict, key: str) -> list[str]:
    entries = apis.get(key) or []
    return [
        entry["address"]
        for entry in entries
        if isinstance(entry, dict) and isinstance(entry.get("address"), str)
    ]


def parse_chain_document(document: dict) -> dict[EndpointType, list[str]]:
    """Extract REST and RPC addresses from a chain-registry chain.json."""
    apis = document.get("apis") or {}
    return {
        EndpointType.REST: _addresses(apis, "rest"),
        EndpointType.RPC: _addresses(apis, "rpc"),
    }


class ChainEndpoints:
    """
    View of the registry for a single chain.

    Holds the resolved candidate lists in discovery order. Ordering by
    score and outcome reporting are delegated to the owning registry.
    """

    def __init__(
        self,
        registry: "EndpointRegistry",
        chain: str,
        rest: Sequence[Endpoint],
        rpc: Sequence[Endpoint],
    ):
        self.registry = registry
        self.chain = chain
        self._candidates = {
            EndpointType.REST: tuple(rest),
            EndpointType.RPC: tuple(rpc),
        }

    @property
    def rest_endpoints(self) -> tuple[Endpoint, ...]:
        return self._candidates[EndpointType.REST]

    @property
    def rpc_endpoints(self) -> tuple[Endpoint, ...]:
        return self._candidates[EndpointType.RPC]

    def get_endpoints(self, endpoint_type: EndpointType) -> list[Endpoint]:
        """Candidates of one type, most reliable first."""
        return self.registry.order(self._candidates[endpoint_type])

    def report_outcome(
        self,
        endpoint: Endpoint,
        success: bool,
        error: str | None = None,
        latency_ms: int | None = None,
    ) -> None:
        self.registry.report_outcome(endpoint, success, error, latency_ms)


class EndpointRegistry:
    """
    Registry of gateway endpoints by chain.

    Owns every EndpointStats; chain tasks only see ordered lists and
    report outcomes. All tasks run on one event loop, so updates need
    no locking.
    """

    def __init__(
        self,
        registry_urls: Sequence[str] | None = None,
        timeout_seconds: float = DEFAULT_REQUEST_TIMEOUT_SECONDS,
        client: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if registry_urls is None:
            registry_urls = DEFAULT_REGISTRY_URLS
        self.registry_urls = [u.rstrip("/") for u in registry_urls]
        self.timeout_seconds = timeout_seconds
        self._client = client
        self._owns_client = client is None
        self._transport = transport
        self._custom: dict[str, list[tuple[str, EndpointType]]] = {}
        self.stats: dict[Endpoint, EndpointStats] = {}

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout_seconds),
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if the registry created it."""
        if self._client and self._owns_client:
            await self._client.aclose()
            self._client = None

    def add_custom_endpoints(
        self,
        chain: str,
        endpoints: Iterable[tuple[str, EndpointType]],
    ) -> None:
        """Register operator supplied endpoints, listed before discovered ones."""
        self._custom.setdefault(chain, []).extend(
            (url, EndpointType(kind)) for url, kind in endpoints
        )

    async def _fetch_document(self, registry_url: str, chain: str) -> dict | None:
        url = f"{registry_url}/{chain}/{CHAIN_DOCUMENT_NAME}"
        client = await self._get_client()
        try:
            resp = await client.get(url, timeout=self.timeout_seconds)
            resp.raise_for_status()
            document = resp.json()
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as e:
            log_endpoint_error(
                logger, "Registry source unavailable", registry_url, e, chain=chain
            )
            return None

        if not isinstance(document, dict):
            logger.warning(
                "Registry document is not an object",
                extra={"context": {"chain": chain, "source": registry_url}},
            )
            return None
        return document

    async def resolve(self, chain: str) -> ChainEndpoints:
        """
        Merge custom endpoints and every registry source for a chain.

        Order is custom first, then sources in configuration order, then
        document order; duplicates keep their first position.

        Raises:
            UnknownChainError: If neither a REST nor an RPC endpoint was found
        """
        discovered: dict[EndpointType, list[str]] = {
            EndpointType.REST: [],
            EndpointType.RPC: [],
        }

        for url, kind in self._custom.get(chain, []):
            discovered[kind].append(url)

        for registry_url in self.registry_urls:
            document = await self._fetch_document(registry_url, chain)
            if document is None:
                continue
            for kind, urls in parse_chain_document(document).items():
                discovered[kind].extend(urls)

        resolved: dict[EndpointType, list[Endpoint]] = {}
        for kind, urls in discovered.items():
            seen: set[str] = set()
            endpoints = []
            for raw in urls:
                url = normalize_url(raw)
                if url is None or url in seen:
                    continue
                seen.add(url)
                endpoints.append(Endpoint(chain=chain, type=kind, url=url))
            resolved[kind] = endpoints

        rest, rpc = resolved[EndpointType.REST], resolved[EndpointType.RPC]
        if not rest and not rpc:
            raise UnknownChainError(chain, self.registry_urls)

        for endpoint in rest + rpc:
            self.stats.setdefault(endpoint, EndpointStats(url=endpoint.url))

        logger.info(
            f"Resolved endpoints for {chain}",
            extra={"context": {"chain": chain, "rest": len(rest), "rpc": len(rpc)}},
        )
        return ChainEndpoints(self, chain, rest, rpc)

    def order(self, endpoints: Sequence[Endpoint]) -> list[Endpoint]:
        """Sort by consecutive failures; ties keep the given order."""
        def failures(endpoint: Endpoint) -> int:
            stats = self.stats.get(endpoint)
            return stats.consecutive_failures if stats else 0

        return sorted(endpoints, key=failures)

    def report_outcome(
        self,
        endpoint: Endpoint,
        success: bool,
        error: str | None = None,
        latency_ms: int | None = None,
    ) -> None:
        """Update the score of an endpoint. Never raises."""
        stats = self.stats.setdefault(endpoint, EndpointStats(url=endpoint.url))
        stats.total_requests += 1

        if success:
            stats.successful_requests += 1
            stats.consecutive_failures = 0
            stats.last_success_ts = now_ms()
            if latency_ms is not None:
                stats.total_latency_ms += latency_ms
        else:
            stats.failed_requests += 1
            stats.consecutive_failures += 1
            stats.last_error = error

    def get_stats_summary(self, chain: str | None = None) -> dict:
        """Get statistics summary, optionally for one chain."""
        return {
            f"{e.chain}/{e.type.value}/{e.url}": {
                "total_requests": s.total_requests,
                "success_rate": round(s.success_rate, 3),
                "consecutive_failures": s.consecutive_failures,
                "avg_latency_ms": s.avg_latency_ms,
                "last_error": s.last_error,
            }
            for e, s in self.stats.items()
            if chain is None or e.chain == chain
        }
