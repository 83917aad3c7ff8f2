"""
chains/client.py - Block acquisition for one chain with endpoint failover.

Provides:
- Latest height as the max over a concurrent broadcast to REST gateways
- Block headers with sequential RPC failover
- Paginated transaction search with empty-block grace handling
"""

import asyncio
import time
from typing import Any

import httpx

from chains.decoding import decode_transaction
from chains.endpoints import ChainEndpoints, Endpoint
from core.constants import (
    BLOCK_PATH,
    DEFAULT_EMPTY_BLOCK_GRACE_SECONDS,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    DEFAULT_TX_PAGE_SIZE,
    LATEST_BLOCK_PATH,
    TX_SEARCH_PATH,
    EndpointType,
    ErrorCode,
)
from core.exceptions import (
    EndpointRequestError,
    InfraError,
    NoBlockHeaderError,
    NoLatestHeightError,
)
from core.logging import get_logger, log_endpoint_error
from core.models import BlockHeader, Transaction
from core.time import parse_block_time

# Errors that count against an endpoint. Besides transport failures this
# includes malformed payloads: a gateway answering 200 with a body we can't
# use is scored like one that is down.
# An empty tx_search result is not an error.
ENDPOINT_ERRORS = (InfraError, KeyError, TypeError, ValueError)


def parse_block_header(data: dict) -> BlockHeader:
    """
    Build a BlockHeader from a /block?height= response.

    Raises:
        KeyError, TypeError, ValueError: If the payload is malformed
    """
    result = data["result"]
    header = result["block"]["header"]

    return BlockHeader(
        height=int(header["height"]),
        time=parse_block_time(header.get("time")),
        hash=str(result["block_id"]["hash"]),
        chain_id=str(header.get("chain_id") or ""),
        proposer=str(header.get("proposer_address") or ""),
    )


class ChainApiClient:
    """
    Acquisition operations for a single chain.

    Every call orders candidates through the registry view and reports
    each endpoint's outcome back to it.
    """

    def __init__(
        self,
        endpoints: ChainEndpoints,
        client: httpx.AsyncClient | None = None,
        timeout_seconds: float = DEFAULT_REQUEST_TIMEOUT_SECONDS,
        empty_block_grace_seconds: float = DEFAULT_EMPTY_BLOCK_GRACE_SECONDS,
        tx_page_size: int = DEFAULT_TX_PAGE_SIZE,
    ):
        self.endpoints = endpoints
        self.chain = endpoints.chain
        self.timeout_seconds = timeout_seconds
        self.empty_block_grace_seconds = empty_block_grace_seconds
        self.tx_page_size = tx_page_size
        self._client = client
        self._owns_client = client is None
        self.logger = get_logger(__name__, chain=self.chain)

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout_seconds),
                limits=httpx.Limits(max_connections=20),
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._client and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def _get_json(
        self,
        endpoint: Endpoint,
        path: str,
        params: dict | None = None,
    ) -> tuple[Any, int]:
        """
        GET {endpoint}{path} within the per-call timeout.

        Returns:
            (decoded JSON body, latency_ms)

        Raises:
            EndpointRequestError: On timeout, connection error, unusable URL
                or non-2xx status
            InfraError: If the body is not JSON
        """
        client = await self._get_client()
        url = f"{endpoint.url}{path}"
        start = time.monotonic()

        try:
            resp = await client.get(url, params=params, timeout=self.timeout_seconds)
            resp.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise EndpointRequestError(url, str(e) or type(e).__name__) from e

        latency_ms = int((time.monotonic() - start) * 1000)
        try:
            return resp.json(), latency_ms
        except ValueError as e:
            raise InfraError(
                f"Response from {url} is not JSON",
                ErrorCode.INFRA_MALFORMED_RESPONSE,
                {"url": url},
            ) from e

    def _report_failure(self, endpoint: Endpoint, error: BaseException) -> None:
        self.endpoints.report_outcome(endpoint, False, error=str(error))

    # =========================================================================
    # LATEST HEIGHT
    # =========================================================================

    async def _fetch_latest_height(self, endpoint: Endpoint) -> int:
        try:
            data, latency_ms = await self._get_json(endpoint, LATEST_BLOCK_PATH)
            height = int(data["block"]["header"]["height"])
        except ENDPOINT_ERRORS as e:
            self._report_failure(endpoint, e)
            self.logger.debug(
                f"Latest height unavailable from {endpoint}: {e}",
                extra={"context": {"endpoint": endpoint.url}},
            )
            raise

        self.endpoints.report_outcome(endpoint, True, latency_ms=latency_ms)
        return height

    async def get_latest_height(self, lower_bound: int = 0) -> int:
        """
        Query all REST endpoints at once and keep the highest answer.

        Args:
            lower_bound: Height already known; the result is never lower

        Raises:
            NoLatestHeightError: If nothing was learned and lower_bound <= 0
        """
        endpoints = self.endpoints.get_endpoints(EndpointType.REST)

        results = await asyncio.gather(
            *(self._fetch_latest_height(e) for e in endpoints),
            return_exceptions=True,
        )
        heights = [r for r in results if isinstance(r, int)]
        latest = max([*heights, lower_bound or 0])

        if latest <= 0:
            raise NoLatestHeightError(self.chain, [e.url for e in endpoints])

        return latest

    # =========================================================================
    # BLOCK HEADER
    # =========================================================================

    async def get_block_header(self, height: int) -> BlockHeader:
        """
        Fetch a header, trying RPC endpoints one by one.

        Stops at the first endpoint that answers.

        Raises:
            NoBlockHeaderError: If every endpoint failed
        """
        endpoints = self.endpoints.get_endpoints(EndpointType.RPC)

        for endpoint in endpoints:
            try:
                data, latency_ms = await self._get_json(
                    endpoint, BLOCK_PATH, {"height": height}
                )
                header = parse_block_header(data)
            except ENDPOINT_ERRORS as e:
                self._report_failure(endpoint, e)
                log_endpoint_error(
                    self.logger,
                    f"Error fetching header {height}",
                    endpoint.url,
                    e,
                    height=height,
                )
                continue

            self.endpoints.report_outcome(endpoint, True, latency_ms=latency_ms)
            return header

        raise NoBlockHeaderError(self.chain, height, [e.url for e in endpoints])

    # =========================================================================
    # TRANSACTIONS
    # =========================================================================

    async def _search_txs(self, endpoint: Endpoint, height: int) -> tuple[list, int]:
        """
        Collect every page of tx_search for a height from one endpoint.

        Returns:
            (raw transactions in page order, total latency_ms)
        """
        all_txs: list = []
        total_latency_ms = 0
        page = 1

        while True:
            data, latency_ms = await self._get_json(
                endpoint,
                TX_SEARCH_PATH,
                {
                    "query": f'"tx.height={height}"',
                    "page": page,
                    "per_page": self.tx_page_size,
                },
            )
            total_latency_ms += latency_ms

            result = data["result"]
            total_count = int(result["total_count"])
            txs = result.get("txs") or []
            if not isinstance(txs, list):
                raise TypeError(f"txs is {type(txs).__name__}, expected list")

            all_txs.extend(txs)
            if len(all_txs) >= total_count:
                return all_txs, total_latency_ms

            if not txs:
                raise ValueError(
                    f"page {page} is empty with {len(all_txs)}/{total_count} txs collected"
                )
            page += 1

    async def get_txs_in_block(self, height: int) -> list[Transaction]:
        """
        Fetch and decode all transactions of a block.

        An empty answer may mean the endpoint hasn't indexed the block
        yet, so after a short grace wait the next endpoint is asked.
        If every endpoint comes back empty or fails, the block is empty.
        """
        endpoints = self.endpoints.get_endpoints(EndpointType.RPC)

        for endpoint in endpoints:
            try:
                raw_txs, latency_ms = await self._search_txs(endpoint, height)
            except ENDPOINT_ERRORS as e:
                self._report_failure(endpoint, e)
                log_endpoint_error(
                    self.logger,
                    f"Error fetching txs of block {height}",
                    endpoint.url,
                    e,
                    height=height,
                )
                continue

            txs = [decode_transaction(raw) for raw in raw_txs]
            if txs:
                self.endpoints.report_outcome(endpoint, True, latency_ms=latency_ms)
                return txs

            self.logger.debug(
                f"No txs in block {height} at {endpoint}",
                extra={"context": {"endpoint": endpoint.url, "height": height}},
            )
            await asyncio.sleep(self.empty_block_grace_seconds)
            self.endpoints.report_outcome(endpoint, True, latency_ms=latency_ms)

        # Probably an empty block
        return []
