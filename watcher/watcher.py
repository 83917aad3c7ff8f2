"""
watcher/watcher.py - Multi-chain block sync.

One task per tracked chain:

    STARTING -> POLLING -> (FETCHING -> DELIVERING)* -> FAILED -> STARTING

Blocks of a chain reach the handler strictly in height order, each
height once. A failed task waits out a cooldown and restarts from the
last delivered height, so other chains never wait on it.
"""

import asyncio
import inspect
from typing import Awaitable, Callable, Iterable, Optional, Sequence, Union

import httpx

from chains.client import ChainApiClient
from chains.endpoints import EndpointRegistry
from config import ChainTarget, WatcherConfig
from core.constants import AcquisitionMode, EndpointType
from core.exceptions import ConfigError
from core.logging import ContextAdapter, get_logger
from core.models import Block

logger = get_logger(__name__)

BlockHandler = Callable[[Block], Union[Awaitable[None], None]]
ClientFactory = Callable[[str], Awaitable[ChainApiClient]]


class Watcher:
    """
    Tracks the head of several chains and delivers their blocks.

    Usage:
        watcher = (
            Watcher.create()
            .add_network("osmosis", from_height=12000000)
            .receive(AcquisitionMode.HEADERS, handle_block)
        )
        await watcher.run()
    """

    def __init__(
        self,
        config: WatcherConfig | None = None,
        client_factory: ClientFactory | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config or WatcherConfig()
        self.chains: list[ChainTarget] = []
        self.mode: AcquisitionMode = self.config.mode
        self.handler: Optional[BlockHandler] = None
        self.registry = EndpointRegistry(
            self.config.registry_urls,
            timeout_seconds=self.config.request_timeout_seconds,
            transport=transport,
        )
        self._transport = transport
        self._client_factory = client_factory or self._create_client
        self._http: httpx.AsyncClient | None = None
        self._watermarks: dict[str, int] = {}
        self._stop_requested = False
        self._stop_event: asyncio.Event | None = None

        for chain, endpoints in self.config.custom_endpoints.items():
            self.registry.add_custom_endpoints(chain, endpoints)

    # =========================================================================
    # BUILDER
    # =========================================================================

    @classmethod
    def create(cls, registry_urls: Sequence[str] | None = None) -> "Watcher":
        config = WatcherConfig()
        if registry_urls is not None:
            config.registry_urls = list(registry_urls)
        return cls(config)

    @classmethod
    def from_config(cls, config: WatcherConfig, **kwargs) -> "Watcher":
        """Watcher with the chains listed in the config already added."""
        watcher = cls(config, **kwargs)
        for target in config.chains:
            watcher.add_network(target.name, target.from_height)
        return watcher

    def add_network(self, chain: str, from_height: int | None = None) -> "Watcher":
        """Track a chain; from_height is the last height already consumed."""
        self.chains.append(ChainTarget(chain, from_height))
        return self

    def add_networks(self, chains: Iterable[str], from_height: int | None = None) -> "Watcher":
        for chain in chains:
            self.add_network(chain, from_height)
        return self

    def add_custom_endpoints(
        self,
        chain: str,
        endpoints: Iterable[tuple[str, EndpointType]],
    ) -> "Watcher":
        self.registry.add_custom_endpoints(chain, endpoints)
        return self

    def receive(self, mode: AcquisitionMode, handler: BlockHandler) -> "Watcher":
        self.mode = AcquisitionMode(mode)
        self.handler = handler
        return self

    def watermark(self, chain: str) -> int | None:
        """Last height delivered for a chain, None before the first block."""
        return self._watermarks.get(chain)

    # =========================================================================
    # EXECUTION
    # =========================================================================

    def stop(self) -> None:
        """Ask every chain task to finish after the block in flight."""
        self._stop_requested = True
        if self._stop_event is not None:
            self._stop_event.set()

    @property
    def stopping(self) -> bool:
        return self._stop_requested

    async def _wait(self, seconds: float) -> None:
        """Sleep that returns early once stop() is called."""
        if self._stop_event is None or seconds <= 0:
            await asyncio.sleep(max(seconds, 0))
            return
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

    async def _create_client(self, chain: str) -> ChainApiClient:
        endpoints = await self.registry.resolve(chain)
        if self._http is None:
            self._http = httpx.AsyncClient(
                timeout=httpx.Timeout(self.config.request_timeout_seconds),
                limits=httpx.Limits(max_connections=50),
                transport=self._transport,
            )
        return ChainApiClient(
            endpoints,
            client=self._http,
            timeout_seconds=self.config.request_timeout_seconds,
            empty_block_grace_seconds=self.config.empty_block_grace_seconds,
            tx_page_size=self.config.tx_page_size,
        )

    async def run(self) -> None:
        """
        Run every chain until stop() is called.

        Raises:
            ConfigError: If no handler was registered
        """
        if self.handler is None:
            raise ConfigError("No block handler provided, call receive() first")

        self._stop_event = asyncio.Event()
        if self._stop_requested:
            self._stop_event.set()

        logger.info(
            "Watcher starting",
            extra={"context": {
                "chains": [c.name for c in self.chains],
                "mode": self.mode.value,
            }},
        )

        try:
            await asyncio.gather(*(self._run_chain(target) for target in self.chains))
        finally:
            await self.registry.close()
            if self._http is not None:
                await self._http.aclose()
                self._http = None

        logger.info("Watcher stopped", extra={"context": {"watermarks": dict(self._watermarks)}})

    async def _run_chain(self, target: ChainTarget) -> None:
        """Restart loop of one chain; only stop() ends it."""
        chain_logger = get_logger(__name__, chain=target.name)
        restarts = 0

        while not self.stopping:
            try:
                client = await self._client_factory(target.name)
                await self._sync_chain(target, client, chain_logger)
            except Exception as e:
                restarts += 1
                chain_logger.error(
                    f"Chain task failed: {e}",
                    exc_info=True,
                    extra={"context": {
                        "restarts": restarts,
                        "watermark": self._watermarks.get(target.name),
                        "cooldown_seconds": self.config.failure_cooldown_seconds,
                        "endpoints": self.registry.get_stats_summary(target.name),
                    }},
                )
                await self._wait(self.config.failure_cooldown_seconds)

    async def _sync_chain(
        self,
        target: ChainTarget,
        client: ChainApiClient,
        chain_logger: ContextAdapter,
    ) -> None:
        chain = target.name
        # 0 means nothing consumed yet
        last = max(target.from_height or 0, self._watermarks.get(chain, 0))

        chain_logger.info("Chain sync started", extra={"context": {"from_height": last or None}})

        while not self.stopping:
            latest = await client.get_latest_height(last)

            # No new block committed
            if last and latest <= last:
                await self._wait(self.config.idle_interval_seconds)
                continue

            start = last + 1 if last else latest
            for height in range(start, latest + 1):
                if self.stopping:
                    return
                block = await self.compose_block(client, chain, height)
                await self._deliver(block)
                last = height
                self._watermarks[chain] = height

                chain_logger.debug(
                    f"Delivered block {height}",
                    extra={"context": {"height": height, "txs": len(block.txs)}},
                )

    async def compose_block(self, client: ChainApiClient, chain: str, height: int) -> Block:
        if self.mode == AcquisitionMode.HEIGHT:
            return Block(chain=chain, height=height)

        header = await client.get_block_header(height)
        if self.mode == AcquisitionMode.HEADERS:
            return Block(chain=chain, height=height, header=header)

        txs = await client.get_txs_in_block(height)
        return Block(chain=chain, height=height, header=header, txs=tuple(txs))

    async def _deliver(self, block: Block) -> None:
        result = self.handler(block)
        if inspect.isawaitable(result):
            await result
