"""
tests/integration/test_watch_run.py - Full pipeline over a mock network.

Registry document -> endpoint resolution -> latest height -> header and
txs -> handler, with every HTTP call served by httpx.MockTransport.
"""

import asyncio
import base64

import httpx
import pytest

from config import WatcherConfig
from core.constants import AcquisitionMode, EndpointType
from watcher.watcher import Watcher


def _b64(text: str) -> str:
    return base64.b64encode(text.encode()).decode()


class MockNetwork:
    """One chain with a registry mirror, two REST and two RPC gateways."""

    def __init__(self, head: int):
        self.head = head
        self.requests: list[str] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        host, path = request.url.host, request.url.path
        self.requests.append(f"{host}{path}")

        if host == "registry.test":
            if path != "/testchain/chain.json":
                return httpx.Response(404)
            return httpx.Response(200, json={
                "chain_name": "testchain",
                "apis": {
                    "rest": [{"address": "https://lcd-down.test"}, {"address": "https://lcd.test/"}],
                    "rpc": [{"address": "https://rpc-down.test"}, {"address": "https://rpc.test"}],
                },
            })

        if host.endswith("-down.test"):
            raise httpx.ConnectError("connection refused", request=request)

        if path == "/cosmos/base/tendermint/v1beta1/blocks/latest":
            return httpx.Response(200, json={"block": {"header": {"height": str(self.head)}}})

        if path == "/block":
            height = int(request.url.params["height"])
            return httpx.Response(200, json={"result": {
                "block_id": {"hash": f"HASH{height}"},
                "block": {"header": {
                    "height": str(height),
                    "time": "2024-05-01T12:00:00.5Z",
                    "chain_id": "testchain-1",
                    "proposer_address": "PROPOSER",
                }},
            }})

        if path == "/tx_search":
            query = request.url.params["query"]
            txs = []
            if query == '"tx.height=2"':
                txs = [{
                    "hash": "TX2",
                    "index": 0,
                    "tx": _b64("payload"),
                    "tx_result": {
                        "code": 0,
                        "log": "[]",
                        "events": [{"type": "transfer", "attributes": [
                            {"key": _b64("amount"), "value": _b64("5uatom")},
                        ]}],
                    },
                }]
            return httpx.Response(200, json={"result": {"txs": txs, "total_count": str(len(txs))}})

        return httpx.Response(404)


@pytest.mark.integration
class TestWatchRun:

    def test_headers_and_transactions_over_failing_gateways(self):
        network = MockNetwork(head=3)
        config = WatcherConfig(
            registry_urls=["https://registry.test"],
            mode=AcquisitionMode.HEADERS_AND_TRANSACTIONS,
            idle_interval_seconds=0,
            failure_cooldown_seconds=0,
            empty_block_grace_seconds=0,
        )
        watcher = Watcher(config, transport=httpx.MockTransport(network))
        blocks = []

        async def handler(block):
            blocks.append(block)
            if block.height == 3:
                watcher.stop()

        watcher.add_network("testchain", from_height=1).receive(config.mode, handler)
        asyncio.run(asyncio.wait_for(watcher.run(), timeout=5))

        assert [b.height for b in blocks] == [2, 3]
        assert blocks[0].header.hash == "HASH2"
        assert blocks[0].header.time.microsecond == 500000
        assert blocks[0].txs[0].events[0].attributes[0].value == "5uatom"
        assert blocks[1].txs == ()

        stats = watcher.registry.get_stats_summary("testchain")
        assert stats["testchain/rpc/https://rpc-down.test"]["consecutive_failures"] >= 1
        assert stats["testchain/rest/https://lcd.test"]["success_rate"] == 1.0

    def test_custom_endpoints_without_registry_document(self):
        network = MockNetwork(head=10)
        config = WatcherConfig(registry_urls=[], idle_interval_seconds=0)
        watcher = Watcher(config, transport=httpx.MockTransport(network))
        watcher.add_custom_endpoints("local", [
            ("https://lcd.test", EndpointType.REST),
            ("https://rpc.test", EndpointType.RPC),
        ])
        heights = []

        def handler(block):
            heights.append(block.height)
            watcher.stop()

        watcher.add_network("local").receive(AcquisitionMode.HEADERS, handler)
        asyncio.run(asyncio.wait_for(watcher.run(), timeout=5))

        assert heights == [10]
        assert not any(r.startswith("registry.test") for r in network.requests)
