"""
tests/unit/test_run_watch.py - CLI entrypoint tests.
"""

import io
import json
from datetime import datetime, timezone

from click.testing import CliRunner

from core.models import Block, BlockHeader, Transaction
from watcher.jobs.run_watch import JsonLinesSink, main


class TestJsonLinesSink:
    """Blocks are written one JSON document per line."""

    def test_writes_block(self):
        stream = io.StringIO()
        sink = JsonLinesSink(stream)
        header = BlockHeader(
            height=5,
            time=datetime(2024, 5, 1, tzinfo=timezone.utc),
            hash="HASH5",
            chain_id="testchain-1",
            proposer="PROPOSER",
        )
        tx = Transaction(raw=b"\x01", code=0, events=(), log="", data=b"", hash="TX", index=0)

        sink(Block(chain="testchain", height=5, header=header, txs=(tx,)))
        sink(Block(chain="testchain", height=6))

        lines = stream.getvalue().splitlines()
        first = json.loads(lines[0])

        assert sink.blocks_written == 2
        assert first["header"]["time"] == "2024-05-01T00:00:00+00:00"
        assert first["txs"][0]["raw"] == "01"
        assert json.loads(lines[1]) == {"chain": "testchain", "height": 6, "header": None, "txs": []}


class TestCli:
    """Option validation (no network)."""

    def test_no_chains_is_usage_error(self, tmp_path):
        config = tmp_path / "empty.yaml"
        config.write_text("chains: []\n", encoding="utf-8")

        result = CliRunner().invoke(main, ["--config", str(config), "--no-json-logs"])

        assert result.exit_code == 2
        assert "No chains to watch" in result.output

    def test_invalid_config_is_reported(self, tmp_path):
        config = tmp_path / "bad.yaml"
        config.write_text("mode: EVERYTHING\nchains: [osmosis]\n", encoding="utf-8")

        result = CliRunner().invoke(main, ["--config", str(config)])

        assert result.exit_code == 1
        assert "Unknown mode" in result.output

    def test_from_height_without_chain_is_usage_error(self):
        result = CliRunner().invoke(main, ["--from-height", "100"])

        assert result.exit_code == 2
        assert "--from-height requires --chain" in result.output

    def test_negative_from_height_rejected(self):
        result = CliRunner().invoke(main, ["--chain", "osmosis", "--from-height", "-5"])

        assert result.exit_code == 2
