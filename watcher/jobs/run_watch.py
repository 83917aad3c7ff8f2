#!/usr/bin/env python3
"""
watcher/jobs/run_watch.py - CLI entrypoint for block watching.

Streams every delivered block as one JSON line.

Usage:
    python -m watcher.jobs.run_watch --chain osmosis
    python -m watcher.jobs.run_watch -c osmosis -c juno --mode HEADERS_AND_TRANSACTIONS -o blocks.jsonl
"""

import asyncio
import json
import signal
import sys
from typing import IO

import click

from config import ChainTarget, load_watcher_config, parse_mode
from core.constants import AcquisitionMode
from core.exceptions import WatcherError
from core.logging import get_logger, set_global_context, setup_logging
from core.models import Block
from watcher.watcher import Watcher

logger = get_logger("blockwatch.run")

__version__ = "0.1.0"


class JsonLinesSink:
    """Block handler writing one JSON document per line."""

    def __init__(self, stream: IO[str]):
        self.stream = stream
        self.blocks_written = 0

    def __call__(self, block: Block) -> None:
        self.stream.write(json.dumps(block.to_dict(), default=str) + "\n")
        self.stream.flush()
        self.blocks_written += 1


async def run_watcher(watcher: Watcher) -> None:
    """Run until SIGINT/SIGTERM."""
    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(signum, watcher.stop)
        except NotImplementedError:
            # Windows event loops
            signal.signal(signum, lambda *_: watcher.stop())

    await watcher.run()


@click.command()
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="YAML config (default: config/watcher.yaml)",
)
@click.option(
    "--chain",
    "-c",
    "chains",
    multiple=True,
    help="Chain to watch, repeatable (overrides config chains)",
)
@click.option(
    "--from-height",
    type=click.IntRange(min=0),
    default=None,
    help="Last height already consumed for --chain chains",
)
@click.option(
    "--mode",
    "-m",
    type=click.Choice([m.value for m in AcquisitionMode], case_sensitive=False),
    default=None,
    help="What to fetch per block (default: from config)",
)
@click.option(
    "--log-level",
    "-l",
    default="INFO",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Log level",
)
@click.option(
    "--json-logs/--no-json-logs",
    default=True,
    help="Use JSON log format",
)
@click.option(
    "--output",
    "-o",
    type=click.File("a", encoding="utf-8"),
    default="-",
    help="JSON-lines output file (default: stdout)",
)
def main(
    config_path: str | None,
    chains: tuple[str, ...],
    from_height: int | None,
    mode: str | None,
    log_level: str,
    json_logs: bool,
    output: IO[str],
) -> None:
    """
    blockwatch.

    Follows the head of Cosmos chains and prints their blocks in order.
    """
    if from_height is not None and not chains:
        raise click.UsageError("--from-height requires --chain")

    setup_logging(level=log_level, json_output=json_logs)
    set_global_context(service="blockwatch", version=__version__)

    try:
        config = load_watcher_config(config_path)
        if chains:
            config.chains = [ChainTarget(name, from_height) for name in chains]
        if mode:
            config.mode = parse_mode(mode)
    except (WatcherError, FileNotFoundError) as e:
        raise click.ClickException(str(e))

    if not config.chains:
        raise click.UsageError("No chains to watch, pass --chain or list them in the config")

    sink = JsonLinesSink(output)
    watcher = Watcher.from_config(config).receive(config.mode, sink)

    logger.info(
        "Starting blockwatch",
        extra={"context": {
            "chains": [c.name for c in config.chains],
            "mode": config.mode.value,
            "registry_urls": config.registry_urls,
        }},
    )

    try:
        asyncio.run(run_watcher(watcher))
    except KeyboardInterrupt:
        logger.info("Watch interrupted")
    except Exception as e:
        logger.error(
            f"Watcher error: {e}",
            extra={"context": {"error": str(e)}},
            exc_info=True,
        )
        sys.exit(1)

    logger.info(
        "blockwatch stopped",
        extra={"context": {"blocks_written": sink.blocks_written}},
    )


if __name__ == "__main__":
    main()
