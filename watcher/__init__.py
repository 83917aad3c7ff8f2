"""
watcher/ - Multi-chain block sync.

Modules:
- watcher: Per-chain polling tasks and block delivery
- jobs: CLI entrypoints
"""

from watcher.watcher import BlockHandler, ClientFactory, Watcher

__all__ = [
    "BlockHandler",
    "ClientFactory",
    "Watcher",
]
