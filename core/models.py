# PATH: core/models.py
"""
Core data models for blockwatch.

All models are immutable once constructed. A Block is produced once per
height per chain and handed to the consumer; nothing here is cached.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class BlockHeader:
    """Header of a single block."""
    height: int
    time: Optional[datetime]
    hash: str
    chain_id: str
    proposer: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "height": self.height,
            "time": self.time.isoformat() if self.time else None,
            "hash": self.hash,
            "chain_id": self.chain_id,
            "proposer": self.proposer,
        }


@dataclass(frozen=True)
class EventAttribute:
    """Decoded key/value pair of a transaction event."""
    key: str
    value: str


@dataclass(frozen=True)
class TxEvent:
    """Event emitted by a transaction."""
    type: str
    attributes: Tuple[EventAttribute, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "attributes": [{"key": a.key, "value": a.value} for a in self.attributes],
        }


@dataclass(frozen=True)
class Transaction:
    """
    Transaction decoded without protobuf.

    raw and data hold the decoded payload bytes; log is the parsed JSON
    value when the provider's log was well-formed, else the raw string.
    """
    raw: bytes
    code: int
    events: Tuple[TxEvent, ...]
    log: Any
    data: bytes
    hash: str
    index: int

    @property
    def succeeded(self) -> bool:
        return self.code == 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hash": self.hash,
            "index": self.index,
            "code": self.code,
            "raw": self.raw.hex(),
            "data": self.data.hex(),
            "log": self.log,
            "events": [e.to_dict() for e in self.events],
        }


@dataclass(frozen=True)
class Block:
    """
    Block delivered to the consumer.

    header is None in HEIGHT mode; txs is empty unless transactions
    are fetched.
    """
    chain: str
    height: int
    header: Optional[BlockHeader] = None
    txs: Tuple[Transaction, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "chain": self.chain,
            "height": self.height,
            "header": self.header.to_dict() if self.header else None,
            "txs": [tx.to_dict() for tx in self.txs],
        }
