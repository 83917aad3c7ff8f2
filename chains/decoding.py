"""
chains/decoding.py - Basic transaction decoding, without protobuf.

Every helper here is total: malformed input degrades to a default
instead of raising, so one bad transaction can't abort a block.
"""

import base64
import binascii
import json
from typing import Any

from core.constants import SMALL_INT_MAX, SMALL_INT_MIN
from core.models import EventAttribute, Transaction, TxEvent


def from_base64(value: Any) -> bytes:
    """Decode base64 text, b'' if absent or malformed."""
    if not isinstance(value, str) or not value:
        return b""
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError):
        return b""


def decode_text(value: Any) -> str:
    """
    Decode a base64 encoded UTF-8 attribute.

    Values that aren't valid base64 or UTF-8 are passed through as-is,
    which also covers nodes that already emit plain-text attributes.
    """
    if value is None:
        return ""
    if not isinstance(value, str):
        return str(value)
    try:
        return base64.b64decode(value, validate=True).decode("utf-8")
    except (binascii.Error, ValueError):
        return value


def try_parse_json(value: Any) -> Any:
    """Parsed JSON value, or the original string if it isn't JSON."""
    if not isinstance(value, str):
        return "" if value is None else value
    try:
        return json.loads(value)
    except (ValueError, RecursionError):
        return value


def to_small_int(value: Any) -> int:
    """Result code as a smallint; 0 when absent, unparseable or out of range."""
    if isinstance(value, bool):
        return 0
    try:
        number = int(value)
    except (TypeError, ValueError, OverflowError):
        return 0
    if SMALL_INT_MIN <= number <= SMALL_INT_MAX:
        return number
    return 0


def _as_list(value: Any) -> list:
    return value if isinstance(value, list) else []


def to_int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return default


def _decode_event(event: Any) -> TxEvent:
    if not isinstance(event, dict):
        return TxEvent(type="")

    attributes = []
    for attr in _as_list(event.get("attributes")):
        if not isinstance(attr, dict):
            continue
        attributes.append(EventAttribute(
            key=decode_text(attr.get("key")),
            value=decode_text(attr.get("value")),
        ))

    return TxEvent(type=str(event.get("type") or ""), attributes=tuple(attributes))


def decode_transaction(raw: Any) -> Transaction:
    """
    Decode one entry of a tx_search response.

    Args:
        raw: {"tx", "hash", "index", "tx_result": {"code", "log", "data", "events"}}

    Returns:
        Transaction with payloads as bytes and attributes as text
    """
    if not isinstance(raw, dict):
        raw = {}
    result = raw.get("tx_result")
    if not isinstance(result, dict):
        result = {}

    return Transaction(
        raw=from_base64(raw.get("tx")),
        code=to_small_int(result.get("code")),
        events=tuple(_decode_event(ev) for ev in _as_list(result.get("events"))),
        log=try_parse_json(result.get("log")),
        data=from_base64(result.get("data")),
        hash=str(raw.get("hash") or ""),
        index=to_int(raw.get("index")),
    )
