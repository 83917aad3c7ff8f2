# PATH: core/time.py
"""
Time utilities for blockwatch.
"""

import re
import time
from datetime import datetime, timezone
from typing import Any, Optional

# 2024-05-01T12:00:00.123456789Z, fraction and offset optional
_RFC3339_PATTERN = re.compile(
    r"^(?P<base>\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})"
    r"(?:\.(?P<fraction>\d+))?"
    r"(?P<offset>Z|[+-]\d{2}:\d{2})?$"
)


def now_utc() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(timezone.utc)


def now_ms() -> int:
    """Get current Unix timestamp in milliseconds."""
    return int(time.time() * 1000)


def parse_block_time(value: Any) -> Optional[datetime]:
    """
    Parse a Tendermint block time.

    Block times carry nanosecond precision, which datetime can't hold, so
    the fraction is truncated to microseconds. Naive values are taken as UTC.

    Returns:
        Timezone-aware datetime, or None if value is empty, not a string
        or not RFC 3339
    """
    if not value or not isinstance(value, str):
        return None

    match = _RFC3339_PATTERN.match(value.strip())
    if not match:
        return None

    text = match.group("base")
    fraction = match.group("fraction")
    if fraction:
        text += "." + fraction[:6].ljust(6, "0")

    offset = match.group("offset")
    if offset and offset != "Z":
        text += offset
    else:
        text += "+00:00"

    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None
