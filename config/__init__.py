# PATH: config/__init__.py
"""
Configuration loading utilities for blockwatch.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml
from dotenv import load_dotenv

from core.constants import (
    DEFAULT_EMPTY_BLOCK_GRACE_SECONDS,
    DEFAULT_FAILURE_COOLDOWN_SECONDS,
    DEFAULT_IDLE_INTERVAL_SECONDS,
    DEFAULT_REGISTRY_URLS,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    DEFAULT_TX_PAGE_SIZE,
    AcquisitionMode,
    EndpointType,
)
from core.exceptions import ConfigError


CONFIG_DIR = Path(__file__).parent
DEFAULT_CONFIG_FILE = "watcher.yaml"


@dataclass
class ChainTarget:
    """A chain to track and the height already consumed (floor)."""
    name: str
    from_height: Optional[int] = None


@dataclass
class WatcherConfig:
    """Settings for a Watcher run."""
    registry_urls: List[str] = field(default_factory=lambda: list(DEFAULT_REGISTRY_URLS))
    mode: AcquisitionMode = AcquisitionMode.HEADERS
    chains: List[ChainTarget] = field(default_factory=list)
    custom_endpoints: Dict[str, List[Tuple[str, EndpointType]]] = field(default_factory=dict)
    request_timeout_seconds: float = DEFAULT_REQUEST_TIMEOUT_SECONDS
    idle_interval_seconds: float = DEFAULT_IDLE_INTERVAL_SECONDS
    empty_block_grace_seconds: float = DEFAULT_EMPTY_BLOCK_GRACE_SECONDS
    failure_cooldown_seconds: float = DEFAULT_FAILURE_COOLDOWN_SECONDS
    tx_page_size: int = DEFAULT_TX_PAGE_SIZE


def load_yaml(filename: str | Path) -> Dict[str, Any]:
    """
    Load a YAML configuration file.

    Args:
        filename: Name of file in config directory, or a path

    Returns:
        Parsed YAML as dict
    """
    filepath = Path(filename)
    if not filepath.is_absolute() and not filepath.exists():
        filepath = CONFIG_DIR / filename
    if not filepath.exists():
        raise FileNotFoundError(f"Config file not found: {filepath}")

    with open(filepath, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def parse_mode(value: Any) -> AcquisitionMode:
    """Parse an acquisition mode name, case-insensitive."""
    try:
        return AcquisitionMode(str(value).strip().upper())
    except ValueError:
        choices = ", ".join(m.value for m in AcquisitionMode)
        raise ConfigError(f"Unknown mode {value!r} (expected one of {choices})")


def _parse_height(value: Any, chain: str) -> Optional[int]:
    if value is None:
        return None
    try:
        height = int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"Invalid from_height for {chain}: {value!r}")
    if height < 0:
        raise ConfigError(f"Negative from_height for {chain}: {height}")
    return height


def _parse_chains(raw: Any) -> List[ChainTarget]:
    """Accept `- osmosis` as well as `- {name: osmosis, from_height: 10}`."""
    chains = []
    for entry in raw or []:
        if isinstance(entry, str):
            chains.append(ChainTarget(name=entry))
        elif isinstance(entry, dict) and entry.get("name"):
            name = str(entry["name"])
            chains.append(ChainTarget(name, _parse_height(entry.get("from_height"), name)))
        else:
            raise ConfigError(f"Invalid chain entry: {entry!r}")
    return chains


def _parse_custom_endpoints(raw: Any) -> Dict[str, List[Tuple[str, EndpointType]]]:
    custom: Dict[str, List[Tuple[str, EndpointType]]] = {}
    for chain, entries in (raw or {}).items():
        for entry in entries or []:
            try:
                custom.setdefault(str(chain), []).append(
                    (str(entry["url"]), EndpointType(str(entry["type"]).lower()))
                )
            except (KeyError, TypeError, ValueError):
                raise ConfigError(
                    f"Invalid custom endpoint for {chain}: {entry!r}",
                    details={"chain": chain},
                )
    return custom


def parse_watcher_config(data: Dict[str, Any]) -> WatcherConfig:
    """Build a WatcherConfig from a parsed YAML mapping."""
    config = WatcherConfig()

    if data.get("registry_urls"):
        config.registry_urls = [str(u) for u in data["registry_urls"]]
    if data.get("mode"):
        config.mode = parse_mode(data["mode"])

    config.chains = _parse_chains(data.get("chains"))
    config.custom_endpoints = _parse_custom_endpoints(data.get("custom_endpoints"))

    timing = data.get("timing") or {}
    try:
        for key in (
            "request_timeout_seconds",
            "idle_interval_seconds",
            "empty_block_grace_seconds",
            "failure_cooldown_seconds",
        ):
            if key in timing:
                setattr(config, key, float(timing[key]))
        if "tx_page_size" in data:
            config.tx_page_size = int(data["tx_page_size"])
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid timing value: {e}")

    return config


def apply_env_overrides(config: WatcherConfig) -> WatcherConfig:
    """
    Apply BLOCKWATCH_* environment overrides (after loading .env).

    BLOCKWATCH_REGISTRY_URLS: comma separated registry mirrors
    BLOCKWATCH_MODE: acquisition mode
    """
    load_dotenv()

    registry_urls = os.getenv("BLOCKWATCH_REGISTRY_URLS", "")
    if registry_urls.strip():
        config.registry_urls = [u.strip() for u in registry_urls.split(",") if u.strip()]

    mode = os.getenv("BLOCKWATCH_MODE", "")
    if mode.strip():
        config.mode = parse_mode(mode)

    return config


def load_watcher_config(path: str | Path | None = None) -> WatcherConfig:
    """
    Load watcher configuration.

    Args:
        path: YAML file; defaults to config/watcher.yaml

    Returns:
        WatcherConfig with environment overrides applied
    """
    data = load_yaml(path or DEFAULT_CONFIG_FILE)
    return apply_env_overrides(parse_watcher_config(data))
