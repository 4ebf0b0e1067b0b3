"""Configuration for the peer discovery module."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path

from peerdiscovery.discovery import STRATEGIES

logger = logging.getLogger(__name__)

_ENV_PREFIX = "PEERDISCOVERY_"


@dataclass
class DiscoveryConfig:
    """Module configuration, read from the environment or a JSON file."""

    host: str = "0.0.0.0"
    port: int = 5200

    # Fan-out
    strategy: str = "sequential"  # sequential | race
    source_timeout: float = 10.0  # seconds per source; <= 0 disables

    # Outbound calls to source modules
    rpc_timeout: float = 15.0

    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.strategy not in STRATEGIES:
            raise ValueError(
                f"Unknown strategy '{self.strategy}'. Choose from: {list(STRATEGIES)}"
            )
        self.port = int(self.port)
        self.source_timeout = float(self.source_timeout)
        self.rpc_timeout = float(self.rpc_timeout)

    @property
    def effective_source_timeout(self) -> float | None:
        """``source_timeout`` as the orchestrator expects it (``None`` = unbounded)."""
        return self.source_timeout if self.source_timeout > 0 else None

    @classmethod
    def from_env(cls) -> DiscoveryConfig:
        """Read ``PEERDISCOVERY_*`` variables, e.g. ``PEERDISCOVERY_PORT``."""
        kwargs = {}
        for name in cls.__dataclass_fields__:
            value = os.environ.get(_ENV_PREFIX + name.upper())
            if value is not None:
                kwargs[name] = value
        return cls(**kwargs)

    @classmethod
    def load(cls, path: str | Path) -> DiscoveryConfig:
        path = Path(path)
        if path.exists():
            with open(path) as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError(f"Config file {path} must contain a JSON object")
            known = {k for k in cls.__dataclass_fields__}
            filtered = {k: v for k, v in data.items() if k in known}
            return cls(**filtered)
        logger.warning("Config not found at %s, using defaults", path)
        return cls()
