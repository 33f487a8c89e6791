"""
Server configuration.

The CanLII API key comes from the CANLII_API environment variable and is
required; everything else has a default.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Literal


Transport = Literal["stdio", "http"]
TRANSPORTS: tuple[str, ...] = ("stdio", "http")


@dataclass
class ServerConfig:
    """Configuration for the tool server process."""

    # From CANLII_API env var when empty
    api_key: str = field(default="", repr=False)

    transport: Transport = "stdio"

    # HTTP transport bind address; port falls back to PORT env var
    host: str = "0.0.0.0"
    port: int | None = None

    # Prometheus /metrics port (0 = disabled)
    metrics_port: int = 0

    verbose: bool = False
    json_logs: bool = True

    def __post_init__(self) -> None:
        if not self.api_key:
            self.api_key = os.environ.get("CANLII_API", "")
        if not self.api_key:
            raise ValueError("CANLII_API environment variable is required")

        if self.transport not in TRANSPORTS:
            raise ValueError(f'Unknown transport: {self.transport}. Use "stdio" or "http".')

        if self.port is None:
            raw = os.environ.get("PORT", "3000")
            try:
                self.port = int(raw)
            except ValueError:
                raise ValueError(f"PORT must be an integer, got {raw!r}") from None
        if not 1 <= self.port <= 65535:
            raise ValueError(f"port must be 1..65535, got {self.port}")
        if not 0 <= self.metrics_port <= 65535:
            raise ValueError(f"metrics_port must be 0..65535, got {self.metrics_port}")
