"""
Types and configuration for the CanLII REST connector.

Per the CanLII API documentation:
- Paths look like /{resourceCategory}/{language}/{...identifiers}/
- The API key travels as the api_key query parameter
- Only English is served by the case citator
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Literal, get_args

Language = Literal["en", "fr"]
CitationType = Literal["citedCases", "citingCases", "citedLegislations"]

CITATION_TYPES: tuple[str, ...] = get_args(CitationType)


class FailureKind(str, Enum):
    """Why an upstream call produced no payload."""

    QUOTA_EXCEEDED = "QUOTA_EXCEEDED"  # Daily admission ceiling reached, no request sent
    UPSTREAM = "UPSTREAM"  # Non-2xx response
    TRANSPORT = "TRANSPORT"  # Connection/timeout/decoding error


@dataclass
class ClientConfig:
    """
    Configuration for the CanLII REST client.

    Attributes:
        base_rest_url: REST API base URL, without trailing slash.
        request_timeout_ms: Total timeout for one HTTP exchange.
    """

    base_rest_url: str = "https://api.canlii.org/v1"
    request_timeout_ms: int = 30000

    def __post_init__(self) -> None:
        self.base_rest_url = self.base_rest_url.rstrip("/")
        if self.request_timeout_ms <= 0:
            raise ValueError(f"request_timeout_ms must be > 0, got {self.request_timeout_ms}")


@dataclass
class UpstreamResult:
    """Result of one governed upstream call."""

    success: bool
    payload: Any = None
    kind: FailureKind | None = None
    error: str | None = None
    status_code: int | None = None

    @classmethod
    def ok(cls, payload: Any, status_code: int = 200) -> UpstreamResult:
        return cls(success=True, payload=payload, status_code=status_code)

    @classmethod
    def failure(
        cls,
        kind: FailureKind,
        error: str,
        status_code: int | None = None,
    ) -> UpstreamResult:
        return cls(success=False, kind=kind, error=error, status_code=status_code)
