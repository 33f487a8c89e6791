"""
CanLII REST connector.

Read-only lookups against https://api.canlii.org/v1, every call admitted
by the shared AdmissionGovernor.
"""

from canlii_mcp.connectors.canlii.rest_client import CanLIIRestClient, build_query
from canlii_mcp.connectors.canlii.types import (
    CITATION_TYPES,
    CitationType,
    ClientConfig,
    FailureKind,
    Language,
    UpstreamResult,
)

__all__ = [
    "CITATION_TYPES",
    "CanLIIRestClient",
    "CitationType",
    "ClientConfig",
    "FailureKind",
    "Language",
    "UpstreamResult",
    "build_query",
]
