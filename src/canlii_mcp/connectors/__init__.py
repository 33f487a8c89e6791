"""Connectors for external data sources."""

from canlii_mcp.connectors.governor import (
    AdmissionGovernor,
    AdmissionGovernorConfig,
    GovernorMetrics,
    GovernorStateError,
    QuotaCounter,
    QuotaExceededError,
)

__all__ = [
    "AdmissionGovernor",
    "AdmissionGovernorConfig",
    "GovernorMetrics",
    "GovernorStateError",
    "QuotaCounter",
    "QuotaExceededError",
]
