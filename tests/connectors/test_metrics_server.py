"""
Smoke tests for the Prometheus /metrics and /healthz HTTP endpoints.
"""

from __future__ import annotations

import pytest
from aiohttp.test_utils import TestClient, TestServer
from prometheus_client import Counter, Gauge
from prometheus_client.registry import CollectorRegistry

from canlii_mcp.connectors.exporter import MetricsExporter
from canlii_mcp.connectors.governor import AdmissionGovernor
from canlii_mcp.connectors.metrics_server import create_metrics_app


@pytest.fixture()
def registry() -> CollectorRegistry:
    """Fresh Prometheus registry with sample metrics."""
    reg = CollectorRegistry()
    g = Gauge("canlii_gov_current_queue_depth", "test gauge", registry=reg)
    g.set(3.0)
    c = Counter("canlii_gov_requests_admitted", "test counter", registry=reg)
    c.inc(7)
    return reg


@pytest.fixture()
def empty_registry() -> CollectorRegistry:
    return CollectorRegistry()


class TestMetricsEndpoint:
    """GET /metrics returns the Prometheus exposition."""

    @pytest.mark.asyncio
    async def test_metrics_returns_200(self, registry: CollectorRegistry) -> None:
        app = create_metrics_app(registry)
        async with TestClient(TestServer(app)) as client:
            resp = await client.get("/metrics")
            assert resp.status == 200
            assert resp.headers.get("Content-Type", "").startswith("text/plain")

    @pytest.mark.asyncio
    async def test_metrics_contains_canlii_lines(self, registry: CollectorRegistry) -> None:
        app = create_metrics_app(registry)
        async with TestClient(TestServer(app)) as client:
            resp = await client.get("/metrics")
            body = await resp.text()

            assert "canlii_gov_current_queue_depth 3.0" in body
            assert "canlii_gov_requests_admitted_total 7.0" in body
            assert "# TYPE canlii_gov_requests_admitted_total counter" in body

    @pytest.mark.asyncio
    async def test_refresh_fn_runs_before_scrape(self, empty_registry: CollectorRegistry) -> None:
        """The exporter is synced from the governor on every scrape."""
        exporter = MetricsExporter(registry=empty_registry)
        governor = AdmissionGovernor()
        async with governor.permit():
            pass

        app = create_metrics_app(empty_registry, refresh_fn=lambda: exporter.update(governor))
        async with TestClient(TestServer(app)) as client:
            resp = await client.get("/metrics")
            body = await resp.text()

        assert "canlii_gov_requests_admitted_total 1.0" in body
        assert "canlii_gov_daily_count 1.0" in body

    @pytest.mark.asyncio
    async def test_unknown_path_returns_404(self, registry: CollectorRegistry) -> None:
        app = create_metrics_app(registry)
        async with TestClient(TestServer(app)) as client:
            resp = await client.get("/unknown")
            assert resp.status == 404


class TestHealthzEndpoint:
    """GET /healthz returns status JSON."""

    @pytest.mark.asyncio
    async def test_healthz_default_response(self, empty_registry: CollectorRegistry) -> None:
        app = create_metrics_app(empty_registry)
        async with TestClient(TestServer(app)) as client:
            resp = await client.get("/healthz")
            assert resp.status == 200
            assert resp.content_type == "application/json"
            assert await resp.json() == {"status": "ok"}

    @pytest.mark.asyncio
    async def test_healthz_with_governor_status(self, empty_registry: CollectorRegistry) -> None:
        governor = AdmissionGovernor()
        app = create_metrics_app(empty_registry, health_fn=governor.get_status)
        async with TestClient(TestServer(app)) as client:
            resp = await client.get("/healthz")
            data = await resp.json()

        assert data["status"] == "ok"
        assert data["daily_count"] == 0
        assert data["daily_quota"] == 5000
        assert data["in_flight"] is False
        assert data["last_request_ms"] is None
