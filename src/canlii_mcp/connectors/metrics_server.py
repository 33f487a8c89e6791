"""
Minimal HTTP server for Prometheus /metrics and /healthz endpoints.

Serves generate_latest(registry) on GET /metrics and the governor status
JSON on GET /healthz. Uses aiohttp.web, already a dependency of the REST
client.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

from aiohttp import web
from prometheus_client import generate_latest

if TYPE_CHECKING:
    from prometheus_client.registry import CollectorRegistry

logger = logging.getLogger(__name__)

_Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]

HealthFn = Callable[[], dict[str, Any]]
RefreshFn = Callable[[], None]


def _make_metrics_handler(
    registry: CollectorRegistry,
    refresh_fn: RefreshFn | None = None,
) -> _Handler:
    """Create GET /metrics handler bound to a registry."""

    async def handler(request: web.Request) -> web.Response:
        if refresh_fn is not None:
            refresh_fn()
        body = generate_latest(registry)
        return web.Response(
            body=body,
            content_type="text/plain; version=0.0.4",
            charset="utf-8",
        )

    return handler


def _make_healthz_handler(health_fn: HealthFn | None = None) -> _Handler:
    """Create GET /healthz handler.

    Args:
        health_fn: Optional callback returning a health dict.
            If None, returns a minimal {"status": "ok"} response.
    """

    async def handler(request: web.Request) -> web.Response:
        info: dict[str, Any] = {"status": "ok"}
        if health_fn is not None:
            info.update(health_fn())
        return web.Response(
            body=json.dumps(info),
            content_type="application/json",
        )

    return handler


def create_metrics_app(
    registry: CollectorRegistry,
    *,
    refresh_fn: RefreshFn | None = None,
    health_fn: HealthFn | None = None,
) -> web.Application:
    """
    Create aiohttp Application with /metrics and /healthz routes.

    Args:
        registry: Prometheus CollectorRegistry to serve.
        refresh_fn: Called before each scrape (e.g. exporter.update).
        health_fn: Optional callback for /healthz.
    """
    app = web.Application()
    app.router.add_get("/metrics", _make_metrics_handler(registry, refresh_fn))
    app.router.add_get("/healthz", _make_healthz_handler(health_fn))
    return app


async def start_metrics_server(
    registry: CollectorRegistry,
    host: str = "0.0.0.0",
    port: int = 9090,
    *,
    refresh_fn: RefreshFn | None = None,
    health_fn: HealthFn | None = None,
) -> web.AppRunner:
    """
    Start the metrics HTTP server.

    Returns:
        AppRunner (call stop_metrics_server() on shutdown).
    """
    app = create_metrics_app(registry, refresh_fn=refresh_fn, health_fn=health_fn)
    runner = web.AppRunner(app, access_log=None)
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()
    logger.info("Metrics server started on http://%s:%d/metrics", host, port)
    return runner


async def stop_metrics_server(runner: web.AppRunner) -> None:
    """Stop the metrics HTTP server."""
    await runner.cleanup()
    logger.info("Metrics server stopped")
