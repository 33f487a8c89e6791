#!/usr/bin/env python3
"""
CanLII MCP tool server.

Serves the read-only CanLII lookups over stdio (default) or streamable HTTP.
All tool calls share one REST client and one AdmissionGovernor, so the
1-in-flight / 2-per-second / 5,000-per-day limits hold across every
session of the process.

Usage:
    CANLII_API=... python -m scripts.run_server
    CANLII_API=... python -m scripts.run_server --transport http --port 3000
    CANLII_API=... python -m scripts.run_server --transport http --metrics-port 9090
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from dotenv import load_dotenv

from canlii_mcp.connectors.canlii.rest_client import CanLIIRestClient
from canlii_mcp.connectors.exporter import MetricsExporter
from canlii_mcp.connectors.governor import AdmissionGovernor
from canlii_mcp.connectors.metrics_server import start_metrics_server, stop_metrics_server
from canlii_mcp.logging_config import setup_logging
from canlii_mcp.server.config import TRANSPORTS, ServerConfig
from canlii_mcp.server.tools import create_server

logger = logging.getLogger(__name__)


async def run_server(config: ServerConfig) -> int:
    """
    Run the tool server until the transport exits.

    Args:
        config: Server configuration.

    Returns:
        Exit code (0 = success).
    """
    governor = AdmissionGovernor()
    client = CanLIIRestClient(config.api_key, governor=governor)
    mcp = create_server(client)

    metrics_runner = None
    if config.metrics_port > 0:
        from prometheus_client.registry import CollectorRegistry

        registry = CollectorRegistry()
        exporter = MetricsExporter(registry=registry)
        metrics_runner = await start_metrics_server(
            registry,
            port=config.metrics_port,
            refresh_fn=lambda: exporter.update(governor),
            health_fn=governor.get_status,
        )

    try:
        if config.transport == "stdio":
            logger.info("CanLII MCP server running on stdio")
            await mcp.run_async(transport="stdio")
        else:
            logger.warning(
                "HTTP endpoint is unauthenticated; any client that can reach it "
                "spends this server's CanLII quota",
                extra={"host": config.host, "port": config.port},
            )
            logger.info("CanLII MCP server running on http://%s:%d/mcp", config.host, config.port)
            await mcp.run_async(
                transport="streamable-http",
                host=config.host,
                port=config.port,
                path="/mcp",
            )
        return 0
    except Exception as e:
        logger.exception("Server failed: %s", e)
        return 1
    finally:
        await client.close()
        if metrics_runner is not None:
            await stop_metrics_server(metrics_runner)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Run the CanLII MCP tool server.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--transport",
        type=str,
        default="stdio",
        help=f"Transport: {' or '.join(TRANSPORTS)} (default: stdio)",
    )
    parser.add_argument(
        "--host",
        type=str,
        default="0.0.0.0",
        help="HTTP bind address (default: 0.0.0.0)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="HTTP port (default: $PORT or 3000)",
    )
    parser.add_argument(
        "--metrics-port",
        type=int,
        default=0,
        help="Prometheus /metrics port (0 to disable, default: 0)",
    )
    parser.add_argument(
        "--log-format",
        choices=["json", "text"],
        default="json",
        help="Log format on stderr (default: json)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    load_dotenv()
    args = build_parser().parse_args(argv)

    setup_logging(
        level=logging.DEBUG if args.verbose else logging.INFO,
        json_format=args.log_format == "json",
    )

    try:
        config = ServerConfig(
            transport=args.transport,
            host=args.host,
            port=args.port,
            metrics_port=args.metrics_port,
            verbose=args.verbose,
            json_logs=args.log_format == "json",
        )
    except ValueError as e:
        logger.error("Invalid configuration: %s", e)
        return 1

    return asyncio.run(run_server(config))


if __name__ == "__main__":
    sys.exit(main())
