"""MCP tool server exposing CanLII lookups."""

from canlii_mcp.server.config import ServerConfig
from canlii_mcp.server.tools import TOOL_NAMES, create_server, render_result

__all__ = [
    "TOOL_NAMES",
    "ServerConfig",
    "create_server",
    "render_result",
]
