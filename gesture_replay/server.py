"""MCP server exposing the gesture recording-to-replay pipeline."""

import asyncio
import logging

from mcp.server.fastmcp import FastMCP

from .initialization import initialize_components

# Import tool registration functions
from .tools.diagnostics import register_diagnostics_tools
from .tools.flows import register_flow_tools
from .tools.hierarchy import register_hierarchy_tools

# Re-export tool functions for testing
from .tools.diagnostics import error_report  # noqa: F401
from .tools.flows import build_flow, summarize_flow, validate_flow  # noqa: F401
from .tools.hierarchy import parse_hierarchy, resolve_point  # noqa: F401

logger = logging.getLogger(__name__)

# Initialize FastMCP server
mcp = FastMCP("gesture-replay")

# Component storage
components = {}


async def init_and_register() -> None:
    """Initialize components and register all MCP tools."""
    global components

    components = await initialize_components()

    register_hierarchy_tools(mcp, components)
    register_flow_tools(mcp, components)
    register_diagnostics_tools(mcp, components)

    logger.info("All MCP tools registered successfully")


def main() -> None:
    """Run the MCP server."""
    logger.info("Starting gesture replay MCP server...")

    async def init_and_run() -> None:
        await init_and_register()
        await mcp.run_stdio_async()

    asyncio.run(init_and_run())


if __name__ == "__main__":
    main()
