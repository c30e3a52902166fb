"""
MCP Server Instance

This module provides the global FastMCP instance that all tools register with.
It must be imported before tools are loaded to avoid circular imports.

Architecture:
- instance.py: Creates the mcp object (imported by main.py and all tool modules)
- lifespan.py: Startup/shutdown hooks passed to the instance
- main.py: Configures logging, registers tools and runs the server
- tools/*.py: Import mcp from this module and register tools with @mcp.tool()
"""

from fastmcp import FastMCP

from analytics.services.mcp_server.config import VERSION
from analytics.services.mcp_server.lifespan import app_lifespan

mcp = FastMCP(name="Platform Analytics", version=VERSION, lifespan=app_lifespan)
