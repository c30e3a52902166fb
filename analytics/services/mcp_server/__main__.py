"""Entry point for running MCP server as a module.

This allows running the server with: python -m analytics.services.mcp_server
"""

import sys

if __name__ == "__main__":
    try:
        # Importing main registers all tools
        from analytics.services.mcp_server.main import mcp

        mcp.run()
    except ImportError as e:
        print(f"Error: Failed to import MCP server: {e}", file=sys.stderr)
        print(
            "Ensure all dependencies are installed (pip install -e .)",
            file=sys.stderr,
        )
        sys.exit(1)
    except Exception as e:
        print(f"Error: Failed to start MCP server: {e}", file=sys.stderr)
        sys.exit(1)
