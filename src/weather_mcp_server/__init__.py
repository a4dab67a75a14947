"""Weather MCP Server.

Exposes a weather lookup capability over a direct HTTP endpoint and over a
session-oriented SSE transport where commands are posted out-of-band and
results are streamed back to the subscriber.
"""

__version__ = "1.0.0"

SERVER_NAME = "weather-mcp-server"

__all__ = ["SERVER_NAME", "__version__"]
