"""Entry point for running as a module: python -m weather_mcp_server"""

from .cli import main

if __name__ == "__main__":
    main()
