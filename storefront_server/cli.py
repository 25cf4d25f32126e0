"""CLI entry point for the Storefront MCP server."""

import argparse
import asyncio
import logging
import os
import sys


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="Storefront cart MCP server")
    parser.add_argument(
        "--mode",
        choices=["stdio", "http"],
        default="stdio",
        help="Server mode: stdio (for MCP protocol) or http (for REST API)",
    )
    parser.add_argument(
        "--api-url",
        help="Storefront API base URL (overrides STOREFRONT_API_URL)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
    )
    parser.add_argument("--host", default="0.0.0.0", help="Host to bind to (HTTP mode only)")
    parser.add_argument("--port", type=int, default=8000, help="Port to bind to (HTTP mode only)")
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable hot reloading (HTTP mode only)",
    )

    args = parser.parse_args()

    # Settings are read from the environment by both servers
    if args.api_url:
        os.environ["STOREFRONT_API_URL"] = args.api_url

    # Server modules configure logging on import, so the level is set afterwards
    if args.mode == "http":
        from .http_server import run_http_server
        logging.getLogger().setLevel(args.log_level)
        run_http_server(host=args.host, port=args.port, reload=args.reload)
        return

    from .server import main as server_main
    logging.getLogger().setLevel(args.log_level)

    try:
        asyncio.run(server_main())
    except KeyboardInterrupt:
        print("\nShutting down...", file=sys.stderr)
        sys.exit(0)


if __name__ == "__main__":
    main()
