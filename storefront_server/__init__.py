"""Storefront cart client with MCP and HTTP adapters."""

__version__ = "0.1.0"
