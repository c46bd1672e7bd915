"""
SSE Inspector - watch HTTP responses as live Server-Sent Events streams.

This package provides:
- An incremental SSE frame parser
- A cancellable stream controller built on aiohttp
- JSON and JSON-RPC request body tooling
- Session settings persistence and event export
"""

__version__ = "0.1.0"
__author__ = "SSE Inspector Team"

__all__ = ["__version__"]
