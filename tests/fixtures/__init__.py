"""
Test fixtures for SSE Inspector.

Provides SSE wire builders and a scripted local SSE server.
"""

from .sse_fixtures import ScriptedSSEServer, SSEFixtures, feed_all, split_at, split_every

__all__ = [
    "ScriptedSSEServer",
    "SSEFixtures",
    "feed_all",
    "split_at",
    "split_every",
]
