"""SSE stream parsing, classification and connection control."""

from .classifier import EventCategory, classify_event
from .controller import CancellationToken, ConnectionConfig, ConnectionState, StreamController
from .events import EventLog, StreamEvent
from .sse_parser import ParserState, SSEFrameParser

__all__ = [
    "EventCategory",
    "classify_event",
    "CancellationToken",
    "ConnectionConfig",
    "ConnectionState",
    "StreamController",
    "EventLog",
    "StreamEvent",
    "ParserState",
    "SSEFrameParser",
]
