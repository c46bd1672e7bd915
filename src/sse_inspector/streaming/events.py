"""
Stream events and the per-attempt event log.

A StreamEvent is immutable once created. The EventLog is append-only for the
life of one connection attempt; consumers can follow it asynchronously
until the attempt ends.
"""

import asyncio
from typing import AsyncIterator, Dict, Iterator, List, Optional
from dataclasses import dataclass
from datetime import datetime

from .classifier import EventCategory
from ..jsonrpc.json_value import JsonValue
from ..utils.errors import StreamError


@dataclass(frozen=True)
class StreamEvent:
    """One observed event: a parsed payload or a lifecycle notice."""
    id: int
    timestamp: datetime
    raw: str
    category: EventCategory
    parsed: JsonValue = None
    # Distinguishes a parsed JSON null from "not parsed"
    is_json: bool = False

    @property
    def time(self) -> str:
        """Local wall-clock time, e.g. ``14:03:27``."""
        return self.timestamp.astimezone().strftime("%H:%M:%S")

    def to_dict(self) -> Dict[str, object]:
        return {
            "time": self.time,
            "type": self.category.value,
            "raw": self.raw,
            "formatted": self.parsed if self.is_json else None,
        }


class EventLog:
    """Ordered, append-only sequence of events for one attempt."""

    def __init__(self):
        self._events: List[StreamEvent] = []
        self._closed = False
        self._changed = asyncio.Event()

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[StreamEvent]:
        return iter(list(self._events))

    def __getitem__(self, index: int) -> StreamEvent:
        return self._events[index]

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def last(self) -> Optional[StreamEvent]:
        return self._events[-1] if self._events else None

    def append(self, event: StreamEvent) -> None:
        if self._closed:
            raise StreamError("Event log is closed")
        self._events.append(event)
        self._changed.set()

    def close(self) -> None:
        """Mark the attempt finished; followers drain and stop."""
        self._closed = True
        self._changed.set()

    def by_category(self, category: EventCategory) -> List[StreamEvent]:
        return [e for e in self._events if e.category == category]

    def stats(self) -> Dict[str, int]:
        return {
            "total": len(self._events),
            "data": len(self.by_category(EventCategory.DATA)),
            "error": len(self.by_category(EventCategory.ERROR)),
        }

    async def follow(self) -> AsyncIterator[StreamEvent]:
        """Yield every event, past and future, until the log is closed."""
        index = 0
        while True:
            while index < len(self._events):
                yield self._events[index]
                index += 1
            if self._closed:
                return
            self._changed.clear()
            await self._changed.wait()
