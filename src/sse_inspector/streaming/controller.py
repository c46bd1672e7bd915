"""
Stream controller for SSE Inspector.

This module owns one HTTP request/response cycle at a time:
- Issues the request with aiohttp
- Decodes the body incrementally as UTF-8
- Feeds the SSE frame parser and records classified events
- Supports cooperative cancellation through stop()

State machine::

    IDLE -> CONNECTING -> STREAMING -> CLOSED | ABORTED | ERRORED

Any terminal state may start a new attempt, which resets the event log and
parser before connecting again.
"""

import asyncio
import codecs
import itertools
from enum import Enum
from typing import AsyncIterator, List, Optional, Tuple
from dataclasses import dataclass, field
from datetime import datetime, timezone

import aiohttp
from multidict import CIMultiDict

from .classifier import EventCategory, classify_event
from .events import EventLog, StreamEvent
from .sse_parser import SSEFrameParser
from ..jsonrpc.json_value import parse_payload
from ..utils.errors import StreamConnectionError, StreamError, ValidationError
from ..utils.logging import get_logger

logger = get_logger("sse-inspector.controller")

SUPPORTED_METHODS = ("GET", "POST")

CLOSED_MESSAGE = "Stream closed by server."
ABORTED_MESSAGE = "Stream aborted by user."


class ConnectionState(Enum):
    """Lifecycle state of the current attempt."""
    IDLE = "idle"
    CONNECTING = "connecting"
    STREAMING = "streaming"
    CLOSED = "closed"
    ABORTED = "aborted"
    ERRORED = "errored"


ACTIVE_STATES = (ConnectionState.CONNECTING, ConnectionState.STREAMING)


@dataclass
class ConnectionConfig:
    """What to request."""
    url: str
    method: str = "POST"
    headers: List[Tuple[str, str]] = field(default_factory=list)
    body: str = ""

    def __post_init__(self):
        self.method = self.method.upper()
        if self.method not in SUPPORTED_METHODS:
            raise ValidationError(
                "method", self.method, f"must be one of {', '.join(SUPPORTED_METHODS)}"
            )

    def request_headers(self) -> CIMultiDict:
        """Headers to send; entries with a blank key or value are dropped."""
        headers = CIMultiDict()
        for key, value in self.headers:
            key, value = key.strip(), value.strip()
            if key and value:
                headers.add(key, value)
        return headers

    def request_body(self) -> Optional[str]:
        return None if self.method == "GET" else self.body


class CancellationToken:
    """Set once by stop(); checked by the read loop at every resumption."""

    def __init__(self):
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True


def _describe(error: BaseException) -> str:
    return str(error) or type(error).__name__


class StreamController:
    """Runs connection attempts and records their events."""

    def __init__(
        self,
        format_json: bool = True,
        connect_timeout: Optional[float] = None,
        read_chunk_size: int = 8192,
        user_agent: Optional[str] = None
    ):
        """
        Initialize controller.

        Args:
            format_json: Parse JSON payloads into StreamEvent.parsed
            connect_timeout: Seconds allowed to establish the connection;
                None waits indefinitely. Reads are never timed out.
            read_chunk_size: Maximum bytes requested per read
            user_agent: Default User-Agent header
        """
        self.format_json = format_json
        self.connect_timeout = connect_timeout
        self.read_chunk_size = read_chunk_size
        self.user_agent = user_agent

        self.state = ConnectionState.IDLE
        self._parser = SSEFrameParser()
        self._log = EventLog()
        self._log.close()
        self._token: Optional[CancellationToken] = None
        self._task: Optional[asyncio.Task] = None
        self._task_started = False
        self._event_ids = itertools.count(1)
        self._attempts = 0

    @property
    def running(self) -> bool:
        return self.state in ACTIVE_STATES

    @property
    def log(self) -> EventLog:
        """Events of the current (or most recent) attempt."""
        return self._log

    def events(self) -> AsyncIterator[StreamEvent]:
        """Follow the current attempt's events until it reaches a terminal state."""
        return self._log.follow()

    def begin(self, config: ConnectionConfig) -> Optional[asyncio.Task]:
        """
        Start an attempt in the background.

        Returns:
            The task driving the attempt, or None if an attempt is already
            running (that attempt continues unaffected).
        """
        if self.running:
            logger.warning("start_ignored_attempt_running", state=self.state.value)
            return None

        self._attempts += 1
        self.state = ConnectionState.CONNECTING
        self._log = EventLog()
        self._parser.reset()
        token = CancellationToken()
        self._token = token
        self._task_started = False

        logger.info(
            "stream_attempt_started",
            attempt=self._attempts,
            url=config.url,
            method=config.method,
        )
        self._task = asyncio.create_task(self._run(config, token))
        return self._task

    async def start(self, config: ConnectionConfig) -> ConnectionState:
        """
        Run one attempt to completion.

        Failures are recorded as events rather than raised.

        Returns:
            The terminal state of the attempt (or the current state if an
            attempt was already running)
        """
        task = self.begin(config)
        if task is None:
            return self.state
        try:
            await task
        except asyncio.CancelledError:
            # The caller was cancelled; record it like stop() if the attempt
            # did not get the chance to
            self.stop()
            raise
        return self.state

    def stop(self) -> bool:
        """
        Cancel the running attempt.

        Returns:
            True if an attempt was cancelled, False if nothing was running
        """
        if not self.running:
            return False

        self._token.cancel()
        self._finish(ConnectionState.ABORTED, ABORTED_MESSAGE, EventCategory.INFO)

        # A task that has not run yet sees the token on its first step instead
        task = self._task
        if (
            task is not None
            and self._task_started
            and not task.done()
            and task is not asyncio.current_task()
        ):
            task.cancel()
        return True

    def clear(self) -> None:
        """Drop the events of a finished attempt."""
        if self.running:
            raise StreamError("Cannot clear events while a stream is running")
        self._log = EventLog()
        self._log.close()

    async def _run(self, config: ConnectionConfig, token: CancellationToken) -> None:
        timeout = aiohttp.ClientTimeout(total=None, connect=self.connect_timeout)
        default_headers = {"User-Agent": self.user_agent} if self.user_agent else None

        self._task_started = True
        if token.cancelled:
            return

        try:
            async with aiohttp.ClientSession(timeout=timeout, headers=default_headers) as session:
                response = await self._connect(session, config)
                async with response:
                    if token.cancelled:
                        return
                    self._on_established(config, response)
                    await self._read(response, token)

            if token.cancelled:
                return
            self._finish(ConnectionState.CLOSED, CLOSED_MESSAGE, EventCategory.INFO)

        except (StreamConnectionError, StreamError) as e:
            if token.cancelled:
                return
            logger.error(
                "stream_failed",
                url=config.url,
                state=self.state.value,
                error=e.message,
                error_type=type(e).__name__,
            )
            self._finish(ConnectionState.ERRORED, f"Stream error: {e.message}", EventCategory.ERROR)

        except asyncio.CancelledError:
            if token.cancelled:
                # Raised by our own stop(); the abort is already recorded
                return
            self.stop()
            raise

        except Exception as e:
            if token.cancelled:
                return
            logger.error("stream_unexpected_error", url=config.url, error=_describe(e), exc_info=True)
            self._finish(ConnectionState.ERRORED, f"Stream error: {_describe(e)}", EventCategory.ERROR)

    async def _connect(
        self,
        session: aiohttp.ClientSession,
        config: ConnectionConfig
    ) -> aiohttp.ClientResponse:
        try:
            response = await session.request(
                config.method,
                config.url,
                headers=config.request_headers(),
                data=config.request_body(),
            )
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError, ValueError) as e:
            raise StreamConnectionError(_describe(e), cause=e) from e

        if not 200 <= response.status < 300:
            status, reason = response.status, response.reason or ""
            response.release()
            raise StreamConnectionError(f"HTTP {status}: {reason}", status=status)

        return response

    def _on_established(self, config: ConnectionConfig, response: aiohttp.ClientResponse) -> None:
        self.state = ConnectionState.STREAMING
        logger.info(
            "stream_connected",
            url=config.url,
            status=response.status,
            content_type=response.headers.get("Content-Type"),
        )
        self._push(f"Connected to {config.url}", EventCategory.CONNECTION)
        self._push(f"Status: {response.status} {response.reason or ''}", EventCategory.CONNECTION)

    async def _read(self, response: aiohttp.ClientResponse, token: CancellationToken) -> None:
        # Carries partial multi-byte sequences between chunks
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

        while True:
            if token.cancelled:
                return
            try:
                chunk = await response.content.read(self.read_chunk_size)
            except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
                raise StreamError(_describe(e), cause=e) from e

            # A read that completed after stop() is discarded
            if token.cancelled:
                return
            if not chunk:
                break
            self._push_payloads(self._parser.feed(decoder.decode(chunk)))

        self._push_payloads(self._parser.feed(decoder.decode(b"", final=True)))
        final = self._parser.flush()
        if final is not None:
            self._push(final)

    def _push_payloads(self, payloads: List[str]) -> None:
        for payload in payloads:
            self._push(payload)

    def _push(self, raw: str, category: Optional[EventCategory] = None) -> StreamEvent:
        raw = raw.strip()
        is_json, parsed = parse_payload(raw) if self.format_json else (False, None)
        event = StreamEvent(
            id=next(self._event_ids),
            timestamp=datetime.now(timezone.utc),
            raw=raw,
            category=category or classify_event(raw),
            parsed=parsed,
            is_json=is_json,
        )
        self._log.append(event)
        return event

    def _finish(self, state: ConnectionState, message: str, category: EventCategory) -> None:
        self.state = state
        self._push(message, category)
        self._log.close()
        logger.info(
            "stream_finished",
            attempt=self._attempts,
            state=state.value,
            **self._log.stats(),
            parser=self._parser.get_stats(),
        )

    def get_stats(self) -> dict:
        """Get controller statistics."""
        return {
            'state': self.state.value,
            'attempts': self._attempts,
            'events': self._log.stats(),
            'parser': self._parser.get_stats(),
        }
