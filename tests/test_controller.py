"""
Tests for the stream controller against a local SSE server.
"""

import asyncio
import json

import pytest
from aiohttp.test_utils import unused_port

from sse_inspector.streaming.classifier import EventCategory
from sse_inspector.streaming.controller import (
    ConnectionConfig,
    ConnectionState,
    StreamController,
)
from sse_inspector.utils.errors import StreamError, ValidationError
from tests.fixtures.sse_fixtures import SSEFixtures


def categories(controller):
    return [event.category for event in controller.log]


def raws(controller):
    return [event.raw for event in controller.log]


class TestConnectionConfig:
    """Test request construction."""

    def test_blank_headers_dropped(self):
        config = ConnectionConfig(
            url="http://x",
            headers=[("Accept", "text/event-stream"), ("", "v"), ("K", "  "), (" X-Id ", " 7 ")],
        )
        assert list(config.request_headers().items()) == [
            ("Accept", "text/event-stream"),
            ("X-Id", "7"),
        ]

    def test_duplicate_headers_kept(self):
        config = ConnectionConfig(url="http://x", headers=[("X-Dup", "a"), ("X-Dup", "b")])
        assert config.request_headers().getall("X-Dup") == ["a", "b"]

    def test_get_has_no_body(self):
        assert ConnectionConfig(url="http://x", method="get", body="{}").request_body() is None
        assert ConnectionConfig(url="http://x", method="POST", body="{}").request_body() == "{}"

    def test_unsupported_method(self):
        with pytest.raises(ValidationError):
            ConnectionConfig(url="http://x", method="PUT")


class TestStreaming:
    """Test the happy path."""

    @pytest.mark.asyncio
    async def test_full_stream(self, controller, sse_server):
        sse_server.script(SSEFixtures.create_mcp_stream())
        state = await controller.start(ConnectionConfig(url=sse_server.url("/sse"), body="{}"))

        assert state is ConnectionState.CLOSED
        assert categories(controller) == [
            EventCategory.CONNECTION,
            EventCategory.CONNECTION,
            EventCategory.DATA,
            EventCategory.DATA,
            EventCategory.INFO,
        ]
        assert controller.log[0].raw == f"Connected to {sse_server.url('/sse')}"
        assert controller.log[1].raw == "Status: 200 OK"
        assert controller.log[2].parsed["method"] == "notifications/progress"
        assert controller.log[3].parsed["result"]["tools"][0]["name"] == "echo"
        assert controller.log[-1].raw == "Stream closed by server."
        assert controller.log.closed

    @pytest.mark.asyncio
    async def test_event_ids_increase(self, controller, sse_server):
        sse_server.script(SSEFixtures.create_mixed_stream())
        await controller.start(ConnectionConfig(url=sse_server.url("/sse")))
        ids = [event.id for event in controller.log]
        assert ids == sorted(ids)
        assert len(set(ids)) == len(ids)

    @pytest.mark.asyncio
    async def test_payloads_are_classified(self, controller, sse_server):
        sse_server.script(
            SSEFixtures.data_event({"jsonrpc": "2.0", "id": 1, "error": {"code": -32601}}),
            SSEFixtures.data_event({"jsonrpc": "2.0", "id": 2, "result": {}}),
        )
        await controller.start(ConnectionConfig(url=sse_server.url("/sse")))
        assert categories(controller)[2:4] == [EventCategory.ERROR, EventCategory.DATA]

    @pytest.mark.asyncio
    async def test_malformed_json_payload_is_kept(self, controller, sse_server):
        sse_server.script("data: {\"broken\":\n\n")
        await controller.start(ConnectionConfig(url=sse_server.url("/sse")))
        event = controller.log[2]
        assert event.raw == '{"broken":'
        assert event.is_json is False
        assert event.parsed is None
        assert controller.state is ConnectionState.CLOSED

    @pytest.mark.asyncio
    async def test_out_of_range_number_is_not_parsed(self, controller, sse_server):
        sse_server.script("data: {\"v\": 1e400}\n\n")
        await controller.start(ConnectionConfig(url=sse_server.url("/sse")))
        event = controller.log[2]
        assert event.raw == '{"v": 1e400}'
        assert event.is_json is False
        assert event.to_dict()["formatted"] is None
        json.dumps([e.to_dict() for e in controller.log], allow_nan=False)

    @pytest.mark.asyncio
    async def test_format_json_disabled(self, sse_server):
        controller = StreamController(format_json=False)
        sse_server.script(SSEFixtures.data_event({"a": 1}))
        await controller.start(ConnectionConfig(url=sse_server.url("/sse")))
        assert controller.log[2].raw == '{"a": 1}'
        assert controller.log[2].is_json is False

    @pytest.mark.asyncio
    async def test_unterminated_final_event_is_flushed(self, controller, sse_server):
        sse_server.script("data: one\n\n", "data: two")
        await controller.start(ConnectionConfig(url=sse_server.url("/sse")))
        assert raws(controller)[2:] == ["one", "two", "Stream closed by server."]

    @pytest.mark.asyncio
    async def test_split_utf8_codepoint(self, controller, sse_server):
        encoded = "data: héllo 🌍\n\n".encode("utf-8")
        cut = encoded.index("🌍".encode("utf-8")) + 2
        sse_server.script(encoded[:cut], encoded[cut:], delay=0.02)
        await controller.start(ConnectionConfig(url=sse_server.url("/sse")))
        assert controller.log[2].raw == "héllo 🌍"

    @pytest.mark.asyncio
    async def test_chunked_delivery(self, controller, sse_server):
        stream = SSEFixtures.create_mixed_stream()
        sse_server.script(*[stream[i:i + 4] for i in range(0, len(stream), 4)], delay=0.001)
        await controller.start(ConnectionConfig(url=sse_server.url("/sse")))
        data = [e.raw for e in controller.log if e.category is not EventCategory.CONNECTION][:-1]
        assert data == SSEFixtures.expected_mixed_payloads()

    @pytest.mark.asyncio
    async def test_request_is_sent_as_configured(self, controller, sse_server):
        config = ConnectionConfig(
            url=sse_server.url("/echo"),
            method="POST",
            headers=[("Content-Type", "application/json"), ("X-Dup", "a"), ("X-Dup", "b"), ("", "skip")],
            body='{"jsonrpc":"2.0","id":1,"method":"tools/list"}',
        )
        await controller.start(config)
        echo = controller.log[2].parsed
        assert echo["method"] == "POST"
        assert echo["body"] == config.body
        sent = [v for k, v in echo["headers"] if k == "X-Dup"]
        assert sent == ["a", "b"]

    @pytest.mark.asyncio
    async def test_get_sends_no_body(self, controller, sse_server):
        await controller.start(ConnectionConfig(url=sse_server.url("/echo"), method="GET", body="ignored"))
        echo = controller.log[2].parsed
        assert echo["method"] == "GET"
        assert echo["body"] == ""

    @pytest.mark.asyncio
    async def test_events_follow(self, controller, sse_server):
        sse_server.script("data: a\n\n", "data: b\n\n", delay=0.01)
        task = controller.begin(ConnectionConfig(url=sse_server.url("/sse")))
        seen = [event.raw async for event in controller.events()]
        await task
        assert seen == raws(controller)
        assert seen[-1] == "Stream closed by server."


class TestFailures:
    """Test error transitions."""

    @pytest.mark.asyncio
    async def test_non_success_status(self, controller, sse_server):
        state = await controller.start(ConnectionConfig(url=sse_server.url("/status/404")))
        assert state is ConnectionState.ERRORED
        assert len(controller.log) == 1
        assert controller.log[0].category is EventCategory.ERROR
        assert controller.log[0].raw == "Stream error: HTTP 404: Not Found"

    @pytest.mark.asyncio
    async def test_connection_refused(self, controller):
        url = f"http://127.0.0.1:{unused_port()}/sse"
        state = await controller.start(ConnectionConfig(url=url))
        assert state is ConnectionState.ERRORED
        assert categories(controller) == [EventCategory.ERROR]

    @pytest.mark.asyncio
    async def test_invalid_url(self, controller):
        state = await controller.start(ConnectionConfig(url="not a url"))
        assert state is ConnectionState.ERRORED
        assert categories(controller) == [EventCategory.ERROR]

    @pytest.mark.asyncio
    async def test_mid_stream_failure(self, controller, sse_server):
        state = await controller.start(ConnectionConfig(url=sse_server.url("/broken")))
        assert state is ConnectionState.ERRORED
        assert raws(controller)[2] == "before failure"
        assert controller.log[-1].category is EventCategory.ERROR
        assert controller.log[-1].raw.startswith("Stream error:")
        assert len(controller.log.by_category(EventCategory.ERROR)) == 1


class TestCancellation:
    """Test stop() semantics."""

    @pytest.mark.asyncio
    async def test_stop_twice_single_terminal_event(self, controller, sse_server):
        task = controller.begin(ConnectionConfig(url=sse_server.url("/hang")))
        async for event in controller.events():
            if event.raw == "first":
                break

        assert controller.stop() is True
        assert controller.stop() is False
        await task

        assert controller.state is ConnectionState.ABORTED
        assert raws(controller) == [
            f"Connected to {sse_server.url('/hang')}",
            "Status: 200 OK",
            "first",
            "Stream aborted by user.",
        ]
        assert controller.log.by_category(EventCategory.INFO)[0].raw == "Stream aborted by user."
        assert len(controller.log.by_category(EventCategory.INFO)) == 1

    @pytest.mark.asyncio
    async def test_stop_while_connecting(self, controller, sse_server):
        task = controller.begin(ConnectionConfig(url=sse_server.url("/hang")))
        assert controller.state is ConnectionState.CONNECTING
        controller.stop()
        await task
        assert controller.state is ConnectionState.ABORTED
        assert raws(controller) == ["Stream aborted by user."]

    @pytest.mark.asyncio
    async def test_stop_when_idle_is_noop(self, controller):
        assert controller.stop() is False
        assert controller.state is ConnectionState.IDLE
        assert len(controller.log) == 0

    @pytest.mark.asyncio
    async def test_no_events_after_stop(self, controller, sse_server):
        sse_server.script(*["data: tick\n\n"] * 50, delay=0.01)
        task = controller.begin(ConnectionConfig(url=sse_server.url("/sse")))
        async for event in controller.events():
            if event.raw == "tick":
                break
        controller.stop()
        count = len(controller.log)
        await task
        await asyncio.sleep(0.05)
        assert len(controller.log) == count
        assert controller.log[-1].raw == "Stream aborted by user."

    @pytest.mark.asyncio
    async def test_cancelling_the_caller_aborts(self, controller, sse_server):
        runner = asyncio.create_task(controller.start(ConnectionConfig(url=sse_server.url("/hang"))))
        await asyncio.wait_for(sse_server.hang_started.wait(), timeout=5)
        runner.cancel()
        with pytest.raises(asyncio.CancelledError):
            await runner
        assert controller.state is ConnectionState.ABORTED
        assert controller.log[-1].raw == "Stream aborted by user."


class TestAttempts:
    """Test attempt lifecycle."""

    @pytest.mark.asyncio
    async def test_start_while_running_is_noop(self, controller, sse_server):
        task = controller.begin(ConnectionConfig(url=sse_server.url("/hang")))
        async for event in controller.events():
            if event.raw == "first":
                break
        log = controller.log

        state = await controller.start(ConnectionConfig(url=sse_server.url("/sse")))
        assert state is ConnectionState.STREAMING
        assert controller.log is log
        assert controller.begin(ConnectionConfig(url=sse_server.url("/sse"))) is None

        controller.stop()
        await task

    @pytest.mark.asyncio
    async def test_new_attempt_resets_log(self, controller, sse_server):
        sse_server.script("data: one\n\n")
        await controller.start(ConnectionConfig(url=sse_server.url("/sse")))
        first_log = controller.log

        sse_server.script("data: two\n\n")
        await controller.start(ConnectionConfig(url=sse_server.url("/sse")))

        assert controller.log is not first_log
        assert raws(controller)[2] == "two"
        assert "one" not in raws(controller)
        assert controller.get_stats()["attempts"] == 2

    @pytest.mark.asyncio
    async def test_clear(self, controller, sse_server):
        sse_server.script("data: x\n\n")
        await controller.start(ConnectionConfig(url=sse_server.url("/sse")))
        controller.clear()
        assert len(controller.log) == 0

    @pytest.mark.asyncio
    async def test_clear_while_running(self, controller, sse_server):
        task = controller.begin(ConnectionConfig(url=sse_server.url("/hang")))
        with pytest.raises(StreamError):
            controller.clear()
        controller.stop()
        await task

    @pytest.mark.asyncio
    async def test_stats(self, controller, sse_server):
        sse_server.script("data: {\"error\": 1}\n\n", "data: ok\n\n")
        await controller.start(ConnectionConfig(url=sse_server.url("/sse")))
        assert controller.log.stats() == {"total": 5, "data": 1, "error": 1}
