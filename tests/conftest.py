"""
Pytest configuration and shared fixtures for SSE Inspector tests.
"""

import pytest
import pytest_asyncio
import tempfile
import shutil
from pathlib import Path
from typing import AsyncGenerator, Generator

from aiohttp.test_utils import TestServer

from sse_inspector.session.store import MemorySettingsStore
from sse_inspector.streaming.controller import StreamController
from sse_inspector.utils.logging import setup_logging
from tests.fixtures.sse_fixtures import ScriptedSSEServer


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    temp_path = Path(tempfile.mkdtemp())
    yield temp_path
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest_asyncio.fixture
async def sse_server() -> AsyncGenerator[ScriptedSSEServer, None]:
    """Scripted SSE server listening on a local port."""
    scripted = ScriptedSSEServer()
    server = TestServer(scripted.app)
    await server.start_server()
    scripted.url = lambda path: str(server.make_url(path))
    yield scripted
    await server.close()


@pytest.fixture
def controller() -> StreamController:
    return StreamController()


@pytest.fixture
def memory_store() -> MemorySettingsStore:
    return MemorySettingsStore()


# Logging setup for tests
setup_logging(
    log_level="DEBUG",
    log_dir=Path(tempfile.mkdtemp(prefix="sse-inspector-logs-")),
    enable_json=False,
    enable_console=False,
)
