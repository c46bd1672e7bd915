"""
Event history export.

Produces a JSON document describing the request and every recorded event
in arrival order.
"""

import json
from pathlib import Path
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional

import aiofiles

from .settings import UserSettings
from ..streaming.events import StreamEvent
from ..utils.errors import ExportError
from ..utils.logging import get_logger

logger = get_logger("sse-inspector.export")


def export_filename(now: Optional[datetime] = None) -> str:
    """``mcp-stream-2024-05-01T12-30-00.json`` for the given UTC instant."""
    now = now or datetime.now(timezone.utc)
    return f"mcp-stream-{now.strftime('%Y-%m-%dT%H-%M-%S')}.json"


def build_export(
    settings: UserSettings,
    events: Iterable[StreamEvent],
    now: Optional[datetime] = None
) -> Dict[str, Any]:
    now = now or datetime.now(timezone.utc)
    return {
        "timestamp": now.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
        "url": settings.url,
        "method": settings.method,
        "headers": settings.filtered_headers(),
        "body": None if settings.method == "GET" else settings.body,
        "events": [event.to_dict() for event in events],
    }


async def write_export(document: Dict[str, Any], directory: Path, filename: Optional[str] = None) -> Path:
    """
    Write an export document.

    Returns:
        Path of the written file
    """
    directory = Path(directory)
    path = directory / (filename or export_filename())
    try:
        directory.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(path, "w", encoding="utf-8") as f:
            await f.write(json.dumps(document, indent=2, ensure_ascii=False))
    except OSError as e:
        raise ExportError(f"Cannot write export to {path}: {e}", cause=e) from e

    logger.info("events_exported", path=str(path), events=len(document["events"]))
    return path
