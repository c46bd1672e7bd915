"""
Inspector session.

Binds the persisted settings, the request body editor (with its JSON-RPC id
sequence) and the stream controller. Every configuration change is saved to
the settings store immediately.
"""

import asyncio
from pathlib import Path
from typing import Any, Dict, Optional

import pydantic

from .export import build_export, write_export
from .settings import HeaderEntry, UserSettings
from .store import JsonFileSettingsStore, SettingsStore
from ..jsonrpc.editor import RequestEditor
from ..jsonrpc.templates import JsonRpcIdCounter
from ..streaming.controller import ConnectionConfig, ConnectionState, StreamController
from ..utils.config import InspectorConfig
from ..utils.errors import SettingsStoreError, ValidationError, error_context
from ..utils.logging import get_logger

logger = get_logger("sse-inspector.session")


class InspectorSession:
    """One operator session."""

    def __init__(
        self,
        store: SettingsStore,
        controller: Optional[StreamController] = None,
        counter: Optional[JsonRpcIdCounter] = None
    ):
        self.store = store
        self.settings = self._load_settings()
        self.counter = counter or JsonRpcIdCounter()
        self.editor = RequestEditor(
            self.settings.body,
            counter=self.counter,
            on_change=self._on_body_change
        )
        self.controller = controller or StreamController()
        self.controller.format_json = self.settings.format_json

    @classmethod
    def from_config(cls, config: InspectorConfig) -> "InspectorSession":
        controller = StreamController(
            connect_timeout=config.stream.connect_timeout,
            read_chunk_size=config.stream.read_chunk_size,
            user_agent=config.stream.user_agent,
        )
        return cls(JsonFileSettingsStore(config.storage.settings_path), controller=controller)

    def _load_settings(self) -> UserSettings:
        try:
            record = self.store.load()
        except SettingsStoreError as e:
            logger.warning("settings_load_failed", error=e.message)
            return UserSettings()

        if record is None:
            return UserSettings()
        return UserSettings.from_record(record)

    def _persist(self) -> None:
        try:
            self.store.save(self.settings.to_record())
        except SettingsStoreError as e:
            logger.warning("settings_save_failed", error=e.message)

    def _update(self, field: str, value: Any) -> None:
        try:
            setattr(self.settings, field, value)
        except pydantic.ValidationError as e:
            raise ValidationError(field, value, e.errors()[0]["msg"]) from e
        self._persist()

    def _on_body_change(self, body: str) -> None:
        self._update("body", body)

    # Configuration

    def set_url(self, url: str) -> None:
        self._update("url", url)

    def set_method(self, method: str) -> None:
        self._update("method", method)

    def add_header(self, key: str = "", value: str = "") -> int:
        """Append a header row and return its index."""
        self._update("headers", [*self.settings.headers, HeaderEntry(key=key, value=value)])
        return len(self.settings.headers) - 1

    def remove_header(self, index: int) -> None:
        headers = list(self.settings.headers)
        del headers[index]
        self._update("headers", headers)

    def update_header(self, index: int, key: Optional[str] = None, value: Optional[str] = None) -> None:
        headers = list(self.settings.headers)
        current = headers[index]
        headers[index] = HeaderEntry(
            key=current.key if key is None else key,
            value=current.value if value is None else value,
        )
        self._update("headers", headers)

    def set_body(self, body: str) -> None:
        self.editor.set_body(body)

    def set_options(
        self,
        format_json: Optional[bool] = None,
        show_timestamps: Optional[bool] = None,
        auto_scroll: Optional[bool] = None
    ) -> None:
        if format_json is not None:
            self._update("format_json", format_json)
            self.controller.format_json = format_json
        if show_timestamps is not None:
            self._update("show_timestamps", show_timestamps)
        if auto_scroll is not None:
            self._update("auto_scroll", auto_scroll)

    # Streaming

    def connection_config(self) -> ConnectionConfig:
        return ConnectionConfig(
            url=self.settings.url,
            method=self.settings.method,
            headers=self.settings.header_pairs(),
            body=self.editor.body,
        )

    def _prepare(self) -> ConnectionConfig:
        config = self.connection_config()
        if config.method != "GET" and not self.editor.validate().valid:
            # Servers may accept non-JSON bodies; surface the problem and send anyway
            logger.info("sending_invalid_json_body", error=self.editor.json_error)
        return config

    def begin(self) -> Optional[asyncio.Task]:
        """Start streaming in the background."""
        return self.controller.begin(self._prepare())

    async def connect(self) -> ConnectionState:
        """Stream until the attempt ends."""
        return await self.controller.start(self._prepare())

    def stop(self) -> bool:
        return self.controller.stop()

    # Export

    def export_document(self) -> Dict[str, Any]:
        return build_export(self.settings, self.controller.log)

    async def export(self, directory: Path, filename: Optional[str] = None) -> Path:
        with error_context("session", "export", directory=str(directory)):
            return await write_export(self.export_document(), directory, filename)
