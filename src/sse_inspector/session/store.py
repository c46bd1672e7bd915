"""
Settings persistence.

The store treats settings as an opaque JSON-compatible blob under a key.
"""

import json
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional

from ..utils.errors import SettingsStoreError
from ..utils.logging import get_logger

logger = get_logger("sse-inspector.store")

STORAGE_KEY = "mcp-online-settings"


class SettingsStore(ABC):
    """Load/save interface for the settings blob."""

    @abstractmethod
    def load(self) -> Optional[Dict[str, Any]]:
        """Return the stored blob, or None when nothing was saved yet."""

    @abstractmethod
    def save(self, record: Dict[str, Any]) -> None:
        """Replace the stored blob."""


class MemorySettingsStore(SettingsStore):
    """In-process store."""

    def __init__(self, record: Optional[Dict[str, Any]] = None):
        self.record = record
        self.saves = 0

    def load(self) -> Optional[Dict[str, Any]]:
        return json.loads(json.dumps(self.record)) if self.record is not None else None

    def save(self, record: Dict[str, Any]) -> None:
        self.record = json.loads(json.dumps(record))
        self.saves += 1


class JsonFileSettingsStore(SettingsStore):
    """Stores blobs by key in a single JSON file."""

    def __init__(self, path: Path, key: str = STORAGE_KEY):
        self.path = Path(path)
        self.key = key

    def _read_all(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise SettingsStoreError(f"Cannot read {self.path}: {e}", cause=e) from e
        if not isinstance(data, dict):
            raise SettingsStoreError(f"Unexpected settings layout in {self.path}")
        return data

    def load(self) -> Optional[Dict[str, Any]]:
        record = self._read_all().get(self.key)
        if record is not None and not isinstance(record, dict):
            raise SettingsStoreError(f"Settings under '{self.key}' are not an object")
        return record

    def save(self, record: Dict[str, Any]) -> None:
        try:
            data = self._read_all()
        except SettingsStoreError:
            logger.warning("settings_file_replaced", path=str(self.path))
            data = {}
        data[self.key] = record

        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            # Write atomically so a crash never leaves a truncated file
            fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_name, self.path)
        except (OSError, TypeError, ValueError) as e:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise SettingsStoreError(f"Cannot write {self.path}: {e}", cause=e) from e
