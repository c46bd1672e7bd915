"""Operator session: settings persistence, export and wiring."""

from .inspector import InspectorSession
from .settings import HeaderEntry, UserSettings
from .store import JsonFileSettingsStore, MemorySettingsStore, SettingsStore

__all__ = [
    "InspectorSession",
    "HeaderEntry",
    "UserSettings",
    "JsonFileSettingsStore",
    "MemorySettingsStore",
    "SettingsStore",
]
