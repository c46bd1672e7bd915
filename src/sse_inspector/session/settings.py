"""
Persisted user settings.

The stored record uses the keys ``url, method, headers[{key, value}], body,
formatJson, showTimestamps, autoScroll``.
"""

from typing import Any, Dict, List, Tuple
from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..jsonrpc.json_value import dumps
from ..jsonrpc.templates import TEMPLATES
from ..streaming.controller import SUPPORTED_METHODS


class HeaderEntry(BaseModel):
    """One editable request header; blanks are kept until send time."""
    key: str = ""
    value: str = ""

    @property
    def is_blank(self) -> bool:
        return not (self.key.strip() and self.value.strip())


def default_headers() -> List[HeaderEntry]:
    return [
        HeaderEntry(key="Content-Type", value="application/json"),
        HeaderEntry(key="Accept", value="text/event-stream"),
    ]


def default_body() -> str:
    return dumps(TEMPLATES["tools/list"])


class UserSettings(BaseModel):
    """Everything the user configures for a request."""
    url: str = "https://"
    method: str = "POST"
    headers: List[HeaderEntry] = Field(default_factory=default_headers)
    body: str = Field(default_factory=default_body)
    format_json: bool = Field(default=True, alias="formatJson")
    show_timestamps: bool = Field(default=True, alias="showTimestamps")
    auto_scroll: bool = Field(default=True, alias="autoScroll")

    model_config = ConfigDict(populate_by_name=True, validate_assignment=True)

    @field_validator("method")
    @classmethod
    def validate_method(cls, v):
        v = v.upper()
        if v not in SUPPORTED_METHODS:
            raise ValueError(f"Unsupported method: {v}")
        return v

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "UserSettings":
        """
        Build settings from a stored record.

        Missing, empty-string or invalid fields fall back to their defaults one by
        one, so a partially damaged record still restores what it can.
        """
        defaults = cls()
        values: Dict[str, Any] = {}
        for name, field_info in cls.model_fields.items():
            raw = record.get(field_info.alias or name)
            if raw is None or raw == "":
                continue
            try:
                cls.model_validate({**defaults.to_record(), field_info.alias or name: raw})
            except ValueError:
                continue
            values[name] = raw
        return cls.model_validate({**defaults.model_dump(), **values})

    def to_record(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)

    def header_pairs(self) -> List[Tuple[str, str]]:
        return [(h.key, h.value) for h in self.headers]

    def filtered_headers(self) -> List[Dict[str, str]]:
        return [{"key": h.key, "value": h.value} for h in self.headers if not h.is_blank]
