"""
Message envelope — the outer wire object of every WebSocket message.

    {"type": "chat", "timestamp": "2025-01-01T12:00:00+09:00", "payload": {...}}

Payload field names travel in camelCase. The runtime has historically sent
PascalCase keys as well, so decoding matches keys case-insensitively.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator, model_validator


class MessageType(str, Enum):
    CHAT = "chat"
    CONFIG = "config"
    CONTROL = "control"
    STATUS = "status"
    SYSTEM = "system"


class WireModel(BaseModel):
    """Base for payload models: camelCase aliases, case-insensitive keys."""

    model_config = ConfigDict(populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def _match_keys(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        known: dict[str, str] = {}
        for name, field in cls.model_fields.items():
            alias = field.alias or name
            known[name.lower()] = alias
            known[alias.lower()] = alias
        return {known.get(str(key).lower(), key): value for key, value in data.items()}

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class Envelope(WireModel):
    type: str
    timestamp: str = ""
    payload: Any = None

    @field_validator("type")
    @classmethod
    def _lower_type(cls, value: str) -> str:
        return value.lower()
