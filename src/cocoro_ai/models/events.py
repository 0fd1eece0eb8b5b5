"""
Event names raised by the client and the event object handed to handlers.
"""

from typing import Any, Optional


class ClientEvent:
    """Events raised by AsyncCocoroAI."""
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    CHAT_REPLY = "chat_reply"
    CONFIG_RESPONSE = "config_response"
    STATUS_UPDATE = "status_update"
    ERROR = "error"


class TransportEvent:
    """Lifecycle events raised by WebSocketTransport."""
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    MESSAGE = "message"
    CONNECTION_ERROR = "connection_error"


class CompanionEvent:
    __slots__ = ("type", "data")

    def __init__(self, type: str, data: Optional[dict[str, Any]] = None):
        self.type = type
        self.data = data or {}

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CompanionEvent):
            return NotImplemented
        return self.type == other.type and self.data == other.data

    def __repr__(self) -> str:
        return f"CompanionEvent(type={self.type!r}, data={self.data!r})"
