"""
Cocoro AI error types.
"""

from typing import Any, Optional


class CocoroAIError(Exception):
    def __init__(self, code: str, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.details = details


class NotConnectedError(CocoroAIError):
    """Raised when a send is attempted while the WebSocket is not open."""

    def __init__(self, message: str = "WebSocket is not connected"):
        super().__init__("not_connected", message)


class TransportError(CocoroAIError):
    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__("connection_error", message, details)


class ProtocolError(CocoroAIError):
    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__("protocol_error", message, details)
