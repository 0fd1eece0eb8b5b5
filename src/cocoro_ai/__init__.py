"""
cocoro-ai — WebSocket client for the Cocoro AI runtime.

Chat, configuration sync, status and control over one persistent
WebSocket connection.
"""

from cocoro_ai.client import AsyncCocoroAI
from cocoro_ai.errors import CocoroAIError, NotConnectedError, TransportError, ProtocolError
from cocoro_ai.models.envelope import MessageType
from cocoro_ai.models.events import ClientEvent, CompanionEvent
from cocoro_ai.settings import AppSettings
from cocoro_ai.transport.websocket import ConnectionState, WebSocketTransport

__version__ = "0.1.0"
__all__ = [
    "AsyncCocoroAI",
    "AppSettings",
    "WebSocketTransport",
    "ConnectionState",
    "CocoroAIError",
    "NotConnectedError",
    "TransportError",
    "ProtocolError",
    "MessageType",
    "ClientEvent",
    "CompanionEvent",
]
