"""
WebSocket transport — owns the single connection to the AI runtime.

State: idle -> connecting -> open -> closing -> closed, and open -> closed
when the socket faults. One receive task runs per successful connect and
emits one `message` event per reassembled text message.

The transport never retries; reconnect policy belongs to the caller.
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

import websockets
from websockets.exceptions import ConnectionClosed

from cocoro_ai.errors import NotConnectedError, TransportError
from cocoro_ai.models.events import TransportEvent

logger = logging.getLogger(__name__)

NORMAL_CLOSURE = 1000
CLOSE_REASON = "client disconnect"

TransportHandler = Callable[[str, Any], None]


class ConnectionState(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"


class WebSocketTransport:
    def __init__(
        self,
        url: str,
        connector: Optional[Callable[..., Awaitable[Any]]] = None,
        **connect_options: Any,
    ):
        self._url = url
        self._connector = connector or websockets.connect
        # websockets defaults to a 10s handshake timeout; callers impose their own.
        connect_options.setdefault("open_timeout", None)
        self._connect_options = connect_options
        self._ws: Any = None
        self._state = ConnectionState.IDLE
        self._receive_task: Optional[asyncio.Task] = None
        self._handlers: list[TransportHandler] = []

    @property
    def url(self) -> str:
        return self._url

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def connected(self) -> bool:
        return self._state is ConnectionState.OPEN

    def add_handler(self, handler: TransportHandler) -> Callable[[], None]:
        """Add a lifecycle handler `handler(event, data)`. Returns a remove function."""
        self._handlers.append(handler)

        def remove() -> None:
            try:
                self._handlers.remove(handler)
            except ValueError:
                pass
        return remove

    def _emit(self, event: str, data: Any = None) -> None:
        for handler in list(self._handlers):
            try:
                handler(event, data)
            except Exception:
                logger.exception("Transport handler failed for %s", event)

    async def connect(self) -> bool:
        """Single connection attempt. Returns True when the socket is open."""
        if self._state in (ConnectionState.OPEN, ConnectionState.CONNECTING):
            return self._state is ConnectionState.OPEN

        self._state = ConnectionState.CONNECTING
        self._ws = None  # never reuse a handle from a previous connection
        logger.info("Connecting to %s", self._url)
        try:
            ws = await self._connector(self._url, **self._connect_options)
        except asyncio.CancelledError:
            self._state = ConnectionState.CLOSED
            raise
        except Exception as e:
            self._state = ConnectionState.CLOSED
            logger.error("Connection to %s failed: %s (%s)", self._url, e, type(e).__name__)
            self._emit(TransportEvent.CONNECTION_ERROR, f"Connection failed: {e}")
            return False

        self._ws = ws
        self._state = ConnectionState.OPEN
        logger.info("Connected to %s", self._url)
        self._emit(TransportEvent.CONNECTED)
        self._receive_task = asyncio.create_task(self._receive_loop(ws))
        return True

    async def disconnect(self) -> None:
        """Close the connection with a normal-closure frame."""
        if self._state is not ConnectionState.OPEN:
            return

        self._state = ConnectionState.CLOSING
        ws = self._ws
        try:
            await ws.close(code=NORMAL_CLOSURE, reason=CLOSE_REASON)
        except Exception as e:
            logger.warning("Close handshake failed: %s", e)
        finally:
            await self._stop_receiving()
            self._ws = None
            self._state = ConnectionState.CLOSED
            logger.info("Disconnected from %s", self._url)
            self._emit(TransportEvent.DISCONNECTED)

    async def send(self, text: str) -> None:
        """Send one text message. Raises NotConnectedError unless open."""
        ws = self._ws
        if self._state is not ConnectionState.OPEN or ws is None:
            raise NotConnectedError()
        try:
            await ws.send(text)
        except Exception as e:
            logger.error("Send failed: %s", e)
            self._emit(TransportEvent.CONNECTION_ERROR, f"Send failed: {e}")
            raise TransportError(f"Send failed: {e}")

    async def aclose(self) -> None:
        """Tear down: cancel the receive task and release the socket."""
        was_open = self._state is ConnectionState.OPEN
        if was_open:
            self._state = ConnectionState.CLOSING
        await self._stop_receiving()
        ws, self._ws = self._ws, None
        if ws is not None:
            try:
                await ws.close(code=NORMAL_CLOSURE, reason=CLOSE_REASON)
            except Exception as e:
                logger.debug("Close during teardown failed: %s", e)
        if self._state is not ConnectionState.IDLE:
            self._state = ConnectionState.CLOSED
        if was_open:
            self._emit(TransportEvent.DISCONNECTED)

    async def __aenter__(self) -> "WebSocketTransport":
        await self.connect()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()

    async def _stop_receiving(self) -> None:
        task, self._receive_task = self._receive_task, None
        if task is None or task is asyncio.current_task():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        except Exception:
            logger.exception("Receive task ended with an error")

    async def _read_message(self, ws: Any) -> str:
        fragments = [fragment async for fragment in ws.recv_streaming()]
        if fragments and isinstance(fragments[0], (bytes, bytearray)):
            return b"".join(fragments).decode("utf-8", errors="replace")
        return "".join(fragments)

    async def _receive_loop(self, ws: Any) -> None:
        try:
            while self._state is ConnectionState.OPEN:
                message = await self._read_message(ws)
                logger.debug("Received %d chars", len(message))
                self._emit(TransportEvent.MESSAGE, message)
        except ConnectionClosed as e:
            if self._state is not ConnectionState.OPEN:
                return  # disconnect() owns the transition
            if e.rcvd is not None:
                logger.info("Server closed the connection (%s %s)", e.rcvd.code, e.rcvd.reason)
            else:
                logger.warning("Connection lost: %s", e)
                self._emit(TransportEvent.CONNECTION_ERROR, f"Receive failed: {e}")
            self._closed_by_peer()
        except Exception as e:
            if self._state is not ConnectionState.OPEN:
                return
            logger.warning("Receive failed: %s (%s)", e, type(e).__name__)
            self._state = ConnectionState.CLOSING
            self._emit(TransportEvent.CONNECTION_ERROR, f"Receive failed: {e}")
            # The library still considers this socket open.
            try:
                await ws.close(code=1011, reason="receive failed")
            except Exception as close_error:
                logger.debug("Close after receive failure failed: %s", close_error)
            self._closed_by_peer()

    def _closed_by_peer(self) -> None:
        self._state = ConnectionState.CLOSED
        self._ws = None
        self._receive_task = None
        self._emit(TransportEvent.DISCONNECTED)
