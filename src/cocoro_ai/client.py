"""
AsyncCocoroAI — session/request layer over the WebSocket transport.

Each outbound operation builds one envelope and sends it. Inbound messages
are decoded by the dispatcher and fanned out to event handlers and
subscribers.
"""

import asyncio
import json
import logging
import uuid
from typing import Any, AsyncGenerator, Callable, Optional

from cocoro_ai.dispatcher import ProtocolDispatcher
from cocoro_ai.errors import NotConnectedError, TransportError
from cocoro_ai.models.chat import ChatMessagePayload
from cocoro_ai.models.config import (
    ConfigMessagePayload,
    ConfigRequestPayload,
    ConfigSettings,
    ConfigUpdatePayload,
)
from cocoro_ai.models.control import ControlMessagePayload
from cocoro_ai.models.envelope import MessageType, WireModel
from cocoro_ai.models.events import ClientEvent, CompanionEvent, TransportEvent
from cocoro_ai.settings import AppSettings
from cocoro_ai.transport.envelope import encode_envelope
from cocoro_ai.transport.websocket import ConnectionState, WebSocketTransport

logger = logging.getLogger(__name__)

EventHandler = Callable[[CompanionEvent], None]


def generate_session_id() -> str:
    return f"session_{uuid.uuid4().hex[:8]}"


class AsyncCocoroAI:
    """Async client for the Cocoro AI runtime."""

    def __init__(
        self,
        url: Optional[str] = None,
        user_id: Optional[str] = None,
        settings: Optional[AppSettings] = None,
        transport: Optional[WebSocketTransport] = None,
    ):
        self.settings = settings if settings is not None else AppSettings()
        self._user_id = user_id or self.settings.user_id
        self._transport = transport or WebSocketTransport(url or self.settings.websocket_url)
        self._dispatcher = ProtocolDispatcher()
        self._session_id = generate_session_id()
        self._event_handlers: list[EventHandler] = []
        self._transport.add_handler(self._on_transport_event)

    @property
    def connected(self) -> bool:
        return self._transport.connected

    @property
    def state(self) -> ConnectionState:
        return self._transport.state

    @property
    def url(self) -> str:
        return self._transport.url

    @property
    def user_id(self) -> str:
        return self._user_id

    @property
    def session_id(self) -> str:
        return self._session_id

    def new_session(self) -> str:
        """Start a fresh conversation. The connection is left untouched."""
        self._session_id = generate_session_id()
        logger.debug("New session %s", self._session_id)
        return self._session_id

    # -- connection ---------------------------------------------------------

    async def connect(self) -> bool:
        return await self._transport.connect()

    async def connect_with_retry(
        self,
        max_retries: int = -1,
        initial_delay: float = 1.0,
        max_delay: float = 60.0,
    ) -> bool:
        """Connect, backing off exponentially between failed attempts.

        max_retries: -1 retries forever, 0 makes a single attempt.
        """
        delay = initial_delay
        attempt = 0
        while True:
            if await self.connect():
                return True
            attempt += 1
            if max_retries >= 0 and attempt > max_retries:
                logger.error("Giving up on %s after %d attempt(s)", self.url, attempt)
                return False
            logger.info("Reconnecting in %.1fs (attempt %d)", delay, attempt)
            await asyncio.sleep(delay)
            delay = min(delay * 2, max_delay)

    async def disconnect(self) -> None:
        await self._transport.disconnect()

    async def aclose(self) -> None:
        await self._transport.aclose()

    async def __aenter__(self) -> "AsyncCocoroAI":
        await self.connect()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()

    # -- outbound -----------------------------------------------------------

    async def send_chat(self, text: str) -> None:
        await self._send(MessageType.CHAT, ChatMessagePayload(
            user_id=self._user_id,
            session_id=self._session_id,
            message=text,
        ))

    async def request_config(self) -> None:
        await self._send(MessageType.CONFIG, ConfigRequestPayload())

    async def update_config(self, settings: Optional[ConfigSettings] = None) -> None:
        """Push a full settings snapshot; defaults to the settings store's."""
        snapshot = settings if settings is not None else self.settings.snapshot()
        await self._send(MessageType.CONFIG, ConfigUpdatePayload(settings=snapshot))

    async def change_config_field(self, key: str, value: Any) -> None:
        """Legacy single key/value change understood by older runtimes.

        Non-string values are sent in their JSON spelling (True -> "true").
        """
        if not isinstance(value, str):
            value = json.dumps(value, ensure_ascii=False)
        await self._send(MessageType.CONFIG, ConfigMessagePayload(setting_key=key, value=value))

    async def send_control(self, command: str, reason: str = "") -> None:
        await self._send(MessageType.CONTROL, ControlMessagePayload(command=command, reason=reason))

    async def ask(self, text: str, timeout: Optional[float] = None) -> str:
        """Send a chat turn and return the next chat reply."""
        event = await self._send_and_wait(
            MessageType.CHAT,
            ChatMessagePayload(user_id=self._user_id, session_id=self._session_id, message=text),
            ClientEvent.CHAT_REPLY,
            timeout,
        )
        return event.data["text"]

    async def fetch_config(self, timeout: Optional[float] = None) -> CompanionEvent:
        """Request the runtime config and wait for the next config response."""
        return await self._send_and_wait(
            MessageType.CONFIG, ConfigRequestPayload(), ClientEvent.CONFIG_RESPONSE, timeout,
        )

    async def push_config(
        self, settings: Optional[ConfigSettings] = None, timeout: Optional[float] = None,
    ) -> CompanionEvent:
        """Send a full settings update and wait for the runtime's answer."""
        snapshot = settings if settings is not None else self.settings.snapshot()
        return await self._send_and_wait(
            MessageType.CONFIG, ConfigUpdatePayload(settings=snapshot), ClientEvent.CONFIG_RESPONSE, timeout,
        )

    async def wait_for_event(self, event_type: str, timeout: Optional[float] = None) -> CompanionEvent:
        waiter = self._waiter(event_type)
        try:
            return await asyncio.wait_for(waiter.future, timeout=timeout)
        finally:
            waiter.cancel()

    async def _send_and_wait(
        self,
        message_type: MessageType,
        payload: WireModel,
        event_type: str,
        timeout: Optional[float],
    ) -> CompanionEvent:
        # Responses carry no request id: the first matching event after the
        # send is taken as the answer.
        waiter = self._waiter(event_type)
        try:
            await self._send(message_type, payload)
            return await asyncio.wait_for(waiter.future, timeout=timeout)
        finally:
            waiter.cancel()

    async def _send(self, message_type: MessageType, payload: WireModel) -> None:
        if not self._transport.connected:
            raise NotConnectedError()
        await self._transport.send(encode_envelope(message_type, payload))

    # -- inbound ------------------------------------------------------------

    def add_event_handler(self, handler: EventHandler) -> Callable[[], None]:
        """Add an event handler. Returns a cleanup function.

        Handlers run on the receive task and must not block.
        """
        self._event_handlers.append(handler)

        def remove() -> None:
            try:
                self._event_handlers.remove(handler)
            except ValueError:
                pass
        return remove

    def on_event(self, handler: Optional[EventHandler]) -> None:
        """Set a single event handler (replaces all)."""
        self._event_handlers.clear()
        if handler is not None:
            self._event_handlers.append(handler)

    async def subscribe(self, *event_types: str) -> AsyncGenerator[CompanionEvent, None]:
        """Event stream drained on the caller's own task.

        Each subscriber gets an unbounded queue so a slow consumer never
        stalls the receive loop. Ends after a `disconnected` event.
        """
        queue: asyncio.Queue[CompanionEvent] = asyncio.Queue()

        def _handler(event: CompanionEvent) -> None:
            if not event_types or event.type in event_types or event.type == ClientEvent.DISCONNECTED:
                queue.put_nowait(event)

        remove = self.add_event_handler(_handler)
        try:
            while True:
                event = await queue.get()
                if not event_types or event.type in event_types:
                    yield event
                if event.type == ClientEvent.DISCONNECTED:
                    return
        finally:
            remove()

    def _waiter(self, event_type: str) -> "_EventWaiter":
        return _EventWaiter(self, event_type)

    def _emit(self, event: CompanionEvent) -> None:
        for handler in list(self._event_handlers):
            try:
                handler(event)
            except Exception:
                logger.exception("Event handler failed for %s", event.type)

    def _on_transport_event(self, event: str, data: Any) -> None:
        if event == TransportEvent.MESSAGE:
            companion_event = self._dispatcher.dispatch(data)
            if companion_event is None:
                return
            if companion_event.type == ClientEvent.CONFIG_RESPONSE:
                self._store_config(companion_event)
            self._emit(companion_event)
        elif event == TransportEvent.CONNECTED:
            self._emit(CompanionEvent(ClientEvent.CONNECTED))
        elif event == TransportEvent.DISCONNECTED:
            self._emit(CompanionEvent(ClientEvent.DISCONNECTED))
        elif event == TransportEvent.CONNECTION_ERROR:
            self._emit(CompanionEvent(ClientEvent.ERROR, {"message": str(data)}))

    def _store_config(self, event: CompanionEvent) -> None:
        settings = event.data.get("settings")
        if settings is not None and str(event.data.get("status", "")).lower() == "ok":
            self.settings.update_config(settings)
            logger.debug("Settings store updated from runtime config")


class _EventWaiter:
    """Resolves a future with the next event of one type.

    Fails with TransportError if the connection drops first.
    """

    def __init__(self, client: AsyncCocoroAI, event_type: str):
        self.future: asyncio.Future[CompanionEvent] = asyncio.get_running_loop().create_future()
        self._event_type = event_type
        self._remove = client.add_event_handler(self._handle)

    def _handle(self, event: CompanionEvent) -> None:
        if self.future.done():
            return
        if event.type == self._event_type:
            self.future.set_result(event)
        elif event.type == ClientEvent.DISCONNECTED:
            self.future.set_exception(TransportError(
                f"Connection closed while waiting for {self._event_type}",
            ))

    def cancel(self) -> None:
        self._remove()
        if not self.future.done():
            self.future.cancel()
