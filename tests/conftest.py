"""Shared test doubles: an in-memory WebSocket and a connector for it."""

import asyncio
import json
from typing import Any, Optional

import pytest
from websockets.exceptions import ConnectionClosedError, ConnectionClosedOK
from websockets.frames import Close


class FakeWebSocket:
    """Mimics the parts of a websockets ClientConnection the transport uses.

    Inbound items are queued with feed()/feed_fragments(); close_from_server()
    and fail() end the stream the way websockets reports it.
    """

    def __init__(self) -> None:
        self._inbound: asyncio.Queue[Any] = asyncio.Queue()
        self.sent: list[str] = []
        self.close_calls: list[tuple[int, str]] = []
        self.close_error: Optional[Exception] = None
        self.send_error: Optional[Exception] = None

    def feed(self, message: Any) -> None:
        if isinstance(message, dict):
            message = json.dumps(message)
        self._inbound.put_nowait([message])

    def feed_fragments(self, *fragments: Any) -> None:
        self._inbound.put_nowait(list(fragments))

    def close_from_server(self, code: int = 1000, reason: str = "") -> None:
        self._inbound.put_nowait(ConnectionClosedOK(Close(code, reason), Close(code, reason), True))

    def fail(self, error: Optional[BaseException] = None) -> None:
        self._inbound.put_nowait(error or ConnectionClosedError(None, None))

    async def recv_streaming(self):
        item = await self._inbound.get()
        if isinstance(item, BaseException):
            raise item
        for fragment in item:
            yield fragment

    async def send(self, message: str) -> None:
        if self.send_error is not None:
            raise self.send_error
        self.sent.append(message)

    async def close(self, code: int = 1000, reason: str = "") -> None:
        self.close_calls.append((code, reason))
        if self.close_error is not None:
            raise self.close_error
        self._inbound.put_nowait(ConnectionClosedOK(None, Close(code, reason)))

    def sent_json(self) -> list[dict[str, Any]]:
        return [json.loads(m) for m in self.sent]


class FakeConnector:
    """Stands in for websockets.connect; hands out a fresh FakeWebSocket per call."""

    def __init__(self, error: Optional[Exception] = None) -> None:
        self.error = error
        self.sockets: list[FakeWebSocket] = []
        self.calls: list[tuple[str, dict[str, Any]]] = []

    async def __call__(self, url: str, **options: Any) -> FakeWebSocket:
        self.calls.append((url, options))
        if self.error is not None:
            raise self.error
        ws = FakeWebSocket()
        self.sockets.append(ws)
        return ws

    @property
    def ws(self) -> FakeWebSocket:
        return self.sockets[-1]


class EventRecorder:
    def __init__(self) -> None:
        self.events: list[tuple[str, Any]] = []

    def __call__(self, event: str, data: Any = None) -> None:
        self.events.append((event, data))

    def types(self) -> list[str]:
        return [e for e, _ in self.events]


async def settle(rounds: int = 10) -> None:
    """Let the receive task drain queued frames."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def connector() -> FakeConnector:
    return FakeConnector()


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    monkeypatch.setenv("COCORO_HOME", str(tmp_path / "cocoro"))
    monkeypatch.delenv("COCORO_WS_URL", raising=False)
    monkeypatch.delenv("COCORO_USER_ID", raising=False)
    return tmp_path / "cocoro"
