"""WebSocketTransport lifecycle, framing and fault handling against a fake socket."""

import asyncio

import pytest

from cocoro_ai.errors import NotConnectedError, TransportError
from cocoro_ai.models.events import TransportEvent
from cocoro_ai.transport.websocket import ConnectionState, WebSocketTransport

from conftest import EventRecorder, FakeConnector, settle

URL = "ws://127.0.0.1:8080/"


def make_transport(connector: FakeConnector) -> tuple[WebSocketTransport, EventRecorder]:
    transport = WebSocketTransport(URL, connector=connector)
    recorder = EventRecorder()
    transport.add_handler(recorder)
    return transport, recorder


class TestConnect:
    @pytest.mark.asyncio
    async def test_connect_opens_and_emits_connected(self, connector):
        transport, recorder = make_transport(connector)
        assert transport.state is ConnectionState.IDLE

        assert await transport.connect() is True
        assert transport.state is ConnectionState.OPEN
        assert recorder.types() == [TransportEvent.CONNECTED]
        assert connector.calls[0][0] == URL
        await transport.aclose()

    @pytest.mark.asyncio
    async def test_connect_twice_is_noop(self, connector):
        transport, recorder = make_transport(connector)
        await transport.connect()
        assert await transport.connect() is True

        assert len(connector.calls) == 1
        assert recorder.types().count(TransportEvent.CONNECTED) == 1
        await transport.aclose()

    @pytest.mark.asyncio
    async def test_connect_failure_surfaces_diagnostic(self):
        connector = FakeConnector(error=ConnectionRefusedError("refused"))
        transport, recorder = make_transport(connector)

        assert await transport.connect() is False
        assert transport.state is ConnectionState.CLOSED
        assert recorder.types() == [TransportEvent.CONNECTION_ERROR]
        assert "refused" in recorder.events[0][1]
        # No retry from the transport itself.
        assert len(connector.calls) == 1

    @pytest.mark.asyncio
    async def test_reconnect_uses_fresh_socket(self, connector):
        transport, _ = make_transport(connector)
        await transport.connect()
        first = connector.ws
        await transport.disconnect()

        await transport.connect()
        assert len(connector.sockets) == 2
        assert connector.ws is not first
        await transport.send("after reconnect")
        assert first.sent == []
        assert connector.ws.sent == ["after reconnect"]
        await transport.aclose()

    @pytest.mark.asyncio
    async def test_handshake_has_no_implicit_timeout(self, connector):
        transport, _ = make_transport(connector)
        await transport.connect()
        assert connector.calls[0][1]["open_timeout"] is None
        await transport.aclose()


class TestSend:
    @pytest.mark.asyncio
    async def test_send_before_connect_raises(self, connector):
        transport, _ = make_transport(connector)
        with pytest.raises(NotConnectedError):
            await transport.send("hello")
        assert connector.sockets == []

    @pytest.mark.asyncio
    async def test_send_after_disconnect_raises(self, connector):
        transport, _ = make_transport(connector)
        await transport.connect()
        ws = connector.ws
        await transport.disconnect()

        with pytest.raises(NotConnectedError):
            await transport.send("hello")
        assert ws.sent == []

    @pytest.mark.asyncio
    async def test_send_one_message_per_call(self, connector):
        transport, _ = make_transport(connector)
        await transport.connect()
        await transport.send("one")
        await transport.send("two")
        assert connector.ws.sent == ["one", "two"]
        await transport.aclose()

    @pytest.mark.asyncio
    async def test_send_failure_raises_and_reports(self, connector):
        transport, recorder = make_transport(connector)
        await transport.connect()
        connector.ws.send_error = OSError("broken pipe")

        with pytest.raises(TransportError):
            await transport.send("hello")
        assert TransportEvent.CONNECTION_ERROR in recorder.types()
        await transport.aclose()


class TestReceive:
    @pytest.mark.asyncio
    async def test_single_frame_message(self, connector):
        transport, recorder = make_transport(connector)
        await transport.connect()
        connector.ws.feed('{"type": "chat"}')
        await settle()

        assert (TransportEvent.MESSAGE, '{"type": "chat"}') in recorder.events
        await transport.aclose()

    @pytest.mark.asyncio
    async def test_fragments_reassembled_into_one_message(self, connector):
        transport, recorder = make_transport(connector)
        await transport.connect()
        connector.ws.feed_fragments('{"type": "ch', 'at", "payload": ', '{"response": "hi"}}')
        await settle()

        messages = [data for event, data in recorder.events if event == TransportEvent.MESSAGE]
        assert messages == ['{"type": "chat", "payload": {"response": "hi"}}']
        await transport.aclose()

    @pytest.mark.asyncio
    async def test_binary_fragments_decoded_after_join(self, connector):
        transport, recorder = make_transport(connector)
        await transport.connect()
        encoded = "こんにちは".encode("utf-8")
        # Split inside a multi-byte character.
        connector.ws.feed_fragments(encoded[:4], encoded[4:])
        await settle()

        messages = [data for event, data in recorder.events if event == TransportEvent.MESSAGE]
        assert messages == ["こんにちは"]
        await transport.aclose()

    @pytest.mark.asyncio
    async def test_messages_delivered_in_order(self, connector):
        transport, recorder = make_transport(connector)
        await transport.connect()
        for i in range(3):
            connector.ws.feed(f"m{i}")
        await settle()

        messages = [data for event, data in recorder.events if event == TransportEvent.MESSAGE]
        assert messages == ["m0", "m1", "m2"]
        await transport.aclose()

    @pytest.mark.asyncio
    async def test_server_close_emits_single_disconnected(self, connector):
        transport, recorder = make_transport(connector)
        await transport.connect()
        ws = connector.ws
        ws.close_from_server(1000, "bye")
        ws.feed("late message")
        await settle()

        assert transport.state is ConnectionState.CLOSED
        assert recorder.types() == [TransportEvent.CONNECTED, TransportEvent.DISCONNECTED]
        assert TransportEvent.MESSAGE not in recorder.types()

    @pytest.mark.asyncio
    async def test_fault_emits_error_and_disconnected(self, connector):
        transport, recorder = make_transport(connector)
        await transport.connect()
        connector.ws.fail()
        await settle()

        assert transport.state is ConnectionState.CLOSED
        assert recorder.types() == [
            TransportEvent.CONNECTED,
            TransportEvent.CONNECTION_ERROR,
            TransportEvent.DISCONNECTED,
        ]
        with pytest.raises(NotConnectedError):
            await transport.send("x")

    @pytest.mark.asyncio
    async def test_unexpected_exception_in_read_is_fault(self, connector):
        transport, recorder = make_transport(connector)
        await transport.connect()
        connector.ws.fail(OSError("reset by peer"))
        await settle()

        assert transport.state is ConnectionState.CLOSED
        assert recorder.types()[-2:] == [TransportEvent.CONNECTION_ERROR, TransportEvent.DISCONNECTED]

    @pytest.mark.asyncio
    async def test_read_failure_releases_socket(self, connector):
        transport, recorder = make_transport(connector)
        await transport.connect()
        ws = connector.ws
        ws.fail(RuntimeError("boom"))
        await settle()

        assert transport.state is ConnectionState.CLOSED
        assert ws.close_calls == [(1011, "receive failed")]
        assert recorder.types().count(TransportEvent.DISCONNECTED) == 1

    @pytest.mark.asyncio
    async def test_read_failure_with_failing_close_still_disconnects(self, connector):
        transport, recorder = make_transport(connector)
        await transport.connect()
        ws = connector.ws
        ws.close_error = OSError("already gone")
        ws.fail(RuntimeError("boom"))
        await settle()

        assert transport.state is ConnectionState.CLOSED
        assert len(ws.close_calls) == 1
        assert recorder.types()[-2:] == [TransportEvent.CONNECTION_ERROR, TransportEvent.DISCONNECTED]

    @pytest.mark.asyncio
    async def test_failing_handler_does_not_stop_loop(self, connector):
        transport, recorder = make_transport(connector)

        def explode(event, data):
            if event == TransportEvent.MESSAGE and data == "bad":
                raise RuntimeError("handler bug")

        transport.add_handler(explode)
        await transport.connect()
        connector.ws.feed("bad")
        connector.ws.feed("good")
        await settle()

        messages = [data for event, data in recorder.events if event == TransportEvent.MESSAGE]
        assert messages == ["bad", "good"]
        assert transport.connected
        await transport.aclose()


class TestDisconnect:
    @pytest.mark.asyncio
    async def test_disconnect_sends_normal_closure(self, connector):
        transport, recorder = make_transport(connector)
        await transport.connect()
        ws = connector.ws
        await transport.disconnect()

        assert ws.close_calls and ws.close_calls[0][0] == 1000
        assert transport.state is ConnectionState.CLOSED
        assert recorder.types() == [TransportEvent.CONNECTED, TransportEvent.DISCONNECTED]

    @pytest.mark.asyncio
    async def test_disconnect_when_not_open_is_noop(self, connector):
        transport, recorder = make_transport(connector)
        await transport.disconnect()
        assert recorder.events == []
        assert transport.state is ConnectionState.IDLE

    @pytest.mark.asyncio
    async def test_close_error_still_disconnects(self, connector):
        transport, recorder = make_transport(connector)
        await transport.connect()
        connector.ws.close_error = OSError("already gone")
        await transport.disconnect()

        assert transport.state is ConnectionState.CLOSED
        assert recorder.types().count(TransportEvent.DISCONNECTED) == 1

    @pytest.mark.asyncio
    async def test_aclose_cancels_blocked_read(self, connector):
        transport, recorder = make_transport(connector)
        await transport.connect()
        # Nothing fed: the receive task is parked in a read.
        await settle()
        await asyncio.wait_for(transport.aclose(), timeout=1.0)

        assert transport.state is ConnectionState.CLOSED
        assert recorder.types() == [TransportEvent.CONNECTED, TransportEvent.DISCONNECTED]
        with pytest.raises(NotConnectedError):
            await transport.send("x")

    @pytest.mark.asyncio
    async def test_context_manager(self, connector):
        async with WebSocketTransport(URL, connector=connector) as transport:
            assert transport.connected
        assert transport.state is ConnectionState.CLOSED
