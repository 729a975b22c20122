from __future__ import annotations

import pytest
from socketio import exceptions as socketio_exceptions

from chat_client.application.exceptions import ConnectionFailed, TransportTransient
from chat_client.application.store import Store
from chat_client.domain.events.connection import (
    AuthFailed,
    Connected,
    ConnectionOpening,
    Disconnected,
    PermanentFailure,
    Reconnecting,
    TransportError,
)
from chat_client.domain.events.conversation import (
    MessageDelivered,
    MessageReceived,
    PresenceChanged,
    ServerError,
    TypingChanged,
)
from chat_client.domain.value_objects.enums import ConnectionPhase
from chat_client.infrastructure.realtime.channel import RealtimeChannel
from tests.conftest import FakeSocketClient


def _refused() -> FakeSocketClient:
    return FakeSocketClient(outcome=socketio_exceptions.ConnectionError("Connection refused"))


class Harness:
    def __init__(self, clients: list[FakeSocketClient], max_attempts: int = 3) -> None:
        self.clients = list(clients)
        self.created: list[FakeSocketClient] = []
        self.events: list = []
        self.sleeps: list[float] = []
        self.store = Store()
        self.channel = RealtimeChannel(
            "http://test",
            self._record,
            client_factory=self._factory,
            max_attempts=max_attempts,
            retry_delay=0.5,
            sleep=self._sleep,
        )

    def _record(self, event) -> None:
        self.events.append(event)
        self.store.dispatch(event)

    def _factory(self) -> FakeSocketClient:
        client = self.clients.pop(0) if self.clients else _refused()
        self.created.append(client)
        return client

    async def _sleep(self, delay: float) -> None:
        self.sleeps.append(delay)

    def of(self, kind: type) -> list:
        return [e for e in self.events if isinstance(e, kind)]

    async def settle(self) -> None:
        task = self.channel._reconnect_task
        if task is not None:
            await task


@pytest.mark.asyncio
async def test_connects_with_token_in_auth_payload():
    h = Harness([FakeSocketClient()])

    await h.channel.open("t1")

    assert h.events == [ConnectionOpening(), Connected()]
    kwargs = h.created[0].connect_kwargs
    assert kwargs["auth"] == {"token": "t1"}
    assert kwargs["transports"] == ["websocket", "polling"]
    assert kwargs["socketio_path"] == "socket.io"
    assert h.store.state.connection.phase == ConnectionPhase.CONNECTED


@pytest.mark.asyncio
async def test_reconnect_attempts_are_bounded():
    h = Harness([], max_attempts=3)

    await h.channel.open("t1")
    await h.settle()

    assert [(e.attempt, e.max_attempts) for e in h.of(Reconnecting)] == [(1, 3), (2, 3), (3, 3)]
    assert h.of(PermanentFailure) == [PermanentFailure(3)]
    assert isinstance(h.events[-1], PermanentFailure)
    assert len(h.created) == 4
    assert h.sleeps == [0.5, 0.5, 0.5]
    assert h.store.state.connection.phase == ConnectionPhase.FAILED

    with pytest.raises(ConnectionFailed):
        await h.channel.emit("send_message", {})


@pytest.mark.asyncio
async def test_transport_error_then_recovery():
    h = Harness([_refused(), FakeSocketClient()], max_attempts=5)

    await h.channel.open("t1")
    await h.settle()

    assert len(h.of(TransportError)) == 1
    assert [e.attempt for e in h.of(Reconnecting)] == [1]
    assert isinstance(h.events[-1], Connected)
    assert h.of(PermanentFailure) == []


@pytest.mark.asyncio
async def test_auth_failure_from_connect_error_is_not_retried():
    client = _refused()
    client.connect_error = {"message": "Authentication error: invalid token"}
    h = Harness([client])

    await h.channel.open("bad")
    await h.settle()

    assert h.of(AuthFailed) == [AuthFailed("Authentication error: invalid token")]
    assert h.of(Reconnecting) == []
    assert len(h.created) == 1
    assert not h.channel.is_open


@pytest.mark.asyncio
async def test_auth_failure_from_exception_text():
    h = Harness([FakeSocketClient(outcome=socketio_exceptions.ConnectionError("Unauthorized"))])

    await h.channel.open("bad")

    assert len(h.of(AuthFailed)) == 1
    assert h.of(TransportError) == []


@pytest.mark.asyncio
async def test_open_closes_previous_connection():
    first, second = FakeSocketClient(), FakeSocketClient()
    h = Harness([first, second])

    await h.channel.open("t1")
    await h.channel.open("t2")
    await first.trigger("message", {"id": 1, "sender_id": 2, "content": "late"})

    assert first.disconnected
    assert Disconnected("client disconnect") in h.events
    assert h.of(MessageReceived) == []
    assert second.connect_kwargs["auth"] == {"token": "t2"}


@pytest.mark.asyncio
async def test_transient_drop_reconnects():
    first, second = FakeSocketClient(), FakeSocketClient()
    h = Harness([first, second])
    await h.channel.open("t1")

    await first.trigger("disconnect", "transport close")
    await h.settle()

    assert Disconnected("transport close") in h.events
    assert [e.attempt for e in h.of(Reconnecting)] == [1]
    assert isinstance(h.events[-1], Connected)
    assert h.channel.is_connected


@pytest.mark.asyncio
async def test_server_disconnect_is_not_retried():
    client = FakeSocketClient()
    h = Harness([client])
    await h.channel.open("t1")

    await client.trigger("disconnect", "server disconnect")

    assert h.of(Reconnecting) == []
    assert h.channel._reconnect_task is None
    assert h.store.state.connection.phase == ConnectionPhase.DISCONNECTED


@pytest.mark.asyncio
async def test_server_events_are_translated():
    client = FakeSocketClient()
    h = Harness([client])
    await h.channel.open("t1")

    await client.trigger(
        "message",
        {"id": 7, "sender_id": 2, "receiver_id": 1, "content": "hi", "created_at": "2024-05-01T12:00:00Z"},
    )
    await client.trigger("message", {"content": "no sender"})
    await client.trigger("user_online", {"userId": 2})
    await client.trigger("user_offline", 3)
    await client.trigger("typing_start", {"userId": "2"})
    await client.trigger("typing_stop", {"bogus": True})
    await client.trigger("message_delivered", {"tempId": 5})
    await client.trigger("error", {"message": "Invalid receiver"})

    received = h.of(MessageReceived)
    assert len(received) == 1 and received[0].message.content == "hi"
    assert h.of(PresenceChanged) == [PresenceChanged(2, True), PresenceChanged(3, False)]
    assert h.of(TypingChanged) == [TypingChanged(2, True)]
    assert h.of(MessageDelivered) == [MessageDelivered({"tempId": 5})]
    assert h.of(ServerError) == [ServerError("Invalid receiver")]


@pytest.mark.asyncio
async def test_emit_requires_connection():
    client = FakeSocketClient()
    h = Harness([client])

    with pytest.raises(TransportTransient):
        await h.channel.emit("typing_start", {"receiverId": 2})

    await h.channel.open("t1")
    await h.channel.emit("typing_start", {"receiverId": 2})
    assert client.emitted == [("typing_start", {"receiverId": 2})]

    await h.channel.close()
    with pytest.raises(TransportTransient):
        await h.channel.emit("typing_start", {"receiverId": 2})
