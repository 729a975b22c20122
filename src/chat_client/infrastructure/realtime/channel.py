"""Realtime channel over a socket.io connection.

Phases: disconnected → connecting → connected; connected → reconnecting(n) →
connected on transient loss; reconnecting(n) → failed once the attempt budget
is spent; any phase → error on a transport error while reconnection continues.
An authentication failure tears the channel down and is never retried.
"""
from __future__ import annotations

import asyncio
import logging
import re
from enum import Enum
from typing import Any, Awaitable, Callable

import pydantic
import socketio
from socketio import exceptions as socketio_exceptions

from chat_client.application.exceptions import ConnectionFailed, TransportTransient
from chat_client.application.ports.channel import ChannelEvent, OnChannelEvent
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
from chat_client.infrastructure.realtime.protocol import (
    InboundMessage,
    error_message,
    parse_user_id,
)

logger = logging.getLogger(__name__)

AUTH_FAILURE_PATTERN = re.compile(
    r"auth|unauthori[sz]ed|invalid token|jwt|token expired", re.IGNORECASE,
)

CLIENT_DISCONNECT = "client disconnect"
SERVER_DISCONNECT = "server disconnect"

_TRANSPORT_ERRORS = (socketio_exceptions.SocketIOError, OSError, asyncio.TimeoutError)

ClientFactory = Callable[[], Any]
Sleep = Callable[[float], Awaitable[None]]


class _Outcome(Enum):
    CONNECTED = "connected"
    TRANSIENT = "transient"
    AUTH_FAILED = "auth_failed"
    STALE = "stale"


def _default_client_factory() -> socketio.AsyncClient:
    return socketio.AsyncClient(reconnection=False, logger=False, engineio_logger=False)


class RealtimeChannel:
    """Implements application.ports.channel.Channel."""

    def __init__(
        self,
        url: str,
        on_event: OnChannelEvent,
        *,
        client_factory: ClientFactory | None = None,
        socketio_path: str = "socket.io",
        transports: list[str] | None = None,
        connect_timeout: float = 10.0,
        max_attempts: int = 5,
        retry_delay: float = 1.0,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._url = url
        self._on_event = on_event
        self._client_factory = client_factory or _default_client_factory
        self._socketio_path = socketio_path
        self._transports = transports or ["websocket", "polling"]
        self._connect_timeout = connect_timeout
        self._max_attempts = max_attempts
        self._retry_delay = retry_delay
        self._sleep = sleep

        self._client: Any = None
        self._token: str | None = None
        self._generation = 0
        self._connected = False
        self._auth_error: str | None = None
        self._last_error: str | None = None
        self._reconnect_task: asyncio.Task[None] | None = None
        self._failed = False

    @property
    def is_open(self) -> bool:
        return self._client is not None

    @property
    def is_connected(self) -> bool:
        return self._connected

    # ---- lifecycle ---------------------------------------------------------

    async def open(self, token: str) -> None:
        """Connect with ``token``; any previously opened connection is closed first."""
        await self.close()
        self._generation += 1
        generation = self._generation
        self._token = token
        self._publish(ConnectionOpening())

        outcome = await self._attempt(generation)
        if outcome is _Outcome.TRANSIENT:
            self._start_reconnect(generation)

    async def close(self) -> None:
        self._generation += 1
        task, self._reconnect_task = self._reconnect_task, None
        if task is not None and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        client, self._client = self._client, None
        self._connected = False
        self._failed = False
        self._token = None
        if client is None:
            return
        try:
            await client.disconnect()
        except _TRANSPORT_ERRORS:
            logger.debug("Error while closing socket", exc_info=True)
        self._publish(Disconnected(CLIENT_DISCONNECT))

    async def emit(self, event: str, payload: dict[str, Any]) -> None:
        if self._failed:
            raise ConnectionFailed(f"Gave up after {self._max_attempts} reconnection attempts")
        client = self._client
        if client is None or not self._connected:
            raise TransportTransient("Not connected")
        try:
            await client.emit(event, payload)
        except _TRANSPORT_ERRORS as exc:
            raise TransportTransient(str(exc) or exc.__class__.__name__) from exc

    # ---- connection attempts ----------------------------------------------

    async def _attempt(self, generation: int) -> _Outcome:
        client = self._client_factory()
        self._client = client
        self._auth_error = None
        self._last_error = None
        self._register_handlers(client, generation)

        try:
            await client.connect(
                self._url,
                auth={"token": self._token},
                transports=self._transports,
                socketio_path=self._socketio_path,
                wait_timeout=self._connect_timeout,
            )
        except _TRANSPORT_ERRORS as exc:
            if generation != self._generation:
                return _Outcome.STALE
            self._client = None
            message = self._auth_error or self._last_error or str(exc) or exc.__class__.__name__
            if self._auth_error is not None or AUTH_FAILURE_PATTERN.search(message):
                self._fail_auth(message)
                return _Outcome.AUTH_FAILED
            logger.warning("Socket connect failed: %s", message)
            self._publish(TransportError(message))
            return _Outcome.TRANSIENT

        if generation != self._generation:
            return _Outcome.STALE
        self._connected = True
        logger.info("Connected to %s", self._url)
        self._publish(Connected())
        return _Outcome.CONNECTED

    def _start_reconnect(self, generation: int) -> None:
        if self._reconnect_task is not None and not self._reconnect_task.done():
            return
        self._reconnect_task = asyncio.create_task(
            self._reconnect(generation), name="realtime-reconnect",
        )

    async def _reconnect(self, generation: int) -> None:
        for attempt in range(1, self._max_attempts + 1):
            if generation != self._generation:
                return
            self._publish(Reconnecting(attempt, self._max_attempts))
            await self._sleep(self._retry_delay)
            if generation != self._generation:
                return
            outcome = await self._attempt(generation)
            if outcome is not _Outcome.TRANSIENT:
                return

        if generation == self._generation:
            logger.error("Giving up after %d reconnection attempts", self._max_attempts)
            self._failed = True
            self._client = None
            self._publish(PermanentFailure(self._max_attempts))

    def _fail_auth(self, message: str) -> None:
        logger.warning("Socket authentication failed: %s", message)
        self._generation += 1
        self._client = None
        self._connected = False
        self._token = None
        self._publish(AuthFailed(message))

    def _publish(self, event: ChannelEvent) -> None:
        self._on_event(event)

    # ---- socket handlers ---------------------------------------------------

    def _register_handlers(self, client: Any, generation: int) -> None:
        def current() -> bool:
            return generation == self._generation

        async def on_connect() -> None:
            logger.debug("Socket namespace connected")

        async def on_disconnect(*args: Any) -> None:
            if not current() or not self._connected:
                return
            self._connected = False
            reason = str(args[0]) if args else "transport close"
            logger.warning("Socket disconnected: %s", reason)
            self._publish(Disconnected(reason))
            if reason == SERVER_DISCONNECT:
                self._client = None
                return
            self._start_reconnect(generation)

        async def on_connect_error(data: Any = None) -> None:
            if not current():
                return
            message = error_message(data)
            if AUTH_FAILURE_PATTERN.search(message):
                self._auth_error = message
            else:
                self._last_error = message

        async def on_message(data: Any) -> None:
            if not current():
                return
            try:
                message = InboundMessage.model_validate(data)
            except pydantic.ValidationError:
                logger.warning("Dropping malformed message payload: %r", data)
                return
            self._publish(MessageReceived(message.to_entity()))

        def presence(online: bool) -> Callable[[Any], Awaitable[None]]:
            async def handler(data: Any) -> None:
                if not current():
                    return
                user_id = parse_user_id(data)
                if user_id is None:
                    logger.warning("Dropping malformed presence payload: %r", data)
                    return
                self._publish(PresenceChanged(user_id, online))

            return handler

        def typing(is_typing: bool) -> Callable[[Any], Awaitable[None]]:
            async def handler(data: Any) -> None:
                if not current():
                    return
                user_id = parse_user_id(data)
                if user_id is None:
                    logger.warning("Dropping malformed typing payload: %r", data)
                    return
                self._publish(TypingChanged(user_id, is_typing))

            return handler

        async def on_delivered(data: Any) -> None:
            if current():
                self._publish(MessageDelivered(data if isinstance(data, dict) else {"id": data}))

        async def on_error(data: Any) -> None:
            if current():
                self._publish(ServerError(error_message(data)))

        client.on("connect", on_connect)
        client.on("disconnect", on_disconnect)
        client.on("connect_error", on_connect_error)
        client.on("message", on_message)
        client.on("user_online", presence(True))
        client.on("user_offline", presence(False))
        client.on("typing_start", typing(True))
        client.on("typing_stop", typing(False))
        client.on("message_delivered", on_delivered)
        client.on("error", on_error)
