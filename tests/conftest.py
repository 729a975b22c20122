"""Shared test fixtures."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable

import jwt
import pytest

from chat_client.application.dto.auth import LoginResult
from chat_client.application.exceptions import (
    AppError,
    ConnectionFailed,
    LoadFailed,
    TransportTransient,
)
from chat_client.application.ports.channel import ChannelEvent, OnChannelEvent
from chat_client.domain.entities.contact import Contact
from chat_client.domain.entities.message import Message
from chat_client.domain.entities.user import Credential, UserProfile
from chat_client.domain.events.connection import (
    AuthFailed,
    Connected,
    ConnectionOpening,
    Disconnected,
    PermanentFailure,
)
from chat_client.domain.value_objects.enums import DeliveryStatus, NotificationPermission

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def make_user(user_id: int = 1, username: str = "a", email: str | None = None) -> UserProfile:
    return UserProfile(id=user_id, username=username, email=email)


def make_message(
    *,
    message_id: int | str = 100,
    sender_id: int = 2,
    receiver_id: int | None = 1,
    content: str = "hello",
    created_at: datetime | None = None,
    delivery_status: DeliveryStatus = DeliveryStatus.DELIVERED,
    is_own: bool = False,
) -> Message:
    return Message(
        id=message_id,
        sender_id=sender_id,
        receiver_id=receiver_id,
        content=content,
        created_at=created_at or NOW,
        delivery_status=delivery_status,
        is_own=is_own,
    )


def make_token(exp: datetime | None = None, sub: int = 1) -> str:
    claims: dict[str, Any] = {"sub": str(sub)}
    if exp is not None:
        claims["exp"] = int(exp.timestamp())
    return jwt.encode(claims, "test-secret", algorithm="HS256")


@pytest.fixture
def user() -> UserProfile:
    return make_user()


# ---- clock and timers ------------------------------------------------------


@dataclass
class FakeClock:
    current: datetime = NOW

    def now(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += timedelta(seconds=seconds)


@dataclass
class FakeTimer:
    due: float
    callback: Callable[[], None]
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True


@dataclass
class FakeScheduler:
    """Manual timers: callbacks only run inside ``advance``."""

    now: float = 0.0
    timers: list[FakeTimer] = field(default_factory=list)

    def call_later(self, delay: float, callback: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(self.now + delay, callback)
        self.timers.append(timer)
        return timer

    @property
    def active(self) -> list[FakeTimer]:
        return [t for t in self.timers if not t.cancelled]

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = sorted(
                (t for t in self.timers if not t.cancelled and t.due <= target),
                key=lambda t: t.due,
            )
            if not due:
                break
            timer = due[0]
            self.timers.remove(timer)
            self.now = timer.due
            timer.callback()
        self.now = target


# ---- ports -----------------------------------------------------------------


@dataclass
class FakeCredentialStore:
    token: str | None = None
    user: UserProfile | None = None
    saves: int = 0
    closed: bool = False

    async def load(self) -> Credential | None:
        if not self.token:
            return None
        return Credential(token=self.token, user=self.user)

    async def get_token(self) -> str | None:
        return self.token

    async def save(self, token: str, user: UserProfile) -> None:
        self.token = token
        self.user = user
        self.saves += 1

    async def update_user(self, user: UserProfile) -> None:
        self.user = user

    async def clear(self) -> None:
        self.token = None
        self.user = None

    async def aclose(self) -> None:
        self.closed = True


@dataclass
class FakeApi:
    login_result: LoginResult | None = None
    login_error: AppError | None = None
    register_error: AppError | None = None
    profile: UserProfile | None = None
    validate_error: AppError | None = None
    contacts: list[Contact] = field(default_factory=list)
    messages: dict[int, list[Message]] = field(default_factory=dict)
    fail_loads: bool = False
    subscriptions: list[dict[str, Any]] = field(default_factory=list)
    calls: list[tuple[str, Any]] = field(default_factory=list)
    before_validate: Callable[[], Awaitable[None]] | None = None
    closed: bool = False

    async def login(self, email: str, password: str) -> LoginResult:
        self.calls.append(("login", email))
        if self.login_error is not None:
            raise self.login_error
        assert self.login_result is not None
        return self.login_result

    async def register(self, username: str, email: str, password: str) -> None:
        self.calls.append(("register", username))
        if self.register_error is not None:
            raise self.register_error

    async def validate(self, token: str) -> UserProfile:
        self.calls.append(("validate", token))
        if self.before_validate is not None:
            await self.before_validate()
        if self.validate_error is not None:
            raise self.validate_error
        assert self.profile is not None
        return self.profile

    async def list_users(self, token: str) -> list[Contact]:
        self.calls.append(("list_users", token))
        if self.fail_loads:
            raise LoadFailed("Failed to load users")
        return [Contact(c.id, c.username) for c in self.contacts]

    async def list_messages(self, token: str, user_id: int, *, me: int | None = None) -> list[Message]:
        self.calls.append(("list_messages", user_id))
        if self.fail_loads:
            raise LoadFailed("Failed to load messages")
        return list(self.messages.get(user_id, []))

    async def subscribe(self, token: str, subscription: dict[str, Any]) -> None:
        self.subscriptions.append(subscription)

    async def aclose(self) -> None:
        self.closed = True


@dataclass
class FakeChannel:
    """In-memory channel; ``open`` connects at once unless told otherwise."""

    on_event: OnChannelEvent
    opened: list[str] = field(default_factory=list)
    emitted: list[tuple[str, dict[str, Any]]] = field(default_factory=list)
    reject_token: str | None = None
    fail_emit: bool = False
    failed: bool = False
    _open: bool = False

    @property
    def is_open(self) -> bool:
        return self._open

    def publish(self, event: ChannelEvent) -> None:
        self.on_event(event)

    async def open(self, token: str) -> None:
        await self.close()
        self.opened.append(token)
        self.publish(ConnectionOpening())
        if token == self.reject_token:
            self.publish(AuthFailed("invalid token"))
            return
        self._open = True
        self.publish(Connected())

    async def close(self) -> None:
        if self._open:
            self._open = False
            self.publish(Disconnected("client disconnect"))

    def give_up(self, attempts: int = 5) -> None:
        self._open = False
        self.failed = True
        self.publish(PermanentFailure(attempts))

    async def emit(self, event: str, payload: dict[str, Any]) -> None:
        if self.failed:
            raise ConnectionFailed("gave up")
        if not self._open or self.fail_emit:
            raise TransportTransient("Not connected")
        self.emitted.append((event, payload))


@dataclass
class FakeNotifier:
    permission: NotificationPermission = NotificationPermission.GRANTED
    shown: list[tuple[str, str, str | None]] = field(default_factory=list)
    requests: int = 0
    fail: bool = False

    def request_permission(self) -> NotificationPermission:
        self.requests += 1
        self.permission = NotificationPermission.GRANTED
        return self.permission

    def show(self, title: str, body: str, *, icon: str | None = None) -> None:
        if self.fail:
            raise RuntimeError("notification backend unavailable")
        self.shown.append((title, body, icon))


@dataclass
class FakeVisibility:
    visible: bool = False

    def is_visible(self) -> bool:
        return self.visible


@dataclass
class FakePushSubscriber:
    keys: list[bytes] = field(default_factory=list)
    subscription: dict[str, Any] = field(
        default_factory=lambda: {"endpoint": "https://push.example/abc", "keys": {}},
    )

    async def subscribe(self, application_server_key: bytes) -> dict[str, Any]:
        self.keys.append(application_server_key)
        return self.subscription


# ---- socket.io client double -----------------------------------------------


@dataclass
class FakeSocketClient:
    """Stands in for ``socketio.AsyncClient``.

    ``outcome`` is ``None`` for a successful connect, otherwise an exception
    to raise from ``connect``; ``connect_error`` is delivered to the
    ``connect_error`` handler just before raising.
    """

    outcome: BaseException | None = None
    connect_error: Any = None
    handlers: dict[str, Callable[..., Any]] = field(default_factory=dict)
    connect_kwargs: dict[str, Any] = field(default_factory=dict)
    emitted: list[tuple[str, Any]] = field(default_factory=list)
    disconnected: bool = False

    def on(self, event: str, handler: Callable[..., Any]) -> None:
        self.handlers[event] = handler

    async def connect(self, url: str, **kwargs: Any) -> None:
        self.connect_kwargs = {"url": url, **kwargs}
        if self.outcome is not None:
            if self.connect_error is not None:
                await self.handlers["connect_error"](self.connect_error)
            raise self.outcome
        await self.handlers["connect"]()

    async def emit(self, event: str, data: Any = None) -> None:
        self.emitted.append((event, data))

    async def disconnect(self) -> None:
        self.disconnected = True

    async def trigger(self, event: str, *args: Any) -> None:
        await self.handlers[event](*args)
