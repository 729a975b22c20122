from __future__ import annotations

from typing import Any, Protocol

from chat_client.domain.value_objects.enums import NotificationPermission


class Notifier(Protocol):
    @property
    def permission(self) -> NotificationPermission: ...

    def request_permission(self) -> NotificationPermission: ...

    def show(self, title: str, body: str, *, icon: str | None = None) -> None: ...


class VisibilityProbe(Protocol):
    def is_visible(self) -> bool: ...


class PushSubscriber(Protocol):
    """Browser-side push manager: turns an application server key into a subscription."""

    async def subscribe(self, application_server_key: bytes) -> dict[str, Any]: ...
