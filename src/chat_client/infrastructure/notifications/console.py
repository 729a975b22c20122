"""Terminal stand-ins for the browser Notification and visibility APIs."""
from __future__ import annotations

import logging

from chat_client.domain.value_objects.enums import NotificationPermission


class LogNotifier:
    """Shows notifications as log records on the ``chat_client.notifications`` logger."""

    def __init__(self, permission: NotificationPermission = NotificationPermission.DEFAULT) -> None:
        self._permission = permission
        self._out = logging.getLogger("chat_client.notifications")

    @property
    def permission(self) -> NotificationPermission:
        return self._permission

    def request_permission(self) -> NotificationPermission:
        if self._permission == NotificationPermission.DEFAULT:
            self._permission = NotificationPermission.GRANTED
        return self._permission

    def show(self, title: str, body: str, *, icon: str | None = None) -> None:
        self._out.info("%s: %s", title, body)


class StaticVisibility:
    def __init__(self, visible: bool = True) -> None:
        self.visible = visible

    def is_visible(self) -> bool:
        return self.visible
