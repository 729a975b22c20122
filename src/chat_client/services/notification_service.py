from __future__ import annotations

import logging

from chat_client.application.ports.notifications import Notifier, VisibilityProbe
from chat_client.application.state import AppState
from chat_client.application.store import Event
from chat_client.domain.events.conversation import MessageReceived
from chat_client.domain.value_objects.enums import NotificationPermission

logger = logging.getLogger(__name__)

NOTIFICATION_ICON = "/favicon.ico"


def truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[: max(limit - 1, 0)] + "…"


class NotificationBridge:
    """Store listener that raises a desktop notification for background messages."""

    def __init__(
        self,
        notifier: Notifier,
        visibility: VisibilityProbe,
        *,
        body_limit: int = 50,
    ) -> None:
        self._notifier = notifier
        self._visibility = visibility
        self._body_limit = body_limit

    def prepare(self) -> None:
        try:
            if self._notifier.permission == NotificationPermission.DEFAULT:
                granted = self._notifier.request_permission()
                logger.info("Notification permission: %s", granted)
        except Exception:
            logger.exception("Notification permission request failed")

    def __call__(self, event: Event, state: AppState) -> None:
        if not isinstance(event, MessageReceived):
            return
        message = event.message
        me = state.session.user
        if me is not None and message.sender_id == me.id:
            return
        if self._visibility.is_visible():
            return
        if self._notifier.permission != NotificationPermission.GRANTED:
            return

        sender = state.conversations.contacts.get(message.sender_id)
        title = f"New message from {sender.username if sender else 'Someone'}"
        try:
            self._notifier.show(
                title, truncate(message.content, self._body_limit), icon=NOTIFICATION_ICON,
            )
        except Exception:
            logger.exception("Failed to display notification")
