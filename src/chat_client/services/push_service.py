"""Web push: subscription setup and the service-worker side of delivery."""
from __future__ import annotations

import base64
import binascii
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable

from chat_client.application.ports.api import ChatApi
from chat_client.application.ports.notifications import PushSubscriber

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Chat App"
DEFAULT_BODY = "You have a new message"
PUSH_ICON = "/icon-192x192.png"
PUSH_BADGE = "/icon-72x72.png"


def decode_vapid_key(key: str) -> bytes:
    """URL-safe base64 (padding optional) → raw application server key."""
    padded = key + "=" * ((4 - len(key) % 4) % 4)
    try:
        return base64.urlsafe_b64decode(padded.encode())
    except (binascii.Error, ValueError) as exc:
        raise ValueError(f"Invalid VAPID key: {exc}") from exc


@dataclass(frozen=True, slots=True)
class PushNotification:
    title: str
    body: str
    icon: str = PUSH_ICON
    badge: str = PUSH_BADGE
    data: dict[str, Any] = field(default_factory=dict)


def build_push_notification(raw: bytes | str | None) -> PushNotification:
    data: dict[str, Any] = {}
    if raw:
        try:
            parsed = json.loads(raw)
        except ValueError:
            logger.warning("Ignoring non-JSON push payload")
        else:
            if isinstance(parsed, dict):
                data = parsed
    return PushNotification(
        title=data.get("title") or DEFAULT_TITLE,
        body=data.get("body") or DEFAULT_BODY,
        data=data,
    )


def handle_notification_click(
    windows: Iterable[Any],
    open_window: Callable[[str], Any] | None = None,
) -> Any:
    """Focus the first window that can be focused, otherwise open the app."""
    for window in windows:
        focus = getattr(window, "focus", None)
        if callable(focus):
            return focus()
    if open_window is not None:
        return open_window("/")
    return None


class PushService:
    def __init__(self, api: ChatApi, subscriber: PushSubscriber | None = None) -> None:
        self._api = api
        self._subscriber = subscriber

    async def register(self, token: str, vapid_public_key: str | None) -> bool:
        if self._subscriber is None or not vapid_public_key:
            logger.debug("Push notifications unavailable, skipping subscription")
            return False
        try:
            key = decode_vapid_key(vapid_public_key)
            subscription = await self._subscriber.subscribe(key)
            await self._api.subscribe(token, subscription)
        except Exception:
            logger.exception("Push notification setup failed")
            return False
        logger.info("Push subscription registered")
        return True
