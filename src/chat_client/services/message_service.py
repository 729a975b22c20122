"""Optimistic message sending.

The backend gives no per-message acknowledgement, so a sent message is marked
delivered after ``DELIVERY_HEURISTIC_DELAY`` seconds. That is a heuristic,
not an ack. A ``message_delivered`` event naming the provisional id settles it
earlier.
"""
from __future__ import annotations

import logging
from functools import partial
from typing import Any

from chat_client.application.exceptions import SendFailed, TransportTransient
from chat_client.application.ports.channel import Channel
from chat_client.application.ports.clock import Clock, Scheduler, SystemClock, TimerHandle
from chat_client.application.store import Store
from chat_client.domain.entities.message import Message
from chat_client.domain.events.conversation import (
    MessageConfirmed,
    MessageQueued,
    MessageRolledBack,
    NoticeRaised,
)
from chat_client.domain.value_objects.enums import DeliveryStatus, NoticeKind
from chat_client.infrastructure.realtime.protocol import SendMessageFrame
from chat_client.services.typing_service import TypingIndicator

logger = logging.getLogger(__name__)

DELIVERY_HEURISTIC_DELAY = 1.0

_ACK_KEYS = ("tempId", "clientId", "client_msg_id", "id")


class MessageDispatcher:
    def __init__(
        self,
        store: Store,
        channel: Channel,
        scheduler: Scheduler,
        *,
        clock: Clock | None = None,
        typing: TypingIndicator | None = None,
        delivery_delay: float = DELIVERY_HEURISTIC_DELAY,
    ) -> None:
        self._store = store
        self._channel = channel
        self._scheduler = scheduler
        self._clock = clock or SystemClock()
        self._typing = typing
        self._delivery_delay = delivery_delay
        self._last_id = 0
        self._pending: dict[int, tuple[int, TimerHandle]] = {}

    @property
    def pending_ids(self) -> set[int]:
        return set(self._pending)

    async def send(self, conversation_id: int | None, content: str) -> Message | None:
        """Send ``content`` to ``conversation_id``.

        Returns the optimistic message, or ``None`` when a precondition is not
        met (blank text, nothing selected, not connected). Raises SendFailed
        after rolling the message back if the transport refuses it.
        """
        text = content.strip()
        state = self._store.state
        user = state.session.user
        if not text or conversation_id is None or user is None:
            return None
        if not state.connection.is_connected:
            logger.debug("Send rejected: connection is %s", state.connection.phase)
            return None

        if self._typing is not None:
            await self._typing.stop()

        message = Message(
            id=self._next_id(),
            sender_id=user.id,
            receiver_id=conversation_id,
            content=text,
            created_at=self._clock.now(),
            delivery_status=DeliveryStatus.PENDING,
            is_own=True,
        )
        self._store.dispatch(MessageQueued(conversation_id, message))

        frame = SendMessageFrame(receiver_id=conversation_id, content=text)
        try:
            await self._channel.emit("send_message", frame.model_dump(by_alias=True))
        except TransportTransient as exc:
            logger.warning("Send of %s failed: %s", message.id, exc.detail)
            self._store.dispatch(MessageRolledBack(conversation_id, message.id))
            self._store.dispatch(NoticeRaised(NoticeKind.ERROR, "Message could not be sent"))
            raise SendFailed(exc.detail) from exc

        handle = self._scheduler.call_later(
            self._delivery_delay, partial(self._settle, message.id),
        )
        self._pending[message.id] = (conversation_id, handle)
        return message

    def acknowledge(self, payload: dict[str, Any]) -> bool:
        """Settle a pending message named by a ``message_delivered`` payload."""
        for key in _ACK_KEYS:
            value = payload.get(key)
            if isinstance(value, str) and value.isdigit():
                value = int(value)
            if isinstance(value, int) and value in self._pending:
                _conversation_id, handle = self._pending[value]
                handle.cancel()
                self._settle(value)
                return True
        return False

    def cancel_all(self) -> None:
        for _conversation_id, handle in self._pending.values():
            handle.cancel()
        self._pending.clear()

    def _settle(self, message_id: int) -> None:
        entry = self._pending.pop(message_id, None)
        if entry is None:
            return
        conversation_id, _handle = entry
        self._store.dispatch(MessageConfirmed(conversation_id, message_id))

    def _next_id(self) -> int:
        """Time-based provisional id, strictly increasing within the process."""
        millis = int(self._clock.now().timestamp() * 1000)
        self._last_id = max(millis, self._last_id + 1)
        return self._last_id
