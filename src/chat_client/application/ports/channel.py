from __future__ import annotations

from typing import Any, Callable, Protocol

from chat_client.domain.events.connection import ConnectionEvent
from chat_client.domain.events.conversation import ConversationEvent

ChannelEvent = ConnectionEvent | ConversationEvent
OnChannelEvent = Callable[[ChannelEvent], None]


class Channel(Protocol):
    @property
    def is_open(self) -> bool: ...

    async def open(self, token: str) -> None: ...

    async def close(self) -> None: ...

    async def emit(self, event: str, payload: dict[str, Any]) -> None:
        """Raise TransportTransient when the frame cannot be handed to the transport."""
        ...
