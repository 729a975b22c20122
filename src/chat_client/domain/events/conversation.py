from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from chat_client.domain.entities.contact import Contact
from chat_client.domain.entities.message import Message
from chat_client.domain.value_objects.enums import NoticeKind


@dataclass(frozen=True, slots=True)
class ContactsLoaded:
    contacts: tuple[Contact, ...]


@dataclass(frozen=True, slots=True)
class ConversationSelected:
    contact_id: int
    generation: int


@dataclass(frozen=True, slots=True)
class ConversationClosed:
    pass


@dataclass(frozen=True, slots=True)
class MessagesLoaded:
    contact_id: int
    generation: int
    messages: tuple[Message, ...]


@dataclass(frozen=True, slots=True)
class MessageReceived:
    message: Message


@dataclass(frozen=True, slots=True)
class PresenceChanged:
    user_id: int
    online: bool


@dataclass(frozen=True, slots=True)
class TypingChanged:
    user_id: int
    is_typing: bool


@dataclass(frozen=True, slots=True)
class MessageDelivered:
    """Server-side ``message_delivered`` signal, payload passed through as-is."""

    payload: dict[str, Any]


@dataclass(frozen=True, slots=True)
class MessageQueued:
    conversation_id: int
    message: Message


@dataclass(frozen=True, slots=True)
class MessageConfirmed:
    conversation_id: int
    message_id: int | str


@dataclass(frozen=True, slots=True)
class MessageRolledBack:
    conversation_id: int
    message_id: int | str


@dataclass(frozen=True, slots=True)
class ServerError:
    message: str


@dataclass(frozen=True, slots=True)
class NoticeRaised:
    kind: NoticeKind
    text: str


@dataclass(frozen=True, slots=True)
class NoticeDismissed:
    index: int


ConversationEvent = (
    ContactsLoaded
    | ConversationSelected
    | ConversationClosed
    | MessagesLoaded
    | MessageReceived
    | PresenceChanged
    | TypingChanged
    | MessageDelivered
    | MessageQueued
    | MessageConfirmed
    | MessageRolledBack
    | ServerError
    | NoticeRaised
    | NoticeDismissed
)
