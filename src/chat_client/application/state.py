"""Explicit client state.

``AppState`` is owned by the controller's ``Store`` and is only changed by the
reducer in ``chat_client.application.store``. Views read it, they never write.
"""
from __future__ import annotations

from dataclasses import dataclass, field

from chat_client.domain.entities.contact import Contact
from chat_client.domain.entities.message import Message
from chat_client.domain.entities.notice import Notice
from chat_client.domain.entities.user import UserProfile
from chat_client.domain.value_objects.enums import ConnectionPhase, SessionStatus


@dataclass(slots=True)
class Session:
    status: SessionStatus = SessionStatus.ANONYMOUS
    user: UserProfile | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.status == SessionStatus.AUTHENTICATED


@dataclass(slots=True)
class ConnectionState:
    phase: ConnectionPhase = ConnectionPhase.DISCONNECTED
    attempt: int = 0
    max_attempts: int = 0
    reason: str | None = None

    @property
    def is_connected(self) -> bool:
        return self.phase == ConnectionPhase.CONNECTED


@dataclass(slots=True)
class ConversationState:
    contacts: dict[int, Contact] = field(default_factory=dict)
    messages: dict[int, list[Message]] = field(default_factory=dict)
    online: set[int] = field(default_factory=set)
    typing: set[int] = field(default_factory=set)
    selected_id: int | None = None
    load_generation: int = 0

    def thread(self, contact_id: int) -> list[Message]:
        return self.messages.setdefault(contact_id, [])


@dataclass(slots=True)
class AppState:
    session: Session = field(default_factory=Session)
    connection: ConnectionState = field(default_factory=ConnectionState)
    conversations: ConversationState = field(default_factory=ConversationState)
    notices: list[Notice] = field(default_factory=list)

    @property
    def selected_contact(self) -> Contact | None:
        selected = self.conversations.selected_id
        if selected is None:
            return None
        return self.conversations.contacts.get(selected)

    @property
    def current_messages(self) -> list[Message]:
        selected = self.conversations.selected_id
        if selected is None:
            return []
        return self.conversations.messages.get(selected, [])
