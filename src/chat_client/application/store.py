"""Single synchronous dispatcher for every client state transition.

All inputs (user actions, REST results, channel callbacks, timers) reach the
state as events through ``Store.dispatch``. Handlers run to completion before
the next event is applied, so a recorded event log replays to the same state.
"""
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Callable, Iterable

from chat_client.application.state import AppState, ConnectionState, ConversationState, Session
from chat_client.domain.entities.contact import Contact
from chat_client.domain.entities.notice import Notice
from chat_client.domain.events.connection import (
    AuthFailed,
    Connected,
    ConnectionEvent,
    ConnectionOpening,
    Disconnected,
    PermanentFailure,
    Reconnecting,
    TransportError,
)
from chat_client.domain.events.conversation import (
    ContactsLoaded,
    ConversationClosed,
    ConversationEvent,
    ConversationSelected,
    MessageConfirmed,
    MessageDelivered,
    MessageQueued,
    MessageReceived,
    MessageRolledBack,
    MessagesLoaded,
    NoticeDismissed,
    NoticeRaised,
    PresenceChanged,
    ServerError,
    TypingChanged,
)
from chat_client.domain.events.session import (
    LoginSucceeded,
    SessionCleared,
    SessionEvent,
    SessionRestored,
    SessionValidated,
    ValidationDeferred,
    ValidationStarted,
)
from chat_client.domain.value_objects.enums import (
    ConnectionPhase,
    DeliveryStatus,
    NoticeKind,
    SessionStatus,
)

logger = logging.getLogger(__name__)

Event = SessionEvent | ConnectionEvent | ConversationEvent
Listener = Callable[[Event, AppState], None]


# ---- session ---------------------------------------------------------------


def _session_restored(state: AppState, event: SessionRestored) -> None:
    state.session = Session(SessionStatus.AUTHENTICATED, event.user)


def _validation_started(state: AppState, _event: ValidationStarted) -> None:
    state.session = Session(SessionStatus.PENDING_VALIDATION, None)


def _session_validated(state: AppState, event: SessionValidated) -> None:
    state.session = Session(SessionStatus.AUTHENTICATED, event.user)


def _validation_deferred(_state: AppState, event: ValidationDeferred) -> None:
    logger.info("Session validation deferred: %s", event.reason)


def _login_succeeded(state: AppState, event: LoginSucceeded) -> None:
    state.session = Session(SessionStatus.AUTHENTICATED, event.user)
    state.conversations = ConversationState()


def _session_cleared(state: AppState, event: SessionCleared) -> None:
    logger.info("Session cleared: %s", event.reason)
    state.session = Session()
    state.connection = ConnectionState()
    state.conversations = ConversationState()


# ---- connection ------------------------------------------------------------


def _connection_opening(state: AppState, _event: ConnectionOpening) -> None:
    state.connection = ConnectionState(ConnectionPhase.CONNECTING)


def _connected(state: AppState, _event: Connected) -> None:
    state.connection = ConnectionState(ConnectionPhase.CONNECTED)


def _disconnected(state: AppState, event: Disconnected) -> None:
    state.connection = ConnectionState(ConnectionPhase.DISCONNECTED, reason=event.reason)


def _reconnecting(state: AppState, event: Reconnecting) -> None:
    state.connection = ConnectionState(
        ConnectionPhase.RECONNECTING,
        attempt=event.attempt,
        max_attempts=event.max_attempts,
        reason=state.connection.reason,
    )


def _transport_error(state: AppState, event: TransportError) -> None:
    state.connection = replace(state.connection, phase=ConnectionPhase.ERROR, reason=event.message)


def _auth_failed(state: AppState, event: AuthFailed) -> None:
    state.connection = ConnectionState(ConnectionPhase.DISCONNECTED, reason=event.message)


def _permanent_failure(state: AppState, event: PermanentFailure) -> None:
    state.connection = ConnectionState(
        ConnectionPhase.FAILED,
        attempt=event.attempts,
        max_attempts=event.attempts,
        reason=state.connection.reason,
    )


# ---- conversations ---------------------------------------------------------


def _contacts_loaded(state: AppState, event: ContactsLoaded) -> None:
    online = state.conversations.online
    state.conversations.contacts = {
        c.id: Contact(c.id, c.username, online=c.id in online) for c in event.contacts
    }


def _conversation_selected(state: AppState, event: ConversationSelected) -> None:
    convs = state.conversations
    convs.selected_id = event.contact_id
    convs.load_generation = event.generation


def _conversation_closed(state: AppState, _event: ConversationClosed) -> None:
    state.conversations.selected_id = None


def _messages_loaded(state: AppState, event: MessagesLoaded) -> None:
    convs = state.conversations
    if event.generation != convs.load_generation or event.contact_id != convs.selected_id:
        logger.debug(
            "Discarding stale message load for %s (generation %d, current %d)",
            event.contact_id, event.generation, convs.load_generation,
        )
        return
    pending = [m for m in convs.messages.get(event.contact_id, []) if m.is_pending]
    convs.messages[event.contact_id] = [replace(m) for m in event.messages] + pending


def _message_received(state: AppState, event: MessageReceived) -> None:
    msg = event.message
    me = state.session.user.id if state.session.user else None
    if msg.sender_id == me and msg.receiver_id is not None:
        conversation_id = msg.receiver_id
    else:
        conversation_id = msg.sender_id
    state.conversations.thread(conversation_id).append(replace(msg, is_own=msg.sender_id == me))


def _presence_changed(state: AppState, event: PresenceChanged) -> None:
    convs = state.conversations
    if event.online:
        convs.online.add(event.user_id)
    else:
        convs.online.discard(event.user_id)
    contact = convs.contacts.get(event.user_id)
    if contact is not None:
        contact.online = event.online


def _typing_changed(state: AppState, event: TypingChanged) -> None:
    if event.is_typing:
        state.conversations.typing.add(event.user_id)
    else:
        state.conversations.typing.discard(event.user_id)


def _message_delivered(_state: AppState, event: MessageDelivered) -> None:
    logger.debug("Message delivered: %s", event.payload)


def _message_queued(state: AppState, event: MessageQueued) -> None:
    state.conversations.thread(event.conversation_id).append(replace(event.message))


def _message_confirmed(state: AppState, event: MessageConfirmed) -> None:
    for msg in state.conversations.messages.get(event.conversation_id, []):
        if msg.id == event.message_id and msg.is_pending:
            msg.delivery_status = DeliveryStatus.DELIVERED
            return


def _message_rolled_back(state: AppState, event: MessageRolledBack) -> None:
    thread = state.conversations.messages.get(event.conversation_id, [])
    for i, msg in enumerate(thread):
        if msg.id == event.message_id and msg.is_pending:
            del thread[i]
            return


def _server_error(state: AppState, event: ServerError) -> None:
    state.notices.append(Notice(NoticeKind.ERROR, event.message))


def _notice_raised(state: AppState, event: NoticeRaised) -> None:
    state.notices.append(Notice(event.kind, event.text))


def _notice_dismissed(state: AppState, event: NoticeDismissed) -> None:
    if 0 <= event.index < len(state.notices):
        del state.notices[event.index]


_HANDLERS: dict[type, Callable[[AppState, Any], None]] = {
    SessionRestored: _session_restored,
    ValidationStarted: _validation_started,
    SessionValidated: _session_validated,
    ValidationDeferred: _validation_deferred,
    LoginSucceeded: _login_succeeded,
    SessionCleared: _session_cleared,
    ConnectionOpening: _connection_opening,
    Connected: _connected,
    Disconnected: _disconnected,
    Reconnecting: _reconnecting,
    TransportError: _transport_error,
    AuthFailed: _auth_failed,
    PermanentFailure: _permanent_failure,
    ContactsLoaded: _contacts_loaded,
    ConversationSelected: _conversation_selected,
    ConversationClosed: _conversation_closed,
    MessagesLoaded: _messages_loaded,
    MessageReceived: _message_received,
    PresenceChanged: _presence_changed,
    TypingChanged: _typing_changed,
    MessageDelivered: _message_delivered,
    MessageQueued: _message_queued,
    MessageConfirmed: _message_confirmed,
    MessageRolledBack: _message_rolled_back,
    ServerError: _server_error,
    NoticeRaised: _notice_raised,
    NoticeDismissed: _notice_dismissed,
}


def apply(state: AppState, event: Event) -> AppState:
    handler = _HANDLERS.get(type(event))
    if handler is None:
        raise TypeError(f"Unknown event type: {type(event).__name__}")
    handler(state, event)
    return state


def replay(events: Iterable[Event], state: AppState | None = None) -> AppState:
    """Rebuild a state by applying ``events`` in order."""
    state = state if state is not None else AppState()
    for event in events:
        apply(state, event)
    return state


class Store:
    """Owns the ``AppState`` and fans applied events out to listeners."""

    def __init__(self, state: AppState | None = None, *, record: bool = False) -> None:
        self._state = state if state is not None else AppState()
        self._listeners: list[Listener] = []
        self._record = record
        self.history: list[Event] = []

    @property
    def state(self) -> AppState:
        return self._state

    def dispatch(self, event: Event) -> AppState:
        apply(self._state, event)
        if self._record:
            self.history.append(event)
        for listener in list(self._listeners):
            try:
                listener(event, self._state)
            except Exception:
                logger.exception("Store listener failed on %s", type(event).__name__)
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe
