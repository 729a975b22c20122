from __future__ import annotations

import logging

from chat_client.application.exceptions import LoadFailed
from chat_client.application.ports.api import ChatApi
from chat_client.application.ports.credentials import CredentialStore
from chat_client.application.store import Store
from chat_client.domain.entities.contact import Contact
from chat_client.domain.events.conversation import (
    ContactsLoaded,
    ConversationClosed,
    ConversationSelected,
    MessagesLoaded,
    NoticeRaised,
)
from chat_client.domain.value_objects.enums import NoticeKind

logger = logging.getLogger(__name__)


async def load_contacts(api: ChatApi, credentials: CredentialStore, store: Store) -> list[Contact]:
    """Fetch the contact list; on failure the list is left empty and a notice is raised.

    A response that arrives after the session token changed (logout, forced
    logout or a new login) is dropped.
    """
    token = await credentials.get_token()
    try:
        if not token:
            raise LoadFailed("Not authenticated")
        contacts = await api.list_users(token)
    except LoadFailed as exc:
        if token and await credentials.get_token() != token:
            return []
        logger.error("Failed to load users: %s", exc.detail)
        store.dispatch(ContactsLoaded(()))
        store.dispatch(NoticeRaised(NoticeKind.ERROR, "Failed to load users. Please try again."))
        return []
    if await credentials.get_token() != token:
        logger.debug("Discarding contact list loaded for a replaced session")
        return []
    store.dispatch(ContactsLoaded(tuple(contacts)))
    return contacts


class ConversationLoader:
    """Loads message history for the selected contact.

    Every selection takes a new generation number; a response that arrives
    after a newer selection is dropped by the reducer.
    """

    def __init__(self, api: ChatApi, credentials: CredentialStore, store: Store) -> None:
        self._api = api
        self._credentials = credentials
        self._store = store
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    async def select(self, contact_id: int) -> None:
        self._generation += 1
        generation = self._generation
        self._store.dispatch(ConversationSelected(contact_id, generation))

        user = self._store.state.session.user
        token = await self._credentials.get_token()
        try:
            if not token:
                raise LoadFailed("Not authenticated")
            messages = await self._api.list_messages(
                token, contact_id, me=user.id if user else None,
            )
        except LoadFailed as exc:
            logger.error("Failed to load messages for %s: %s", contact_id, exc.detail)
            if generation == self._generation:
                self._store.dispatch(MessagesLoaded(contact_id, generation, ()))
                self._store.dispatch(
                    NoticeRaised(NoticeKind.ERROR, "Failed to load messages. Please try again."),
                )
            return
        self._store.dispatch(MessagesLoaded(contact_id, generation, tuple(messages)))

    def close(self) -> None:
        self._generation += 1
        self._store.dispatch(ConversationClosed())
