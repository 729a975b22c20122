"""Application controller: the single owner of the client state."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Coroutine

from chat_client.application.dto.auth import LoginResult, SessionResult
from chat_client.application.exceptions import AppError, TransportAuthFailure
from chat_client.application.ports.api import ChatApi
from chat_client.application.ports.channel import Channel, ChannelEvent, OnChannelEvent
from chat_client.application.ports.clock import Clock, Scheduler, SystemClock
from chat_client.application.ports.credentials import CredentialStore
from chat_client.application.ports.notifications import Notifier, PushSubscriber, VisibilityProbe
from chat_client.application.state import AppState
from chat_client.application.store import Store
from chat_client.domain.entities.contact import Contact
from chat_client.domain.entities.message import Message
from chat_client.domain.entities.user import Credential
from chat_client.domain.events.connection import AuthFailed, PermanentFailure
from chat_client.domain.events.conversation import MessageDelivered, NoticeDismissed, NoticeRaised
from chat_client.domain.value_objects.enums import NoticeKind
from chat_client.infrastructure.auth.token_inspector import TokenInspector
from chat_client.services import auth_service, conversation_service
from chat_client.services.conversation_service import ConversationLoader
from chat_client.services.message_service import DELIVERY_HEURISTIC_DELAY, MessageDispatcher
from chat_client.services.notification_service import NotificationBridge
from chat_client.services.push_service import PushService
from chat_client.services.session_validator import SessionValidator
from chat_client.services.typing_service import RemoteTypingTracker, TypingIndicator

logger = logging.getLogger(__name__)

ChannelFactory = Callable[[OnChannelEvent], Channel]


class ChatController:
    def __init__(
        self,
        *,
        api: ChatApi,
        credentials: CredentialStore,
        channel_factory: ChannelFactory,
        scheduler: Scheduler,
        notifier: Notifier,
        visibility: VisibilityProbe,
        push_subscriber: PushSubscriber | None = None,
        clock: Clock | None = None,
        inspector: TokenInspector | None = None,
        delivery_delay: float = DELIVERY_HEURISTIC_DELAY,
        typing_debounce: float = 2.0,
        typing_expiry: float = 2.0,
        notification_body_limit: int = 50,
        record_events: bool = False,
    ) -> None:
        clock = clock or SystemClock()
        self._api = api
        self._credentials = credentials

        self.store = Store(record=record_events)
        self.channel = channel_factory(self._on_channel_event)
        self.typing = TypingIndicator(self.channel, scheduler, debounce=typing_debounce)
        self.dispatcher = MessageDispatcher(
            self.store,
            self.channel,
            scheduler,
            clock=clock,
            typing=self.typing,
            delivery_delay=delivery_delay,
        )
        self.validator = SessionValidator(
            api, credentials, self.store, clock=clock, inspector=inspector,
        )
        self.conversations = ConversationLoader(api, credentials, self.store)
        self.notifications = NotificationBridge(
            notifier, visibility, body_limit=notification_body_limit,
        )
        self.remote_typing = RemoteTypingTracker(self.store, scheduler, expiry=typing_expiry)
        self.push = PushService(api, push_subscriber)

        self.store.subscribe(self.notifications)
        self.store.subscribe(self.remote_typing)

        self._validation: asyncio.Task[SessionResult] | None = None
        self._tasks: set[asyncio.Task[Any]] = set()
        # Bumped whenever the session ends; work started before compares against it.
        self._epoch = 0

    @property
    def state(self) -> AppState:
        return self.store.state

    # ---- session -----------------------------------------------------------

    async def start(self) -> SessionResult | None:
        """Restore the stored session.

        Cached identity is applied before this returns; the server check keeps
        running in the background (see ``wait_ready``).
        """
        self.notifications.prepare()
        credential = await self._credentials.load()
        early = await self.validator.begin(credential)
        if early is not None:
            return early
        assert credential is not None
        self._validation = asyncio.create_task(
            self._complete_validation(credential), name="session-validation",
        )
        return None

    async def wait_ready(self) -> SessionResult | None:
        if self._validation is None:
            return None
        return await self._validation

    async def _complete_validation(self, credential: Credential) -> SessionResult:
        result = await self.validator.confirm(credential)
        if result.may_connect:
            await self._go_online(credential.token)
        return result

    async def login(self, email: str, password: str) -> LoginResult:
        await self._cancel_validation()
        try:
            result = await auth_service.login(
                email, password, self._api, self._credentials, self.store,
            )
        except AppError as exc:
            self._notice(exc.detail or "Operation failed")
            raise
        if not await self._go_online(result.token):
            logger.info("Session ended while going online, skipping push setup")
            return result
        self._spawn(self.push.register(result.token, result.vapid_public_key))
        return result

    async def register(self, username: str, email: str, password: str) -> None:
        try:
            await auth_service.register(username, email, password, self._api, self.store)
        except AppError as exc:
            self._notice(exc.detail or "Operation failed")
            raise

    async def logout(self, reason: str = "logout") -> None:
        self._epoch += 1
        await self._cancel_validation()
        self.typing.reset()
        self.remote_typing.reset()
        self.dispatcher.cancel_all()
        await self.channel.close()
        await auth_service.logout(self._credentials, self.store, reason)

    async def _go_online(self, token: str) -> bool:
        """Open the channel and load contacts; False if the session ended meanwhile."""
        epoch = self._epoch
        await self.channel.open(token)
        if epoch != self._epoch:
            return False
        await self.load_contacts()
        return epoch == self._epoch

    async def _force_logout(self, error: TransportAuthFailure) -> None:
        logger.warning("Realtime channel rejected the session: %s", error.detail)
        await self.logout(reason=f"realtime authentication failed: {error.detail}")
        self._notice("Your session has expired. Please log in again.")

    async def _cancel_validation(self) -> None:
        task, self._validation = self._validation, None
        if task is None or task.done() or task is asyncio.current_task():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    # ---- conversations -----------------------------------------------------

    async def load_contacts(self) -> list[Contact]:
        return await conversation_service.load_contacts(self._api, self._credentials, self.store)

    async def select_conversation(self, contact_id: int) -> None:
        await self.typing.stop()
        await self.conversations.select(contact_id)

    async def back_to_contacts(self) -> None:
        await self.typing.stop()
        self.conversations.close()

    async def send_message(self, content: str) -> Message | None:
        return await self.dispatcher.send(self.state.conversations.selected_id, content)

    async def input_changed(self, text: str) -> None:
        selected = self.state.conversations.selected_id
        if selected is None or not self.state.connection.is_connected:
            return
        if text.strip():
            await self.typing.mark_typing(selected)
        else:
            await self.typing.stop()

    def dismiss_notice(self, index: int) -> None:
        self.store.dispatch(NoticeDismissed(index))

    async def close(self) -> None:
        await self._cancel_validation()
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        await self.typing.aclose()
        self.remote_typing.reset()
        self.dispatcher.cancel_all()
        await self.channel.close()
        await self._api.aclose()
        await self._credentials.aclose()

    # ---- plumbing ----------------------------------------------------------

    def _on_channel_event(self, event: ChannelEvent) -> None:
        self.store.dispatch(event)
        if isinstance(event, MessageDelivered):
            self.dispatcher.acknowledge(event.payload)
        elif isinstance(event, AuthFailed):
            self._epoch += 1
            self._spawn(self._force_logout(TransportAuthFailure(event.message)))
        elif isinstance(event, PermanentFailure):
            self._notice("Connection to the chat server lost. Log in again to reconnect.")

    def _notice(self, text: str, kind: NoticeKind = NoticeKind.ERROR) -> None:
        self.store.dispatch(NoticeRaised(kind, text))

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> None:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
