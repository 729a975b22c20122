from __future__ import annotations

import logging

from chat_client.application.ports.channel import OnChannelEvent
from chat_client.application.ports.clock import AsyncioScheduler
from chat_client.application.ports.notifications import PushSubscriber
from chat_client.config import Settings, settings
from chat_client.controller import ChatController
from chat_client.infrastructure.api.http_client import HttpChatApi
from chat_client.infrastructure.db.repositories.credential_store import SqlCredentialStore
from chat_client.infrastructure.db.session import (
    create_credentials_engine,
    create_schema,
    make_session_factory,
)
from chat_client.infrastructure.notifications.console import LogNotifier, StaticVisibility
from chat_client.infrastructure.realtime.channel import RealtimeChannel

logger = logging.getLogger(__name__)


async def create_controller(
    config: Settings = settings,
    *,
    push_subscriber: PushSubscriber | None = None,
) -> ChatController:
    engine = create_credentials_engine(config.CREDENTIALS_DB_URL)
    await create_schema(engine)
    credentials = SqlCredentialStore(make_session_factory(engine), engine)
    api = HttpChatApi(config.api_base_url)

    def channel_factory(on_event: OnChannelEvent) -> RealtimeChannel:
        return RealtimeChannel(
            config.api_base_url,
            on_event,
            socketio_path=config.SOCKET_PATH,
            transports=config.SOCKET_TRANSPORTS,
            connect_timeout=config.SOCKET_CONNECT_TIMEOUT,
            max_attempts=config.SOCKET_RECONNECT_ATTEMPTS,
            retry_delay=config.SOCKET_RECONNECT_DELAY,
        )

    logger.debug("Creating controller for %s", config.api_base_url)
    return ChatController(
        api=api,
        credentials=credentials,
        channel_factory=channel_factory,
        scheduler=AsyncioScheduler(),
        notifier=LogNotifier(),
        visibility=StaticVisibility(visible=not config.NOTIFY_WHEN_VISIBLE),
        push_subscriber=push_subscriber,
        delivery_delay=config.DELIVERY_HEURISTIC_DELAY,
        typing_debounce=config.TYPING_DEBOUNCE_SECONDS,
        typing_expiry=config.TYPING_EXPIRY_SECONDS,
        notification_body_limit=config.NOTIFICATION_BODY_LIMIT,
    )
