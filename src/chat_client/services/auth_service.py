from __future__ import annotations

import logging

from chat_client.application.dto.auth import LoginResult
from chat_client.application.exceptions import ValidationError
from chat_client.application.ports.api import ChatApi
from chat_client.application.ports.credentials import CredentialStore
from chat_client.application.store import Store
from chat_client.domain.events.conversation import NoticeRaised
from chat_client.domain.events.session import LoginSucceeded, SessionCleared
from chat_client.domain.value_objects.enums import NoticeKind

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


def _require(*fields: str) -> None:
    if not all(f and f.strip() for f in fields):
        raise ValidationError("Please fill all fields")


def _check_password(password: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")


async def login(
    email: str,
    password: str,
    api: ChatApi,
    credentials: CredentialStore,
    store: Store,
) -> LoginResult:
    """Authenticate, persist the credential and mark the session authenticated."""
    _require(email, password)
    result = await api.login(email.strip(), password)
    await credentials.save(result.token, result.user)
    store.dispatch(LoginSucceeded(result.user))
    logger.info("Logged in as %s", result.user.username)
    return result


async def register(
    username: str,
    email: str,
    password: str,
    api: ChatApi,
    store: Store,
) -> None:
    _require(username, email, password)
    _check_password(password)
    await api.register(username.strip(), email.strip(), password)
    store.dispatch(NoticeRaised(NoticeKind.INFO, "Registration successful! Please login."))


async def logout(credentials: CredentialStore, store: Store, reason: str = "logout") -> None:
    await credentials.clear()
    store.dispatch(SessionCleared(reason))
