"""Startup reconciliation of stored credentials with the server.

A cached profile is adopted immediately so the UI does not flash a login
screen; the server check runs afterwards. Only a well-formed rejection ends
the session. Network and format failures keep the cached identity and leave
the final word to the realtime channel's own authentication failure path.
"""
from __future__ import annotations

import logging

from chat_client.application.dto.auth import SessionResult, ValidationOutcome
from chat_client.application.exceptions import InvalidCredentials, ValidationIndeterminate
from chat_client.application.ports.api import ChatApi
from chat_client.application.ports.clock import Clock, SystemClock
from chat_client.application.ports.credentials import CredentialStore
from chat_client.application.store import Store
from chat_client.domain.entities.user import Credential
from chat_client.domain.events.session import (
    SessionCleared,
    SessionRestored,
    SessionValidated,
    ValidationDeferred,
    ValidationStarted,
)
from chat_client.infrastructure.auth.token_inspector import TokenInspector

logger = logging.getLogger(__name__)


class SessionValidator:
    def __init__(
        self,
        api: ChatApi,
        credentials: CredentialStore,
        store: Store,
        *,
        clock: Clock | None = None,
        inspector: TokenInspector | None = None,
    ) -> None:
        self._api = api
        self._credentials = credentials
        self._store = store
        self._clock = clock or SystemClock()
        self._inspector = inspector or TokenInspector()

    async def validate(self, credential: Credential | None) -> SessionResult:
        early = await self.begin(credential)
        if early is not None:
            return early
        assert credential is not None
        return await self.confirm(credential)

    async def begin(self, credential: Credential | None) -> SessionResult | None:
        """Apply what is known locally.

        Returns the final result when no server round trip is needed, ``None``
        when ``confirm`` must follow.
        """
        if credential is None or not credential.token:
            return SessionResult(ValidationOutcome.ABSENT)

        if self._inspector.is_expired(credential.token, self._clock.now()):
            await self._credentials.clear()
            self._store.dispatch(SessionCleared("token expired"))
            return SessionResult(
                ValidationOutcome.INVALID, error=InvalidCredentials("Token expired"),
            )

        if credential.user is not None:
            self._store.dispatch(SessionRestored(credential.user))
        else:
            self._store.dispatch(ValidationStarted())
        return None

    async def confirm(self, credential: Credential) -> SessionResult:
        token = credential.token
        try:
            user = await self._api.validate(token)
        except InvalidCredentials as exc:
            if await self._superseded(token):
                return SessionResult(ValidationOutcome.SUPERSEDED)
            logger.info("Stored token rejected: %s", exc.detail)
            await self._credentials.clear()
            self._store.dispatch(SessionCleared("token rejected"))
            return SessionResult(ValidationOutcome.INVALID, error=exc)
        except ValidationIndeterminate as exc:
            if await self._superseded(token):
                return SessionResult(ValidationOutcome.SUPERSEDED)
            logger.warning("Token validation indeterminate, keeping cached session: %s", exc.detail)
            self._store.dispatch(ValidationDeferred(exc.detail))
            return SessionResult(ValidationOutcome.INDETERMINATE, user=credential.user, error=exc)

        if await self._superseded(token):
            return SessionResult(ValidationOutcome.SUPERSEDED)
        await self._credentials.update_user(user)
        self._store.dispatch(SessionValidated(user))
        return SessionResult(ValidationOutcome.VALID, user=user)

    async def _superseded(self, token: str) -> bool:
        current = await self._credentials.get_token()
        if current != token:
            logger.debug("Discarding validation result for a replaced token")
            return True
        return False
