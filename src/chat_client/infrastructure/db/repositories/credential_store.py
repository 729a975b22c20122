from __future__ import annotations

import logging

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from chat_client.domain.entities.user import Credential, UserProfile
from chat_client.infrastructure.db.mappers import credential as mapper
from chat_client.infrastructure.db.models.credential import CredentialEntryModel

logger = logging.getLogger(__name__)

TOKEN_KEY = "token"
USER_KEY = "user"


class SqlCredentialStore:
    """Implements application.ports.credentials.CredentialStore."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        engine: AsyncEngine | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._engine = engine

    async def aclose(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()

    async def load(self) -> Credential | None:
        async with self._session_factory() as session:
            result = await session.scalars(
                select(CredentialEntryModel).where(
                    CredentialEntryModel.key.in_((TOKEN_KEY, USER_KEY))
                )
            )
            rows = {row.key: row.value for row in result}
        token = rows.get(TOKEN_KEY)
        if not token:
            return None
        user = mapper.value_to_profile(rows[USER_KEY]) if USER_KEY in rows else None
        return Credential(token=token, user=user)

    async def get_token(self) -> str | None:
        async with self._session_factory() as session:
            return await session.scalar(
                select(CredentialEntryModel.value).where(CredentialEntryModel.key == TOKEN_KEY)
            )

    async def save(self, token: str, user: UserProfile) -> None:
        async with self._session_factory() as session:
            await session.merge(CredentialEntryModel(key=TOKEN_KEY, value=token))
            await session.merge(
                CredentialEntryModel(key=USER_KEY, value=mapper.profile_to_value(user))
            )
            await session.commit()
        logger.debug("Stored credentials for user %s", user.id)

    async def update_user(self, user: UserProfile) -> None:
        async with self._session_factory() as session:
            await session.merge(
                CredentialEntryModel(key=USER_KEY, value=mapper.profile_to_value(user))
            )
            await session.commit()

    async def clear(self) -> None:
        async with self._session_factory() as session:
            await session.execute(
                delete(CredentialEntryModel).where(
                    CredentialEntryModel.key.in_((TOKEN_KEY, USER_KEY))
                )
            )
            await session.commit()
        logger.debug("Cleared stored credentials")
