from __future__ import annotations

from typing import Protocol

from chat_client.domain.entities.user import Credential, UserProfile


class CredentialStore(Protocol):
    async def load(self) -> Credential | None: ...

    async def get_token(self) -> str | None: ...

    async def save(self, token: str, user: UserProfile) -> None: ...

    async def update_user(self, user: UserProfile) -> None: ...

    async def clear(self) -> None: ...

    async def aclose(self) -> None: ...
