from __future__ import annotations

from typing import Any, Protocol

from chat_client.application.dto.auth import LoginResult
from chat_client.domain.entities.contact import Contact
from chat_client.domain.entities.message import Message
from chat_client.domain.entities.user import UserProfile


class ChatApi(Protocol):
    async def login(self, email: str, password: str) -> LoginResult: ...

    async def register(self, username: str, email: str, password: str) -> None: ...

    async def validate(self, token: str) -> UserProfile:
        """Raise InvalidCredentials on rejection, ValidationIndeterminate otherwise."""
        ...

    async def list_users(self, token: str) -> list[Contact]: ...

    async def list_messages(
        self, token: str, user_id: int, *, me: int | None = None,
    ) -> list[Message]: ...

    async def subscribe(self, token: str, subscription: dict[str, Any]) -> None: ...

    async def aclose(self) -> None: ...
