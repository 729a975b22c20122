"""httpx client for the chat REST API.

Every transport or format failure is translated into one of the application
errors at this boundary; no httpx exception reaches the callers.
"""
from __future__ import annotations

import logging
from typing import Any

import httpx
import pydantic

from chat_client.application.dto.auth import LoginResult
from chat_client.application.exceptions import (
    AuthenticationError,
    InvalidCredentials,
    LoadFailed,
    PushSetupFailed,
    ValidationIndeterminate,
)
from chat_client.domain.entities.contact import Contact
from chat_client.domain.entities.message import Message
from chat_client.domain.entities.user import UserProfile
from chat_client.infrastructure.api.schemas import (
    ErrorResponse,
    LoginRequest,
    LoginResponse,
    MessageSchema,
    RegisterRequest,
    UserSchema,
)

logger = logging.getLogger(__name__)

_REJECTED = (401, 403)


def _bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def _json_or_none(resp: httpx.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return None


def _error_detail(data: Any, default: str) -> str:
    if isinstance(data, dict):
        try:
            err = ErrorResponse.model_validate(data).error
        except pydantic.ValidationError:
            err = None
        if err:
            return err
    return default


class HttpChatApi:
    """Implements application.ports.api.ChatApi."""

    def __init__(self, base_url: str, client: httpx.AsyncClient | None = None) -> None:
        self._client = client or httpx.AsyncClient(base_url=base_url)
        self._owns_client = client is None

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def login(self, email: str, password: str) -> LoginResult:
        body = LoginRequest(email=email, password=password).model_dump()
        try:
            resp = await self._client.post("/api/login", json=body)
        except httpx.HTTPError as exc:
            logger.warning("Login request failed: %s", exc)
            raise AuthenticationError("Operation failed") from exc

        data = _json_or_none(resp)
        if not resp.is_success:
            raise AuthenticationError(_error_detail(data, "Login failed"))
        try:
            parsed = LoginResponse.model_validate(data)
        except pydantic.ValidationError as exc:
            raise AuthenticationError("Malformed login response") from exc
        return LoginResult(
            token=parsed.token,
            user=parsed.user.to_profile(),
            vapid_public_key=parsed.vapid_public_key,
        )

    async def register(self, username: str, email: str, password: str) -> None:
        body = RegisterRequest(username=username, email=email, password=password).model_dump()
        try:
            resp = await self._client.post("/api/register", json=body)
        except httpx.HTTPError as exc:
            logger.warning("Register request failed: %s", exc)
            raise AuthenticationError("Operation failed") from exc

        data = _json_or_none(resp)
        if not resp.is_success:
            raise AuthenticationError(_error_detail(data, "Registration failed"))
        if isinstance(data, dict) and data.get("error"):
            raise AuthenticationError(str(data["error"]))

    async def validate(self, token: str) -> UserProfile:
        try:
            resp = await self._client.get("/api/validate", headers=_bearer(token))
        except httpx.HTTPError as exc:
            raise ValidationIndeterminate(f"Network error: {exc}") from exc

        if resp.status_code in _REJECTED:
            raise InvalidCredentials(_error_detail(_json_or_none(resp), "Token rejected"))
        if not resp.is_success:
            raise ValidationIndeterminate(f"Unexpected status {resp.status_code}")
        try:
            return UserSchema.model_validate(_json_or_none(resp)).to_profile()
        except pydantic.ValidationError as exc:
            raise ValidationIndeterminate("Malformed profile response") from exc

    async def list_users(self, token: str) -> list[Contact]:
        data = await self._get_list("/api/users", token, "Failed to load users")
        try:
            return [UserSchema.model_validate(item).to_contact() for item in data]
        except pydantic.ValidationError as exc:
            raise LoadFailed("Failed to load users") from exc

    async def list_messages(self, token: str, user_id: int, *, me: int | None = None) -> list[Message]:
        data = await self._get_list(f"/api/messages/{user_id}", token, "Failed to load messages")
        try:
            return [MessageSchema.model_validate(item).to_entity(me) for item in data]
        except pydantic.ValidationError as exc:
            raise LoadFailed("Failed to load messages") from exc

    async def subscribe(self, token: str, subscription: dict[str, Any]) -> None:
        try:
            resp = await self._client.post(
                "/api/subscribe",
                json={"subscription": subscription},
                headers=_bearer(token),
            )
        except httpx.HTTPError as exc:
            raise PushSetupFailed(str(exc)) from exc
        if not resp.is_success:
            raise PushSetupFailed(f"Subscribe rejected with status {resp.status_code}")

    async def _get_list(self, path: str, token: str, failure: str) -> list[Any]:
        try:
            resp = await self._client.get(path, headers=_bearer(token))
        except httpx.HTTPError as exc:
            logger.warning("GET %s failed: %s", path, exc)
            raise LoadFailed(failure) from exc
        if not resp.is_success:
            logger.warning("GET %s returned %d", path, resp.status_code)
            raise LoadFailed(failure)
        data = _json_or_none(resp)
        if not isinstance(data, list):
            raise LoadFailed(failure)
        return data
