from __future__ import annotations

from dataclasses import dataclass

from chat_client.domain.entities.user import UserProfile


@dataclass(frozen=True, slots=True)
class SessionRestored:
    """Cached profile adopted before the server has confirmed the token."""

    user: UserProfile


@dataclass(frozen=True, slots=True)
class ValidationStarted:
    pass


@dataclass(frozen=True, slots=True)
class SessionValidated:
    user: UserProfile


@dataclass(frozen=True, slots=True)
class ValidationDeferred:
    reason: str


@dataclass(frozen=True, slots=True)
class LoginSucceeded:
    user: UserProfile


@dataclass(frozen=True, slots=True)
class SessionCleared:
    reason: str


SessionEvent = (
    SessionRestored
    | ValidationStarted
    | SessionValidated
    | ValidationDeferred
    | LoginSucceeded
    | SessionCleared
)
