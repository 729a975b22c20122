from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ConnectionOpening:
    pass


@dataclass(frozen=True, slots=True)
class Connected:
    pass


@dataclass(frozen=True, slots=True)
class Disconnected:
    reason: str


@dataclass(frozen=True, slots=True)
class Reconnecting:
    attempt: int
    max_attempts: int


@dataclass(frozen=True, slots=True)
class TransportError:
    message: str


@dataclass(frozen=True, slots=True)
class AuthFailed:
    message: str


@dataclass(frozen=True, slots=True)
class PermanentFailure:
    attempts: int


ConnectionEvent = (
    ConnectionOpening
    | Connected
    | Disconnected
    | Reconnecting
    | TransportError
    | AuthFailed
    | PermanentFailure
)
