from __future__ import annotations


class AppError(Exception):
    """Base application error."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(detail)


class ValidationError(AppError):
    pass


class AuthenticationError(AppError):
    """Login or registration rejected by the server."""


class InvalidCredentials(AppError):
    """The server rejected the stored token. Fatal to the session."""


class ValidationIndeterminate(AppError):
    """Token validity could not be established (network or format failure)."""


class TransportAuthFailure(AppError):
    """The realtime channel refused the token. Fatal to the session."""


class TransportTransient(AppError):
    pass


class ConnectionFailed(TransportTransient):
    """Reconnection budget exhausted."""


class SendFailed(AppError):
    pass


class LoadFailed(AppError):
    pass


class PushSetupFailed(AppError):
    pass
