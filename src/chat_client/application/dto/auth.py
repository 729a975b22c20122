from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from chat_client.application.exceptions import AppError
from chat_client.domain.entities.user import UserProfile


@dataclass(frozen=True, slots=True)
class LoginResult:
    token: str
    user: UserProfile
    vapid_public_key: str | None = None


class ValidationOutcome(StrEnum):
    ABSENT = "absent"
    VALID = "valid"
    INVALID = "invalid"
    INDETERMINATE = "indeterminate"
    SUPERSEDED = "superseded"


@dataclass(frozen=True, slots=True)
class SessionResult:
    outcome: ValidationOutcome
    user: UserProfile | None = None
    error: AppError | None = None

    @property
    def may_connect(self) -> bool:
        """Whether the realtime channel should be opened with the stored token."""
        return self.user is not None and self.outcome in (
            ValidationOutcome.VALID,
            ValidationOutcome.INDETERMINATE,
        )
