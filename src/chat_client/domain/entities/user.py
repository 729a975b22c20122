from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class UserProfile:
    id: int
    username: str
    email: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.id, "username": self.username}
        if self.email is not None:
            data["email"] = self.email
        return data


@dataclass(frozen=True, slots=True)
class Credential:
    """Auth token plus the cached profile of the user it belongs to."""

    token: str
    user: UserProfile | None = None
