from __future__ import annotations

import json

from chat_client.domain.entities.user import UserProfile


def profile_to_value(user: UserProfile) -> str:
    return json.dumps(user.to_dict())


def value_to_profile(value: str) -> UserProfile | None:
    """Parse a stored profile; unreadable data counts as absent."""
    try:
        data = json.loads(value)
        return UserProfile(
            id=int(data["id"]),
            username=str(data["username"]),
            email=data.get("email"),
        )
    except (ValueError, KeyError, TypeError):
        return None
