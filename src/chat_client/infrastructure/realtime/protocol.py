"""Socket event payload models."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from chat_client.domain.entities.message import Message


class SendMessageFrame(BaseModel):
    """Client → Server ``send_message``."""

    receiver_id: int = Field(alias="receiverId")
    content: str

    model_config = ConfigDict(populate_by_name=True)


class TypingFrame(BaseModel):
    """Client → Server ``typing_start`` / ``typing_stop``."""

    receiver_id: int = Field(alias="receiverId")

    model_config = ConfigDict(populate_by_name=True)


class InboundMessage(BaseModel):
    """Server → Client ``message``."""

    id: int | str
    sender_id: int
    receiver_id: int | None = None
    content: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def to_entity(self) -> Message:
        return Message(
            id=self.id,
            sender_id=self.sender_id,
            receiver_id=self.receiver_id,
            content=self.content,
            created_at=self.created_at,
        )


def parse_user_id(payload: Any) -> int | None:
    """Presence and typing events carry either a bare id or ``{"userId": id}``."""
    if isinstance(payload, dict):
        payload = payload.get("userId", payload.get("user_id"))
    if isinstance(payload, bool):
        return None
    if isinstance(payload, int):
        return payload
    if isinstance(payload, str) and payload.strip().isdigit():
        return int(payload)
    return None


def error_message(data: Any) -> str:
    if isinstance(data, dict):
        return str(data.get("message") or data)
    return str(data)
