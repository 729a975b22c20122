"""Wire models for the REST backend."""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from chat_client.domain.entities.contact import Contact
from chat_client.domain.entities.message import Message
from chat_client.domain.entities.user import UserProfile


class UserSchema(BaseModel):
    id: int
    username: str
    email: str | None = None

    def to_profile(self) -> UserProfile:
        return UserProfile(id=self.id, username=self.username, email=self.email)

    def to_contact(self) -> Contact:
        return Contact(id=self.id, username=self.username)


class LoginRequest(BaseModel):
    email: str
    password: str


class RegisterRequest(BaseModel):
    username: str
    email: str
    password: str


class LoginResponse(BaseModel):
    token: str
    user: UserSchema
    vapid_public_key: str | None = Field(default=None, alias="vapidPublicKey")

    model_config = ConfigDict(populate_by_name=True)


class ErrorResponse(BaseModel):
    error: str | None = None


class MessageSchema(BaseModel):
    id: int | str
    sender_id: int
    receiver_id: int | None = None
    content: str
    created_at: datetime

    def to_entity(self, me: int | None = None) -> Message:
        return Message(
            id=self.id,
            sender_id=self.sender_id,
            receiver_id=self.receiver_id,
            content=self.content,
            created_at=self.created_at,
            is_own=me is not None and self.sender_id == me,
        )
