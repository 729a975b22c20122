"""View helpers: pure functions from state values to display strings."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Sequence

from chat_client.domain.entities.message import Message
from chat_client.domain.value_objects.enums import ConnectionPhase


def format_time(value: datetime) -> str:
    return value.astimezone().strftime("%H:%M")


def format_message_time(created_at: datetime, now: datetime | None = None) -> str:
    """``HH:MM`` for the last 24 hours, date and time for anything older."""
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    if now - created_at < timedelta(hours=24):
        return format_time(created_at)
    return f"{created_at.astimezone().date().isoformat()} {format_time(created_at)}"


def connection_status_label(phase: ConnectionPhase, attempt: int = 0, max_attempts: int = 0) -> str:
    label = phase.value.capitalize()
    if phase == ConnectionPhase.RECONNECTING and max_attempts:
        label = f"{label} ({attempt}/{max_attempts})"
    return label


def avatar_initial(username: str | None) -> str:
    return username[:1].upper() if username else "?"


def shows_avatar(messages: Sequence[Message], index: int) -> bool:
    """Only the first message of a run from the same sender carries an avatar."""
    return index == 0 or messages[index - 1].sender_id != messages[index].sender_id
