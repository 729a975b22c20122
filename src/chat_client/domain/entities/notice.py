from __future__ import annotations

from dataclasses import dataclass

from chat_client.domain.value_objects.enums import NoticeKind


@dataclass(frozen=True, slots=True)
class Notice:
    """Non-blocking, user-visible message (toast)."""

    kind: NoticeKind
    text: str
