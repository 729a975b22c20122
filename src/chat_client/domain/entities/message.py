from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from chat_client.domain.value_objects.enums import DeliveryStatus


@dataclass(slots=True)
class Message:
    id: int | str
    sender_id: int
    content: str
    created_at: datetime
    receiver_id: int | None = None
    delivery_status: DeliveryStatus = DeliveryStatus.DELIVERED
    is_own: bool = False

    @property
    def is_pending(self) -> bool:
        return self.delivery_status == DeliveryStatus.PENDING
