from __future__ import annotations

from enum import StrEnum


class SessionStatus(StrEnum):
    ANONYMOUS = "anonymous"
    PENDING_VALIDATION = "pending_validation"
    AUTHENTICATED = "authenticated"


class ConnectionPhase(StrEnum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
    FAILED = "failed"
    ERROR = "error"


class DeliveryStatus(StrEnum):
    PENDING = "pending"
    DELIVERED = "delivered"


class NoticeKind(StrEnum):
    INFO = "info"
    ERROR = "error"


class NotificationPermission(StrEnum):
    DEFAULT = "default"
    GRANTED = "granted"
    DENIED = "denied"
