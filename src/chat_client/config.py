from __future__ import annotations

from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    BACKEND_URL: str = "https://vschats.onrender.com"

    CREDENTIALS_DB_URL: str = "sqlite+aiosqlite:///chat_client.db"

    SOCKET_PATH: str = "socket.io"
    SOCKET_TRANSPORTS: list[str] = ["websocket", "polling"]
    SOCKET_CONNECT_TIMEOUT: float = 10.0
    SOCKET_RECONNECT_ATTEMPTS: int = 5
    SOCKET_RECONNECT_DELAY: float = 1.0

    DELIVERY_HEURISTIC_DELAY: float = 1.0

    TYPING_DEBOUNCE_SECONDS: float = 2.0
    TYPING_EXPIRY_SECONDS: float = 2.0

    NOTIFICATION_BODY_LIMIT: int = 50
    NOTIFY_WHEN_VISIBLE: bool = False

    LOG_LEVEL: str = "INFO"

    @property
    def api_base_url(self) -> str:
        return self.BACKEND_URL.rstrip("/")

    model_config = ConfigDict(
        env_file=".env",
        extra="ignore",
    )


settings = Settings()
