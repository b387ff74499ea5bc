from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    API_BASE_URL: str = "http://localhost:8080"
    WS_URL: str = "ws://localhost:8080/ws/websocket"

    HTTP_TIMEOUT_SECONDS: float = 10.0

    RECONNECT_DELAY_SECONDS: float = 5.0
    STOMP_HEARTBEAT_MS: int = 10_000
    STOMP_CONNECT_TIMEOUT_SECONDS: float = 10.0

    CREDENTIAL_PATH: Path = Path.home() / ".pacs_presence" / "access_token"

    JWT_VERIFY_MODE: Literal["claims", "hs256"] = "claims"
    JWT_SECRET: str = ""
    JWT_ALGORITHM: str = "HS256"

    ADMIN_ROLE: str = "ROLE_ADMIN"

    JOIN_DESTINATION: str = "/app/chat.addUser"
    SEND_DESTINATION: str = "/app/chat.privateMessage"
    PRIVATE_DESTINATION_TEMPLATE: str = "/user/{subject_id}/queue/private"
    PRESENCE_DESTINATION: str = "/topic/onlineUsers"

    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )


settings = Settings()
