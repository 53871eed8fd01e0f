from __future__ import annotations

from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    MESSAGING_API_URL: str = "https://api.callbell.eu/v1"
    MESSAGING_API_KEY: str = ""

    MESSAGES_PAGE_SIZE: int = 100
    GATEWAY_TIMEOUT_SECONDS: float = 15.0

    REDIS_URL: str = "redis://localhost:6379/0"
    STORE_KEY_PREFIX: str = "messages_"

    CORS_ORIGINS: list[str] = ["*"]

    HOST: str = "127.0.0.1"
    PORT: int = 8000
    LOG_LEVEL: str = "INFO"

    model_config = ConfigDict(
        env_file=".env",
        extra="ignore",
    )


settings = Settings()
