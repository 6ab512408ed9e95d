from functools import lru_cache
from typing import Literal
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Client configuration settings"""

    # App
    environment: Literal["development", "production"] = "development"

    # Service
    host: str = "campfirenow.com"
    ssl: bool = True
    ssl_verify: bool = True
    proxy: str | None = None
    request_timeout: float = 15.0

    # Streaming
    stream_connect_timeout: float = 6.0
    stream_max_reconnects: int = 6
    stream_reconnect_delay: float = 1.0
    stream_reconnect_max_delay: float = 30.0
    normalization_failure: Literal["skip", "abort"] = "skip"

    # Logging
    log_level: str = "INFO"

    @property
    def scheme(self) -> str:
        return "https" if self.ssl else "http"

    @property
    def streaming_host(self) -> str:
        """Host serving the live room streams"""
        return f"streaming.{self.host}"

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    class Config:
        env_file = ".env"
        env_prefix = "CAMPFIRE_"


@lru_cache()
def get_settings():
    return Settings()
