"""Configuration helpers for the trip playlist generator."""

import logging

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .backoff import RetryPolicy

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    openai_api_key: str | None = Field(None, alias="OPENAI_API_KEY")
    text_model: str = Field(
        "gpt-4.1-mini", description="Model that writes the playlist JSON."
    )
    image_model: str = Field("gpt-image-1", description="Model that draws the cover.")
    image_size: str = Field("1024x1024", description="Requested cover size.")
    song_count: int = Field(10, ge=1, description="Songs requested per playlist.")
    response_language: str = Field(
        "Korean",
        description="Language for the playlist title, description, and song reasons.",
    )
    text_max_attempts: int = Field(5, ge=1)
    image_max_attempts: int = Field(3, ge=1)
    backoff_base_ms: int = Field(
        100, ge=0, description="Delay before the first retry; doubles per retry."
    )
    lookup_base_url: str = Field("https://nominatim.openstreetmap.org")
    lookup_limit: int = Field(5, ge=1)
    lookup_language: str = Field("ko", description="accept-language sent to the geocoder.")
    lookup_user_agent: str = Field(
        "triply/0.1 (trip playlist generator)",
        description="Nominatim rejects requests without an identifying User-Agent.",
    )
    lookup_timeout_s: float = Field(10.0, gt=0)
    debounce_ms: int = Field(300, ge=0, description="Quiet period before a lookup fires.")
    min_query_length: int = Field(2, ge=1)
    log_level: str = Field("INFO")

    def text_retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.text_max_attempts,
            base_delay_s=self.backoff_base_ms / 1000,
        )

    def image_retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.image_max_attempts,
            base_delay_s=self.backoff_base_ms / 1000,
        )


def get_settings() -> Settings:
    """Return a settings instance built from the current environment."""
    return Settings()


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Install a single stream handler on the package logger."""
    logger = logging.getLogger("triply")
    logger.setLevel(level.upper())
    logger.handlers.clear()
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    logger.addHandler(handler)
    logger.propagate = False
    return logger
