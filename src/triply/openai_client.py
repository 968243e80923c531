"""OpenAI client construction and error translation shared by both pipelines."""

from __future__ import annotations

from typing import Optional

from openai import APIConnectionError, APIStatusError, AsyncOpenAI

from .config import Settings, get_settings
from .errors import NetworkError

SDK_ERRORS = (APIConnectionError, APIStatusError)


def require_api_key(settings: Settings) -> str:
    if not settings.openai_api_key:
        raise RuntimeError(
            "OPENAI_API_KEY is required. Set it in the environment or .env file."
        )
    return settings.openai_api_key


def build_client(settings: Optional[Settings] = None) -> AsyncOpenAI:
    """Create an async OpenAI client; SDK retries are off so the pipelines own them."""
    settings = settings or get_settings()
    return AsyncOpenAI(api_key=require_api_key(settings), max_retries=0)


def to_network_error(exc: Exception, *, step: str) -> NetworkError:
    """Map an OpenAI SDK failure onto NetworkError, keeping the HTTP status."""
    if isinstance(exc, APIStatusError):
        return NetworkError(f"{step} request rejected: {exc.message}", status_code=exc.status_code)
    return NetworkError(f"{step} request failed: {exc}")
