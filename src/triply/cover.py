"""Cover art generation from a playlist's English cover prompt."""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
from typing import Awaitable, Callable, Optional

from openai import AsyncOpenAI

from .backoff import run_with_backoff
from .config import Settings, get_settings
from .errors import SchemaError
from .models import CoverImage
from .openai_client import SDK_ERRORS, build_client, to_network_error

logger = logging.getLogger(__name__)


def _single_image_bytes(response: object) -> bytes:
    """Return the decoded image when the reply holds exactly one base64 payload."""
    data = getattr(response, "data", None) or []
    if len(data) != 1:
        raise SchemaError(f"Expected exactly one image, got {len(data)}.")
    b64_data = getattr(data[0], "b64_json", None)
    if not b64_data:
        raise SchemaError("Image data not found in response.")
    try:
        return base64.b64decode(b64_data, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise SchemaError(f"Image payload is not valid base64: {exc}") from exc


class CoverImageGenerator:
    """Generate a single PNG cover via the OpenAI Images API."""

    def __init__(
        self,
        client: Optional[AsyncOpenAI] = None,
        settings: Optional[Settings] = None,
        *,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ) -> None:
        self.settings = settings or get_settings()
        self._client = client
        self._sleep = sleep

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = build_client(self.settings)
        return self._client

    async def generate(self, prompt: str) -> CoverImage:
        """
        Draw the cover for ``prompt``.

        Raises:
            ExhaustedRetriesError: stage "image" once the retry budget is spent.
        """
        cover = await run_with_backoff(
            lambda: self._attempt(prompt),
            self.settings.image_retry_policy(),
            stage="image",
            sleep=self._sleep,
        )
        logger.info("Generated cover image (%d bytes)", len(cover.data))
        return cover

    async def _attempt(self, prompt: str) -> CoverImage:
        try:
            response = await self.client.images.generate(
                model=self.settings.image_model,
                prompt=prompt,
                n=1,
                size=self.settings.image_size,
            )
        except SDK_ERRORS as exc:
            raise to_network_error(exc, step="Cover image") from exc
        return CoverImage(data=_single_image_bytes(response), encoding="png")
