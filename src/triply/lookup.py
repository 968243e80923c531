"""Async client for Nominatim place search (destination autocomplete)."""

from __future__ import annotations

import logging
from typing import Any, List, Optional

import httpx

from .config import Settings, get_settings
from .errors import NetworkError, SchemaError

logger = logging.getLogger(__name__)


class PlaceLookupClient:
    """Look up place display names for a free-text query.

    Args:
        settings: Settings providing base URL, result limit, language and User-Agent.
        transport: Optional httpx transport (tests pass ``httpx.MockTransport``).
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._client = httpx.AsyncClient(
            base_url=self.settings.lookup_base_url,
            headers={"User-Agent": self.settings.lookup_user_agent},
            timeout=self.settings.lookup_timeout_s,
            transport=transport,
        )

    async def __aenter__(self) -> "PlaceLookupClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def search(self, query: str, *, limit: Optional[int] = None) -> List[str]:
        """Return display names for ``query``, most relevant first.

        Raises:
            NetworkError: Transport failure or non-2xx status.
            SchemaError: Body is not a JSON list of place objects.
        """
        params = {
            "q": query,
            "format": "json",
            "limit": limit or self.settings.lookup_limit,
            "accept-language": self.settings.lookup_language,
        }
        logger.debug("Place lookup: q=%r", query)
        try:
            response = await self._client.get("/search", params=params)
        except httpx.HTTPError as exc:
            raise NetworkError(f"Place lookup request failed: {exc}") from exc
        if not response.is_success:
            raise NetworkError("Place lookup returned an error", status_code=response.status_code)
        try:
            data = response.json()
        except ValueError as exc:
            raise SchemaError(f"Place lookup returned invalid JSON: {exc}") from exc
        return _display_names(data)


def _display_names(data: Any) -> List[str]:
    if not isinstance(data, list):
        raise SchemaError("Place lookup response must be a JSON array.")
    names: List[str] = []
    for place in data:
        if isinstance(place, dict) and place.get("display_name"):
            names.append(str(place["display_name"]))
    return names
