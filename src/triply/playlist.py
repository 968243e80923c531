"""Playlist generation: trip request -> instruction -> text service -> PlaylistResult.

Each attempt makes one Responses API call with a strict JSON-schema output
format, then decodes and validates the reply. Transport failures and malformed
replies both count as failed attempts; the retry budget comes from Settings.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, List, Optional

from openai import AsyncOpenAI
from pydantic import ValidationError

from .backoff import run_with_backoff
from .config import Settings, get_settings
from .errors import SchemaError, TripValidationError
from .models import (
    ACTIVITIES,
    GENRES,
    PlaylistResult,
    Song,
    TripRequest,
    activity_names,
    genre_names,
)
from .openai_client import SDK_ERRORS, build_client, to_network_error
from .schema import response_format, validate_playlist_payload

logger = logging.getLogger(__name__)

COVER_PROMPT_EXAMPLE = (
    "80s Japanese city pop album art, Hiroshi Nagai style, a coastal road at sunset, "
    "palm trees, pastel colors, nostalgic."
)


def validate_trip(trip: TripRequest) -> None:
    """Raise TripValidationError unless the trip can be sent to the text service."""
    missing: List[str] = []
    if not trip.destination.strip():
        missing.append("destination")
    if trip.start_date is None:
        missing.append("start_date")
    if trip.end_date is None:
        missing.append("end_date")
    if not trip.activities:
        missing.append("activities")
    if missing:
        raise TripValidationError(
            f"Missing required fields: {', '.join(missing)}", missing=missing
        )

    unknown = [a for a in trip.activities if a not in ACTIVITIES]
    unknown += [g for g in trip.genres if g not in GENRES]
    if unknown:
        raise TripValidationError(f"Unknown activity or genre ids: {', '.join(unknown)}")


def build_instruction(
    trip: TripRequest, *, song_count: int = 10, language: str = "Korean"
) -> str:
    activities = ", ".join(activity_names(trip.activities))
    genres = ", ".join(genre_names(trip.genres)) if trip.genres else "a varied mix"
    return (
        f"Destination: {trip.destination.strip()}\n"
        f"Travel dates: {trip.start_date.isoformat()} to {trip.end_date.isoformat()} "
        "(reflect the season of these dates)\n"
        f"Main activities: {activities}\n"
        f"Preferred genres: {genres}\n\n"
        f"Using the details above, recommend a playlist of {song_count} songs "
        "that fit this trip.\n\n"
        f"Write all of the following in {language}:\n"
        "1. the playlist title (playlistTitle)\n"
        "2. a short playlist description (playlistDescription)\n"
        "3. the reason each song was picked (reason)\n\n"
        "Also write an English prompt for generating a cover image that matches the mood "
        "(coverImagePrompt).\n"
        f"Example (Japanese city pop): '{COVER_PROMPT_EXAMPLE}'\n\n"
        "Respond only with JSON in the required format."
    )


def parse_playlist_payload(payload: Any) -> PlaylistResult:
    """Convert a decoded service reply into a PlaylistResult, keeping song order."""
    validate_playlist_payload(payload)
    try:
        songs = tuple(
            Song(
                title=song["title"].strip(),
                artist=song["artist"].strip(),
                reason=song["reason"].strip(),
            )
            for song in payload["songs"]
        )
        return PlaylistResult(
            title=payload["playlistTitle"],
            description=payload["playlistDescription"],
            cover_image_prompt=payload["coverImagePrompt"].strip(),
            songs=songs,
        )
    except ValidationError as exc:
        raise SchemaError(f"Playlist reply has empty fields: {exc}") from exc


def _response_text_or_raise(response: object, *, step: str) -> str:
    """Extract response text or raise SchemaError when output is missing."""
    text = getattr(response, "output_text", None)
    if isinstance(text, str) and text.strip():
        return text

    status = getattr(response, "status", None)
    if status == "incomplete":
        details = getattr(response, "incomplete_details", None)
        reason = getattr(details, "reason", None) if details else None
        raise SchemaError(f"{step} response incomplete (reason={reason}).")

    err = getattr(response, "error", None)
    if err:
        raise SchemaError(f"{step} response error: {err}")

    raise SchemaError(f"{step} response missing output text.")


def _decode_json(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise SchemaError(f"Playlist reply is not valid JSON: {exc}") from exc


class PlaylistGenerator:
    """Generate a PlaylistResult for a trip using the text-generation service."""

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

    async def generate(self, trip: TripRequest) -> PlaylistResult:
        """
        Validate the trip, then call the text service until it returns a valid playlist.

        Raises:
            TripValidationError: Before any network call when the trip is incomplete.
            ExhaustedRetriesError: stage "playlist" once the retry budget is spent.
        """
        validate_trip(trip)
        instruction = build_instruction(
            trip,
            song_count=self.settings.song_count,
            language=self.settings.response_language,
        )
        playlist = await run_with_backoff(
            lambda: self._attempt(instruction),
            self.settings.text_retry_policy(),
            stage="playlist",
            sleep=self._sleep,
        )
        logger.info("Generated playlist %r with %d songs", playlist.title, len(playlist.songs))
        return playlist

    async def _attempt(self, instruction: str) -> PlaylistResult:
        try:
            response = await self.client.responses.create(
                model=self.settings.text_model,
                input=[{"role": "user", "content": instruction}],
                text={"format": response_format()},
            )
        except SDK_ERRORS as exc:
            raise to_network_error(exc, step="Playlist") from exc
        text = _response_text_or_raise(response, step="Playlist")
        return parse_playlist_payload(_decode_json(text))
