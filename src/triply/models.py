"""Data models for trip playlist generation."""

import base64
from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

ACTIVITIES: Dict[str, str] = {
    "relax": "Relaxing",
    "food": "Food tour",
    "activity": "Outdoor activities",
    "shopping": "Shopping",
    "nature": "Nature sightseeing",
    "city": "City exploring",
    "party": "Partying",
    "culture": "Culture & arts",
}

GENRES: Dict[str, str] = {
    "kpop": "K-Pop",
    "pop": "Pop",
    "hiphop": "Hip-hop/Rap",
    "rnb": "R&B/Soul",
    "rock": "Rock/Metal",
    "jazz": "Jazz",
    "classic": "Classical",
    "lofi": "Lo-fi",
}


class TripRequest(BaseModel):
    """Trip details submitted for one generation attempt.

    Fields may be blank here; the playlist pipeline reports what is missing.
    """

    model_config = ConfigDict(frozen=True)

    destination: str = ""
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    activities: Tuple[str, ...] = Field(
        default=(), description="Activity ids from ACTIVITIES, in selection order."
    )
    genres: Tuple[str, ...] = Field(
        default=(), description="Genre ids from GENRES; empty means no preference."
    )


class Song(BaseModel):
    """One recommended track."""

    model_config = ConfigDict(frozen=True)

    title: str = Field(..., min_length=1)
    artist: str = Field(..., min_length=1)
    reason: str = Field(..., min_length=1, description="Why the track fits the trip.")


class PlaylistResult(BaseModel):
    """Structured playlist returned by the text-generation service."""

    model_config = ConfigDict(frozen=True)

    title: str
    description: str
    cover_image_prompt: str = Field(
        ..., description="English instruction for the cover image model."
    )
    songs: Tuple[Song, ...]


class CoverImage(BaseModel):
    """Decoded cover art produced from a playlist's cover prompt."""

    model_config = ConfigDict(frozen=True)

    data: bytes = Field(..., repr=False)
    encoding: str = "png"

    @property
    def media_type(self) -> str:
        return f"image/{self.encoding}"

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")

    def data_uri(self) -> str:
        return f"data:{self.media_type};base64,{self.to_base64()}"


def activity_names(ids: Iterable[str]) -> List[str]:
    return [ACTIVITIES[item] for item in ids]


def genre_names(ids: Iterable[str]) -> List[str]:
    return [GENRES[item] for item in ids]
