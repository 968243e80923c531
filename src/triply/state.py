"""Lifecycle states of one playlist generation session."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Union

from pydantic import BaseModel

from .models import CoverImage, PlaylistResult, TripRequest


@dataclass(frozen=True)
class Idle:
    kind: str = field(default="idle", init=False)


@dataclass(frozen=True)
class SubmittingText:
    trip: TripRequest
    kind: str = field(default="submitting_text", init=False)


@dataclass(frozen=True)
class TextFailed:
    reason: str
    kind: str = field(default="text_failed", init=False)


@dataclass(frozen=True)
class ImageGenerating:
    playlist: PlaylistResult
    kind: str = field(default="image_generating", init=False)


@dataclass(frozen=True)
class Complete:
    playlist: PlaylistResult
    cover: CoverImage | None = None
    kind: str = field(default="complete", init=False)


@dataclass(frozen=True)
class ImageFailed:
    playlist: PlaylistResult
    reason: str
    kind: str = field(default="image_failed", init=False)


GenerationState = Union[Idle, SubmittingText, TextFailed, ImageGenerating, Complete, ImageFailed]

TERMINAL_STATES = (Idle, TextFailed, Complete, ImageFailed)


def is_terminal(state: GenerationState) -> bool:
    return isinstance(state, TERMINAL_STATES)


def to_plain(value: Any) -> Any:
    """Convert states, models, and dates into JSON-serializable primitives.

    Cover images become ``{"encoding": ..., "data_base64": ...}``.
    """
    if isinstance(value, CoverImage):
        return {"encoding": value.encoding, "data_base64": value.to_base64()}
    if isinstance(value, BaseModel):
        return {name: to_plain(getattr(value, name)) for name in type(value).model_fields}
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_plain(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: to_plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [to_plain(item) for item in value]
    return value
