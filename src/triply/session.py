"""Generation state machine coordinating the playlist and cover pipelines.

One session owns the GenerationState. ``submit`` runs the text stage and, on
success, the cover stage; every transition is tagged with the run id that
started it and is dropped if a newer ``submit`` or a ``reset`` has happened
since. In-flight calls from a superseded run are not aborted; their results
are ignored on arrival.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, List, Optional

from openai import AsyncOpenAI

from .config import Settings, get_settings
from .cover import CoverImageGenerator
from .errors import ExhaustedRetriesError, TripValidationError
from .lookup import PlaceLookupClient
from .models import CoverImage, PlaylistResult, TripRequest
from .playlist import PlaylistGenerator, validate_trip
from .state import (
    Complete,
    GenerationState,
    Idle,
    ImageFailed,
    ImageGenerating,
    SubmittingText,
    TextFailed,
)
from .suggestions import SuggestionDebouncer

logger = logging.getLogger(__name__)

PlaylistFn = Callable[[TripRequest], Awaitable[PlaylistResult]]
CoverFn = Callable[[str], Awaitable[CoverImage]]
StateListener = Callable[[GenerationState], None]


class GenerationSession:
    """Owns the lifecycle state for one user's trip playlist.

    Args:
        generate_playlist: Coroutine function producing a PlaylistResult for a trip.
        generate_cover: Coroutine function producing a CoverImage for a prompt.
        suggestions: Optional debouncer cleared on submit (hidden) and reset.
    """

    def __init__(
        self,
        generate_playlist: PlaylistFn,
        generate_cover: CoverFn,
        *,
        suggestions: Optional[SuggestionDebouncer] = None,
    ) -> None:
        self._generate_playlist = generate_playlist
        self._generate_cover = generate_cover
        self.suggestions = suggestions
        self._state: GenerationState = Idle()
        self._run_id = 0
        self._listeners: List[StateListener] = []

    @property
    def state(self) -> GenerationState:
        return self._state

    @property
    def playlist(self) -> PlaylistResult | None:
        return getattr(self._state, "playlist", None)

    @property
    def cover(self) -> CoverImage | None:
        return getattr(self._state, "cover", None)

    @property
    def error(self) -> str | None:
        if isinstance(self._state, (TextFailed, ImageFailed)):
            return self._state.reason
        return None

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register ``listener`` for every state change; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def submit(self, trip: TripRequest) -> GenerationState:
        """
        Start a generation for ``trip``, superseding any run still in flight.

        Returns the session state when this run finishes. For a run that was
        superseded meanwhile, that is whatever the newer run has set. Stage
        failures, expected or not, end the run in TextFailed or ImageFailed
        and are not raised.
        """
        self._run_id += 1
        run_id = self._run_id
        if self.suggestions is not None:
            self.suggestions.select(trip.destination)

        try:
            validate_trip(trip)
        except TripValidationError as exc:
            self._transition(run_id, TextFailed(str(exc)))
            return self._state

        self._transition(run_id, SubmittingText(trip))
        try:
            playlist = await self._generate_playlist(trip)
        except ExhaustedRetriesError as exc:
            logger.error(
                "Playlist generation gave up after %d attempts: %s", exc.attempts, exc.last_error
            )
            self._transition(run_id, TextFailed(str(exc)))
            return self._state
        except Exception:
            logger.exception("Playlist generation failed unexpectedly")
            self._transition(run_id, TextFailed(ExhaustedRetriesError.MESSAGES["playlist"]))
            return self._state

        if not playlist.cover_image_prompt:
            self._transition(run_id, Complete(playlist))
            return self._state
        if not self._transition(run_id, ImageGenerating(playlist)):
            return self._state

        try:
            cover = await self._generate_cover(playlist.cover_image_prompt)
        except ExhaustedRetriesError as exc:
            logger.error(
                "Cover generation gave up after %d attempts: %s", exc.attempts, exc.last_error
            )
            self._transition(run_id, ImageFailed(playlist, str(exc)))
            return self._state
        except Exception:
            logger.exception("Cover generation failed unexpectedly")
            self._transition(
                run_id, ImageFailed(playlist, ExhaustedRetriesError.MESSAGES["image"])
            )
            return self._state

        self._transition(run_id, Complete(playlist, cover))
        return self._state

    def reset(self) -> None:
        """Return to Idle, dropping held results and any in-flight run."""
        self._run_id += 1
        if self.suggestions is not None:
            self.suggestions.clear()
        self._set_state(Idle())

    def _transition(self, run_id: int, new_state: GenerationState) -> bool:
        if run_id != self._run_id:
            logger.debug("Ignoring stale %s from run %d", new_state.kind, run_id)
            return False
        self._set_state(new_state)
        return True

    def _set_state(self, new_state: GenerationState) -> None:
        self._state = new_state
        for listener in list(self._listeners):
            listener(new_state)


def build_session(
    settings: Optional[Settings] = None,
    *,
    client: Optional[AsyncOpenAI] = None,
    lookup_client: Optional[PlaceLookupClient] = None,
) -> GenerationSession:
    """
    Wire a session to the OpenAI pipelines and, if given, a place lookup client.

    Pass ``client`` to share one AsyncOpenAI across both stages; the caller
    owns it and closes it. ``lookup_client`` is for keystroke-driven front
    ends: the session then carries a SuggestionDebouncer over it, hidden on
    submit and cleared on reset. Request/response surfaces such as the HTTP
    API and the CLI look places up directly instead.
    """
    settings = settings or get_settings()
    playlist_generator = PlaylistGenerator(client, settings)
    cover_generator = CoverImageGenerator(client, settings)
    debouncer = None
    if lookup_client is not None:
        debouncer = SuggestionDebouncer(
            lookup_client.search,
            quiet_period_s=settings.debounce_ms / 1000,
            min_query_length=settings.min_query_length,
        )
    return GenerationSession(
        playlist_generator.generate,
        cover_generator.generate,
        suggestions=debouncer,
    )
