"""FastAPI surface over the suggestion lookup and the generation session."""

from __future__ import annotations

import os
from typing import Any, AsyncIterator, Dict

from fastapi import Depends, FastAPI, HTTPException, Query, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from openai import AsyncOpenAI

from .config import Settings, configure_logging, get_settings
from .errors import TripValidationError
from .lookup import PlaceLookupClient
from .models import TripRequest
from .openai_client import build_client
from .playlist import validate_trip
from .session import GenerationSession, build_session
from .state import Complete, ImageFailed, TextFailed, to_plain
from .suggestions import fetch_suggestions

app = FastAPI(title="Triply")


def _add_cors(app: FastAPI) -> None:
    """Allow a browser front end on another origin to call the API."""
    allow_all = os.getenv("CORS_ALLOW_ALL", "true").lower() == "true"
    origins_env = os.getenv("CORS_ALLOW_ORIGINS", "")
    origins = [o.strip() for o in origins_env.split(",") if o.strip()]
    allow_credentials = os.getenv("CORS_ALLOW_CREDENTIALS", "true").lower() == "true"
    if allow_all or not origins:
        origins = ["*"]
    if origins == ["*"] and allow_credentials:
        # Starlette/FastAPI disallow wildcard origins when credentials are enabled.
        allow_credentials = False
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )


_add_cors(app)


async def get_lookup_client(
    settings: Settings = Depends(get_settings),
) -> AsyncIterator[PlaceLookupClient]:
    async with PlaceLookupClient(settings) as client:
        yield client


async def get_openai_client(
    settings: Settings = Depends(get_settings),
) -> AsyncIterator[AsyncOpenAI]:
    """One OpenAI client per request, closed once the response is done."""
    try:
        client = build_client(settings)
    except RuntimeError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)
        ) from exc
    async with client:
        yield client


def get_session(
    settings: Settings = Depends(get_settings),
    client: AsyncOpenAI = Depends(get_openai_client),
) -> GenerationSession:
    return build_session(settings, client=client)


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/suggestions")
async def suggestions(
    q: str = Query("", description="Partial destination name."),
    settings: Settings = Depends(get_settings),
    client: PlaceLookupClient = Depends(get_lookup_client),
) -> Dict[str, Any]:
    """Place names for ``q``; lookup failures degrade to an empty list."""
    if len(q.strip()) < settings.min_query_length:
        return {"query": q, "suggestions": []}
    names = await fetch_suggestions(client.search, q)
    return {"query": q, "suggestions": names}


@app.post("/playlists")
async def create_playlist(
    trip: TripRequest,
    session: GenerationSession = Depends(get_session),
) -> JSONResponse:
    """
    Run one generation to completion.

    400 for an incomplete trip, 502 when the playlist stage gives up, and 200
    otherwise; a failed cover still returns the playlist with ``cover_error`` set.
    """
    try:
        validate_trip(trip)
    except TripValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    state = await session.submit(trip)
    if isinstance(state, TextFailed):
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=state.reason)

    body = {
        "status": state.kind,
        "playlist": to_plain(getattr(state, "playlist", None)),
        "cover": to_plain(state.cover) if isinstance(state, Complete) else None,
        "cover_error": state.reason if isinstance(state, ImageFailed) else None,
    }
    return JSONResponse(status_code=status.HTTP_200_OK, content=body)


if __name__ == "__main__":
    import uvicorn

    configure_logging(get_settings().log_level)
    uvicorn.run(
        "triply.server:app",
        host=os.getenv("TRIPLY_HOST", "0.0.0.0"),
        port=int(os.getenv("TRIPLY_PORT", "8000")),
        reload=os.getenv("TRIPLY_RELOAD", "false").lower() == "true",
    )
