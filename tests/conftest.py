import base64
import json
from types import SimpleNamespace

import pytest

from triply.config import Settings
from triply.playlist import parse_playlist_payload


class RecordingSleep:
    """Stands in for asyncio.sleep and records requested delays."""

    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


class FakeEndpoint:
    """Returns (or raises) queued outcomes in order and records call kwargs."""

    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    async def __call__(self, **kwargs):
        self.calls.append(kwargs)
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class FakeOpenAI:
    def __init__(self, responses=(), images=()):
        self.responses = SimpleNamespace(create=FakeEndpoint(responses or [None]))
        self.images = SimpleNamespace(generate=FakeEndpoint(images or [None]))


def make_payload(song_count=10, **overrides):
    payload = {
        "playlistTitle": "Seaside Summer",
        "playlistDescription": "Sunny songs for a beach trip.",
        "coverImagePrompt": "retro beach poster, pastel sunset, palm trees",
        "songs": [
            {
                "title": f"Song {i}",
                "artist": f"Artist {i}",
                "reason": f"Reason {i}",
            }
            for i in range(1, song_count + 1)
        ],
    }
    payload.update(overrides)
    return payload


def text_response(payload):
    text = payload if isinstance(payload, str) else json.dumps(payload)
    return SimpleNamespace(output_text=text, status="completed", error=None)


def image_response(*blobs):
    return SimpleNamespace(
        data=[SimpleNamespace(b64_json=base64.b64encode(blob).decode("ascii")) for blob in blobs]
    )


@pytest.fixture
def settings():
    return Settings(OPENAI_API_KEY="test-key", _env_file=None)


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def playlist():
    return parse_playlist_payload(make_payload())
