import json

import pytest
from typer.testing import CliRunner

from conftest import make_payload
from triply import cli
from triply.errors import ExhaustedRetriesError, NetworkError
from triply.models import CoverImage
from triply.playlist import parse_playlist_payload
from triply.session import GenerationSession
from triply.state import Complete, ImageFailed, to_plain

runner = CliRunner()


@pytest.fixture(autouse=True)
def _leave_logging_alone(monkeypatch):
    monkeypatch.setattr(cli, "configure_logging", lambda level: None)


class FakeOpenAIClient:
    def __init__(self):
        self.closed = False

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        self.closed = True


@pytest.fixture(autouse=True)
def openai_client(monkeypatch):
    client = FakeOpenAIClient()
    monkeypatch.setattr(cli, "build_client", lambda settings: client)
    return client


GENERATE_ARGS = [
    "generate",
    "--destination",
    "Busan",
    "--start",
    "2025-07-01",
    "--end",
    "2025-07-04",
    "--activity",
    "relax",
    "--genre",
    "kpop",
]


def _fake_build_session(*, text_error=None, image_error=None, seen=None, clients=None):
    def build(settings, client=None):
        if clients is not None:
            clients.append(client)

        async def playlist(trip):
            if seen is not None:
                seen.append(trip)
            if text_error is not None:
                raise text_error
            return parse_playlist_payload(make_payload(song_count=2))

        async def cover(prompt):
            if image_error is not None:
                raise image_error
            return CoverImage(data=b"cover-bytes")

        return GenerationSession(playlist, cover)

    return build


def test_to_plain_serializes_state_and_cover():
    playlist = parse_playlist_payload(make_payload(song_count=2))
    payload = to_plain(Complete(playlist, CoverImage(data=b"abc")))

    assert payload["kind"] == "complete"
    assert payload["playlist"]["songs"][1]["artist"] == "Artist 2"
    assert payload["cover"] == {"encoding": "png", "data_base64": "YWJj"}
    json.dumps(payload)


def test_write_output_json(tmp_path):
    out_file = tmp_path / "result.json"
    playlist = parse_playlist_payload(make_payload(song_count=1))

    cli._write_output(out_file, ImageFailed(playlist, "cover image generation failed"))

    written = json.loads(out_file.read_text(encoding="utf-8"))
    assert written["kind"] == "image_failed"
    assert written["reason"] == "cover image generation failed"


def test_generate_prints_playlist_and_saves_cover(monkeypatch, tmp_path):
    monkeypatch.setenv("OPENAI_API_KEY", "test-key")
    seen = []
    monkeypatch.setattr(cli, "build_session", _fake_build_session(seen=seen))
    cover_path = tmp_path / "cover.png"
    out_path = tmp_path / "state.json"

    result = runner.invoke(
        cli.app, GENERATE_ARGS + ["--cover-out", str(cover_path), "--out", str(out_path)]
    )

    assert result.exit_code == 0, result.output
    assert "Seaside Summer" in result.output
    assert "Song 2" in result.output
    assert cover_path.read_bytes() == b"cover-bytes"
    assert json.loads(out_path.read_text(encoding="utf-8"))["kind"] == "complete"
    trip = seen[0]
    assert trip.destination == "Busan"
    assert trip.activities == ("relax",)
    assert trip.genres == ("kpop",)


def test_generate_exits_nonzero_when_playlist_fails(monkeypatch):
    error = ExhaustedRetriesError("playlist", 5, NetworkError("down"))
    monkeypatch.setattr(cli, "build_session", _fake_build_session(text_error=error))

    result = runner.invoke(cli.app, GENERATE_ARGS)

    assert result.exit_code == 1
    assert "playlist generation failed" in result.output


def test_generate_reports_missing_cover_but_succeeds(monkeypatch, tmp_path):
    error = ExhaustedRetriesError("image", 3, NetworkError("down"))
    monkeypatch.setattr(cli, "build_session", _fake_build_session(image_error=error))
    cover_path = tmp_path / "cover.png"

    result = runner.invoke(cli.app, GENERATE_ARGS + ["--cover-out", str(cover_path)])

    assert result.exit_code == 0
    assert "cover image generation failed" in result.output
    assert not cover_path.exists()


def test_generate_rejects_bad_date():
    args = list(GENERATE_ARGS)
    args[args.index("2025-07-01")] = "July 1st"

    result = runner.invoke(cli.app, args)

    assert result.exit_code == 2


def test_suggest_prints_lookup_results(monkeypatch):
    class FakeClient:
        def __init__(self, settings):
            pass

        async def __aenter__(self):
            return self

        async def __aexit__(self, *exc_info):
            return None

        async def search(self, query, limit=None):
            return [f"{query}, South Korea"]

    monkeypatch.setattr(cli, "PlaceLookupClient", FakeClient)

    result = runner.invoke(cli.app, ["suggest", "Jeonju"])

    assert result.exit_code == 0
    assert "Jeonju, South Korea" in result.output


def test_generate_closes_openai_client(monkeypatch, openai_client):
    clients = []
    monkeypatch.setattr(cli, "build_session", _fake_build_session(clients=clients))

    result = runner.invoke(cli.app, GENERATE_ARGS)

    assert result.exit_code == 0, result.output
    assert clients == [openai_client]
    assert openai_client.closed


def test_generate_without_api_key_exits_cleanly(monkeypatch):
    def missing_key(settings):
        raise RuntimeError("OPENAI_API_KEY is required.")

    monkeypatch.setattr(cli, "build_client", missing_key)

    result = runner.invoke(cli.app, GENERATE_ARGS)

    assert result.exit_code == 1
    assert "OPENAI_API_KEY is required" in result.output
