import asyncio
import logging

import pytest

from triply.errors import NetworkError
from triply.suggestions import SuggestionDebouncer, fetch_suggestions

QUIET = 0.05


class RecordingLookup:
    def __init__(self, error=None, gated=()):
        self.queries = []
        self.error = error
        self.gated = set(gated)
        self.gate = asyncio.Event()

    async def __call__(self, query):
        self.queries.append(query)
        if query in self.gated:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return [f"{query}, City", f"{query}, Region"]


@pytest.mark.asyncio
async def test_rapid_keystrokes_issue_one_lookup_for_latest_value():
    lookup = RecordingLookup()
    debouncer = SuggestionDebouncer(lookup, quiet_period_s=QUIET)

    for value in ("a", "ab", "abc"):
        debouncer.feed(value)
        await asyncio.sleep(0.01)
    assert lookup.queries == []

    await debouncer.wait()

    assert lookup.queries == ["abc"]
    assert debouncer.suggestions == ["abc, City", "abc, Region"]
    assert debouncer.visible is True


@pytest.mark.asyncio
async def test_single_character_never_triggers_lookup():
    lookup = RecordingLookup()
    debouncer = SuggestionDebouncer(lookup, quiet_period_s=QUIET)

    debouncer.feed("a")
    debouncer.feed("  b  ")
    await asyncio.sleep(QUIET * 3)

    assert lookup.queries == []
    assert debouncer.pending is False
    assert debouncer.visible is False


@pytest.mark.asyncio
async def test_short_input_clears_existing_suggestions():
    lookup = RecordingLookup()
    debouncer = SuggestionDebouncer(lookup, quiet_period_s=QUIET)
    debouncer.feed("Seoul")
    await debouncer.wait()
    assert debouncer.suggestions

    debouncer.feed("S")

    assert debouncer.suggestions == []
    assert debouncer.visible is False


@pytest.mark.asyncio
async def test_lookup_failure_is_logged_and_degrades_to_empty(caplog):
    lookup = RecordingLookup(error=NetworkError("geocoder down", status_code=503))
    debouncer = SuggestionDebouncer(lookup, quiet_period_s=QUIET)

    with caplog.at_level(logging.WARNING, logger="triply.suggestions"):
        debouncer.feed("Busan")
        await debouncer.wait()

    assert lookup.queries == ["Busan"]
    assert debouncer.suggestions == []
    assert debouncer.visible is False
    assert "Failed to fetch suggestions" in caplog.text


@pytest.mark.asyncio
async def test_in_flight_lookup_for_superseded_value_is_discarded():
    lookup = RecordingLookup(gated={"Par"})
    debouncer = SuggestionDebouncer(lookup, quiet_period_s=QUIET)

    debouncer.feed("Par")
    await asyncio.sleep(QUIET * 2)
    assert lookup.queries == ["Par"]

    debouncer.feed("Paris")
    lookup.gate.set()
    await debouncer.wait()

    assert lookup.queries == ["Par", "Paris"]
    assert debouncer.suggestions == ["Paris, City", "Paris, Region"]


@pytest.mark.asyncio
async def test_close_cancels_pending_timer():
    lookup = RecordingLookup()
    debouncer = SuggestionDebouncer(lookup, quiet_period_s=QUIET)

    debouncer.feed("Tokyo")
    debouncer.close()
    await asyncio.sleep(QUIET * 3)

    assert lookup.queries == []
    with pytest.raises(RuntimeError):
        debouncer.feed("Osaka")


@pytest.mark.asyncio
async def test_context_manager_closes_on_exit():
    lookup = RecordingLookup()
    async with SuggestionDebouncer(lookup, quiet_period_s=QUIET) as debouncer:
        debouncer.feed("Lisbon")
    await asyncio.sleep(QUIET * 3)
    assert lookup.queries == []


@pytest.mark.asyncio
async def test_on_change_receives_each_new_list():
    seen = []
    lookup = RecordingLookup()
    debouncer = SuggestionDebouncer(lookup, quiet_period_s=QUIET, on_change=seen.append)

    debouncer.feed("Rome")
    await debouncer.wait()
    debouncer.clear()

    assert seen == [["Rome, City", "Rome, Region"], []]


@pytest.mark.asyncio
async def test_select_hides_and_focus_shows_again():
    lookup = RecordingLookup()
    debouncer = SuggestionDebouncer(lookup, quiet_period_s=QUIET)
    debouncer.feed("Jeju")
    await debouncer.wait()

    chosen = debouncer.select("Jeju, City")
    assert chosen == "Jeju, City"
    assert debouncer.visible is False

    debouncer.focus()
    assert debouncer.visible is True

    debouncer.blur()
    assert debouncer.suggestions == []
    assert debouncer.visible is False


@pytest.mark.asyncio
async def test_fetch_suggestions_returns_names_or_empty(caplog):
    assert await fetch_suggestions(RecordingLookup(), "Jeju") == ["Jeju, City", "Jeju, Region"]

    failing = RecordingLookup(error=RuntimeError("unexpected payload"))
    with caplog.at_level(logging.WARNING, logger="triply.suggestions"):
        assert await fetch_suggestions(failing, "Jeju") == []
    assert "Failed to fetch suggestions for 'Jeju'" in caplog.text
