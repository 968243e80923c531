"""Debounced destination suggestions driven by keystrokes."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional

logger = logging.getLogger(__name__)

LookupFn = Callable[[str], Awaitable[List[str]]]
ChangeListener = Callable[[List[str]], None]


async def fetch_suggestions(lookup: LookupFn, query: str) -> List[str]:
    """Run one lookup; any failure is logged and yields no suggestions."""
    try:
        return await lookup(query)
    except Exception:
        logger.warning("Failed to fetch suggestions for %r", query, exc_info=True)
        return []


class SuggestionDebouncer:
    """Turn a stream of input values into at most one lookup per quiet period.

    Only one timer task is ever pending. Every ``feed`` cancels it and bumps a
    generation counter; a lookup result is applied only while its generation
    is still the latest, so results for superseded input are dropped.

    Args:
        lookup: Coroutine function returning display names for a query.
        quiet_period_s: Time the input must stay unchanged before a lookup.
        min_query_length: Shorter (stripped) input clears suggestions instead.
        on_change: Called with the new list whenever suggestions change.
    """

    def __init__(
        self,
        lookup: LookupFn,
        *,
        quiet_period_s: float = 0.3,
        min_query_length: int = 2,
        on_change: Optional[ChangeListener] = None,
    ) -> None:
        self._lookup = lookup
        self.quiet_period_s = quiet_period_s
        self.min_query_length = min_query_length
        self._on_change = on_change
        self._pending: asyncio.Task[None] | None = None
        self._generation = 0
        self._suggestions: List[str] = []
        self._visible = False
        self._closed = False

    @property
    def suggestions(self) -> List[str]:
        return list(self._suggestions)

    @property
    def visible(self) -> bool:
        return self._visible

    @property
    def pending(self) -> bool:
        return self._pending is not None and not self._pending.done()

    async def __aenter__(self) -> "SuggestionDebouncer":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.close()

    def feed(self, text: str) -> None:
        """Accept the latest input value; must run inside an event loop."""
        if self._closed:
            raise RuntimeError("SuggestionDebouncer is closed.")
        self._supersede()
        if len(text.strip()) < self.min_query_length:
            self._apply([])
            return
        loop = asyncio.get_running_loop()
        self._pending = loop.create_task(self._lookup_after_quiet(text, self._generation))

    def focus(self) -> None:
        self._visible = bool(self._suggestions)

    def blur(self) -> None:
        self.clear()

    def select(self, value: str) -> str:
        """Hide the list once the user picks an entry."""
        self._supersede()
        self._visible = False
        return value

    def clear(self) -> None:
        self._supersede()
        self._apply([])

    def close(self) -> None:
        """Cancel any pending lookup; the debouncer accepts no more input."""
        self._supersede()
        self._closed = True

    async def wait(self) -> None:
        """Wait for the pending lookup, if any, to finish or be cancelled."""
        task = self._pending
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)

    def _supersede(self) -> None:
        self._generation += 1
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = None

    def _apply(self, suggestions: List[str]) -> None:
        changed = suggestions != self._suggestions
        self._suggestions = list(suggestions)
        self._visible = bool(suggestions)
        if changed and self._on_change is not None:
            self._on_change(self.suggestions)

    async def _lookup_after_quiet(self, text: str, generation: int) -> None:
        await asyncio.sleep(self.quiet_period_s)
        results = await fetch_suggestions(self._lookup, text)
        if generation != self._generation:
            logger.debug("Dropping stale suggestions for %r", text)
            return
        self._apply(results)
