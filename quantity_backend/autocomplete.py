"""
Autocomplete suggestion engine — one instance per free-text field.

Suggestions come from two places:
    1. the search service: values already saved in past quantity tables
    2. unsaved values: typed elsewhere on the sheet this session, not yet saved
They are merged, de-duplicated, prefix-filtered against the current input
and sorted with the ICU Japanese collation: hiragana and katakana interleave
in gojuon order, kanji follow JIS X 0208 (reading) order.

Lifecycle (mirrors the field it serves):
    mount    -> AutocompleteEngine(...)   no request, even when pre-filled
    keystroke-> set_input(value)          debounced request
    unmount  -> close()

Runs on an asyncio event loop. set_input() and friends must be called from
the loop thread. A response is only applied if it belongs to the most
recently issued query — late answers to superseded queries are dropped.
"""

import asyncio
import json
import logging
import urllib.parse
import urllib.request
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional

import icu

from .config import settings

logger = logging.getLogger(__name__)

# (url) -> {"suggestions": [...]}
Fetch = Callable[[str], Awaitable[dict]]

_collator = None


def _get_collator() -> icu.Collator:
    # Built once, on first sort
    global _collator
    if _collator is None:
        _collator = icu.Collator.createInstance(icu.Locale("ja_JP"))
    return _collator


def collation_key(value: str):
    """Sort key giving Japanese reading order. Ties fall back to code point order."""
    return (_get_collator().getSortKey(value), value)


def merge_suggestions(server_values: list, unsaved_values: list, input_value: str) -> list:
    """
    Combine server and unsaved values into the list shown under the field.

    Exact duplicates and empty strings are dropped, only values starting with
    the input (case-insensitive) are kept, and the result is collation-sorted.
    """
    prefix = input_value.lower()
    seen = set()
    merged = []
    for value in list(server_values) + list(unsaved_values):
        if not isinstance(value, str) or not value or value in seen:
            continue
        seen.add(value)
        if value.lower().startswith(prefix):
            merged.append(value)
    return sorted(merged, key=collation_key)


def build_autocomplete_url(endpoint: str, query: str, limit: int,
                           additional_params: Optional[dict] = None) -> str:
    """
    GET {endpoint}?q=<query>&limit=<n>[&key=value...]

    Extra params (e.g. majorCategory for middle-category suggestions) are only
    sent when they have a value.
    """
    params = {"q": query, "limit": str(limit)}
    for key, value in (additional_params or {}).items():
        if value:
            params[key] = value
    separator = "&" if "?" in endpoint else "?"
    return endpoint + separator + urllib.parse.urlencode(params)


class UrllibFetcher:
    """
    Default fetch capability — blocking urllib GET run in a worker thread.

    Relative endpoints are resolved against AUTOCOMPLETE_BASE_URL.
    Raises on HTTP and network errors; the engine turns those into state.error.
    """

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None):
        self.base_url = settings.AUTOCOMPLETE_BASE_URL if base_url is None else base_url
        self.timeout = settings.AUTOCOMPLETE_TIMEOUT_SECONDS if timeout is None else timeout

    async def __call__(self, url: str) -> dict:
        return await asyncio.to_thread(self._get, url)

    def _get(self, url: str) -> dict:
        full_url = urllib.parse.urljoin(self.base_url, url) if self.base_url else url
        req = urllib.request.Request(
            full_url,
            headers={"Accept": "application/json"},
            method="GET",
        )
        kwargs = {} if self.timeout is None else {"timeout": self.timeout}
        with urllib.request.urlopen(req, **kwargs) as response:
            return json.loads(response.read())


@dataclass
class AutocompleteState:
    suggestions: list = field(default_factory=list)
    is_loading: bool = False
    error: Optional[Exception] = None


class AutocompleteEngine:
    """
    Debounced, cancellable suggestion generator for one field.

    Usage:
        engine = AutocompleteEngine("/api/autocomplete/major-categories",
                                    input_value=item["major_category"])
        engine.set_input("建")        # on every keystroke
        engine.state.suggestions      # after the debounce + request
        engine.close()                # when the field goes away
    """

    def __init__(self, endpoint: str, input_value: str = "", fetch: Optional[Fetch] = None,
                 unsaved_values: Optional[list] = None,
                 additional_params: Optional[dict] = None,
                 debounce_ms: Optional[int] = None, limit: Optional[int] = None,
                 enabled: bool = True,
                 on_change: Optional[Callable[[AutocompleteState], None]] = None):
        self.endpoint = endpoint
        self.fetch = fetch or UrllibFetcher()
        self.debounce_ms = settings.AUTOCOMPLETE_DEBOUNCE_MS if debounce_ms is None else debounce_ms
        self.limit = settings.AUTOCOMPLETE_LIMIT if limit is None else limit
        self.additional_params = dict(additional_params or {})
        self.on_change = on_change
        self.state = AutocompleteState()

        self._input_value = input_value
        self._unsaved_values = list(unsaved_values or [])
        self._enabled = enabled

        self._timer: Optional[asyncio.TimerHandle] = None
        self._query_id = 0
        self._tasks = set()
        self._cached_server_values: Optional[list] = None
        self._last_fetched_input: Optional[str] = None

    # --- Read-only views ---

    @property
    def input_value(self) -> str:
        return self._input_value

    @property
    def unsaved_values(self) -> list:
        return list(self._unsaved_values)

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def suggestions(self) -> list:
        return self.state.suggestions

    # --- Events from the field ---

    def set_input(self, value: str):
        """Keystroke. Restarts the debounce timer; an empty value clears at once."""
        if value == self._input_value:
            return
        self._input_value = value
        self._cancel_pending()

        if not self._enabled:
            return
        if not value:
            self._update(suggestions=[], is_loading=False)
            return

        self._schedule(value)

    def set_unsaved_values(self, values: list):
        """
        Values typed elsewhere changed. If the cached server answer still
        matches the current input, re-merge without a new request.
        """
        self._unsaved_values = list(values or [])
        if (
            self._enabled
            and self._input_value
            and self._cached_server_values is not None
            and self._last_fetched_input == self._input_value
        ):
            self._update(suggestions=merge_suggestions(
                self._cached_server_values, self._unsaved_values, self._input_value
            ))

    def set_additional_params(self, params: Optional[dict]):
        """New parent scope (e.g. a different major category). Applies to the next request."""
        self.additional_params = dict(params or {})
        # Cached values were fetched for the old scope
        self._cached_server_values = None
        self._last_fetched_input = None

    def set_enabled(self, enabled: bool):
        """
        Disabling drops any pending query and empties the list. Re-enabling
        looks up whatever was typed in the meantime, after the usual debounce.
        """
        if enabled == self._enabled:
            return
        self._enabled = enabled
        self._cancel_pending()
        if not enabled:
            self._update(suggestions=[], is_loading=False)
        elif self._input_value:
            self._schedule(self._input_value)

    def close(self):
        """Field unmounted — cancel the timer and anything in flight."""
        self._cancel_pending()
        for task in list(self._tasks):
            task.cancel()

    async def wait_idle(self):
        """Wait until no debounce timer is pending and no request is in flight."""
        while self._timer is not None or self._tasks:
            if self._tasks:
                await asyncio.gather(*self._tasks, return_exceptions=True)
            else:
                await asyncio.sleep(self.debounce_ms / 1000.0)

    # --- Internals ---

    def _cancel_pending(self):
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        # Any response still on its way now belongs to a superseded query
        self._query_id += 1

    def _schedule(self, value: str):
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(
            self.debounce_ms / 1000.0, self._fire, self._query_id, value
        )

    def _fire(self, query_id: int, text: str):
        self._timer = None
        task = asyncio.ensure_future(self._run_query(query_id, text))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run_query(self, query_id: int, text: str):
        url = build_autocomplete_url(self.endpoint, text, self.limit, self.additional_params)
        self._update(is_loading=True, error=None)

        try:
            payload = await self.fetch(url)
            server_values = list(payload.get("suggestions") or [])
        except Exception as e:
            if query_id != self._query_id:
                logger.debug("Ignoring failure of superseded autocomplete query %r", text)
                return
            logger.warning("Autocomplete request failed for %s: %s", url, e)
            self._update(suggestions=[], is_loading=False, error=e)
            return

        if query_id != self._query_id:
            logger.debug("Ignoring stale autocomplete response for %r", text)
            return

        self._cached_server_values = server_values
        self._last_fetched_input = text
        self._update(
            suggestions=merge_suggestions(server_values, self._unsaved_values, text),
            is_loading=False,
            error=None,
        )

    def _update(self, **changes):
        for name, value in changes.items():
            setattr(self.state, name, value)
        if self.on_change is not None:
            self.on_change(self.state)
