"""
Search & Suggestion Session.

States:
  IDLE → QUERYING → (COMPLETED | FAILED), QUERYING re-entrant.

Suggestions are debounced: every `update_query` call re-arms one timer and
only a timer that fires unsuperseded reaches the provider. Each forwarded
query carries a sequence number; a suggestion batch answering an older
sequence is stale and is dropped. Searches are applied in arrival order.
"""

import asyncio
import logging
from typing import Callable, List, Optional, Set

from poi_finder.errors import FinderError, NoResults, SearchFailed, SuggestionFailed
from poi_finder.models.config import FinderConfig
from poi_finder.models.map import MapRegion
from poi_finder.models.poi import POI
from poi_finder.models.search import SearchState, Suggestion
from poi_finder.search.providers import PlaceSearchProvider, SuggestionProvider

logger = logging.getLogger(__name__)


class SearchSession:
    def __init__(
        self,
        search_provider: PlaceSearchProvider,
        suggestion_provider: SuggestionProvider,
        config: Optional[FinderConfig] = None,
        on_change: Optional[Callable[[str], None]] = None,
    ):
        self.search_provider = search_provider
        self.suggestion_provider = suggestion_provider
        self.config = config or FinderConfig()
        self.on_change = on_change

        self.query_text = ""
        self.suggestions: List[Suggestion] = []
        self.results: List[POI] = []
        self.last_error: Optional[FinderError] = None
        self.state = SearchState.IDLE

        self._sequence = 0
        self._forwarded = ""
        self._timer: Optional[asyncio.TimerHandle] = None
        self._inflight: Set[asyncio.Task] = set()

    @property
    def sequence(self) -> int:
        """Sequence number of the most recently forwarded query."""
        return self._sequence

    @property
    def debounce_pending(self) -> bool:
        return self._timer is not None

    def _emit(self, what: str) -> None:
        if self.on_change is not None:
            self.on_change(what)

    def _fail(self, error: FinderError) -> None:
        self.last_error = error
        self.state = SearchState.FAILED
        self._emit("status")

    # --- Suggestions ---

    def update_query(self, text: str) -> None:
        """Debounce `text` towards the suggestion provider. Call from the loop."""
        self.query_text = text
        self._cancel_timer()

        if not text:
            # Anything still in flight now answers a superseded query.
            self._sequence += 1
            self._forwarded = ""
            self.suggestions = []
            self._emit("suggestions")
            return

        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.config.debounce_seconds, self._forward, text)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _forward(self, text: str) -> None:
        """Debounce timer fired without being superseded."""
        self._timer = None
        if text == self._forwarded:
            return
        self._sequence += 1
        self._forwarded = text
        self.state = SearchState.QUERYING
        task = asyncio.ensure_future(self._request_suggestions(text, self._sequence))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    async def _request_suggestions(self, text: str, sequence: int) -> None:
        try:
            batch = await self.suggestion_provider.suggest(text)
        except Exception as e:
            if sequence != self._sequence:
                logger.debug("Dropping stale suggestion failure for %r", text)
                return
            logger.warning("Autocomplete error for %r: %s", text, e)
            self._forwarded = ""
            self.suggestions = []
            self._emit("suggestions")
            self._fail(SuggestionFailed(str(e)))
            return

        if sequence != self._sequence:
            logger.debug(
                "Dropping stale suggestions for %r (seq %d, current %d)",
                text, sequence, self._sequence,
            )
            return
        self.suggestions = list(batch)
        self.state = SearchState.COMPLETED
        self._emit("suggestions")

    def clear(self) -> None:
        """Reset the query and the suggestion list (the 'clear search' action)."""
        self._cancel_timer()
        self._sequence += 1
        self._forwarded = ""
        self.query_text = ""
        self.suggestions = []
        self._emit("suggestions")

    async def drain(self) -> None:
        """Wait for every in-flight suggestion request to finish."""
        while self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)

    def close(self) -> None:
        self._cancel_timer()

    # --- Search ---

    async def search(self, query: str, region: MapRegion) -> List[POI]:
        """
        Run one search and apply its outcome.

        Returns the POIs from this call (possibly empty). Zero results or a
        provider failure leave the previous results in place.
        """
        self.state = SearchState.QUERYING
        try:
            places = await self.search_provider.search(query, region)
        except Exception as e:
            logger.warning("Search for %r failed: %s", query, e)
            self._fail(SearchFailed(str(e)))
            return []

        pois = [p for p in (POI.from_place(place) for place in places) if p is not None]
        if not pois:
            logger.info("No results for %r", query)
            self.last_error = NoResults(query)
            self.state = SearchState.COMPLETED
            self._emit("status")
            return []

        logger.info("Search for %r returned %d results", query, len(pois))
        self.results = pois
        self.last_error = None
        self.state = SearchState.COMPLETED
        self._emit("results")
        self._emit("status")
        return pois

    def replace_result(self, poi: POI) -> bool:
        """Swap in a fresher copy of a result, matched by identity."""
        for i, existing in enumerate(self.results):
            if existing.id == poi.id:
                self.results[i] = poi
                return True
        return False
