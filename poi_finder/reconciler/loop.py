"""
Map Session — the coordinator that keeps the map consistent.

Owns the favorites store, the search session, recent searches and the
annotation reconciler, and applies every asynchronous event to them:
location fixes, search and suggestion completions, favorite toggles, note
edits and directions.

Apply model:
  The asyncio event loop is the single apply queue. Every mutation below
  runs synchronously on the loop between awaits, so no two completions ever
  touch shared state at once. Store I/O runs in a worker thread via
  asyncio.to_thread; events from other threads come in through post().

Favorites follow read-after-write: every store mutation is followed by a
full re-list before `is_favorite` flags and the annotation set are
recomputed. Re-lists are ticketed so an older listing never overwrites a
newer one.
"""

import asyncio
import logging
from typing import Callable, List, Optional
from uuid import UUID, uuid4

from poi_finder.errors import FinderError, PermissionDenied, RoutingFailed, StorageError
from poi_finder.favorites.store import FavoritesStore
from poi_finder.models.config import FinderConfig
from poi_finder.models.map import Annotation, MapRegion, MapSnapshot, MapType, Route
from poi_finder.models.poi import POI, Coordinate
from poi_finder.models.search import Suggestion
from poi_finder.models.status import StatusMessage
from poi_finder.recents.ring import RecentSearches
from poi_finder.reconciler.annotations import AnnotationReconciler
from poi_finder.search.providers import PlaceSearchProvider, RoutingProvider, SuggestionProvider
from poi_finder.search.session import SearchSession

logger = logging.getLogger(__name__)

# Called with (event, session). Events: "annotations", "selection",
# "suggestions", "results", "recents", "favorites", "status", "region",
# "map_type", "route", "location".
Listener = Callable[[str, "MapSession"], None]


class MapSession:
    def __init__(
        self,
        store: FavoritesStore,
        search_provider: PlaceSearchProvider,
        suggestion_provider: SuggestionProvider,
        routing_provider: RoutingProvider,
        config: Optional[FinderConfig] = None,
    ):
        self.store = store
        self.routing_provider = routing_provider
        self.config = config or FinderConfig()
        self.search_session = SearchSession(
            search_provider,
            suggestion_provider,
            config=self.config,
            on_change=self._on_search_change,
        )
        self.recents = RecentSearches(capacity=self.config.recent_capacity)
        self._reconciler = AnnotationReconciler()

        self.favorites: List[POI] = []
        self.annotations: List[Annotation] = []
        self.selection: Optional[POI] = None
        self.user_location: Optional[Coordinate] = None
        self.permission_denied = False
        self.region = MapRegion.around(self.config.default_center, self.config.default_span)
        self.map_type = MapType.STANDARD
        self.current_route: Optional[Route] = None
        self.status: Optional[StatusMessage] = None

        self._user_marker_id = uuid4()
        self._centered_on_user = False
        self._favorites_issued = 0
        self._favorites_applied = 0
        self._listeners: List[Listener] = []
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    # --- Lifecycle ---

    async def start(self) -> None:
        """Bind to the running loop and load favorites."""
        self.bind_loop()
        await self.refresh_favorites()

    def close(self) -> None:
        self.search_session.close()
        self.store.close()

    def bind_loop(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop or asyncio.get_running_loop()

    def post(self, callback: Callable, *args) -> None:
        """Queue `callback(*args)` onto the apply loop from any thread."""
        if self._loop is None:
            raise RuntimeError("MapSession is not bound to an event loop")
        self._loop.call_soon_threadsafe(callback, *args)

    def update_config(self, config: FinderConfig) -> None:
        self.config = config
        self.search_session.config = config
        self.recents.capacity = config.recent_capacity
        self.store.coordinate_tolerance = config.coordinate_tolerance

    # --- Observation ---

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, event: str) -> None:
        for listener in list(self._listeners):
            listener(event, self)

    @property
    def results(self) -> List[POI]:
        return list(self.search_session.results)

    @property
    def suggestions(self) -> List[Suggestion]:
        return list(self.search_session.suggestions)

    @property
    def user_marker(self) -> Optional[POI]:
        if self.user_location is None:
            return None
        return POI.user_marker(self.user_location, id=self._user_marker_id)

    def snapshot(self) -> MapSnapshot:
        return MapSnapshot(
            annotations=self.annotations,
            selection=self.selection,
            results=self.results,
            suggestions=self.suggestions,
            recents=self.recents.items,
            favorites=self.favorites,
            status=self.status,
            region=self.region,
            map_type=self.map_type,
            route=self.current_route,
            user_location=self.user_location,
            permission_denied=self.permission_denied,
            query_text=self.search_session.query_text,
            search_state=self.search_session.state,
        )

    def find(self, poi_id: UUID) -> Optional[POI]:
        """Look a POI up by identity among everything the session holds."""
        for annotation in self.annotations:
            if annotation.poi.id == poi_id:
                return annotation.poi
        for poi in self.favorites + self.recents.items:
            if poi.id == poi_id:
                return poi
        if self.selection is not None and self.selection.id == poi_id:
            return self.selection
        return None

    # --- Status slot ---

    def _set_error(self, error: FinderError) -> None:
        self.status = error.to_status()
        self._emit("status")

    def clear_status(self) -> None:
        self.status = None
        self._emit("status")

    # --- Reconciliation ---

    def _reconcile(self) -> None:
        self.annotations = self._reconciler.reconcile(
            self.search_session.results,
            self.favorites,
            self.user_marker,
        )
        self._emit("annotations")

    def _is_favorite(self, poi: POI) -> bool:
        tolerance = self.config.coordinate_tolerance
        return any(f.same_place(poi, tolerance) for f in self.favorites)

    def _derive(self, poi: POI) -> POI:
        flag = self._is_favorite(poi)
        return poi if poi.is_favorite == flag else poi.with_favorite(flag)

    def _rederive_favorite_flags(self) -> None:
        """Recompute `is_favorite` on every held copy from the current listing."""
        session = self.search_session
        session.results = [self._derive(p) for p in session.results]
        for poi in self.recents.items:
            self.recents.replace(self._derive(poi))
        if self.selection is not None:
            self.selection = self._derive(self.selection)

    def _on_search_change(self, what: str) -> None:
        if what == "results":
            self._rederive_favorite_flags()
            self._reconcile()
        elif what == "status":
            error = self.search_session.last_error
            self.status = error.to_status() if error is not None else None
        self._emit(what)

    # --- Location ---

    def update_location(self, coordinate: Coordinate) -> None:
        """A location fix. The first fix also recentres the map on the user."""
        self.user_location = coordinate
        self.permission_denied = False
        if not self._centered_on_user:
            self.region = self.region.model_copy(update={"center": coordinate})
            self._centered_on_user = True
            self._emit("region")
        self._emit("location")
        self._reconcile()

    def deny_location(self) -> None:
        logger.warning("Location permission denied")
        self.permission_denied = True
        self.user_location = None
        self._emit("location")
        self._set_error(PermissionDenied())
        self._reconcile()

    # --- Search ---

    def update_query(self, text: str) -> None:
        self.search_session.update_query(text)

    def clear_search(self) -> None:
        self.search_session.clear()

    async def search(self, query: str, near: Optional[Coordinate] = None) -> List[POI]:
        """
        Search around `near`, else the user, else the map center.
        Returns the POIs this search produced; the first one is the best match.
        """
        if not query.strip():
            return []
        center = near or self.user_location or self.region.center
        region = MapRegion.around(center, self.config.search_span)
        return await self.search_session.search(query, region)

    async def choose_suggestion(self, suggestion: Suggestion) -> List[POI]:
        """Search for a picked suggestion and focus the map on the best match."""
        self.search_session.clear()
        self.search_session.query_text = suggestion.title
        pois = await self.search(suggestion.title)
        if pois:
            self.center_on(pois[0])
        return pois

    # --- Selection & viewport ---

    def select(self, poi: POI) -> Optional[POI]:
        """Make `poi` the active selection, using the reconciled instance if any."""
        if poi.is_user_marker:
            return self.selection
        chosen = self.find(poi.id)
        if chosen is None:
            chosen = poi
        self.selection = chosen
        self.recents.record(chosen)
        self._emit("selection")
        self._emit("recents")
        return chosen

    def select_id(self, poi_id: UUID) -> POI:
        poi = self.find(poi_id)
        if poi is None:
            raise KeyError(poi_id)
        return self.select(poi)

    def dismiss(self) -> None:
        self.selection = None
        self._emit("selection")

    def center_on(self, poi: POI) -> None:
        self.region = MapRegion.around(poi.coordinate, self.config.focus_span)
        self._emit("region")

    def center_on_user(self) -> bool:
        marker = self.user_marker
        if marker is None:
            return False
        self.center_on(marker)
        return True

    def toggle_map_type(self) -> MapType:
        if self.map_type == MapType.STANDARD:
            self.map_type = MapType.MUTED_STANDARD
        else:
            self.map_type = MapType.STANDARD
        self._emit("map_type")
        return self.map_type

    # --- Favorites ---

    async def refresh_favorites(self) -> bool:
        """Re-list favorites and recompute everything derived from them."""
        self._favorites_issued += 1
        ticket = self._favorites_issued
        try:
            favorites = await asyncio.to_thread(self.store.list_favorites)
        except StorageError as e:
            self._set_error(e)
            return False
        if ticket < self._favorites_applied:
            logger.debug("Dropping favorites listing %d, %d already applied",
                         ticket, self._favorites_applied)
            return False
        self._favorites_applied = ticket
        self.favorites = favorites
        self._rederive_favorite_flags()
        self._emit("favorites")
        self._reconcile()
        return True

    async def save_favorite(self, poi: POI) -> bool:
        if poi.is_user_marker:
            return False
        try:
            await asyncio.to_thread(self.store.upsert_favorite, poi)
        except StorageError as e:
            self._set_error(e)
            return False
        return await self.refresh_favorites()

    async def delete_favorite(self, poi: POI) -> bool:
        """Remove a favorite. The selection is left alone even if it was this POI."""
        if poi.is_user_marker:
            return False
        try:
            await asyncio.to_thread(self.store.delete_favorite, poi)
        except StorageError as e:
            self._set_error(e)
            return False
        return await self.refresh_favorites()

    async def toggle_favorite(self, poi: POI) -> bool:
        """Flip favorite membership. Returns whether the POI is now a favorite."""
        if self._is_favorite(poi):
            await self.delete_favorite(poi)
        else:
            await self.save_favorite(poi)
        return self._is_favorite(poi)

    async def update_note(self, poi: POI, note: Optional[str]) -> bool:
        """
        Set a note on `poi`. Favorites are persisted first; if that fails no
        in-memory copy changes. Every copy sharing the id is then refreshed.
        """
        if self._is_favorite(poi):
            try:
                saved = await asyncio.to_thread(self.store.update_note, poi, note)
            except StorageError as e:
                self._set_error(e)
                return False
            if saved:
                await self.refresh_favorites()

        self._apply_note(poi.id, note)
        return True

    def _apply_note(self, poi_id: UUID, note: Optional[str]) -> None:
        for poi in self.search_session.results:
            if poi.id == poi_id:
                self.search_session.replace_result(poi.with_note(note))
        for poi in self.recents.items:
            if poi.id == poi_id:
                self.recents.replace(poi.with_note(note))
        self.favorites = [
            f.with_note(note) if f.id == poi_id else f for f in self.favorites
        ]
        if self.selection is not None and self.selection.id == poi_id:
            self.selection = self.selection.with_note(note)
            self._emit("selection")
        self._emit("recents")
        self._reconcile()

    # --- Directions ---

    async def get_directions(
        self,
        destination: Coordinate,
        source: Optional[Coordinate] = None,
    ) -> Optional[Route]:
        """Route from `source` (default: the user) and keep the best route."""
        source = source or self.user_location
        if source is None:
            self._set_error(RoutingFailed("current location unknown"))
            return None
        try:
            routes = await self.routing_provider.route(source, destination)
        except Exception as e:
            logger.warning("Directions error: %s", e)
            self._set_error(RoutingFailed(str(e)))
            return None
        if not routes:
            self._set_error(RoutingFailed("no route found"))
            return None
        self.current_route = routes[0]
        logger.info("Route found: %.0f m", self.current_route.distance_meters or 0)
        self._emit("route")
        return self.current_route

    def clear_route(self) -> None:
        self.current_route = None
        self._emit("route")
