"""
POI Finder API — FastAPI endpoints.

Exposes the map session to a presentation layer:
- Map state and annotations
- Location updates
- Search, autocomplete and suggestion picks
- Selection and recent searches
- Favorites and notes
- Directions
- Configuration
"""

from contextlib import asynccontextmanager
from typing import List, Optional
from uuid import UUID

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from poi_finder.favorites.store import FavoritesStore
from poi_finder.models.config import FinderConfig
from poi_finder.models.poi import POI, Coordinate
from poi_finder.models.search import Suggestion
from poi_finder.reconciler.loop import MapSession
from poi_finder.search.providers import (
    InMemoryPlaceCatalog,
    PlaceSearchProvider,
    RoutingProvider,
    StraightLineRouter,
    SuggestionProvider,
)


# --- Request/Response Models ---

class LocationRequest(BaseModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)


class QueryRequest(BaseModel):
    text: str


class SearchRequest(BaseModel):
    query: str
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)


class PoiRequest(BaseModel):
    poi_id: UUID


class NoteRequest(BaseModel):
    note: Optional[str] = None


class DirectionsRequest(BaseModel):
    poi_id: UUID


class SearchResponse(BaseModel):
    results: List[POI]
    status: Optional[dict] = None


# --- Application Factory ---

def create_app(
    store: Optional[FavoritesStore] = None,
    search_provider: Optional[PlaceSearchProvider] = None,
    suggestion_provider: Optional[SuggestionProvider] = None,
    routing_provider: Optional[RoutingProvider] = None,
    config: Optional[FinderConfig] = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""

    # Initialize components. A store that cannot be opened aborts here.
    cfg = config or FinderConfig()
    fs = store or FavoritesStore(
        db_path=cfg.db_path,
        coordinate_tolerance=cfg.coordinate_tolerance,
    )
    catalog = InMemoryPlaceCatalog()
    session = MapSession(
        store=fs,
        search_provider=search_provider or catalog,
        suggestion_provider=suggestion_provider or catalog,
        routing_provider=routing_provider or StraightLineRouter(),
        config=cfg,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await session.start()
        yield
        session.close()

    app = FastAPI(
        title="POI Finder API",
        description="Search, favorites and directions for points of interest",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Store components on app state for access in endpoints
    app.state.favorites_store = fs
    app.state.map_session = session

    def _poi_or_404(poi_id: UUID) -> POI:
        poi = session.find(poi_id)
        if poi is None:
            raise HTTPException(404, "POI not found")
        return poi

    def _status() -> Optional[dict]:
        return session.status.model_dump(mode="json") if session.status else None

    # === MAP ===

    @app.get("/map/state")
    async def get_map_state():
        """Everything the map renders."""
        return session.snapshot().model_dump(mode="json")

    @app.get("/map/annotations")
    async def get_annotations():
        """Current de-duplicated annotation set."""
        return [a.model_dump(mode="json") for a in session.annotations]

    @app.post("/map/type/toggle")
    async def toggle_map_type():
        return {"map_type": session.toggle_map_type().value}

    @app.post("/map/center")
    async def center_map(req: PoiRequest):
        """Center the map on a known POI."""
        session.center_on(_poi_or_404(req.poi_id))
        return session.region.model_dump(mode="json")

    @app.post("/map/center/user")
    async def center_map_on_user():
        if not session.center_on_user():
            raise HTTPException(409, "Current location unknown")
        return session.region.model_dump(mode="json")

    # === LOCATION ===

    @app.post("/location")
    async def update_location(req: LocationRequest):
        """Location fix from the device."""
        session.update_location(
            Coordinate(latitude=req.latitude, longitude=req.longitude)
        )
        return {"status": "updated", "region": session.region.model_dump(mode="json")}

    @app.post("/location/denied")
    async def location_denied():
        session.deny_location()
        return {"status": "denied", "message": _status()}

    # === SEARCH ===

    @app.put("/search/query")
    async def update_query(req: QueryRequest):
        """Debounced autocomplete input."""
        session.update_query(req.text)
        return {"query": req.text}

    @app.delete("/search/query")
    async def clear_query():
        session.clear_search()
        return {"status": "cleared"}

    @app.get("/search/suggestions")
    async def get_suggestions():
        return [s.model_dump(mode="json") for s in session.suggestions]

    @app.post("/search/suggestions/choose")
    async def choose_suggestion(suggestion: Suggestion):
        """Search for a picked suggestion and focus on the best match."""
        results = await session.choose_suggestion(suggestion)
        return SearchResponse(results=results, status=_status())

    @app.post("/search")
    async def search(req: SearchRequest):
        """Run a search. Provider failures come back in `status`, not as errors."""
        near = None
        if req.latitude is not None and req.longitude is not None:
            near = Coordinate(latitude=req.latitude, longitude=req.longitude)
        results = await session.search(req.query, near=near)
        return SearchResponse(results=results, status=_status())

    @app.get("/search/results")
    async def get_results():
        return [p.model_dump(mode="json") for p in session.results]

    # === SELECTION ===

    @app.get("/selection")
    async def get_selection():
        if session.selection is None:
            return None
        return session.selection.model_dump(mode="json")

    @app.post("/selection")
    async def select(req: PoiRequest):
        """Select an annotation; also records it in recent searches."""
        poi = _poi_or_404(req.poi_id)
        if poi.is_user_marker:
            raise HTTPException(400, "The user marker cannot be selected")
        return session.select(poi).model_dump(mode="json")

    @app.delete("/selection")
    async def dismiss():
        session.dismiss()
        return {"status": "dismissed"}

    @app.get("/recents")
    async def get_recents():
        return [p.model_dump(mode="json") for p in session.recents.items]

    # === FAVORITES ===

    @app.get("/favorites")
    async def list_favorites():
        return [p.model_dump(mode="json") for p in session.favorites]

    @app.post("/favorites")
    async def save_favorite(req: PoiRequest):
        poi = _poi_or_404(req.poi_id)
        saved = await session.save_favorite(poi)
        return {"saved": saved, "status": _status()}

    @app.post("/favorites/toggle")
    async def toggle_favorite(req: PoiRequest):
        poi = _poi_or_404(req.poi_id)
        is_favorite = await session.toggle_favorite(poi)
        return {"is_favorite": is_favorite, "status": _status()}

    @app.delete("/favorites/{poi_id}")
    async def delete_favorite(poi_id: UUID):
        poi = _poi_or_404(poi_id)
        deleted = await session.delete_favorite(poi)
        return {"deleted": deleted, "status": _status()}

    @app.put("/favorites/{poi_id}/note")
    async def update_note(poi_id: UUID, req: NoteRequest):
        poi = _poi_or_404(poi_id)
        saved = await session.update_note(poi, req.note)
        updated = session.find(poi_id)
        return {
            "saved": saved,
            "poi": updated.model_dump(mode="json") if updated else None,
            "status": _status(),
        }

    # === DIRECTIONS ===

    @app.post("/directions")
    async def get_directions(req: DirectionsRequest):
        """Driving directions from the user to a POI."""
        poi = _poi_or_404(req.poi_id)
        route = await session.get_directions(poi.coordinate)
        return {
            "route": route.model_dump(mode="json") if route else None,
            "status": _status(),
        }

    @app.delete("/directions")
    async def clear_directions():
        session.clear_route()
        return {"status": "cleared"}

    # === STATUS & CONFIG ===

    @app.get("/status")
    async def get_status():
        return _status()

    @app.delete("/status")
    async def clear_status():
        session.clear_status()
        return {"status": "cleared"}

    @app.get("/config")
    async def get_config():
        return session.config.model_dump(mode="json")

    @app.put("/config")
    async def update_config(new_config: FinderConfig):
        session.update_config(new_config)
        return new_config.model_dump(mode="json")

    return app


# Default application instance
app = create_app()
