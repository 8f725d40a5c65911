"""POI Finder data models."""

from poi_finder.models.config import FinderConfig
from poi_finder.models.favorite import FavoriteRecord
from poi_finder.models.map import (
    Annotation,
    AnnotationKind,
    MapRegion,
    MapSnapshot,
    MapType,
    Route,
)
from poi_finder.models.poi import (
    DEFAULT_ADDRESS,
    DEFAULT_CATEGORY,
    FAVORITE_CATEGORY,
    USER_CATEGORY,
    POI,
    Coordinate,
    PlaceResult,
)
from poi_finder.models.search import SearchState, Suggestion
from poi_finder.models.status import StatusMessage

__all__ = [
    "Annotation",
    "AnnotationKind",
    "Coordinate",
    "DEFAULT_ADDRESS",
    "DEFAULT_CATEGORY",
    "FAVORITE_CATEGORY",
    "FavoriteRecord",
    "FinderConfig",
    "MapRegion",
    "MapSnapshot",
    "MapType",
    "POI",
    "PlaceResult",
    "Route",
    "SearchState",
    "StatusMessage",
    "Suggestion",
    "USER_CATEGORY",
]
