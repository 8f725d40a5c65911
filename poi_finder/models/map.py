"""Map-facing models: viewport, route, annotations and the presentation snapshot."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from poi_finder.models.poi import POI, Coordinate
from poi_finder.models.search import SearchState, Suggestion
from poi_finder.models.status import StatusMessage


class MapType(str, Enum):
    STANDARD = "standard"
    MUTED_STANDARD = "muted_standard"


class MapRegion(BaseModel):
    """Visible map area: a center plus a span in degrees."""

    center: Coordinate
    latitude_delta: float = Field(gt=0, default=0.05)
    longitude_delta: float = Field(gt=0, default=0.05)

    @classmethod
    def around(cls, center: Coordinate, span: float) -> "MapRegion":
        return cls(center=center, latitude_delta=span, longitude_delta=span)

    @classmethod
    def bounding(cls, points: List[Coordinate], min_span: float = 0.001) -> "MapRegion":
        """Smallest region containing every point."""
        lats = [p.latitude for p in points]
        lons = [p.longitude for p in points]
        return cls(
            center=Coordinate(
                latitude=(min(lats) + max(lats)) / 2,
                longitude=(min(lons) + max(lons)) / 2,
            ),
            latitude_delta=max(max(lats) - min(lats), min_span),
            longitude_delta=max(max(lons) - min(lons), min_span),
        )

    def contains(self, point: Coordinate) -> bool:
        return (
            abs(point.latitude - self.center.latitude) <= self.latitude_delta / 2
            and abs(point.longitude - self.center.longitude) <= self.longitude_delta / 2
        )


class Route(BaseModel):
    """A driving route between two coordinates."""

    source: Coordinate
    destination: Coordinate
    polyline: List[Coordinate]
    region: MapRegion                       # Bounding region of the polyline
    distance_meters: Optional[float] = None
    expected_travel_seconds: Optional[float] = None


class AnnotationKind(str, Enum):
    RESULT = "result"
    FAVORITE = "favorite"
    USER = "user"


class Annotation(BaseModel):
    """One map pin produced by a reconciliation pass."""

    poi: POI
    category: str                           # Rendered category: "User", "Favorite" or raw
    kind: AnnotationKind


class MapSnapshot(BaseModel):
    """Everything the presentation layer renders, as of one point in time."""

    annotations: List[Annotation] = []
    selection: Optional[POI] = None
    results: List[POI] = []
    suggestions: List[Suggestion] = []
    recents: List[POI] = []
    favorites: List[POI] = []
    status: Optional[StatusMessage] = None
    region: MapRegion
    map_type: MapType = MapType.STANDARD
    route: Optional[Route] = None
    user_location: Optional[Coordinate] = None
    permission_denied: bool = False
    query_text: str = ""
    search_state: SearchState = SearchState.IDLE
