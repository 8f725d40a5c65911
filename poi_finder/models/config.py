"""Finder configuration."""

from pydantic import BaseModel, Field

from poi_finder.models.poi import Coordinate


class FinderConfig(BaseModel):
    """Tunables for the map session and its components."""

    debounce_seconds: float = Field(ge=0, default=0.25)
    recent_capacity: int = Field(ge=1, default=5)
    # Max per-axis coordinate difference (degrees) for two POIs to share a
    # favorite record. 0.0 means exact equality.
    coordinate_tolerance: float = Field(ge=0, default=0.0)
    default_center: Coordinate = Coordinate(latitude=6.5244, longitude=3.3792)
    default_span: float = Field(gt=0, default=0.05)
    search_span: float = Field(gt=0, default=0.05)
    focus_span: float = Field(gt=0, default=0.01)
    db_path: str = ":memory:"
