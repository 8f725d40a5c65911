"""The persisted form of a saved POI."""

from typing import Optional

from pydantic import BaseModel

from poi_finder.models.poi import POI, Coordinate


class FavoriteRecord(BaseModel):
    """A stored favorite. Matched against POIs by (name, latitude, longitude)."""

    row_id: Optional[int] = None            # Storage rowid, None until stored
    name: str
    latitude: float
    longitude: float
    category: str
    address: str
    note: Optional[str] = None

    @classmethod
    def from_poi(cls, poi: POI) -> "FavoriteRecord":
        return cls(
            name=poi.name,
            latitude=poi.coordinate.latitude,
            longitude=poi.coordinate.longitude,
            category=poi.category,
            address=poi.address,
            note=poi.note,
        )

    def to_poi(self, **identity) -> POI:
        """Rebuild a POI flagged as favorite. Pass `id=` to keep an identity."""
        return POI(
            name=self.name,
            category=self.category,
            address=self.address,
            coordinate=Coordinate(latitude=self.latitude, longitude=self.longitude),
            note=self.note,
            is_favorite=True,
            **identity,
        )
