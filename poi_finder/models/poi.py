"""A named place on the map, with process-local identity."""

from typing import Optional, Tuple
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_CATEGORY = "Uncategorized"
DEFAULT_ADDRESS = "No address"
USER_CATEGORY = "User"
FAVORITE_CATEGORY = "Favorite"


class Coordinate(BaseModel):
    """A WGS84 position in degrees."""

    model_config = ConfigDict(frozen=True)

    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)


class PlaceResult(BaseModel):
    """A raw place as returned by a search provider."""

    name: Optional[str] = None
    category: Optional[str] = None
    address: Optional[str] = None
    latitude: float
    longitude: float


class POI(BaseModel):
    """
    A point of interest.

    Identity is the `id` assigned at construction, never the content: two
    POIs built from the same place are different values. Copies made with
    `model_copy` keep the id, so a POI with an edited note is still the same
    POI. Matching against persisted favorites uses `business_key` instead.
    """

    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    name: str
    category: str = DEFAULT_CATEGORY
    address: str = DEFAULT_ADDRESS
    coordinate: Coordinate
    note: Optional[str] = None
    is_favorite: bool = False
    is_user: bool = False                  # only the synthetic "You" pin

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, POI):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    @property
    def business_key(self) -> Tuple[str, float, float]:
        """The persisted favorite key: (name, latitude, longitude)."""
        return (self.name, self.coordinate.latitude, self.coordinate.longitude)

    @property
    def is_user_marker(self) -> bool:
        return self.is_user

    def same_place(self, other: "POI", tolerance: float = 0.0) -> bool:
        """Business-key equality: same name, coordinates within `tolerance`."""
        return (
            self.name == other.name
            and abs(self.coordinate.latitude - other.coordinate.latitude) <= tolerance
            and abs(self.coordinate.longitude - other.coordinate.longitude) <= tolerance
        )

    def with_note(self, note: Optional[str]) -> "POI":
        return self.model_copy(update={"note": note})

    def with_favorite(self, is_favorite: bool) -> "POI":
        return self.model_copy(update={"is_favorite": is_favorite})

    @classmethod
    def from_place(cls, place: PlaceResult) -> Optional["POI"]:
        """Build a POI from a provider result. Unnamed places yield None."""
        if not place.name:
            return None
        return cls(
            name=place.name,
            category=place.category or DEFAULT_CATEGORY,
            address=place.address or DEFAULT_ADDRESS,
            coordinate=Coordinate(latitude=place.latitude, longitude=place.longitude),
        )

    @classmethod
    def user_marker(cls, coordinate: Coordinate, **identity) -> "POI":
        """The synthetic "You" pin. Pass `id=` to keep one marker identity."""
        return cls(
            name="You",
            category=USER_CATEGORY,
            address="Current Location",
            coordinate=coordinate,
            is_user=True,
            **identity,
        )
