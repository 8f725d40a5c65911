"""
Provider contracts — the place search, suggestion and routing services the
finder consumes, plus in-memory implementations for local runs and tests.

Providers are async. Any exception a provider raises is treated as a failure
of that call and is converted to a status message by the caller.
"""

import math
from typing import List, Optional, Protocol

from poi_finder.models.map import MapRegion, Route
from poi_finder.models.poi import Coordinate, PlaceResult
from poi_finder.models.search import Suggestion


class PlaceSearchProvider(Protocol):
    """Protocol for place search: ordered results near a region."""

    async def search(self, query: str, region: MapRegion) -> List[PlaceResult]: ...


class SuggestionProvider(Protocol):
    """Protocol for autocomplete over a query fragment."""

    async def suggest(self, fragment: str) -> List[Suggestion]: ...


class RoutingProvider(Protocol):
    """Protocol for driving directions. Best route first."""

    async def route(self, source: Coordinate, destination: Coordinate) -> List[Route]: ...


DEFAULT_PLACES = [
    PlaceResult(name="Freedom Park", category="park",
                address="Broad Street, Lagos Island", latitude=6.5231, longitude=3.3810),
    PlaceResult(name="Tafawa Balewa Square", category="landmark",
                address="Race Course Road, Lagos Island", latitude=6.5262, longitude=3.3825),
    PlaceResult(name="Pizza Palace", category="restaurant",
                address="12 Marina Road", latitude=6.5201, longitude=3.3751),
    PlaceResult(name="Pizzeria Roma", category="restaurant",
                address="4 Campbell Street", latitude=6.5288, longitude=3.3733),
    PlaceResult(name="Balogun Market", category="market",
                address="Balogun Street", latitude=6.5275, longitude=3.3868),
    PlaceResult(name="Marina Pharmacy", category=None,
                address=None, latitude=6.5219, longitude=3.3799),
    PlaceResult(name="City Mall Cinema", category="theater",
                address="Onikan", latitude=6.5196, longitude=3.3902),
]


class InMemoryPlaceCatalog:
    """
    Place search and suggestions over a fixed list of places.
    Matches the query against name and category, case-insensitively,
    keeping only places inside the requested region.
    """

    def __init__(self, places: Optional[List[PlaceResult]] = None, max_suggestions: int = 8):
        self.places = list(DEFAULT_PLACES if places is None else places)
        self.max_suggestions = max_suggestions

    def _matches(self, place: PlaceResult, text: str) -> bool:
        text = text.strip().lower()
        if not text:
            return False
        return text in (place.name or "").lower() or text in (place.category or "").lower()

    async def search(self, query: str, region: MapRegion) -> List[PlaceResult]:
        return [
            p for p in self.places
            if self._matches(p, query)
            and region.contains(Coordinate(latitude=p.latitude, longitude=p.longitude))
        ]

    async def suggest(self, fragment: str) -> List[Suggestion]:
        suggestions = [
            Suggestion(title=p.name, subtitle=p.address or "")
            for p in self.places
            if p.name and self._matches(p, fragment)
        ]
        return suggestions[: self.max_suggestions]


def haversine_meters(a: Coordinate, b: Coordinate) -> float:
    """Great-circle distance between two coordinates."""
    R = 6371000
    phi1, phi2 = math.radians(a.latitude), math.radians(b.latitude)
    dphi = math.radians(b.latitude - a.latitude)
    dlam = math.radians(b.longitude - a.longitude)
    h = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlam / 2) ** 2
    return R * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


class StraightLineRouter:
    """
    Routes as the crow flies, at a fixed average driving speed.
    Returns no route when source and destination coincide.
    """

    def __init__(self, average_speed_mps: float = 13.9, padding: float = 0.2):
        self.average_speed_mps = average_speed_mps
        self.padding = padding

    async def route(self, source: Coordinate, destination: Coordinate) -> List[Route]:
        if source == destination:
            return []
        distance = haversine_meters(source, destination)
        bounds = MapRegion.bounding([source, destination])
        region = MapRegion(
            center=bounds.center,
            latitude_delta=bounds.latitude_delta * (1 + self.padding),
            longitude_delta=bounds.longitude_delta * (1 + self.padding),
        )
        return [
            Route(
                source=source,
                destination=destination,
                polyline=[source, destination],
                region=region,
                distance_meters=round(distance, 1),
                expected_travel_seconds=round(distance / self.average_speed_mps, 1),
            )
        ]
