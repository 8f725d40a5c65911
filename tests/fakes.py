"""Controllable provider fakes for session tests."""

import asyncio
from typing import Dict, List, Optional

from poi_finder.models.map import MapRegion, Route
from poi_finder.models.poi import Coordinate, PlaceResult
from poi_finder.models.search import Suggestion


def place(name: str, lat: float = 6.5244, lon: float = 3.3792, **kwargs) -> PlaceResult:
    return PlaceResult(name=name, latitude=lat, longitude=lon, **kwargs)


class StaticSearch:
    """Returns queued responses in order; an Exception entry is raised."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls: List[tuple] = []

    async def search(self, query: str, region: MapRegion) -> List[PlaceResult]:
        self.calls.append((query, region))
        response = self.responses.pop(0) if self.responses else []
        if isinstance(response, Exception):
            raise response
        return response


class GatedSearch:
    """Each query blocks until released, so completions can be reordered."""

    def __init__(self, responses: Dict[str, List[PlaceResult]]):
        self.responses = responses
        self.gates: Dict[str, asyncio.Event] = {}

    def _gate(self, query: str) -> asyncio.Event:
        return self.gates.setdefault(query, asyncio.Event())

    async def search(self, query: str, region: MapRegion) -> List[PlaceResult]:
        await self._gate(query).wait()
        return self.responses[query]

    def release(self, query: str) -> None:
        self._gate(query).set()


class EchoSuggestions:
    """Answers immediately with one suggestion per fragment."""

    def __init__(self, error: Optional[Exception] = None):
        self.error = error
        self.calls: List[str] = []

    async def suggest(self, fragment: str) -> List[Suggestion]:
        self.calls.append(fragment)
        if self.error is not None:
            raise self.error
        return [Suggestion(title=f"{fragment} place", subtitle="Lagos")]


class GatedSuggestions(EchoSuggestions):
    def __init__(self):
        super().__init__()
        self.gates: Dict[str, asyncio.Event] = {}

    def _gate(self, fragment: str) -> asyncio.Event:
        return self.gates.setdefault(fragment, asyncio.Event())

    async def suggest(self, fragment: str) -> List[Suggestion]:
        self.calls.append(fragment)
        await self._gate(fragment).wait()
        return [Suggestion(title=f"{fragment} place", subtitle="Lagos")]

    def release(self, fragment: str) -> None:
        self._gate(fragment).set()


class FailingRouter:
    def __init__(self, error: Exception):
        self.error = error

    async def route(self, source: Coordinate, destination: Coordinate) -> List[Route]:
        raise self.error
