"""Suggestions and the search session state machine."""

from enum import Enum

from pydantic import BaseModel, ConfigDict


class SearchState(str, Enum):
    IDLE = "idle"
    QUERYING = "querying"
    COMPLETED = "completed"
    FAILED = "failed"


class Suggestion(BaseModel):
    """One autocomplete entry, ranked by the suggestion provider."""

    model_config = ConfigDict(frozen=True)

    title: str
    subtitle: str = ""
