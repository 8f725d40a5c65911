"""
Finder error kinds.

Provider and storage failures are caught at the component boundary and
turned into the single status slot via `status_message`; only a store that
cannot be opened propagates (startup must abort).
"""

from datetime import datetime

from poi_finder.models.status import StatusMessage


class FinderError(Exception):
    """Base class for every error the finder surfaces to the user."""

    kind = "error"

    @property
    def status_message(self) -> str:
        return str(self)

    def to_status(self) -> StatusMessage:
        return StatusMessage(
            kind=self.kind,
            message=self.status_message,
            created_at=datetime.utcnow(),
        )


class SearchFailed(FinderError):
    kind = "search_failed"

    def __init__(self, message: str):
        self.message = message
        super().__init__(f"Search failed: {message}")


class NoResults(FinderError):
    """Not a failure as such: prior results stay, only the status changes."""

    kind = "no_results"

    def __init__(self, query: str):
        self.query = query
        super().__init__(f"No results found for '{query}'")


class SuggestionFailed(FinderError):
    kind = "suggestion_failed"

    def __init__(self, message: str):
        self.message = message
        super().__init__(f"Autocomplete failed: {message}")


class StorageError(FinderError):
    """Raised when the favorites store cannot complete `operation`."""

    kind = "storage_failed"

    def __init__(self, operation: str, detail: str = ""):
        self.operation = operation
        self.detail = detail
        text = f"Could not {operation} favorites"
        if detail:
            text = f"{text}: {detail}"
        super().__init__(text)


StorageFailed = StorageError


class RoutingFailed(FinderError):
    kind = "routing_failed"

    def __init__(self, message: str):
        self.message = message
        super().__init__(f"Directions failed: {message}")


class PermissionDenied(FinderError):
    kind = "permission_denied"

    def __init__(self):
        super().__init__("Location permission denied")
