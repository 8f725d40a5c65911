"""The single user-visible error or status message."""

from datetime import datetime

from pydantic import BaseModel


class StatusMessage(BaseModel):
    kind: str                               # e.g., "no_results", "search_failed"
    message: str
    created_at: datetime
