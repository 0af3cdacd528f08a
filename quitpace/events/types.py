"""Event log entry type."""

from pydantic import BaseModel, ConfigDict, Field


class EventLogEntry(BaseModel):
    """A recorded smoking event.

    Attributes:
        occurred_at_ms: Unix timestamp in milliseconds
    """

    model_config = ConfigDict(frozen=True)

    occurred_at_ms: int = Field(ge=0)
