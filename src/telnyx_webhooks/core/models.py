from __future__ import annotations

from typing import Optional, Dict, Any
from pydantic import BaseModel, ConfigDict, Field


class EventData(BaseModel):
    """The ``data`` object of a Telnyx webhook event."""
    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    event_type: Optional[str] = None
    occurred_at: Optional[str] = None
    record_type: Optional[str] = None
    payload: Optional[Dict[str, Any]] = None


class EventMeta(BaseModel):
    """Delivery metadata Telnyx attaches to each attempt."""
    model_config = ConfigDict(extra="allow")

    attempt: Optional[int] = None
    delivered_to: Optional[str] = None


class WebhookEvent(BaseModel):
    """A verified webhook event. Unknown fields are kept as extras."""
    model_config = ConfigDict(extra="allow")

    data: EventData = Field(default_factory=EventData)
    meta: Optional[EventMeta] = None

    @property
    def id(self) -> Optional[str]:
        return self.data.id

    @property
    def event_type(self) -> Optional[str]:
        return self.data.event_type


class HealthResponse(BaseModel):
    """Response model for health check endpoint."""
    status: str
    service: str


class WebhookAck(BaseModel):
    """Response body for an accepted or duplicate delivery."""
    status: str
    event_id: Optional[str] = None
    event_type: Optional[str] = None
