from datetime import datetime

from pydantic import BaseModel, ConfigDict


class EventOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    provider_event_id: str | None
    event_type: str
    sha256: str
    size: int
    deliveries: int
    status: str
    received_at: datetime
    processed_at: datetime | None


class EventReplayResponse(BaseModel):
    status: str
    event_id: int
