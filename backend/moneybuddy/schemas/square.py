from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Money(BaseModel):
    amount: int = Field(..., description="Amount in minor units (cents)")
    currency: str = "USD"


class Payment(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    status: str | None = None
    amount_money: Money | None = None


class Refund(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    status: str | None = None
    payment_id: str | None = None
    amount_money: Money | None = None


class Dispute(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    state: str | None = None
    reason: str | None = None
    payment_id: str | None = None
    amount_money: Money | None = None


class WebhookEnvelope(BaseModel):
    """Outer shape of every Square notification."""

    model_config = ConfigDict(extra="allow")

    type: str = Field(..., description="Event type, e.g. payment.created")
    event_id: str | None = Field(None, description="Provider event ID")
    merchant_id: str | None = None
    created_at: str | None = None
    # Left unvalidated so unknown event types are accepted whatever their data
    data: Any = None
