import hashlib
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ValidationError

from moneybuddy.core.errors import MalformedPayloadError
from moneybuddy.schemas.square import Dispute, Payment, Refund, WebhookEnvelope


@dataclass(frozen=True)
class WebhookEvent:
    event_type: str
    event_id: str | None


@dataclass(frozen=True)
class PaymentCreated(WebhookEvent):
    payment: Payment


@dataclass(frozen=True)
class PaymentUpdated(WebhookEvent):
    payment: Payment


@dataclass(frozen=True)
class RefundCreated(WebhookEvent):
    refund: Refund


@dataclass(frozen=True)
class RefundUpdated(WebhookEvent):
    refund: Refund


@dataclass(frozen=True)
class DisputeCreated(WebhookEvent):
    dispute: Dispute


@dataclass(frozen=True)
class UnknownEvent(WebhookEvent):
    pass


# event type -> (variant, key under data.object, object model)
KNOWN_EVENTS: dict[str, tuple[type[WebhookEvent], str, type[BaseModel]]] = {
    "payment.created": (PaymentCreated, "payment", Payment),
    "payment.updated": (PaymentUpdated, "payment", Payment),
    "refund.created": (RefundCreated, "refund", Refund),
    "refund.updated": (RefundUpdated, "refund", Refund),
    "dispute.created": (DisputeCreated, "dispute", Dispute),
}


def _event_object(data: Any) -> dict[str, Any]:
    """Return ``data.object`` when it is a mapping, else an empty one."""
    obj = data.get("object") if isinstance(data, dict) else None
    return obj if isinstance(obj, dict) else {}


def decode_event(raw_body: bytes) -> WebhookEvent:
    """
    Decode a verified body into one of the closed set of event variants.

    Raise MalformedPayloadError if the body is not JSON, has no ``type``, or
    carries a known type whose object does not validate.
    """
    try:
        envelope = WebhookEnvelope.model_validate_json(raw_body)
        known = KNOWN_EVENTS.get(envelope.type)
        if known is None:
            return UnknownEvent(event_type=envelope.type, event_id=envelope.event_id)

        variant, key, model = known
        obj = model.model_validate(_event_object(envelope.data).get(key))
    except ValidationError as e:
        raise MalformedPayloadError(
            f"Undecodable webhook body ({e.error_count()} errors)",
            size=len(raw_body),
            sha256=hashlib.sha256(raw_body).hexdigest(),
        ) from e

    return variant(envelope.type, envelope.event_id, obj)
