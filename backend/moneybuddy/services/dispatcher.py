import enum
import logging
from collections.abc import Callable
from dataclasses import dataclass

from moneybuddy.core.errors import HandlerError
from moneybuddy.schemas.square import Money
from moneybuddy.services.events import (
    DisputeCreated,
    PaymentCreated,
    PaymentUpdated,
    RefundCreated,
    RefundUpdated,
    UnknownEvent,
    WebhookEvent,
)
from moneybuddy.services.ledger import IntentRecorder
from moneybuddy.services.money import minor_to_major

logger = logging.getLogger(__name__)


class Outcome(str, enum.Enum):
    HANDLED = "handled"
    IGNORED = "ignored"


@dataclass(frozen=True)
class DispatchResult:
    outcome: Outcome
    event_type: str
    failed: bool = False


def _amount(money: Money | None):
    if money is None:
        return None, None
    return minor_to_major(money.amount, money.currency), money.currency


def _status_is(status: str | None, *wanted: str) -> bool:
    return (status or "").upper() in wanted


def handle_payment_created(event: PaymentCreated, recorder: IntentRecorder) -> None:
    payment = event.payment
    logger.info(f"Payment created: {payment.id}")
    if not _status_is(payment.status, "COMPLETED"):
        return
    if payment.amount_money is None:
        raise ValueError(f"Completed payment {payment.id} has no amount_money")
    amount, currency = _amount(payment.amount_money)
    logger.info(f"Recording deposit of {amount} {currency} for payment {payment.id}")
    recorder.record(
        "deposit", amount, payment.id, currency=currency, event_id=event.event_id
    )


def handle_payment_updated(event: PaymentUpdated, recorder: IntentRecorder) -> None:
    payment = event.payment
    logger.info(f"Payment updated: {payment.id} status={payment.status}")
    if not _status_is(payment.status, "FAILED", "CANCELED"):
        return
    amount, currency = _amount(payment.amount_money)
    logger.info(f"Payment {payment.id} failed or was canceled, recording reversal")
    recorder.record(
        "reversal", amount, payment.id, currency=currency, event_id=event.event_id
    )


def handle_refund_created(event: RefundCreated, recorder: IntentRecorder) -> None:
    refund = event.refund
    logger.info(f"Refund created: {refund.id}")
    if refund.amount_money is None:
        raise ValueError(f"Refund {refund.id} has no amount_money")
    amount, currency = _amount(refund.amount_money)
    recorder.record(
        "refund",
        amount,
        refund.id,
        currency=currency,
        reference=refund.payment_id,
        event_id=event.event_id,
    )


def handle_refund_updated(event: RefundUpdated, recorder: IntentRecorder) -> None:
    refund = event.refund
    logger.info(f"Refund updated: {refund.id} status={refund.status}")
    if not _status_is(refund.status, "COMPLETED"):
        return
    amount, currency = _amount(refund.amount_money)
    recorder.record(
        "refund_completed",
        amount,
        refund.id,
        currency=currency,
        reference=refund.payment_id,
        event_id=event.event_id,
    )


def handle_dispute_created(event: DisputeCreated, recorder: IntentRecorder) -> None:
    dispute = event.dispute
    logger.info(f"New dispute {dispute.id} for payment {dispute.payment_id}")
    amount, currency = _amount(dispute.amount_money)
    recorder.record(
        "dispute",
        amount,
        dispute.id,
        currency=currency,
        reference=dispute.payment_id,
        event_id=event.event_id,
    )


# One handler per known variant; UnknownEvent deliberately has none.
HANDLERS: dict[type[WebhookEvent], Callable[..., None]] = {
    PaymentCreated: handle_payment_created,
    PaymentUpdated: handle_payment_updated,
    RefundCreated: handle_refund_created,
    RefundUpdated: handle_refund_updated,
    DisputeCreated: handle_dispute_created,
}


def dispatch(event: WebhookEvent, recorder: IntentRecorder) -> DispatchResult:
    """Route ``event`` to its handler. Handler failures are logged, not raised."""
    if isinstance(event, UnknownEvent):
        logger.info(f"Unhandled webhook event type: {event.event_type}")
        return DispatchResult(Outcome.IGNORED, event.event_type)

    handler = HANDLERS[type(event)]
    try:
        handler(event, recorder)
    except Exception as e:
        err = HandlerError(event.event_type, e)
        logger.error(str(err), exc_info=True)
        return DispatchResult(Outcome.HANDLED, event.event_type, failed=True)
    return DispatchResult(Outcome.HANDLED, event.event_type)
