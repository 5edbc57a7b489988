import hashlib
import logging
import secrets
from decimal import Decimal

from passlib.hash import bcrypt
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from moneybuddy.db import models
from moneybuddy.services.money import major_to_minor

logger = logging.getLogger(__name__)


def issue_api_key(db: Session, label: str) -> str:
    raw = secrets.token_urlsafe(24)
    key = models.ApiKey(label=label, hashed_key=bcrypt.hash(raw))
    db.add(key)
    db.commit()
    return raw


def verify_api_key(db: Session, raw: str) -> models.ApiKey | None:
    for ak in db.query(models.ApiKey).all():
        if bcrypt.verify(raw, ak.hashed_key):
            return ak
    return None


def record_event(
    db: Session, raw_body: bytes, event_type: str, provider_event_id: str | None
) -> models.ReceivedEvent:
    """Store a verified delivery, or bump the delivery count of a redelivery."""
    sha256 = hashlib.sha256(raw_body).hexdigest()
    query = db.query(models.ReceivedEvent)
    if provider_event_id:
        existing = query.filter_by(provider_event_id=provider_event_id).first()
    else:
        existing = query.filter_by(provider_event_id=None, sha256=sha256).first()

    if existing:
        return _count_redelivery(db, existing)

    event = models.ReceivedEvent(
        provider_event_id=provider_event_id,
        event_type=event_type,
        sha256=sha256,
        size=len(raw_body),
        raw_body=raw_body,
        deliveries=1,
        status="received",
    )
    db.add(event)
    try:
        db.commit()
    except IntegrityError:
        # A concurrent delivery of the same event inserted it first
        db.rollback()
        if not provider_event_id:
            raise
        existing = (
            db.query(models.ReceivedEvent)
            .filter_by(provider_event_id=provider_event_id)
            .one()
        )
        return _count_redelivery(db, existing)
    db.refresh(event)
    return event


def _count_redelivery(db: Session, event: models.ReceivedEvent) -> models.ReceivedEvent:
    event.deliveries = models.ReceivedEvent.deliveries + 1
    db.commit()
    db.refresh(event)
    logger.info(f"Redelivery of event {event.id} (deliveries={event.deliveries})")
    return event


def mark_processed(db: Session, event: models.ReceivedEvent, status: str) -> None:
    event.status = status
    event.processed_at = models.utc_now()
    db.commit()


def list_events(db: Session, limit: int = 100):
    return (
        db.query(models.ReceivedEvent)
        .order_by(models.ReceivedEvent.received_at.desc(), models.ReceivedEvent.id.desc())
        .limit(limit)
        .all()
    )


def record_intent(
    db: Session,
    kind: str,
    amount: Decimal | None,
    external_id: str,
    currency: str | None = None,
    reference: str | None = None,
    event_id: int | None = None,
) -> bool:
    """
    Insert a ledger entry keyed by (kind, external_id).

    Returns False without writing if the entry already exists, so redelivered
    events are never applied twice.
    """
    existing = (
        db.query(models.LedgerEntry)
        .filter_by(kind=kind, external_id=external_id)
        .first()
    )
    if existing:
        logger.info(f"Ledger entry {kind}/{external_id} already recorded")
        return False

    entry = models.LedgerEntry(
        kind=kind,
        external_id=external_id,
        amount_cents=major_to_minor(amount, currency) if amount is not None else None,
        currency=currency,
        reference=reference,
        event_id=event_id,
    )
    db.add(entry)
    try:
        db.commit()
    except IntegrityError:
        # Lost a race with a concurrent delivery of the same intent
        db.rollback()
        logger.info(f"Ledger entry {kind}/{external_id} recorded concurrently")
        return False
    return True
