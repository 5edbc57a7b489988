from datetime import datetime
from datetime import timezone as tz
from decimal import Decimal

from sqlalchemy import (
    BigInteger,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    LargeBinary,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship

from moneybuddy.services.money import minor_to_major

Base = declarative_base()


def utc_now():
    return datetime.now(tz.utc)


class ReceivedEvent(Base):
    """A verified webhook delivery, stored before dispatch so it can be replayed."""

    __tablename__ = "webhook_events"
    id = Column(Integer, primary_key=True)
    provider_event_id = Column(String, nullable=True)
    event_type = Column(String, nullable=False)
    sha256 = Column(String, nullable=False)
    size = Column(Integer, nullable=False)
    raw_body = Column(LargeBinary, nullable=False)
    deliveries = Column(Integer, nullable=False, default=1)
    status = Column(String, nullable=False, default="received")
    received_at = Column(DateTime(timezone=True), default=utc_now)
    processed_at = Column(DateTime(timezone=True), nullable=True)

    entries = relationship("LedgerEntry", back_populates="event")

    __table_args__ = (
        Index("ix_webhook_events_provider_event_id", "provider_event_id", unique=True),
        Index("ix_webhook_events_sha256", "sha256"),
    )


class LedgerEntry(Base):
    """A recorded deposit/reversal/refund/dispute intent."""

    __tablename__ = "ledger_entries"
    id = Column(Integer, primary_key=True)
    kind = Column(String, nullable=False)
    external_id = Column(String, nullable=False)
    amount_cents = Column(BigInteger, nullable=True)
    currency = Column(String(3), nullable=True)
    reference = Column(String, nullable=True)
    event_id = Column(Integer, ForeignKey("webhook_events.id", ondelete="SET NULL"))
    created_at = Column(DateTime(timezone=True), default=utc_now)

    event = relationship("ReceivedEvent", back_populates="entries")

    __table_args__ = (UniqueConstraint("kind", "external_id", name="uq_ledger_kind_external_id"),)

    @property
    def amount(self) -> Decimal | None:
        if self.amount_cents is None:
            return None
        return minor_to_major(self.amount_cents, self.currency)


class ApiKey(Base):
    __tablename__ = "api_keys"
    id = Column(Integer, primary_key=True)
    label = Column(String, nullable=False)
    hashed_key = Column(String, nullable=False)
    created_at = Column(DateTime, default=utc_now)
