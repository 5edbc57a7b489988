from decimal import Decimal
from typing import Protocol

from sqlalchemy.orm import Session

from moneybuddy.db import crud


class IntentRecorder(Protocol):
    def record(
        self,
        kind: str,
        amount: Decimal | None,
        external_id: str,
        *,
        currency: str | None = None,
        reference: str | None = None,
        event_id: str | None = None,
    ) -> bool:
        """Record an intent once per (kind, external_id); True if newly written."""
        ...


class SqlIntentRecorder:
    """Records intents in the ledger_entries table."""

    def __init__(self, db: Session, received_event_id: int | None = None):
        self.db = db
        self.received_event_id = received_event_id

    def record(
        self,
        kind: str,
        amount: Decimal | None,
        external_id: str,
        *,
        currency: str | None = None,
        reference: str | None = None,
        event_id: str | None = None,
    ) -> bool:
        # event_id is the provider's id; rows link to the stored delivery instead
        return crud.record_intent(
            self.db,
            kind,
            amount,
            external_id,
            currency=currency,
            reference=reference,
            event_id=self.received_event_id,
        )
