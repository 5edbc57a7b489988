import logging

from moneybuddy.celery_app import celery
from moneybuddy.core.errors import MalformedPayloadError
from moneybuddy.db import crud, models
from moneybuddy.db.session import SessionLocal
from moneybuddy.services.dispatcher import dispatch
from moneybuddy.services.events import decode_event
from moneybuddy.services.ledger import SqlIntentRecorder

logger = logging.getLogger(__name__)


def run_dispatch(db, event: models.ReceivedEvent, decoded=None) -> str:
    """Dispatch a stored delivery and record the outcome on its row."""
    if decoded is None:
        decoded = decode_event(event.raw_body)
    result = dispatch(decoded, SqlIntentRecorder(db, received_event_id=event.id))
    if result.failed:
        # A failed handler may leave the session mid-transaction
        db.rollback()
    status = "failed" if result.failed else result.outcome.value
    crud.mark_processed(db, event, status)
    logger.info(f"Event {event.id} ({result.event_type}) {status}")
    return status


@celery.task(bind=True)
def process_event(self, event_id: str, session=None):
    logger.info(f"Starting process_event task with event_id={event_id}")
    if self.request.id:
        logger.info(f"Task ID: {self.request.id}")
    if session is None:
        session = SessionLocal()
        should_close = True
    else:
        should_close = False

    try:
        try:
            event_id = int(event_id)
        except (TypeError, ValueError):
            raise ValueError("Invalid event ID")

        ev = session.query(models.ReceivedEvent).filter_by(id=event_id).first()
        if not ev:
            raise ValueError("Event not found")

        try:
            status = run_dispatch(session, ev)
        except MalformedPayloadError:
            logger.error(f"Stored event {ev.id} is not decodable (sha256={ev.sha256})")
            crud.mark_processed(session, ev, "malformed")
            status = "malformed"
        return {"event_id": ev.id, "status": status}
    finally:
        if should_close:
            session.close()
