import logging
import time
from datetime import datetime, timezone

import redis.asyncio as redis
import sqlalchemy.exc
from botocore.exceptions import BotoCoreError, ClientError
from fastapi import Depends, FastAPI, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from starlette.concurrency import run_in_threadpool
from sqlalchemy import text
from sqlalchemy.orm import Session

from moneybuddy.core.config import Settings, get_settings
from moneybuddy.core.errors import MalformedPayloadError, WebhookError
from moneybuddy.db import crud, models, schemas
from moneybuddy.db.models import Base
from moneybuddy.db.session import SessionLocal, engine
from moneybuddy.middleware.body_size import BodySizeLimitMiddleware
from moneybuddy.services.rate_limit import RedisFixedWindowLimiter, enforce_rate_limit
from moneybuddy.services.events import WebhookEvent
from moneybuddy.services.square_verify import SIGNATURE_HEADER
from moneybuddy.services.webhook import authenticate
from moneybuddy.storage.boot_s3 import ensure_secure_bucket
from moneybuddy.storage.s3_client import archive_key, get_s3_client, store_event_payload
from moneybuddy.tasks import process_event, run_dispatch

VERSION = "1.0.0"

settings = get_settings()
logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Money Buddy Webhooks",
    description="Receives and dispatches signed Square webhook events",
    version=VERSION,
    dependencies=[Depends(enforce_rate_limit)],
)
bearer_scheme = HTTPBearer()
started_at = time.monotonic()

app.add_middleware(BodySizeLimitMiddleware, max_body_size=settings.max_body_size)


@app.on_event("startup")
async def startup():
    """Initialize services on startup."""
    try:
        Base.metadata.create_all(bind=engine)
    except sqlalchemy.exc.SQLAlchemyError as e:
        logger.error(f"Failed to create tables: {e}")

    redis_conn = redis.from_url(settings.redis_url, decode_responses=True)
    app.state.rate_limiter = RedisFixedWindowLimiter(
        redis_conn, times=settings.rate_limit_times, seconds=settings.rate_limit_seconds
    )

    if settings.events_bucket:
        try:
            ensure_secure_bucket(settings)
        except (BotoCoreError, ClientError) as e:
            logger.warning(f"Failed to initialize event archive bucket: {e}")


# ---------- dependencies ----------
def db_session():
    try:
        db: Session = SessionLocal()
        try:
            yield db
        finally:
            db.close()
    except (sqlalchemy.exc.SQLAlchemyError, sqlalchemy.exc.DBAPIError) as e:
        logger.error(f"Database error: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database connection failed",
        )


def event_archive(settings: Settings = Depends(get_settings)):
    if not settings.events_bucket:
        return None
    return get_s3_client(settings)


def current_operator(
    creds: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    db: Session = Depends(db_session),
) -> models.ApiKey:
    key = crud.verify_api_key(db, creds.credentials)
    if not key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API key",
        )
    return key


# ---------- health ----------
@app.api_route("/health", methods=["GET", "HEAD"], include_in_schema=False)
def health(db: Session = Depends(db_session)):
    start = time.perf_counter()
    try:
        db.execute(text("SELECT 1"))
        database = {"status": "healthy", "message": "Database connection successful"}
    except sqlalchemy.exc.SQLAlchemyError as e:
        logger.error(f"Health check database error: {e}")
        database = {"status": "unhealthy", "message": "Database connection failed"}
    database["latency_ms"] = round((time.perf_counter() - start) * 1000, 2)

    healthy = database["status"] == "healthy"
    body = {
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": VERSION,
        "uptime": round(time.monotonic() - started_at, 3),
        "services": {"database": database},
    }
    return JSONResponse(
        body,
        status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
    )


# ---------- square webhooks ----------
def store_and_dispatch(
    db: Session, settings: Settings, s3, raw: bytes, event: WebhookEvent
) -> None:
    """Log a verified delivery, archive it, then dispatch inline or via Celery."""
    stored = crud.record_event(db, raw, event.event_type, event.event_id)

    if s3 is not None and stored.deliveries == 1:
        try:
            store_event_payload(s3, settings, archive_key(stored.sha256), raw)
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Failed to archive event {stored.id} to S3: {e}")

    if settings.dispatch_in_background:
        try:
            result = process_event.delay(str(stored.id))
            logger.info(f"Queued event {stored.id} as task {result.id}")
        except Exception as e:
            # The stored row stays "received" and can be replayed
            logger.error(f"Failed to queue event {stored.id}: {e}", exc_info=True)
    else:
        run_dispatch(db, stored, event)


@app.post("/webhooks/square")
async def square_webhook(
    request: Request,
    db: Session = Depends(db_session),
    settings: Settings = Depends(get_settings),
    s3=Depends(event_archive),
):
    # The signature covers the exact bytes received; never re-serialise before verifying.
    raw = await request.body()
    signature = request.headers.get(SIGNATURE_HEADER)

    try:
        event = authenticate(raw, signature, settings.square_webhook_signature_key)
    except MalformedPayloadError as e:
        logger.error(f"Malformed webhook payload: size={e.size}, sha256={e.sha256}")
        raise HTTPException(status_code=e.status_code, detail=e.detail)
    except WebhookError as e:
        logger.warning(f"Delivery rejected: {e.detail}")
        raise HTTPException(status_code=e.status_code, detail=e.detail)

    logger.info(f"Square webhook received: {event.event_type}")

    try:
        # Database, S3 and broker calls block; keep them off the event loop
        await run_in_threadpool(store_and_dispatch, db, settings, s3, raw, event)
    except Exception:
        logger.error("Square webhook processing error", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Webhook processing failed",
        )

    return {"success": True}


# ---------- events ----------
@app.get("/events", response_model=list[schemas.EventOut])
def list_events(
    limit: int = Query(50, ge=1, le=500),
    operator: models.ApiKey = Depends(current_operator),
    db: Session = Depends(db_session),
):
    return crud.list_events(db, limit=limit)


@app.post(
    "/events/{event_id}/replay",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=schemas.EventReplayResponse,
    description="Re-dispatch a stored webhook event. Requires an operator API key.",
)
def replay_event(
    event_id: int,
    operator: models.ApiKey = Depends(current_operator),
    db: Session = Depends(db_session),
):
    event = db.query(models.ReceivedEvent).filter_by(id=event_id).first()
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")

    logger.info(f"Operator {operator.label} replaying event {event.id}")
    try:
        process_event.delay(str(event.id))
    except Exception as e:
        logger.error(f"Failed to queue replay of event {event.id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Dispatch queue unavailable",
        )
    return {"status": "queued", "event_id": event.id}
