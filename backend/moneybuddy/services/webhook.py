import hashlib
import logging

from moneybuddy.core.errors import (
    ConfigurationError,
    InvalidSignatureError,
    MissingSignatureError,
)
from moneybuddy.services import square_verify
from moneybuddy.services.events import WebhookEvent, decode_event

logger = logging.getLogger(__name__)


def authenticate(raw_body: bytes, signature: str | None, secret: str | None) -> WebhookEvent:
    """
    Verify a delivery and decode it.

    Checks run in order: signature key configured, signature header present,
    signature valid. Only then is the body parsed.
    """
    if not secret:
        logger.error("SQUARE_WEBHOOK_SIGNATURE_KEY not configured")
        raise ConfigurationError()

    if not signature:
        logger.error("Missing webhook signature")
        raise MissingSignatureError()

    if not square_verify.verify(raw_body, signature, secret):
        logger.error(
            f"Invalid webhook signature (size={len(raw_body)}, "
            f"sha256={hashlib.sha256(raw_body).hexdigest()})"
        )
        raise InvalidSignatureError()

    return decode_event(raw_body)
