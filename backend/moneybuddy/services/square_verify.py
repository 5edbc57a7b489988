import base64
import hashlib
import hmac
import logging

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "x-square-hmacsha256-signature"


def compute_signature(raw_body: bytes, secret: str) -> str:
    """Return the base64 HMAC-SHA256 of ``raw_body`` keyed with ``secret``."""
    digest = hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def verify(raw_body: bytes, signature: str, secret: str) -> bool:
    """
    Check a Square webhook signature.

    ``raw_body`` must be the request body exactly as received. Returns True
    only on an exact match; any error while computing or comparing counts as
    a failed verification.
    """
    try:
        expected = compute_signature(raw_body, secret)
        # compare_digest rejects non-ASCII str input with TypeError
        return hmac.compare_digest(expected.encode("ascii"), signature.encode("ascii"))
    except Exception as e:
        logger.warning(f"Signature verification error: {type(e).__name__}")
        return False
