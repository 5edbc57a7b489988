import logging
from datetime import datetime, timezone

import boto3

from moneybuddy.core.config import Settings, get_settings

logger = logging.getLogger(__name__)


def get_s3_client(settings: Settings | None = None):
    """Get a configured S3 client."""
    settings = settings or get_settings()
    return boto3.client(
        "s3",
        region_name=settings.aws_region,
        aws_access_key_id=settings.aws_access_key_id,
        aws_secret_access_key=settings.aws_secret_access_key,
        endpoint_url=settings.aws_endpoint_url,
    )


def archive_key(sha256: str, received_at: datetime | None = None) -> str:
    received_at = received_at or datetime.now(timezone.utc)
    return f"{received_at:%Y/%m/%d}/{sha256}.json"


def store_event_payload(s3, settings: Settings, key: str, raw_body: bytes) -> None:
    """
    Store a verified event body in S3 with server-side encryption.

    Args:
        s3: boto3 S3 client
        settings: supplies the bucket and optional KMS key
        key: The S3 object key
        raw_body: The raw event payload bytes, exactly as signed
    """
    kms_key = settings.aws_sse_kms_key_id
    s3.put_object(
        Bucket=settings.events_bucket,
        Key=key,
        Body=raw_body,
        ContentType="application/json",
        ServerSideEncryption="aws:kms" if kms_key else "AES256",
        **({"SSEKMSKeyId": kms_key} if kms_key else {}),
    )
    logger.info(f"Archived event body to s3://{settings.events_bucket}/{key}")
