import logging

from botocore.exceptions import ClientError

from moneybuddy.core.config import Settings
from moneybuddy.storage.s3_client import get_s3_client

logger = logging.getLogger(__name__)


def ensure_secure_bucket(settings: Settings, s3=None) -> None:
    """Ensure the event archive bucket exists, is private and encrypted by default."""
    s3 = s3 or get_s3_client(settings)
    bucket = settings.events_bucket
    try:
        s3.head_bucket(Bucket=bucket)
    except ClientError:
        create_kwargs = {"Bucket": bucket}
        if settings.aws_region != "us-east-1":
            create_kwargs["CreateBucketConfiguration"] = {
                "LocationConstraint": settings.aws_region
            }
        s3.create_bucket(**create_kwargs)
        logger.info(f"Created event archive bucket {bucket}")

    # Block Public Access
    s3.put_public_access_block(
        Bucket=bucket,
        PublicAccessBlockConfiguration={
            "BlockPublicAcls": True,
            "IgnorePublicAcls": True,
            "BlockPublicPolicy": True,
            "RestrictPublicBuckets": True,
        },
    )

    # Default encryption (SSE-KMS or AES256)
    kms_key = settings.aws_sse_kms_key_id
    enc_cfg = {
        "Rules": [
            {
                "ApplyServerSideEncryptionByDefault": {
                    "SSEAlgorithm": "aws:kms" if kms_key else "AES256",
                    **({"KMSMasterKeyID": kms_key} if kms_key else {}),
                },
                "BucketKeyEnabled": True,
            }
        ]
    }
    s3.put_bucket_encryption(Bucket=bucket, ServerSideEncryptionConfiguration=enc_cfg)
