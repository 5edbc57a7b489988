from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "sqlite:///./moneybuddy.db"
    # Absence is reported per request as a configuration error.
    square_webhook_signature_key: str | None = None
    redis_url: str = "redis://localhost:6379/0"
    events_bucket: str = ""
    s3_bucket: str = ""
    aws_region: str = "us-east-1"
    aws_access_key_id: str = "test"
    aws_secret_access_key: str = "test"
    aws_endpoint_url: str | None = None
    aws_sse_kms_key_id: str = ""
    dispatch_in_background: bool = False
    rate_limit_times: int = 100
    rate_limit_seconds: int = 60
    max_body_size: int = 1_048_576  # 1 MiB
    log_level: str = "INFO"

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        # Use S3_BUCKET if EVENTS_BUCKET is not set
        if not self.events_bucket and self.s3_bucket:
            self.events_bucket = self.s3_bucket

    model_config = {"env_file": ".env", "extra": "ignore"}


@lru_cache
def get_settings() -> Settings:
    return Settings()
