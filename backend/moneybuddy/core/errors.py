class WebhookError(Exception):
    """Base for failures that end processing of a delivery.

    ``detail`` is the only text the sender ever sees.
    """

    status_code = 500
    detail = "Webhook processing failed"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.detail)


class ConfigurationError(WebhookError):
    """The signature key is not provisioned; the operator must fix it."""

    status_code = 500
    detail = "Webhook not configured"


class MissingSignatureError(WebhookError):
    status_code = 400
    detail = "Missing signature"


class InvalidSignatureError(WebhookError):
    status_code = 401
    detail = "Invalid signature"


class MalformedPayloadError(WebhookError):
    """Verified body that is not a decodable event."""

    status_code = 500
    detail = "Webhook processing failed"

    def __init__(self, message: str, size: int = 0, sha256: str = ""):
        super().__init__(message)
        self.size = size
        self.sha256 = sha256


class HandlerError(Exception):
    """A handler's downstream effect failed. Logged, never surfaced."""

    def __init__(self, event_type: str, cause: Exception):
        super().__init__(f"Handler for {event_type} failed: {cause}")
        self.event_type = event_type
        self.cause = cause
