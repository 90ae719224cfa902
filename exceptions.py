"""
Error taxonomy shared by stores, services and routers.
Each error carries the HTTP status and error code used in the response envelope.
"""


class SubscriptionBackendError(Exception):
    status_code = 500
    error_code = "internal_error"

    def __init__(self, message: str = "An error occurred"):
        super().__init__(message)
        self.message = message


class InvalidInput(SubscriptionBackendError):
    status_code = 400
    error_code = "invalid_input"


class Unauthorized(SubscriptionBackendError):
    status_code = 401
    error_code = "unauthorized"


class NotFound(SubscriptionBackendError):
    status_code = 404
    error_code = "not_found"


class AlreadyExists(SubscriptionBackendError):
    status_code = 409
    error_code = "already_exists"


class StorageUnavailable(SubscriptionBackendError):
    """Any I/O failure in the underlying store. Never retried."""
    status_code = 500
    error_code = "storage_unavailable"


class UpstreamVerificationFailed(SubscriptionBackendError):
    """Webhook signature or payload rejected; no state may change."""
    status_code = 400
    error_code = "webhook_verification_failed"


class UpstreamServiceError(SubscriptionBackendError):
    """Payment or CAPTCHA provider failure, or missing provider configuration."""
    status_code = 500
    error_code = "upstream_service_error"
