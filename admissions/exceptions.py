"""
Domain errors raised by the allocator, workflow and composer.

Routers let these propagate; ``admissions.main`` turns them into JSON
responses carrying the ``X-App-Error-Code`` header.
"""
from fastapi import status


class AdmissionsError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code = "admissions_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(AdmissionsError):
    status_code = status.HTTP_404_NOT_FOUND
    error_code = "not_found"


class ValidationError(AdmissionsError, ValueError):
    """Malformed input such as an unusable phone number or admission number."""
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    error_code = "validation_error"


class ConflictError(AdmissionsError):
    status_code = status.HTTP_409_CONFLICT
    error_code = "conflict"


class InvalidTransitionError(AdmissionsError):
    status_code = status.HTTP_409_CONFLICT
    error_code = "invalid_transition"


class TransientStorageError(AdmissionsError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    error_code = "storage_unavailable"


class NotificationDeliveryError(AdmissionsError):
    """Letter generation or email delivery failed after the status was stored."""
    status_code = status.HTTP_502_BAD_GATEWAY
    error_code = "notification_failed"


class DocumentGenerationError(NotificationDeliveryError):
    error_code = "document_generation_failed"
