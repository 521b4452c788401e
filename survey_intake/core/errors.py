"""
Error taxonomy shared by the services and the HTTP layer.

Every error carries the HTTP status it maps to; the exception handlers in
``survey_intake.main`` turn them into ``{"ok": false, "error": <message>}``.
"""

from fastapi import status


class IntakeError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(IntakeError):
    """Missing or malformed client input."""

    status_code = status.HTTP_400_BAD_REQUEST


class ConfigurationError(IntakeError):
    """A required external capability is not configured."""

    status_code = status.HTTP_400_BAD_REQUEST


class UnauthorizedError(IntakeError):
    status_code = status.HTTP_401_UNAUTHORIZED


class NotFoundError(IntakeError):
    status_code = status.HTTP_404_NOT_FOUND


class StorageError(IntakeError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class DeliveryError(IntakeError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
