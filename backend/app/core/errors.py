"""Error taxonomy for the push service and its HTTP mapping."""
from __future__ import annotations

from fastapi import status


class PushServiceError(Exception):
    """Base error carrying the HTTP status it maps to."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    public_message: str | None = None

    def __init__(self, message: str, **context) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    @property
    def detail(self) -> str:
        """Message safe to return to the caller."""
        return self.public_message or self.message


class ValidationError(PushServiceError):
    status_code = status.HTTP_400_BAD_REQUEST


class AuthError(PushServiceError):
    status_code = status.HTTP_401_UNAUTHORIZED


class NotFoundError(PushServiceError):
    status_code = status.HTTP_404_NOT_FOUND


class RateLimitError(PushServiceError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS


class ConfigError(PushServiceError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    public_message = "Server misconfigured"


class GatewayError(PushServiceError):
    status_code = status.HTTP_502_BAD_GATEWAY
    public_message = "Push gateway request failed"

    def __init__(self, message: str, *, http_status: int | None = None, **context) -> None:
        super().__init__(message, **context)
        self.http_status = http_status
