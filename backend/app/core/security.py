"""Shared-secret gate for privileged push endpoints."""
from __future__ import annotations

import hmac
import logging
from functools import lru_cache

from fastapi import Depends, Header

from app.core.config import settings
from app.core.errors import AuthError, ConfigError

ADMIN_HEADER = "x-admin-key"

logger = logging.getLogger(__name__)


class AdminGate:
    """Compares a caller-supplied secret against the one configured secret.

    The secret is captured once at construction; an unset or empty secret
    refuses every call with ``ConfigError`` instead of allowing access.
    """

    def __init__(self, secret: str | None) -> None:
        self._secret = secret.encode("utf-8") if secret else None

    @property
    def configured(self) -> bool:
        return self._secret is not None

    def check(self, supplied: str | None) -> None:
        if self._secret is None:
            logger.error("Privileged call refused: ADMIN_API_KEY is not configured")
            raise ConfigError("ADMIN_API_KEY is not configured")
        if supplied is None:
            raise AuthError("Unauthorized")
        # Starlette decodes header bytes as latin-1; this recovers the raw bytes.
        try:
            raw = supplied.encode("latin-1")
        except UnicodeEncodeError:
            raise AuthError("Unauthorized") from None
        if not hmac.compare_digest(raw, self._secret):
            raise AuthError("Unauthorized")


@lru_cache
def get_admin_gate() -> AdminGate:
    return AdminGate(settings.admin_api_key)


def require_admin(
    x_admin_key: str | None = Header(default=None, alias=ADMIN_HEADER),
    gate: AdminGate = Depends(get_admin_gate),
) -> None:
    gate.check(x_admin_key)
