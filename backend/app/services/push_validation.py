"""Validation and normalization shared by the push services."""
from __future__ import annotations

import re
from typing import Iterator, List, Sequence, TypeVar

from app.core.errors import ValidationError

T = TypeVar("T")

ENV_PROD = "prod"
ENV_STAGING = "staging"
ENV_DEV = "dev"

# Expo issues both the legacy and the current prefix.
_EXPO_TOKEN_RE = re.compile(r"^(?:ExponentPushToken|ExpoPushToken)\[[A-Za-z0-9+/_-]+\]$")
_ENV_RE = re.compile(r"^[A-Za-z][A-Za-z0-9_-]*$")

PERMANENT_ERROR_CODES = frozenset({"DeviceNotRegistered", "InvalidCredentials"})


def is_expo_push_token(token: object) -> bool:
    return isinstance(token, str) and bool(_EXPO_TOKEN_RE.match(token))


def normalize_token(token: object) -> str:
    """Strip surrounding whitespace and enforce the Expo token syntax."""
    if not isinstance(token, str) or not is_expo_push_token(token.strip()):
        raise ValidationError("Invalid Expo push token")
    return token.strip()


def normalize_environment(env: str | None) -> str:
    """Map a caller-supplied environment onto prod, staging or dev.

    Missing values default to prod. Matching is by case-insensitive prefix:
    "prod*" -> prod, "stag*" -> staging, anything else -> dev. Values that are
    not identifier-like are rejected.
    """
    if env is None:
        return ENV_PROD
    if not isinstance(env, str) or not _ENV_RE.match(env.strip()):
        raise ValidationError("env must be one of: prod, staging, dev")
    lowered = env.strip().lower()
    if lowered.startswith("prod"):
        return ENV_PROD
    if lowered.startswith("stag"):
        return ENV_STAGING
    return ENV_DEV


def normalize_store_id(store_id: str | None) -> str | None:
    if store_id is None:
        return None
    cleaned = store_id.strip()
    return cleaned or None


def is_permanent_error(error_code: str | None) -> bool:
    return error_code in PERMANENT_ERROR_CODES


def chunked(items: Sequence[T], size: int) -> Iterator[List[T]]:
    """Yield contiguous slices of at most ``size`` items."""
    if size < 1:
        raise ValueError("chunk size must be >= 1")
    for start in range(0, len(items), size):
        yield list(items[start : start + size])
