"""Per-caller hourly request counter."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.db.models.rate_limit import RateLimitBucket

logger = logging.getLogger(__name__)


def hour_bucket(now: datetime) -> str:
    return now.astimezone(timezone.utc).strftime("%Y-%m-%dT%H")


def is_rate_limited(db: Session, key: str, *, limit: int, now: Optional[datetime] = None) -> bool:
    """Check the caller's current-hour count, then record this attempt.

    Returns False whenever the counter store fails.
    """
    now = now or datetime.now(timezone.utc)
    bucket = hour_bucket(now)
    try:
        row = db.get(RateLimitBucket, (key, bucket))
        if row is not None and row.attempts >= limit:
            return True
        if row is None:
            row = RateLimitBucket(key=key, bucket=bucket, attempts=0)
            db.add(row)
        row.attempts += 1
        row.last_attempt_at = now
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.warning("Rate limiter unavailable for %s; allowing request", key, exc_info=True)
        return False
    return False


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    if request.client and request.client.host:
        return request.client.host
    return "127.0.0.1"
