"""Helper functions for managing device push tokens."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.logging import mask_token
from app.db.models.device_token import DeviceToken
from app.services.push_validation import normalize_environment, normalize_store_id, normalize_token

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def register_token(
    db: Session,
    *,
    token: str,
    environment: str | None = None,
    store_id: str | None = None,
    platform: str | None = None,
    app_version: str | None = None,
    device_id: str | None = None,
    opted_in: bool = True,
    now: Optional[datetime] = None,
) -> DeviceToken:
    """Upsert a token keyed by its value; ``created_at`` survives re-registration."""
    token = normalize_token(token)
    now = now or utcnow()
    fields: Dict[str, Any] = {
        "environment": normalize_environment(environment),
        "store_id": normalize_store_id(store_id),
        "platform": platform,
        "app_version": app_version,
        "device_id": device_id,
        "opted_in": opted_in,
        "updated_at": now,
    }

    model = db.get(DeviceToken, token)
    created = model is None
    if created:
        model = DeviceToken(token=token, created_at=now)
        db.add(model)
    _apply(model, fields)
    try:
        db.commit()
    except IntegrityError:
        # Lost a race with a concurrent first registration; last write wins.
        db.rollback()
        model = db.get(DeviceToken, token)
        if model is None:
            raise
        created = False
        _apply(model, fields)
        db.commit()
    db.refresh(model)
    logger.info(
        "Push token %s %s env=%s store=%s platform=%s",
        mask_token(token),
        "registered" if created else "updated",
        model.environment,
        model.store_id,
        model.platform,
    )
    return model


def _apply(model: DeviceToken, fields: Dict[str, Any]) -> None:
    for name, value in fields.items():
        setattr(model, name, value)


def remove_token(db: Session, token: str) -> bool:
    """Delete a token; returns False when it was already gone."""
    removed = db.query(DeviceToken).filter(DeviceToken.token == token).delete(synchronize_session=False)
    db.commit()
    if removed:
        logger.info("Pruned push token %s", mask_token(token))
    return bool(removed)
