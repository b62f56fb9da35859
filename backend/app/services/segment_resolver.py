"""Audience segment resolution."""
from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from app.db.models.device_token import DeviceToken
from app.services.push_validation import is_expo_push_token, normalize_environment, normalize_store_id

logger = logging.getLogger(__name__)

SAMPLE_SIZE = 5


@dataclass
class SegmentSummary:
    environment: str
    store_id: Optional[str]
    total: int
    by_platform: Dict[str, int] = field(default_factory=dict)
    invalid: int = 0
    sample: List[str] = field(default_factory=list)


def _query_segment(
    db: Session,
    environment: str | None,
    store_id: str | None,
    platform: str | None,
) -> List[DeviceToken]:
    query = db.query(DeviceToken).filter(
        DeviceToken.environment == normalize_environment(environment),
        DeviceToken.opted_in.is_(True),
    )
    store_id = normalize_store_id(store_id)
    if store_id is not None:
        query = query.filter(DeviceToken.store_id == store_id)
    if platform:
        query = query.filter(DeviceToken.platform == platform)
    return query.order_by(DeviceToken.created_at, DeviceToken.token).all()


def _split_valid(rows: List[DeviceToken]) -> tuple[List[DeviceToken], int]:
    seen: set[str] = set()
    valid: List[DeviceToken] = []
    invalid = 0
    for row in rows:
        if not is_expo_push_token(row.token):
            invalid += 1
            continue
        if row.token in seen:
            continue
        seen.add(row.token)
        valid.append(row)
    return valid, invalid


def resolve_segment(
    db: Session,
    environment: str | None,
    store_id: str | None = None,
    platform: str | None = None,
) -> List[DeviceToken]:
    """Return the opted-in, well-formed tokens for a segment.

    Stored tokens that fail the Expo syntax check are skipped but left in the
    registry. An empty list is a valid result.
    """
    valid, invalid = _split_valid(_query_segment(db, environment, store_id, platform))
    if invalid:
        logger.warning(
            "Skipped %s malformed tokens resolving env=%s store=%s", invalid, environment, store_id
        )
    return valid


def summarize_segment(db: Session, environment: str, store_id: str | None) -> SegmentSummary:
    valid, invalid = _split_valid(_query_segment(db, environment, store_id, None))
    by_platform = Counter(row.platform or "unknown" for row in valid)
    return SegmentSummary(
        environment=normalize_environment(environment),
        store_id=normalize_store_id(store_id),
        total=len(valid),
        by_platform=dict(by_platform),
        invalid=invalid,
        sample=[row.token for row in valid[:SAMPLE_SIZE]],
    )
