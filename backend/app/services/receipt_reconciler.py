"""Receipt polling and pruning of permanently invalid tokens."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import GatewayError
from app.core.logging import mask_token
from app.db.models.push_ticket import RECEIPT_ERROR
from app.observability.metrics import log_metric
from app.services.expo_client import ExpoPushClient
from app.services.push_validation import chunked, is_permanent_error
from app.services.ticket_store import list_pending, save_receipt
from app.services.token_registry import remove_token

logger = logging.getLogger(__name__)


@dataclass
class ReconcileStats:
    checked: int = 0
    deleted: int = 0
    failed_chunks: int = 0


def reconcile(
    db: Session,
    client: ExpoPushClient,
    *,
    now: Optional[datetime] = None,
    chunk_size: Optional[int] = None,
    min_age: Optional[timedelta] = None,
    lookback: Optional[timedelta] = None,
) -> ReconcileStats:
    """Fetch receipts for pending tickets and prune dead tokens.

    Gateway failures skip their chunk and storage failures skip their ticket;
    the returned counts cover whatever was processed.
    """
    now = now or datetime.now(timezone.utc)
    chunk_size = chunk_size or settings.receipt_chunk_size
    if min_age is None:
        min_age = timedelta(minutes=settings.receipt_min_age_minutes)
    if lookback is None:
        lookback = timedelta(days=settings.receipt_lookback_days)

    pending = list_pending(db, now=now, min_age=min_age, lookback=lookback)
    owners = {ticket.ticket_id: ticket.token for ticket in pending}
    stats = ReconcileStats()
    if not owners:
        logger.info("No pending tickets to reconcile")
        return stats

    for index, ticket_ids in enumerate(chunked(list(owners), chunk_size)):
        try:
            receipts = client.get_receipts(ticket_ids)
        except GatewayError as exc:
            stats.failed_chunks += 1
            logger.error(
                "Receipt chunk %s (%s tickets) failed: %s", index, len(ticket_ids), exc.message
            )
            continue

        for ticket_id, receipt in receipts.items():
            if ticket_id not in owners:
                logger.warning("Gateway returned receipt for unknown ticket %s", ticket_id)
                continue
            token = owners[ticket_id]
            try:
                prune = _store_receipt(db, ticket_id, token, receipt, now)
            except SQLAlchemyError:
                db.rollback()
                logger.exception("Failed to store receipt for ticket %s", ticket_id)
                continue
            stats.checked += 1
            if not prune:
                continue
            try:
                removed = remove_token(db, token)
            except SQLAlchemyError:
                db.rollback()
                logger.exception("Failed to prune token %s", mask_token(token))
                continue
            if removed:
                stats.deleted += 1

    log_metric(
        "push.reconcile.checked",
        stats.checked,
        metadata={"pending": len(owners), "failed_chunks": stats.failed_chunks},
    )
    log_metric("push.reconcile.deleted", stats.deleted, metadata={})
    logger.info(
        "Reconciliation finished pending=%s checked=%s deleted=%s failed_chunks=%s",
        len(owners),
        stats.checked,
        stats.deleted,
        stats.failed_chunks,
    )
    return stats


def _store_receipt(
    db: Session,
    ticket_id: str,
    token: str,
    receipt: Dict[str, Any],
    now: datetime,
) -> bool:
    """Persist the receipt; returns True when the token should be pruned."""
    status = str(receipt.get("status") or RECEIPT_ERROR)
    details = receipt.get("details") if isinstance(receipt.get("details"), dict) else {}
    error_code = details.get("error") if status == RECEIPT_ERROR else None
    save_receipt(
        db,
        ticket_id=ticket_id,
        status=status,
        error_code=error_code,
        message=receipt.get("message"),
        recorded_at=now,
    )
    if status != RECEIPT_ERROR:
        return False
    if not is_permanent_error(error_code):
        logger.info("Keeping token %s after non-permanent error %s", mask_token(token), error_code)
        return False
    return True
