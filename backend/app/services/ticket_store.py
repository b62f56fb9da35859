"""Persistence for push tickets and their receipts."""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy.orm import Session

from app.db.models.push_ticket import RECEIPT_OK, TICKET_QUEUED, PushReceipt, PushTicket


def record_ticket(db: Session, *, ticket_id: str, token: str, created_at: datetime) -> PushTicket:
    """Store a freshly issued ticket; an id seen before is left as it was."""
    existing = db.get(PushTicket, ticket_id)
    if existing:
        return existing
    ticket = PushTicket(ticket_id=ticket_id, token=token, status=TICKET_QUEUED, created_at=created_at)
    db.add(ticket)
    db.commit()
    return ticket


def list_pending(
    db: Session,
    *,
    now: datetime,
    min_age: timedelta,
    lookback: timedelta,
) -> List[PushTicket]:
    """Tickets old enough to have a receipt, young enough to still have one, and not yet ok."""
    return (
        db.query(PushTicket)
        .filter(
            PushTicket.created_at >= now - lookback,
            PushTicket.created_at <= now - min_age,
            PushTicket.status != RECEIPT_OK,
        )
        .order_by(PushTicket.created_at, PushTicket.ticket_id)
        .all()
    )


def save_receipt(
    db: Session,
    *,
    ticket_id: str,
    status: str,
    error_code: Optional[str],
    message: Optional[str],
    recorded_at: datetime,
) -> PushReceipt:
    """Merge a receipt by ticket id and copy its status onto the ticket."""
    receipt = db.get(PushReceipt, ticket_id)
    if receipt is None:
        receipt = PushReceipt(ticket_id=ticket_id)
        db.add(receipt)
    receipt.status = status
    receipt.error_code = error_code
    receipt.message = message
    receipt.recorded_at = recorded_at

    ticket = db.get(PushTicket, ticket_id)
    if ticket is not None:
        ticket.status = status
    db.commit()
    return receipt
