"""Push ticket and receipt ORM models."""
from __future__ import annotations

from sqlalchemy import Column, DateTime, String, Text, func

from app.db.base import Base

TICKET_QUEUED = "queued"
RECEIPT_OK = "ok"
RECEIPT_ERROR = "error"


class PushTicket(Base):
    """Gateway acknowledgement for one message sent to one token."""

    __tablename__ = "push_tickets"

    ticket_id = Column(String(length=64), primary_key=True)
    # No foreign key: tickets outlive tokens removed by pruning.
    token = Column(String(length=255), nullable=False, index=True)
    status = Column(String(length=16), nullable=False, default=TICKET_QUEUED)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), index=True)


class PushReceipt(Base):
    """Final delivery outcome reported by the gateway for a ticket."""

    __tablename__ = "push_receipts"

    ticket_id = Column(String(length=64), primary_key=True)
    status = Column(String(length=16), nullable=False)
    error_code = Column(String(length=64), nullable=True)
    message = Column(Text, nullable=True)
    recorded_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
