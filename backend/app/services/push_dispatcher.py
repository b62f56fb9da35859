"""Batch fan-out of a notification to the push gateway."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import GatewayError, NotFoundError, ValidationError
from app.core.logging import mask_token
from app.observability.metrics import log_metric
from app.services.expo_client import ExpoPushClient
from app.services.push_validation import chunked, is_permanent_error
from app.services.ticket_store import record_ticket
from app.services.token_registry import remove_token

logger = logging.getLogger(__name__)

DEFAULT_SOUND = "default"


@dataclass
class BroadcastMessage:
    title: str
    body: str
    data: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.title = (self.title or "").strip()
        self.body = (self.body or "").strip()
        if not self.title or not self.body:
            raise ValidationError("title and body are required")
        self.data = dict(self.data or {})

    def to_expo(self, token: str) -> Dict[str, Any]:
        return {
            "to": token,
            "title": self.title,
            "body": self.body,
            "data": self.data,
            "sound": DEFAULT_SOUND,
        }


@dataclass
class TicketOutcome:
    token: str
    status: str
    ticket_id: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"


@dataclass
class DispatchResult:
    """Outcome of one chunk: either accepted tickets or the reason it failed."""

    index: int
    size: int
    ok: bool
    status: Optional[int]
    tickets: List[TicketOutcome] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def delivered(self) -> int:
        return sum(1 for ticket in self.tickets if ticket.ok)


@dataclass
class DispatchSummary:
    total_tokens: int
    results: List[DispatchResult]

    @property
    def batches(self) -> int:
        return len(self.results)

    @property
    def delivered(self) -> int:
        return sum(result.delivered for result in self.results)

    @property
    def all_failed(self) -> bool:
        return bool(self.results) and not any(result.ok for result in self.results)


def dispatch(
    db: Session,
    client: ExpoPushClient,
    tokens: Sequence[str],
    message: BroadcastMessage,
    *,
    chunk_size: Optional[int] = None,
    now: Optional[datetime] = None,
) -> DispatchSummary:
    """Send ``message`` to every token, one gateway call per chunk.

    A failing chunk is reported in its own result and never stops the
    remaining chunks.
    """
    if not tokens:
        raise NotFoundError("No tokens available for this segment.")
    chunk_size = chunk_size or settings.push_chunk_size
    now = now or datetime.now(timezone.utc)

    results: List[DispatchResult] = []
    for index, chunk in enumerate(chunked(list(tokens), chunk_size)):
        results.append(_send_chunk(db, client, index, chunk, message, now))

    summary = DispatchSummary(total_tokens=len(tokens), results=results)
    log_metric(
        "push.dispatch.delivered",
        summary.delivered,
        metadata={"tokens": summary.total_tokens, "batches": summary.batches},
    )
    logger.info(
        "Dispatch finished tokens=%s batches=%s delivered=%s failed_batches=%s",
        summary.total_tokens,
        summary.batches,
        summary.delivered,
        sum(1 for result in results if not result.ok),
    )
    return summary


def _send_chunk(
    db: Session,
    client: ExpoPushClient,
    index: int,
    chunk: List[str],
    message: BroadcastMessage,
    now: datetime,
) -> DispatchResult:
    try:
        response = client.send([message.to_expo(token) for token in chunk])
    except GatewayError as exc:
        logger.error("Push chunk %s (%s tokens) failed: %s", index, len(chunk), exc.message)
        return DispatchResult(index=index, size=len(chunk), ok=False, status=exc.http_status, error=exc.detail)

    outcomes = [
        _handle_ticket(db, token, ticket, now) for token, ticket in zip(chunk, response.tickets)
    ]
    return DispatchResult(
        index=index,
        size=len(chunk),
        ok=True,
        status=response.status_code,
        tickets=outcomes,
    )


def _handle_ticket(db: Session, token: str, ticket: Dict[str, Any], now: datetime) -> TicketOutcome:
    status = str(ticket.get("status") or "error")
    details = ticket.get("details") if isinstance(ticket.get("details"), dict) else {}
    error_code = details.get("error")

    if status == "ok":
        ticket_id = ticket.get("id")
        if not ticket_id:
            logger.warning("Ok ticket without id for token %s", mask_token(token))
            return TicketOutcome(token=token, status=status)
        try:
            record_ticket(db, ticket_id=str(ticket_id), token=token, created_at=now)
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Failed to record ticket %s for token %s", ticket_id, mask_token(token))
        return TicketOutcome(token=token, status=status, ticket_id=str(ticket_id))

    error = error_code or ticket.get("message")
    logger.warning("Gateway rejected token %s: %s", mask_token(token), error)
    if is_permanent_error(error_code):
        try:
            remove_token(db, token)
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Failed to prune token %s", mask_token(token))
    return TicketOutcome(token=token, status=status, error=error)
