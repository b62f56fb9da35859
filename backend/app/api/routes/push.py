"""Push token registration, broadcast and reconciliation routes."""
from __future__ import annotations

from time import perf_counter
from typing import List

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from app.api.schemas.push import (
    BroadcastRequest,
    ChunkResult,
    DispatchResponse,
    PingResponse,
    ReconcileResponse,
    RegisterTokenRequest,
    RegisterTokenResponse,
    SegmentCounts,
    SegmentSummaryResponse,
    SendRequest,
    TicketSummary,
)
from app.core.config import settings
from app.core.errors import GatewayError, RateLimitError
from app.core.security import require_admin
from app.db.deps import get_db
from app.observability.metrics import log_metric
from app.observability.tracing import trace
from app.services.expo_client import ExpoPushClient, get_push_client
from app.services.push_dispatcher import BroadcastMessage, DispatchSummary, dispatch
from app.services.push_validation import normalize_token
from app.services.rate_limiter import client_ip, is_rate_limited
from app.services.receipt_reconciler import reconcile
from app.services.segment_resolver import resolve_segment, summarize_segment
from app.services.token_registry import register_token

router = APIRouter()


@router.post("/push/register", response_model=RegisterTokenResponse, tags=["push"])
def register_push_token(
    payload: RegisterTokenRequest,
    request: Request,
    db: Session = Depends(get_db),
) -> RegisterTokenResponse:
    request_id = getattr(request.state, "request_id", None)
    ip = client_ip(request)
    if is_rate_limited(db, f"register:{ip}", limit=settings.register_rate_limit_per_hour):
        log_metric("push.register.rate_limited", 1, metadata={"ip": ip})
        raise RateLimitError("Too many requests, please try again later")

    with trace("push.register", metadata={"platform": payload.platform}, request_id=request_id):
        model = register_token(
            db,
            token=payload.token,
            environment=payload.env,
            store_id=payload.store_id,
            platform=payload.platform,
            app_version=payload.app_version,
            device_id=payload.device_id,
            opted_in=payload.opted_in,
        )
    log_metric("push.register.success", 1, metadata={"env": model.environment, "store_id": model.store_id})
    return RegisterTokenResponse(
        token=model.token,
        env=model.environment,
        store_id=model.store_id,
        request_id=request_id or "",
    )


@router.post(
    "/push/broadcast",
    response_model=DispatchResponse,
    tags=["push"],
    dependencies=[Depends(require_admin)],
)
def broadcast(
    payload: BroadcastRequest,
    request: Request,
    db: Session = Depends(get_db),
    client: ExpoPushClient = Depends(get_push_client),
) -> DispatchResponse:
    request_id = getattr(request.state, "request_id", None)
    segment = payload.segment
    metadata = {"env": segment.env, "store_id": segment.store_id, "platform": segment.platform}
    start = perf_counter()
    with trace("push.broadcast", metadata=metadata, request_id=request_id):
        message = BroadcastMessage(title=payload.title, body=payload.body, data=payload.data)
        tokens = resolve_segment(db, segment.env, segment.store_id, segment.platform)
        summary = dispatch(db, client, [row.token for row in tokens], message)
    _raise_if_all_failed(summary)

    log_metric("push.broadcast.latency_ms", (perf_counter() - start) * 1000, metadata=metadata)
    return _serialize_summary(summary, request_id)


@router.post(
    "/push/send",
    response_model=DispatchResponse,
    tags=["push"],
    dependencies=[Depends(require_admin)],
)
def send_to_token(
    payload: SendRequest,
    request: Request,
    db: Session = Depends(get_db),
    client: ExpoPushClient = Depends(get_push_client),
) -> DispatchResponse:
    request_id = getattr(request.state, "request_id", None)
    with trace("push.send", request_id=request_id):
        token = normalize_token(payload.to)
        message = BroadcastMessage(title=payload.title, body=payload.body, data=payload.data)
        summary = dispatch(db, client, [token], message)
    _raise_if_all_failed(summary)
    return _serialize_summary(summary, request_id)


@router.post(
    "/push/prune-invalid",
    response_model=ReconcileResponse,
    tags=["push"],
    dependencies=[Depends(require_admin)],
)
def prune_invalid_tokens(
    request: Request,
    db: Session = Depends(get_db),
    client: ExpoPushClient = Depends(get_push_client),
) -> ReconcileResponse:
    request_id = getattr(request.state, "request_id", None)
    with trace("push.reconcile", request_id=request_id):
        stats = reconcile(db, client)
    return ReconcileResponse(checked=stats.checked, deleted=stats.deleted, request_id=request_id or "")


@router.get(
    "/push/debug/summary",
    response_model=SegmentSummaryResponse,
    tags=["push"],
    dependencies=[Depends(require_admin)],
)
def segment_summary(
    request: Request,
    env: str = Query(..., min_length=1),
    store_id: str = Query(..., alias="storeId", min_length=1),
    db: Session = Depends(get_db),
) -> SegmentSummaryResponse:
    request_id = getattr(request.state, "request_id", None)
    summary = summarize_segment(db, env, store_id)
    return SegmentSummaryResponse(
        env=summary.environment,
        store_id=summary.store_id,
        counts=SegmentCounts(total=summary.total, by_platform=summary.by_platform, invalid=summary.invalid),
        sample=summary.sample,
        request_id=request_id or "",
    )


@router.get("/push/debug/ping", response_model=PingResponse, tags=["push"], dependencies=[Depends(require_admin)])
def ping(request: Request) -> PingResponse:
    return PingResponse(request_id=getattr(request.state, "request_id", None) or "")


def _raise_if_all_failed(summary: DispatchSummary) -> None:
    if summary.all_failed:
        raise GatewayError(
            f"All {summary.batches} push batches failed",
            total_tokens=summary.total_tokens,
        )


def _serialize_summary(summary: DispatchSummary, request_id: str | None) -> DispatchResponse:
    results: List[ChunkResult] = [
        ChunkResult(
            index=result.index,
            size=result.size,
            ok=result.ok,
            status=result.status,
            tickets=[
                TicketSummary(
                    token=ticket.token,
                    status=ticket.status,
                    ticket_id=ticket.ticket_id,
                    error=ticket.error,
                )
                for ticket in result.tickets
            ],
            error=result.error,
        )
        for result in summary.results
    ]
    return DispatchResponse(
        total_tokens=summary.total_tokens,
        batches=summary.batches,
        delivered=summary.delivered,
        results=results,
        request_id=request_id or "",
    )
