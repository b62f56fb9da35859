"""Schemas for push token registration, broadcast and reconciliation."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RegisterTokenRequest(CamelModel):
    token: str
    env: Optional[str] = None
    store_id: Optional[str] = None
    platform: Optional[str] = Field(default=None, max_length=20)
    app_version: Optional[str] = Field(default=None, max_length=32)
    device_id: Optional[str] = Field(default=None, max_length=255)
    opted_in: bool = True


class RegisterTokenResponse(CamelModel):
    ok: bool = True
    token: str
    env: str
    store_id: Optional[str] = None
    request_id: str


class Segment(CamelModel):
    env: Optional[str] = None
    store_id: Optional[str] = None
    platform: Optional[str] = None


class _MessageFields(CamelModel):
    title: str
    body: str
    data: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("title", "body")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be empty")
        return value


class BroadcastRequest(_MessageFields):
    segment: Segment = Field(default_factory=Segment)


class SendRequest(_MessageFields):
    to: str


class TicketSummary(CamelModel):
    token: str
    status: str
    ticket_id: Optional[str] = None
    error: Optional[str] = None


class ChunkResult(CamelModel):
    index: int
    size: int
    ok: bool
    status: Optional[int] = None
    tickets: List[TicketSummary] = Field(default_factory=list)
    error: Optional[str] = None


class DispatchResponse(CamelModel):
    ok: bool = True
    total_tokens: int
    batches: int
    delivered: int
    results: List[ChunkResult]
    request_id: str


class ReconcileResponse(CamelModel):
    ok: bool = True
    checked: int
    deleted: int
    request_id: str


class SegmentCounts(CamelModel):
    total: int
    by_platform: Dict[str, int]
    invalid: int


class SegmentSummaryResponse(CamelModel):
    ok: bool = True
    env: str
    store_id: Optional[str] = None
    counts: SegmentCounts
    sample: List[str]
    request_id: str


class PingResponse(CamelModel):
    ok: bool = True
    request_id: str


