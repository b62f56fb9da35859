"""Hourly request counters keyed by caller."""
from __future__ import annotations

from sqlalchemy import Column, DateTime, Integer, String, func

from app.db.base import Base


class RateLimitBucket(Base):
    __tablename__ = "rate_limits"

    key = Column(String(length=255), primary_key=True)
    bucket = Column(String(length=13), primary_key=True)
    attempts = Column(Integer, nullable=False, default=0)
    last_attempt_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
