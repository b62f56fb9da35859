"""Device push token ORM model."""
from __future__ import annotations

from sqlalchemy import Boolean, Column, DateTime, Index, String, func

from app.db.base import Base


class DeviceToken(Base):
    __tablename__ = "push_tokens"
    __table_args__ = (Index("ix_push_tokens_environment_store_id", "environment", "store_id"),)

    token = Column(String(length=255), primary_key=True)
    environment = Column(String(length=16), nullable=False)
    store_id = Column(String(length=128), nullable=True)
    platform = Column(String(length=20), nullable=True)
    app_version = Column(String(length=32), nullable=True)
    device_id = Column(String(length=255), nullable=True)
    opted_in = Column(Boolean, nullable=False, server_default="true", default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
