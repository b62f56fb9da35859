"""Opik client bootstrap."""
from __future__ import annotations

import logging
from typing import Optional

import opik

from app.core.config import settings

logger = logging.getLogger(__name__)

_client: Optional[opik.Opik] = None


def init_opik() -> None:
    """Create the Opik client when tracing is enabled."""
    global _client
    if not settings.opik_enabled:
        logger.info("Opik tracing disabled")
        return
    try:
        _client = opik.Opik(project_name=settings.opik_project, api_key=settings.opik_api_key)
    except Exception:
        logger.exception("Failed to initialise Opik client; tracing disabled")
        _client = None
        return
    logger.info("Opik tracing enabled (project=%s)", settings.opik_project)


def get_opik_client() -> Optional[opik.Opik]:
    return _client
