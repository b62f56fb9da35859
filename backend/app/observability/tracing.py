"""Lightweight span context manager with optional Opik export."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from time import perf_counter
from typing import Any, Dict, Iterator, Optional

from app.observability.client import get_opik_client

logger = logging.getLogger(__name__)


@contextmanager
def trace(
    name: str,
    metadata: Optional[Dict[str, Any]] = None,
    request_id: Optional[str] = None,
) -> Iterator[None]:
    metadata = dict(metadata or {})
    if request_id:
        metadata.setdefault("request_id", request_id)
    client = get_opik_client()
    span = client.trace(name=name, metadata=metadata) if client else None
    start = perf_counter()
    error: Optional[str] = None
    try:
        yield
    except Exception as exc:
        error = type(exc).__name__
        raise
    finally:
        duration_ms = (perf_counter() - start) * 1000
        logger.debug("span %s finished in %.2fms error=%s", name, duration_ms, error)
        if span is not None:
            span.end(metadata={**metadata, "duration_ms": duration_ms, "error": error})
