"""Metric emission as structured log lines."""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

logger = logging.getLogger("app.metrics")


def log_metric(name: str, value: float, metadata: Optional[Dict[str, Any]] = None) -> None:
    payload = {"metric": name, "value": value, "metadata": metadata or {}}
    logger.info("metric %s", json.dumps(payload, default=str, sort_keys=True))
