"""Dedicated APScheduler worker that reconciles push receipts."""
from __future__ import annotations

import logging
import signal
import sys
import threading
from datetime import datetime, timezone
from time import perf_counter
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from apscheduler.schedulers.background import BackgroundScheduler

from app.core.config import settings
from app.core.logging import configure_logging
from app.db.session import SessionLocal
from app.observability.client import init_opik
from app.observability.metrics import log_metric
from app.observability.tracing import trace
from app.services.expo_client import get_push_client
from app.services.receipt_reconciler import reconcile

logger = logging.getLogger(__name__)


def main() -> None:
    configure_logging(log_level=settings.log_level)
    init_opik()
    try:
        _validate_config()
    except ValueError as exc:
        logger.error("Invalid scheduler configuration: %s", exc)
        sys.exit(1)

    logger.info("Scheduler worker starting (enabled=%s)", settings.scheduler_enabled)

    if not settings.scheduler_enabled:
        logger.warning("Scheduler worker started but SCHEDULER_ENABLED=false. No jobs will run.")
        return

    scheduler = BackgroundScheduler(timezone=settings.scheduler_timezone)
    _register_jobs(scheduler)
    logger.info(
        "Scheduler enabled (tz=%s, receipt_window=%smin..%sd, chunk_size=%s)",
        settings.scheduler_timezone,
        settings.receipt_min_age_minutes,
        settings.receipt_lookback_days,
        settings.receipt_chunk_size,
    )
    scheduler.start()
    if settings.jobs_run_on_startup:
        logger.info("Running jobs once on startup")
        _run_reconcile_job()

    stop_event = threading.Event()

    def shutdown(signum, frame):  # pragma: no cover - signal handler
        logger.info("Scheduler worker shutting down (signal=%s)", signum)
        if scheduler.running:
            scheduler.shutdown(wait=False)
        stop_event.set()

    signal.signal(signal.SIGINT, shutdown)
    signal.signal(signal.SIGTERM, shutdown)

    try:
        _wait_forever(stop_event)
    except KeyboardInterrupt:  # pragma: no cover - manual stop
        shutdown(signal.SIGINT, None)


def _register_jobs(scheduler: BackgroundScheduler) -> None:
    scheduler.add_job(
        _run_reconcile_job,
        trigger="interval",
        minutes=settings.reconcile_interval_minutes,
        id="push_reconcile_job",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    logger.info(
        "Registered scheduler jobs (tz=%s): push_reconcile every %s min",
        settings.scheduler_timezone,
        settings.reconcile_interval_minutes,
    )


def _run_reconcile_job() -> None:
    _execute_job(
        job_name="push_reconcile",
        runner=lambda session: reconcile(session, get_push_client()),
        scheduled_run_time=datetime.now(timezone.utc),
    )


def _execute_job(job_name: str, runner, scheduled_run_time=None) -> None:
    session = SessionLocal()
    start = perf_counter()
    scheduled_str = scheduled_run_time.isoformat() if scheduled_run_time else None
    metadata = {"job": job_name, "scheduled_run_time": scheduled_str}
    logger.info("Job %s starting (scheduled_run_time=%s)", job_name, scheduled_str or "now")

    checked = 0
    deleted = 0
    success = 0
    try:
        with trace(f"jobs.{job_name}", metadata=metadata):
            result = runner(session)
            checked = result.checked
            deleted = result.deleted
            success = 1
    except Exception:
        logger.exception("Job %s failed", job_name)
    finally:
        session.close()

    duration_ms = (perf_counter() - start) * 1000
    log_metric("jobs.success", success, metadata={"job": job_name})
    log_metric("jobs.receipts_checked", checked, metadata={"job": job_name})
    log_metric("jobs.tokens_deleted", deleted, metadata={"job": job_name})
    log_metric("jobs.duration_ms", duration_ms, metadata={"job": job_name})

    if success:
        logger.info(
            "Job %s complete: checked=%s, deleted=%s, duration_ms=%0.2f",
            job_name,
            checked,
            deleted,
            duration_ms,
        )


def _validate_config() -> None:
    if settings.reconcile_interval_minutes < 1:
        raise ValueError("RECONCILE_INTERVAL_MINUTES must be >= 1")
    if not (1 <= settings.receipt_chunk_size <= 1000):
        raise ValueError("RECEIPT_CHUNK_SIZE must be between 1 and 1000")
    if settings.receipt_min_age_minutes < 0:
        raise ValueError("RECEIPT_MIN_AGE_MINUTES must be >= 0")
    if settings.receipt_lookback_days < 1:
        raise ValueError("RECEIPT_LOOKBACK_DAYS must be >= 1")
    try:
        ZoneInfo(settings.scheduler_timezone)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"SCHEDULER_TIMEZONE is not a known zone: {settings.scheduler_timezone}") from exc


def _wait_forever(stop_event: threading.Event) -> None:
    stop_event.wait()


if __name__ == "__main__":  # pragma: no cover - manual launch
    main()
