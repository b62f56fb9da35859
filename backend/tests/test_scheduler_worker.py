from __future__ import annotations

from types import SimpleNamespace

import pytest

from app.worker import scheduler_main


def _set_valid_schedule(monkeypatch):
    monkeypatch.setattr(scheduler_main.settings, "reconcile_interval_minutes", 30)
    monkeypatch.setattr(scheduler_main.settings, "receipt_chunk_size", 100)
    monkeypatch.setattr(scheduler_main.settings, "receipt_min_age_minutes", 15)
    monkeypatch.setattr(scheduler_main.settings, "receipt_lookback_days", 7)
    monkeypatch.setattr(scheduler_main.settings, "scheduler_timezone", "UTC")


def test_worker_warns_when_disabled(monkeypatch, caplog):
    _set_valid_schedule(monkeypatch)
    monkeypatch.setattr(scheduler_main.settings, "scheduler_enabled", False)
    monkeypatch.setattr(scheduler_main, "init_opik", lambda: None)
    caplog.set_level("WARNING")
    scheduler_main.main()
    assert "SCHEDULER_ENABLED=false" in caplog.text


def test_worker_registers_reconcile_job(monkeypatch, caplog):
    _set_valid_schedule(monkeypatch)
    monkeypatch.setattr(scheduler_main.settings, "scheduler_enabled", True)
    monkeypatch.setattr(scheduler_main.settings, "jobs_run_on_startup", False)
    monkeypatch.setattr(scheduler_main, "init_opik", lambda: None)

    jobs = []

    class DummyScheduler:
        def __init__(self, timezone=None):
            self.running = False

        def add_job(self, func, *args, **kwargs):
            jobs.append(kwargs)

        def start(self):
            self.running = True

        def shutdown(self, wait=False):
            self.running = False

    monkeypatch.setattr(scheduler_main, "BackgroundScheduler", DummyScheduler)
    monkeypatch.setattr(scheduler_main, "_wait_forever", lambda event: None)
    monkeypatch.setattr(scheduler_main.signal, "signal", lambda *args, **kwargs: None)

    caplog.set_level("INFO")
    scheduler_main.main()
    assert "Scheduler enabled" in caplog.text
    assert "Registered scheduler jobs" in caplog.text
    assert jobs[0]["id"] == "push_reconcile_job"
    assert jobs[0]["minutes"] == 30


def test_job_execution_emits_metrics(monkeypatch):
    metrics = []
    monkeypatch.setattr(
        scheduler_main,
        "log_metric",
        lambda name, value, metadata=None: metrics.append((name, value, metadata)),
    )

    closed = []

    class DummySession:
        def close(self):
            closed.append(True)

    monkeypatch.setattr(scheduler_main, "SessionLocal", lambda: DummySession())
    monkeypatch.setattr(scheduler_main, "get_push_client", lambda: object())
    monkeypatch.setattr(
        scheduler_main,
        "reconcile",
        lambda session, client: SimpleNamespace(checked=4, deleted=1),
    )

    scheduler_main._run_reconcile_job()

    recorded = {name: value for name, value, _ in metrics}
    assert recorded["jobs.success"] == 1
    assert recorded["jobs.receipts_checked"] == 4
    assert recorded["jobs.tokens_deleted"] == 1
    assert closed == [True]


def test_failed_job_is_logged_not_raised(monkeypatch, caplog):
    monkeypatch.setattr(scheduler_main, "SessionLocal", lambda: SimpleNamespace(close=lambda: None))
    monkeypatch.setattr(scheduler_main, "get_push_client", lambda: object())

    def boom(session, client):
        raise RuntimeError("database down")

    monkeypatch.setattr(scheduler_main, "reconcile", boom)
    caplog.set_level("ERROR")
    scheduler_main._run_reconcile_job()
    assert "Job push_reconcile failed" in caplog.text


def test_validate_config_errors(monkeypatch):
    _set_valid_schedule(monkeypatch)
    monkeypatch.setattr(scheduler_main.settings, "reconcile_interval_minutes", 0)
    with pytest.raises(ValueError):
        scheduler_main._validate_config()
    monkeypatch.setattr(scheduler_main.settings, "reconcile_interval_minutes", 30)
    monkeypatch.setattr(scheduler_main.settings, "receipt_chunk_size", 5000)
    with pytest.raises(ValueError):
        scheduler_main._validate_config()
    monkeypatch.setattr(scheduler_main.settings, "receipt_chunk_size", 100)
    monkeypatch.setattr(scheduler_main.settings, "scheduler_timezone", "Mars/Olympus_Mons")
    with pytest.raises(ValueError):
        scheduler_main._validate_config()
