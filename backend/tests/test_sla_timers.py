from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from dispatch_sla import db
from dispatch_sla.models import Job
from dispatch_sla.models_sla import SlaAlert, SlaTimer
from dispatch_sla.utils.sla import calculate_sla_status
from dispatch_sla.utils.sla_timers import (
    SlaConfigError,
    SlaStageError,
    check_timers,
    complete_stage,
    initialize_sla_timers,
    validate_sla_config,
)

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def _crear_job(urgency: str = "same_day", sla_config: dict | None = None) -> Job:
    job = Job(title="Replace AC compressor", trade_needed="hvac", urgency=urgency)
    db.session.add(job)
    db.session.flush()
    initialize_sla_timers(job, sla_config, now=NOW)
    db.session.commit()
    return job


def test_initialize_uses_default_config_for_urgency(app) -> None:
    job = _crear_job(urgency="emergency")

    assert job.sla_config == {"dispatch": 15, "assignment": 30, "arrival": 60, "completion": 240}
    timers = job.sla_timers.all()
    assert len(timers) == 1
    assert timers[0].stage == "dispatch"
    assert timers[0].target_minutes == 15
    assert timers[0].completed_at is None
    assert timers[0].breached is False


def test_initialize_with_explicit_config(app) -> None:
    job = _crear_job(sla_config={"dispatch": 10, "assignment": 20, "arrival": 30.4, "completion": 40})

    assert job.sla_config["arrival"] == 30
    assert job.sla_timers.first().target_minutes == 10


@pytest.mark.parametrize(
    "config",
    [
        "fast",
        {"dispatch": 10, "assignment": 20, "arrival": 30},
        {"dispatch": 10, "assignment": 0, "arrival": 30, "completion": 40},
        {"dispatch": "10", "assignment": 20, "arrival": 30, "completion": 40},
        {"dispatch": True, "assignment": 20, "arrival": 30, "completion": 40},
        {"dispatch": 0.4, "assignment": 20, "arrival": 30, "completion": 40},
        {"dispatch": float("nan"), "assignment": 20, "arrival": 30, "completion": 40},
        {"dispatch": float("inf"), "assignment": 20, "arrival": 30, "completion": 40},
    ],
)
def test_validate_sla_config_rejects_bad_input(config) -> None:
    with pytest.raises(SlaConfigError):
        validate_sla_config(config)


def test_complete_stage_starts_next_timer(app) -> None:
    job = _crear_job()

    completed, next_timer = complete_stage(job, "dispatch", now=NOW + timedelta(minutes=10))
    db.session.commit()

    assert completed.completed_at is not None
    assert next_timer.stage == "assignment"
    assert next_timer.target_minutes == 60
    assert [t.stage for t in job.sla_timers.all()] == ["dispatch", "assignment"]


def test_complete_breached_stage_counts_as_completed(app) -> None:
    job = _crear_job()
    check_timers(now=NOW + timedelta(minutes=45))

    complete_stage(job, "dispatch", now=NOW + timedelta(minutes=50))
    complete_stage(job, "assignment", now=NOW + timedelta(minutes=55))
    complete_stage(job, "arrival", now=NOW + timedelta(minutes=60))
    completed, next_timer = complete_stage(job, "completion", now=NOW + timedelta(minutes=70))
    db.session.commit()

    assert next_timer is None
    assert job.status == "completed"
    assert calculate_sla_status(job.sla_timers.all(), NOW + timedelta(minutes=80)) == "completed"


def test_complete_stage_errors(app) -> None:
    job = _crear_job()

    with pytest.raises(SlaStageError):
        complete_stage(job, "teleport")
    with pytest.raises(SlaStageError):
        complete_stage(job, "arrival")

    complete_stage(job, "dispatch", now=NOW)
    with pytest.raises(SlaStageError):
        complete_stage(job, "dispatch", now=NOW)


def test_check_timers_records_breach(app) -> None:
    job = _crear_job()  # dispatch: 30 minutos

    result = check_timers(now=NOW + timedelta(minutes=31))

    assert result["checked"] == 1
    assert result["breaches"] == 1
    assert result["alerts"] == 0
    assert result["details"]["breaches"] == [{"job_id": job.id, "stage": "dispatch", "elapsed_minutes": 31}]

    timer = job.sla_timers.first()
    assert timer.breached is True
    assert timer.breach_time is not None
    assert db.session.get(Job, job.id).sla_breached is True

    alerts = SlaAlert.query.filter_by(job_id=job.id).all()
    assert [a.alert_type for a in alerts] == ["breach"]
    assert "Exceeded 30 minute target" in alerts[0].message

    # Un timer con breach ya no es activo
    assert check_timers(now=NOW + timedelta(minutes=40))["checked"] == 0
    assert calculate_sla_status(job.sla_timers.all(), NOW + timedelta(minutes=40)) == "breached"


def test_check_timers_sends_single_warning(app) -> None:
    job = _crear_job()

    first = check_timers(now=NOW + timedelta(minutes=25))
    second = check_timers(now=NOW + timedelta(minutes=26))

    assert first["alerts"] == 1
    assert first["details"]["alerts"] == [{"job_id": job.id, "stage": "dispatch", "remaining_minutes": 5}]
    assert second["checked"] == 1
    assert second["alerts"] == 0
    assert SlaAlert.query.filter_by(alert_type="warning").count() == 1
    assert job.sla_timers.first().breached is False


def test_check_timers_ignores_on_time_and_completed(app) -> None:
    on_time = _crear_job(urgency="flexible")
    done = _crear_job()
    complete_stage(done, "dispatch", now=NOW + timedelta(minutes=5))
    db.session.commit()

    result = check_timers(now=NOW + timedelta(minutes=10))

    # flexible/dispatch + same_day/assignment siguen activos
    assert result["checked"] == 2
    assert result["alerts"] == 0
    assert result["breaches"] == 0
    assert SlaAlert.query.count() == 0
    assert SlaTimer.query.filter(SlaTimer.completed_at.is_not(None)).count() == 1
    assert on_time.sla_breached is False
