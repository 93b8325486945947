"""
Ciclo de vida de los timers SLA: inicialización al crear el trabajo,
avance de etapas y barrido periódico de breaches/warnings.
Las funciones agregan cambios a la sesión; check_timers hace commit.
"""
import logging
import math

from dispatch_sla import db
from dispatch_sla.models import Job
from dispatch_sla.models_sla import SlaTimer, SlaAlert
from dispatch_sla.utils.sla import SLA_STAGES, check_timer, default_sla_config, elapsed_minutes
from dispatch_sla.utils.timezone import ahora_utc

logger = logging.getLogger(__name__)


class SlaError(Exception):
    """Error de negocio del ciclo SLA."""


class SlaConfigError(SlaError):
    pass


class SlaStageError(SlaError):
    pass


def validate_sla_config(data):
    """
    Valida una configuración SLA enviada por el cliente.
    Requiere minutos positivos para cada etapa.
    """
    if not isinstance(data, dict):
        raise SlaConfigError('sla_config debe ser un objeto con minutos por etapa')

    config = {}
    for stage in SLA_STAGES:
        value = data.get(stage)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise SlaConfigError(f"sla_config.{stage} debe ser un número")
        if not math.isfinite(value):
            raise SlaConfigError(f"sla_config.{stage} debe ser un número finito")
        minutos = int(round(value))
        if minutos < 1:
            raise SlaConfigError(f"sla_config.{stage} debe ser al menos 1 minuto")
        config[stage] = minutos
    return config


def _start_timer(job, stage, now):
    timer = SlaTimer(
        job_id=job.id,
        stage=stage,
        target_minutes=job.sla_config[stage],
        started_at=now,
        breached=False,
    )
    db.session.add(timer)
    return timer


def initialize_sla_timers(job, sla_config=None, now=None):
    """
    Guarda la configuración SLA en el trabajo e inicia el timer de dispatch.
    Sin configuración explícita se usa la default según la urgencia.
    """
    if now is None:
        now = ahora_utc()

    job.sla_config = validate_sla_config(sla_config) if sla_config is not None \
        else default_sla_config(job.urgency)
    db.session.flush()

    timer = _start_timer(job, SLA_STAGES[0], now)
    db.session.flush()
    logger.info("SLA iniciado para job %s (%s)", job.id, job.sla_config)
    return timer


def complete_stage(job, stage, now=None):
    """
    Completa el timer abierto de una etapa e inicia el de la siguiente.
    Se puede completar un timer con breach: el completado tiene prioridad.

    Returns:
        (timer completado, timer siguiente o None)
    """
    if stage not in SLA_STAGES:
        raise SlaStageError(f"Etapa desconocida: {stage}")
    if now is None:
        now = ahora_utc()

    timer = job.sla_timers.filter(
        SlaTimer.stage == stage,
        SlaTimer.completed_at.is_(None)
    ).first()
    if not timer:
        raise SlaStageError(f"La etapa {stage} no tiene un timer abierto")

    timer.completed_at = now

    next_timer = None
    index = SLA_STAGES.index(stage)
    if index + 1 < len(SLA_STAGES):
        next_stage = SLA_STAGES[index + 1]
        ya_existe = job.sla_timers.filter(SlaTimer.stage == next_stage).first()
        if not ya_existe and job.sla_config and next_stage in job.sla_config:
            next_timer = _start_timer(job, next_stage, now)
    else:
        job.status = 'completed'

    db.session.flush()
    return timer, next_timer


def check_timers(now=None):
    """
    Barrido periódico (cron): revisa los timers activos y registra
    breaches y warnings. Cada timer recibe como máximo un warning.

    Returns:
        dict con {checked, alerts, breaches, details}
    """
    if now is None:
        now = ahora_utc()

    timers = SlaTimer.query.filter(
        SlaTimer.completed_at.is_(None),
        SlaTimer.breached.is_(False)
    ).order_by(SlaTimer.id).all()

    alerts = []
    breaches = []

    for timer in timers:
        decision = check_timer(timer, now)
        if decision is None:
            continue

        elapsed = elapsed_minutes(timer, now)

        if decision == 'breach':
            timer.breached = True
            timer.breach_time = now

            job = db.session.get(Job, timer.job_id)
            if job:
                job.sla_breached = True

            db.session.add(SlaAlert(
                job_id=timer.job_id,
                timer_id=timer.id,
                alert_type='breach',
                stage=timer.stage,
                message=f"SLA breached for {timer.stage} stage. "
                        f"Exceeded {timer.target_minutes} minute target.",
            ))
            breaches.append({
                'job_id': timer.job_id,
                'stage': timer.stage,
                'elapsed_minutes': round(elapsed),
            })
            logger.warning("SLA breach: job %s etapa %s (%d min)", timer.job_id, timer.stage, round(elapsed))
            continue

        # Warning: solo si todavía no se envió uno para este timer
        existe = SlaAlert.query.filter_by(timer_id=timer.id, alert_type='warning').first()
        if existe:
            continue

        remaining = timer.target_minutes - elapsed
        db.session.add(SlaAlert(
            job_id=timer.job_id,
            timer_id=timer.id,
            alert_type='warning',
            stage=timer.stage,
            message=f"SLA warning for {timer.stage} stage. "
                    f"Only {round(remaining)} minutes remaining.",
        ))
        alerts.append({
            'job_id': timer.job_id,
            'stage': timer.stage,
            'remaining_minutes': round(remaining),
        })

    db.session.commit()
    logger.info("Barrido SLA: %d timers, %d warnings, %d breaches", len(timers), len(alerts), len(breaches))

    return {
        'checked': len(timers),
        'alerts': len(alerts),
        'breaches': len(breaches),
        'details': {'alerts': alerts, 'breaches': breaches},
    }
