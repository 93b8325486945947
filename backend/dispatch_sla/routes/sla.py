"""
Endpoints del sistema SLA.
- Detalle: timers, alertas y estado SLA de un trabajo
- Avance de etapa: completa el timer de una etapa e inicia la siguiente
- Check-timers: cron job que registra breaches y warnings
- Alerts: historial de alertas
"""
from flask import Blueprint, request, jsonify
from dispatch_sla import db
from dispatch_sla.models import Job
from dispatch_sla.models_sla import SlaAlert
from dispatch_sla.routes.auth import token_required, cron_secret_required
from dispatch_sla.utils.sla import SLA_STAGES, serialize_sla
from dispatch_sla.utils.sla_timers import check_timers, complete_stage, SlaStageError
from dispatch_sla.utils.timezone import ahora_utc
import logging

logger = logging.getLogger(__name__)

sla_bp = Blueprint('sla', __name__)


@sla_bp.route('/jobs/<int:job_id>', methods=['GET'])
@token_required
def obtener_sla_job(job_id):
    """
    Timers y alertas de un trabajo, con el estado SLA calculado
    (general, peor etapa, tiempo restante del timer activo).
    """
    job = Job.query.filter_by(id=job_id).first()
    if not job:
        return jsonify({'error': 'Trabajo no encontrado'}), 404

    timers = job.sla_timers.all()
    alerts = job.sla_alerts.limit(50).all()

    return jsonify({
        'job_id': job.id,
        'sla_config': job.sla_config,
        'timers': [t.to_dict() for t in timers],
        'alerts': [a.to_dict() for a in alerts],
        'sla': serialize_sla(timers, ahora_utc()),
    }), 200


@sla_bp.route('/jobs/<int:job_id>/stages/<stage>/complete', methods=['POST'])
@token_required
def completar_etapa(job_id, stage):
    """
    Completa la etapa indicada. Si hay etapa siguiente, arranca su timer.
    """
    if stage not in SLA_STAGES:
        return jsonify({'error': f"Etapa inválida. Valores: {', '.join(SLA_STAGES)}"}), 400

    job = Job.query.filter_by(id=job_id).first()
    if not job:
        return jsonify({'error': 'Trabajo no encontrado'}), 404

    try:
        completed, next_timer = complete_stage(job, stage)
        db.session.commit()

        timers = job.sla_timers.all()
        return jsonify({
            'completed': completed.to_dict(),
            'next_timer': next_timer.to_dict() if next_timer else None,
            'sla': serialize_sla(timers),
        }), 200

    except SlaStageError as e:
        db.session.rollback()
        return jsonify({'error': str(e)}), 409
    except Exception as e:
        db.session.rollback()
        logger.exception("Error completando etapa %s del job %s", stage, job_id)
        return jsonify({'error': str(e)}), 500


@sla_bp.route('/check-timers', methods=['POST'])
@cron_secret_required
def check_timers_cron():
    """
    Cron job: escanea timers activos, marca breaches y crea alertas.
    Diseñado para ejecutarse cada pocos minutos via Cloud Scheduler.
    """
    try:
        resultado = check_timers()
        return jsonify({'success': True, **resultado}), 200

    except Exception as e:
        db.session.rollback()
        logger.exception("Error en barrido SLA")
        return jsonify({'success': False, 'error': str(e)}), 500


@sla_bp.route('/alerts', methods=['GET'])
@token_required
def listar_alertas():
    """
    Historial de alertas SLA.
    Filtros: job_id, alert_type (warning | breach)
    """
    job_id = request.args.get('job_id', type=int)
    alert_type = request.args.get('alert_type')

    if alert_type and alert_type not in ('warning', 'breach'):
        return jsonify({'error': 'alert_type debe ser warning o breach'}), 400

    query = SlaAlert.query
    if job_id:
        query = query.filter_by(job_id=job_id)
    if alert_type:
        query = query.filter_by(alert_type=alert_type)

    alertas = query.order_by(SlaAlert.created_at.desc(), SlaAlert.id.desc()).limit(200).all()

    return jsonify({
        'alerts': [a.to_dict() for a in alertas],
        'total': len(alertas),
    }), 200
