from flask import Blueprint, request, jsonify, g
from dispatch_sla import db
from dispatch_sla.models import Job, URGENCIES
from dispatch_sla.routes.auth import token_required
from dispatch_sla.utils.sla import serialize_sla
from dispatch_sla.utils.sla_timers import initialize_sla_timers, SlaConfigError
import logging

logger = logging.getLogger(__name__)

jobs_bp = Blueprint('jobs', __name__)

# POST /api/jobs - Crear trabajo e iniciar timers SLA
@jobs_bp.route('', methods=['POST'])
@token_required
def crear_job():
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({'error': 'El body debe ser un objeto JSON'}), 400

    title = data.get('title')
    if not isinstance(title, str) or not title.strip():
        return jsonify({'error': 'title es requerido'}), 400

    urgency = data.get('urgency', 'within_week')
    if urgency not in URGENCIES:
        return jsonify({'error': f"urgency inválida. Valores: {', '.join(URGENCIES)}"}), 400

    try:
        job = Job(
            title=title.strip(),
            description=data.get('description'),
            trade_needed=data.get('trade_needed'),
            urgency=urgency,
            created_by=g.current_user.get('sub')
        )
        db.session.add(job)
        db.session.flush()

        initialize_sla_timers(job, data.get('sla_config'))
        db.session.commit()

        timers = job.sla_timers.all()
        logger.info("Job %s creado por %s", job.id, job.created_by)

        return jsonify({
            'message': 'Trabajo creado',
            'job': job.to_dict(),
            'sla_timers': [t.to_dict() for t in timers],
            'sla': serialize_sla(timers),
        }), 201

    except SlaConfigError as e:
        db.session.rollback()
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        db.session.rollback()
        logger.exception("Error creando job")
        return jsonify({'error': str(e)}), 500

# GET /api/jobs/<id> - Trabajo con resumen SLA
@jobs_bp.route('/<int:job_id>', methods=['GET'])
@token_required
def obtener_job(job_id):
    job = Job.query.filter_by(id=job_id).first()
    if not job:
        return jsonify({'error': 'Trabajo no encontrado'}), 404

    data = job.to_dict()
    data['sla'] = serialize_sla(job.sla_timers.all())
    return jsonify(data)
