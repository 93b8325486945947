"""
Modelos SQLAlchemy para timers y alertas SLA.
Un timer por etapa del trabajo; las alertas las escribe el barrido periódico
cuando un timer entra en warning o supera su objetivo.
"""
from dispatch_sla import db
from dispatch_sla.utils.timezone import ahora_utc, to_iso


class SlaTimer(db.Model):
    """
    Timer de una etapa (dispatch, assignment, arrival, completion).
    Con completed_at cargado el timer es terminal.
    """
    __tablename__ = 'sla_timers'

    id = db.Column(db.Integer, primary_key=True)
    job_id = db.Column(db.Integer, db.ForeignKey('jobs.id', ondelete='CASCADE'), nullable=False, index=True)
    stage = db.Column(db.String(30), nullable=False)
    target_minutes = db.Column(db.Integer, nullable=False)
    started_at = db.Column(db.DateTime(timezone=True), nullable=False)
    completed_at = db.Column(db.DateTime(timezone=True))
    breached = db.Column(db.Boolean, nullable=False, default=False, index=True)
    breach_time = db.Column(db.DateTime(timezone=True))
    created_at = db.Column(db.DateTime(timezone=True), default=ahora_utc)

    def to_dict(self):
        return {
            'id': self.id,
            'job_id': self.job_id,
            'stage': self.stage,
            'target_minutes': self.target_minutes,
            'started_at': to_iso(self.started_at),
            'completed_at': to_iso(self.completed_at),
            'breached': bool(self.breached),
            'breach_time': to_iso(self.breach_time),
        }


class SlaAlert(db.Model):
    """
    Alerta SLA. Como máximo una alerta 'warning' por timer;
    la alerta 'breach' se crea una sola vez al marcar el breach.
    """
    __tablename__ = 'sla_alerts'

    id = db.Column(db.Integer, primary_key=True)
    job_id = db.Column(db.Integer, db.ForeignKey('jobs.id', ondelete='CASCADE'), nullable=False, index=True)
    timer_id = db.Column(db.Integer, db.ForeignKey('sla_timers.id', ondelete='CASCADE'), nullable=False, index=True)
    alert_type = db.Column(db.String(20), nullable=False)  # warning, breach
    stage = db.Column(db.String(30), nullable=False)
    message = db.Column(db.Text)
    created_at = db.Column(db.DateTime(timezone=True), default=ahora_utc, index=True)

    timer = db.relationship('SlaTimer')

    def to_dict(self):
        return {
            'id': self.id,
            'job_id': self.job_id,
            'timer_id': self.timer_id,
            'alert_type': self.alert_type,
            'stage': self.stage,
            'message': self.message,
            'created_at': to_iso(self.created_at),
        }
