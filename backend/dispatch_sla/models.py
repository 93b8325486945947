from dispatch_sla import db
from dispatch_sla.utils.timezone import ahora_utc, to_iso

URGENCIES = ['emergency', 'same_day', 'next_day', 'within_week', 'flexible']


# Tabla de Trabajos (cada trabajo tiene sus timers SLA)
class Job(db.Model):
    __tablename__ = 'jobs'

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    trade_needed = db.Column(db.String(60))  # hvac, plumbing, electrical...
    urgency = db.Column(db.String(20), nullable=False, default='within_week')
    status = db.Column(db.String(30), default='open')  # open, completed, cancelled

    # Minutos objetivo por etapa: {"dispatch": 60, "assignment": 240, ...}
    sla_config = db.Column(db.JSON)
    sla_breached = db.Column(db.Boolean, default=False)

    created_by = db.Column(db.String(64))  # sub del token de autenticación
    created_at = db.Column(db.DateTime(timezone=True), default=ahora_utc)
    updated_at = db.Column(db.DateTime(timezone=True), default=ahora_utc, onupdate=ahora_utc)

    sla_timers = db.relationship('SlaTimer', backref='job', lazy='dynamic',
                                 order_by='SlaTimer.id', cascade='all, delete-orphan')
    sla_alerts = db.relationship('SlaAlert', backref='job', lazy='dynamic',
                                 order_by='desc(SlaAlert.created_at)', cascade='all, delete-orphan')

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'trade_needed': self.trade_needed,
            'urgency': self.urgency,
            'status': self.status,
            'sla_config': self.sla_config,
            'sla_breached': bool(self.sla_breached),
            'created_by': self.created_by,
            'created_at': to_iso(self.created_at),
            'updated_at': to_iso(self.updated_at),
        }
