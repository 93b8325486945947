import logging

from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from dispatch_sla.config import Config

db = SQLAlchemy()

def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    logging.basicConfig(
        level=app.config.get('LOG_LEVEL', 'INFO'),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )

    # CORS dinámico desde variable de entorno
    CORS(app, origins=app.config['CORS_ORIGINS'], supports_credentials=True)
    db.init_app(app)

    # Registrar blueprints
    from dispatch_sla.routes.jobs import jobs_bp
    from dispatch_sla.routes.sla import sla_bp

    app.register_blueprint(jobs_bp, url_prefix='/api/jobs')
    app.register_blueprint(sla_bp, url_prefix='/api/sla')

    # Importar modelos para que SQLAlchemy los conozca
    from dispatch_sla import models  # Trabajos
    from dispatch_sla import models_sla  # Timers y alertas SLA

    # Crear tablas
    with app.app_context():
        db.create_all()

    return app
