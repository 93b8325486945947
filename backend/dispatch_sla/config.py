import os
from dotenv import load_dotenv

load_dotenv()

class Config:
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-cambiar-en-prod')

    # Tokens del proveedor de autenticación (HS256 con secreto compartido)
    SUPABASE_JWT_SECRET = os.getenv('SUPABASE_JWT_SECRET', '')
    JWT_AUDIENCE = os.getenv('JWT_AUDIENCE', 'authenticated')

    # Secreto del scheduler para el barrido SLA (vacío = sin verificación)
    CRON_SECRET = os.getenv('CRON_SECRET', '')

    # MySQL Cloud SQL
    DB_USER = os.getenv('DB_USER', 'root')
    DB_PASSWORD = os.getenv('DB_PASSWORD', '')
    DB_HOST = os.getenv('DB_HOST', 'localhost')
    DB_PORT = os.getenv('DB_PORT', '3306')
    DB_NAME = os.getenv('DB_NAME', 'dispatch_sla')

    # Cloud SQL Instance Connection Name (para Cloud Run)
    CLOUD_SQL_CONNECTION_NAME = os.getenv('CLOUD_SQL_CONNECTION_NAME', '')

    # DATABASE_URL tiene prioridad; si no, socket Unix en Cloud Run o TCP en local
    if os.getenv('DATABASE_URL'):
        SQLALCHEMY_DATABASE_URI = os.getenv('DATABASE_URL')
    elif CLOUD_SQL_CONNECTION_NAME:
        SQLALCHEMY_DATABASE_URI = f"mysql+pymysql://{DB_USER}:{DB_PASSWORD}@/{DB_NAME}?unix_socket=/cloudsql/{CLOUD_SQL_CONNECTION_NAME}"
    else:
        SQLALCHEMY_DATABASE_URI = f"mysql+pymysql://{DB_USER}:{DB_PASSWORD}@{DB_HOST}:{DB_PORT}/{DB_NAME}"

    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # CORS - URLs permitidas
    CORS_ORIGINS = os.getenv('CORS_ORIGINS', 'http://localhost:3000').split(',')

    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
