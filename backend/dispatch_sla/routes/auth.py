"""
Autenticación por token Bearer.
Los tokens los emite el proveedor de autenticación (JWT HS256); acá solo se
verifican. El barrido SLA usa un secreto aparte para el scheduler.
"""
from flask import request, jsonify, current_app, g
import hmac
import jwt
import logging
from functools import wraps

logger = logging.getLogger(__name__)


def _bearer_token():
    auth_header = request.headers.get('Authorization')
    if not auth_header or not auth_header.startswith('Bearer '):
        return None
    return auth_header.split(' ', 1)[1].strip()


def get_current_user_from_token():
    """Claims del token (sub, email, role) o None si no es válido."""
    token = _bearer_token()
    secret = current_app.config.get('SUPABASE_JWT_SECRET')
    if not token or not secret:
        return None

    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=['HS256'],
            audience=current_app.config.get('JWT_AUDIENCE')
        )
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError as e:
        logger.debug("Token inválido: %s", e)
        return None

    if not payload.get('sub'):
        return None
    return payload


def token_required(f):
    @wraps(f)
    def decorated(*args, **kwargs):
        user = get_current_user_from_token()
        if not user:
            return jsonify({'error': 'No autenticado'}), 401
        g.current_user = user
        return f(*args, **kwargs)
    return decorated


def cron_secret_required(f):
    """Exige 'Bearer <CRON_SECRET>' cuando el secreto está configurado."""
    @wraps(f)
    def decorated(*args, **kwargs):
        cron_secret = current_app.config.get('CRON_SECRET')
        if cron_secret:
            token = _bearer_token() or ''
            if not hmac.compare_digest(token.encode(), cron_secret.encode()):
                logger.warning("Llamada de cron no autorizada a %s", request.path)
                return jsonify({'error': 'No autorizado'}), 401
        return f(*args, **kwargs)
    return decorated
