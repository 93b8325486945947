"""
Utilidades de fecha/hora para los timers SLA.
Todas las marcas de tiempo se manejan en UTC con zona horaria explícita.
"""
from datetime import datetime, timezone


def ahora_utc():
    """Retorna datetime actual en UTC (aware)."""
    return datetime.now(timezone.utc)


def parse_timestamp(value):
    """
    Convierte un valor de la base (datetime o string ISO-8601) a datetime aware.
    Los datetime naive se interpretan como UTC (SQLite no guarda la zona).
    Retorna None si el valor no se puede interpretar.
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        try:
            dt = datetime.fromisoformat(value.strip().replace('Z', '+00:00'))
        except ValueError:
            return None
    else:
        return None

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def to_iso(value):
    """ISO-8601 en UTC para respuestas JSON, None si no hay fecha."""
    dt = parse_timestamp(value)
    return dt.astimezone(timezone.utc).isoformat() if dt else None
