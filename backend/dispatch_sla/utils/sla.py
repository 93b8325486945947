"""
Cálculo de estado SLA (Service Level Agreement) para los timers de un trabajo.

Cada trabajo pasa por etapas (dispatch, assignment, arrival, completion) y cada
etapa tiene un timer con un objetivo en minutos. Estas funciones son puras: no
hacen I/O ni modifican los timers, solo leen sus campos. Aceptan modelos
SlaTimer o diccionarios con las mismas claves.
"""
import math

from dispatch_sla.utils.timezone import ahora_utc, parse_timestamp

# Etapas en orden de ejecución
SLA_STAGES = ('dispatch', 'assignment', 'arrival', 'completion')

# Minutos objetivo por etapa según urgencia del trabajo
DEFAULT_SLA_BY_URGENCY = {
    'emergency':   {'dispatch': 15,  'assignment': 30,  'arrival': 60,  'completion': 240},
    'same_day':    {'dispatch': 30,  'assignment': 60,  'arrival': 120, 'completion': 480},
    'next_day':    {'dispatch': 60,  'assignment': 120, 'arrival': 240, 'completion': 720},
    'within_week': {'dispatch': 60,  'assignment': 240, 'arrival': 480, 'completion': 1440},
    'flexible':    {'dispatch': 120, 'assignment': 480, 'arrival': 720, 'completion': 2880},
}
DEFAULT_URGENCY = 'within_week'

# Alerta (warning) cuando queda menos del 25% del tiempo objetivo
WARNING_RATIO = 0.25

STATUS_NO_SLA = 'no-sla'
STATUS_BREACHED = 'breached'
STATUS_COMPLETED = 'completed'
STATUS_WARNING = 'warning'
STATUS_ON_TIME = 'on-time'

# Prioridad para el estado "peor" de un conjunto de timers
_STATUS_SEVERITY = {
    STATUS_ON_TIME: 0,
    STATUS_COMPLETED: 1,
    STATUS_WARNING: 2,
    STATUS_BREACHED: 3,
}


def default_sla_config(urgency):
    """Configuración SLA por defecto para una urgencia (copia)."""
    config = DEFAULT_SLA_BY_URGENCY.get(urgency) or DEFAULT_SLA_BY_URGENCY[DEFAULT_URGENCY]
    return dict(config)


def _field(timer, name):
    if isinstance(timer, dict):
        return timer.get(name)
    return getattr(timer, name, None)


def _is_completed(timer):
    return bool(_field(timer, 'completed_at'))


def _is_flagged_breached(timer):
    return bool(_field(timer, 'breached'))


def _is_active(timer):
    return not _is_completed(timer) and not _is_flagged_breached(timer)


def _target_minutes(timer):
    value = _field(timer, 'target_minutes')
    if value is None or isinstance(value, bool):
        return math.nan
    try:
        return float(value)
    except (TypeError, ValueError):
        return math.nan


def elapsed_minutes(timer, now=None):
    """Minutos desde started_at hasta now. NaN si started_at es inválido."""
    started = parse_timestamp(_field(timer, 'started_at'))
    if started is None:
        return math.nan
    if now is None:
        now = ahora_utc()
    return (now - started).total_seconds() / 60


def _remaining_minutes(timer, now):
    return _target_minutes(timer) - elapsed_minutes(timer, now)


def get_active_timer(timers):
    """Primer timer (en orden) sin completar y sin breach, o None."""
    for timer in timers or []:
        if _is_active(timer):
            return timer
    return None


def calculate_sla_status(timers, now=None):
    """
    Estado SLA general de un trabajo.

    Reglas en orden (gana la primera que aplica):
        no-sla     -> no hay timers
        breached   -> algún timer con breach y sin completar
        completed  -> todos los timers completados
        warning    -> el timer activo tiene menos del 25% del tiempo restante
        on-time    -> cualquier otro caso

    Un timer completado nunca cuenta como breached: la fecha de completado
    tiene prioridad sobre el flag.
    """
    timers = list(timers or [])
    if not timers:
        return STATUS_NO_SLA

    if any(_is_flagged_breached(t) and not _is_completed(t) for t in timers):
        return STATUS_BREACHED

    if all(_is_completed(t) for t in timers):
        return STATUS_COMPLETED

    active = get_active_timer(timers)
    if active is None:
        return STATUS_ON_TIME

    if now is None:
        now = ahora_utc()
    target = _target_minutes(active)
    remaining = _remaining_minutes(active, now)

    if 0 < remaining < target * WARNING_RATIO:
        return STATUS_WARNING

    return STATUS_ON_TIME


def get_time_remaining(timer, now=None):
    """
    Minutos restantes del timer, nunca negativo.
    0 si está completado o con breach. NaN si los datos del timer son inválidos.
    """
    if _is_completed(timer) or _is_flagged_breached(timer):
        return 0
    remaining = _remaining_minutes(timer, now or ahora_utc())
    if math.isnan(remaining):
        return remaining
    return max(0, remaining)


def format_minutes(minutes):
    """45 -> '45m', 90 -> '1h 30m', 120 -> '2h'."""
    try:
        value = float(minutes)
    except (TypeError, ValueError):
        return '--'
    if not math.isfinite(value):
        return '--'

    # Redondeo half-up, igual que en el frontend
    total = int(math.floor(value + 0.5))
    if total < 60:
        return f"{total}m"

    hours, mins = divmod(total, 60)
    return f"{hours}h {mins}m" if mins else f"{hours}h"


def get_timer_status(timer, now=None):
    """Estado de un timer individual (para el detalle por etapa)."""
    if _is_completed(timer):
        return STATUS_COMPLETED
    if _is_flagged_breached(timer):
        return STATUS_BREACHED

    remaining = _remaining_minutes(timer, now or ahora_utc())
    if remaining < _target_minutes(timer) * WARNING_RATIO:
        return STATUS_WARNING
    return STATUS_ON_TIME


def get_progress_percent(timer, now=None):
    """Porcentaje del objetivo consumido, entre 0 y 100."""
    if _is_completed(timer):
        return 100

    target = _target_minutes(timer)
    if not target or math.isnan(target):
        return 0

    percent = elapsed_minutes(timer, now) / target * 100
    if math.isnan(percent):
        return 0
    return max(0, min(100, percent))


def worst_status(timers, now=None):
    """Peor estado entre los timers: breached > warning > completed > on-time."""
    if now is None:
        now = ahora_utc()
    worst = STATUS_ON_TIME
    for timer in timers or []:
        status = get_timer_status(timer, now)
        if _STATUS_SEVERITY[status] > _STATUS_SEVERITY[worst]:
            worst = status
    return worst


def check_timer(timer, now=None):
    """
    Decisión del barrido periódico para un timer activo.

    Returns:
        'breach' si el tiempo transcurrido alcanzó el objetivo,
        'warning' si queda 25% o menos del objetivo, None en otro caso.
    """
    if not _is_active(timer):
        return None

    if now is None:
        now = ahora_utc()
    target = _target_minutes(timer)
    elapsed = elapsed_minutes(timer, now)

    if elapsed >= target:
        return 'breach'

    remaining = target - elapsed
    if 0 < remaining <= target * WARNING_RATIO:
        return 'warning'
    return None


def serialize_sla(timers, now=None):
    """
    Resumen SLA para la API.

    Returns:
        dict con {status, worst_status, active_timer_id, active_stage,
        minutes_remaining, time_remaining_display, timers}
    """
    if now is None:
        now = ahora_utc()
    timers = list(timers or [])
    active = get_active_timer(timers)

    remaining = get_time_remaining(active, now) if active is not None else None
    if remaining is not None and math.isnan(remaining):
        remaining = None

    return {
        'status': calculate_sla_status(timers, now),
        'worst_status': worst_status(timers, now),
        'active_timer_id': _field(active, 'id') if active is not None else None,
        'active_stage': _field(active, 'stage') if active is not None else None,
        'minutes_remaining': round(remaining, 2) if remaining is not None else None,
        'time_remaining_display': format_minutes(remaining) if remaining is not None else None,
        'timers': [
            {
                'id': _field(t, 'id'),
                'stage': _field(t, 'stage'),
                'status': get_timer_status(t, now),
                'progress_percent': round(get_progress_percent(t, now), 1),
            }
            for t in timers
        ],
    }
