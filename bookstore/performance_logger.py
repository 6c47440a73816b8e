# ==============================================================================
# SISTEMA DE PROFILING INTERNO
# ==============================================================================
# Mide rendimiento de rutas y funciones sin afectar las respuestas.
# Guarda logs legibles en LOGS_DIR para análisis humano.
#
# ACTIVAR/DESACTIVAR: variable de entorno BOOKSTORE_PROFILING o configure()
# ==============================================================================

import os
import time
import threading
from datetime import datetime
from functools import wraps
from collections import defaultdict
from typing import Any, Dict, Optional

from bookstore import config

# ═══════════════════════════════════════════════════════════════════════════
# CONFIGURACIÓN
# ═══════════════════════════════════════════════════════════════════════════

ENABLE_PROFILING = config.ENABLE_PROFILING

# Umbrales de tiempo (en milisegundos)
THRESHOLD_WARNING = config.THRESHOLD_WARNING_MS
THRESHOLD_CRITICAL = config.THRESHOLD_CRITICAL_MS

LOGS_DIR = config.LOGS_DIR

PERFORMANCE_LOG = 'performance.log'
SLOW_ROUTES_LOG = 'slow_routes.log'
SLOW_FUNCTIONS_LOG = 'slow_functions.log'

# Mapeo de rutas a nombres legibles (para logs más humanos)
ROUTE_NAMES = {
    # Catálogo
    'GET /api/books': 'Listar libros',
    'GET /api/books/<int:book_id>': 'Ver libro',
    'GET /api/books/isbn/<isbn>': 'Buscar libro por ISBN',
    'POST /api/books': 'Crear libro',
    'PATCH /api/books/<int:book_id>': 'Editar libro',
    'DELETE /api/books/<int:book_id>': 'Eliminar libro',
    'POST /api/books/<int:book_id>/stock': 'Ajustar stock',
    'GET /api/categories': 'Listar categorías',
    'POST /api/categories': 'Crear categoría',
    'PATCH /api/categories/<int:category_id>': 'Editar categoría',
    'DELETE /api/categories/<int:category_id>': 'Eliminar categoría',

    # Usuarios
    'GET /api/users': 'Listar usuarios',
    'POST /api/users': 'Registrar usuario',
    'PATCH /api/users/<int:user_id>': 'Editar usuario',
    'DELETE /api/users/<int:user_id>': 'Eliminar usuario',
    'GET /api/users/<int:user_id>/orders': 'Ver pedidos del usuario',
    'POST /api/auth/login': 'Iniciar sesión',

    # Pedidos
    'GET /api/orders': 'Listar pedidos',
    'GET /api/orders/<int:order_id>': 'Ver pedido',
    'POST /api/orders': 'Crear pedido',
    'PATCH /api/orders/<int:order_id>/status': 'Cambiar estado pedido',
    'PATCH /api/orders/<int:order_id>/shipping': 'Actualizar envío',
    'POST /api/orders/<int:order_id>/items': 'Agregar ítem',
    'DELETE /api/orders/<int:order_id>/items/<int:item_id>': 'Quitar ítem',
    'POST /api/orders/<int:order_id>/cancel': 'Cancelar pedido',
    'DELETE /api/orders/<int:order_id>': 'Eliminar pedido',

    # Auditoría
    'GET /api/audit': 'Ver registro de actividad',
}


def configure(logs_dir: str = None, enabled: bool = None) -> None:
    """
    Cambia destino y activación del profiling en tiempo de ejecución.

    Args:
        logs_dir: Nueva carpeta de logs
        enabled: True/False para activar o desactivar
    """
    global LOGS_DIR, ENABLE_PROFILING
    if logs_dir is not None:
        LOGS_DIR = logs_dir
    if enabled is not None:
        ENABLE_PROFILING = enabled


def _log_path(filename: str) -> str:
    return os.path.join(LOGS_DIR, filename)


# ═══════════════════════════════════════════════════════════════════════════
# ESTADÍSTICAS DE FUNCIONES (en memoria)
# ═══════════════════════════════════════════════════════════════════════════

# Estructura: {nombre_funcion: {calls: int, total_time: float, max_time: float}}
_function_stats = defaultdict(lambda: {'calls': 0, 'total_time': 0.0, 'max_time': 0.0})
_stats_lock = threading.Lock()
_write_lock = threading.Lock()


# ═══════════════════════════════════════════════════════════════════════════
# FUNCIONES DE LOGGING
# ═══════════════════════════════════════════════════════════════════════════

def _get_timestamp() -> str:
    """Obtiene timestamp legible"""
    return datetime.now().strftime('%Y-%m-%d %H:%M:%S')


def _write_log(filename: str, content: str) -> None:
    """Escribe contenido a un archivo de log (thread-safe)"""
    try:
        with _write_lock:
            os.makedirs(LOGS_DIR, exist_ok=True)
            with open(_log_path(filename), 'a', encoding='utf-8') as f:
                f.write(content)
    except OSError:
        pass  # Errores de escritura del log no afectan la app


def _get_route_name(method: str, path: str, rule: str = None) -> str:
    """
    Obtiene nombre legible para una ruta.
    Usa la regla de Flask (con parámetros) si está mapeada.
    """
    for candidate in (f"{method} {rule}", f"{method} {path}"):
        if candidate in ROUTE_NAMES:
            return ROUTE_NAMES[candidate]
    return f"{method} {path}"


# ═══════════════════════════════════════════════════════════════════════════
# 1️⃣ PROFILING DE RUTAS
# ═══════════════════════════════════════════════════════════════════════════

def log_route_performance(method: str, path: str, rule: str, time_ms: float, status: int = None) -> None:
    """
    Registra el rendimiento de una ruta en performance.log

    Args:
        method: GET, POST, etc.
        path: Ruta solicitada (/api/orders/3/items)
        rule: Regla de Flask (/api/orders/<int:order_id>/items)
        time_ms: Tiempo en milisegundos
        status: Código HTTP de la respuesta
    """
    if not ENABLE_PROFILING:
        return

    action_name = _get_route_name(method, path, rule)

    log_entry = f"""
════════════════════════════════════════
[PERFORMANCE] {_get_timestamp()}
────────────────────────────────────────
Acción: {action_name}
Ruta: {method} {path}
Estado: {status}
Tiempo: {time_ms:.0f} ms
"""

    _write_log(PERFORMANCE_LOG, log_entry)


def log_slow_route(method: str, path: str, rule: str, time_ms: float, level: str = 'WARNING') -> None:
    """
    Registra una ruta lenta en slow_routes.log

    Args:
        level: 'WARNING' (>300ms) o 'CRITICAL' (>700ms)
    """
    if not ENABLE_PROFILING:
        return

    action_name = _get_route_name(method, path, rule)
    severity = 'LENTA' if level == 'WARNING' else 'MUY LENTA'
    threshold = THRESHOLD_WARNING if level == 'WARNING' else THRESHOLD_CRITICAL

    log_entry = f"""
[{level}] {_get_timestamp()}
────────────────────────────────────────
Ruta {severity}: {action_name}
Detalle: {method} {path}
Tiempo: {time_ms:.0f} ms (umbral: {threshold} ms)
────────────────────────────────────────
"""

    _write_log(SLOW_ROUTES_LOG, log_entry)


# ═══════════════════════════════════════════════════════════════════════════
# 2️⃣ HOOKS PARA FLASK (before/after request)
# ═══════════════════════════════════════════════════════════════════════════

def init_profiling(app) -> None:
    """
    Inicializa el sistema de profiling en una app Flask.
    Registra hooks before_request y after_request.

    Uso:
        from bookstore.performance_logger import init_profiling
        init_profiling(app)
    """

    @app.before_request
    def _start_timer():
        from flask import g
        g.start_time = time.perf_counter()

    @app.after_request
    def _log_request(response):
        from flask import g, request

        if not ENABLE_PROFILING or not hasattr(g, 'start_time'):
            return response

        elapsed = (time.perf_counter() - g.start_time) * 1000  # ms

        method = request.method
        path = request.path
        rule = str(request.url_rule) if request.url_rule else path

        log_route_performance(method, path, rule, elapsed, response.status_code)

        if elapsed >= THRESHOLD_CRITICAL:
            log_slow_route(method, path, rule, elapsed, 'CRITICAL')
        elif elapsed >= THRESHOLD_WARNING:
            log_slow_route(method, path, rule, elapsed, 'WARNING')

        return response


# ═══════════════════════════════════════════════════════════════════════════
# 3️⃣ DECORADOR PARA FUNCIONES CLAVE
# ═══════════════════════════════════════════════════════════════════════════

def profile_function(func=None, name: str = None):
    """
    Decorador para medir rendimiento de funciones críticas.

    Uso:
        @profile_function
        def mi_funcion():
            ...

        @profile_function(name="Crear pedido")
        def create_order(self, ...):
            ...

    Registra:
        - Cantidad de llamadas
        - Tiempo promedio
        - Tiempo máximo
    """
    def decorator(fn):
        func_name = name or fn.__name__

        @wraps(fn)
        def wrapper(*args, **kwargs):
            if not ENABLE_PROFILING:
                return fn(*args, **kwargs)

            start = time.perf_counter()
            try:
                return fn(*args, **kwargs)
            finally:
                elapsed_ms = (time.perf_counter() - start) * 1000

                with _stats_lock:
                    stats = _function_stats[func_name]
                    stats['calls'] += 1
                    stats['total_time'] += elapsed_ms
                    if elapsed_ms > stats['max_time']:
                        stats['max_time'] = elapsed_ms

                if elapsed_ms >= THRESHOLD_WARNING:
                    _log_slow_function_call(func_name, elapsed_ms)

        return wrapper

    # Permitir uso sin paréntesis: @profile_function
    if func is not None:
        return decorator(func)
    return decorator


def _log_slow_function_call(func_name: str, time_ms: float) -> None:
    """Registra una llamada lenta a una función"""
    severity = 'CRÍTICO' if time_ms >= THRESHOLD_CRITICAL else 'LENTO'

    log_entry = f"""
[{severity}] {_get_timestamp()}
Función: {func_name}
Tiempo: {time_ms:.0f} ms
────────────────────────────────────────
"""

    _write_log(SLOW_FUNCTIONS_LOG, log_entry)


# ═══════════════════════════════════════════════════════════════════════════
# 4️⃣ REPORTE DE ESTADÍSTICAS
# ═══════════════════════════════════════════════════════════════════════════

def get_function_stats() -> Dict[str, Dict[str, Any]]:
    """
    Obtiene estadísticas de todas las funciones perfiladas.

    Returns:
        dict: {nombre: {calls, avg_time, max_time}}
    """
    with _stats_lock:
        result = {}
        for func_name, stats in _function_stats.items():
            calls = stats['calls']
            avg = stats['total_time'] / calls if calls > 0 else 0
            result[func_name] = {
                'calls': calls,
                'avg_time': round(avg, 2),
                'max_time': round(stats['max_time'], 2)
            }
        return result


def write_function_stats_report() -> Optional[str]:
    """
    Escribe un reporte legible de estadísticas en slow_functions.log

    Returns:
        Texto del reporte, o None si no hay datos
    """
    if not ENABLE_PROFILING:
        return None

    stats = get_function_stats()
    if not stats:
        return None

    # Ordenar por tiempo promedio (mayor primero)
    sorted_stats = sorted(stats.items(), key=lambda x: x[1]['avg_time'], reverse=True)

    report = f"""
══════════════════════════════════════════════════
  REPORTE DE RENDIMIENTO DE FUNCIONES
  Generado: {_get_timestamp()}
══════════════════════════════════════════════════

"""

    for func_name, data in sorted_stats:
        status = ''
        if data['avg_time'] >= THRESHOLD_CRITICAL:
            status = ' [CRÍTICO]'
        elif data['avg_time'] >= THRESHOLD_WARNING:
            status = ' [LENTO]'
        elif data['max_time'] >= THRESHOLD_CRITICAL:
            status = ' [PICOS ALTOS]'

        report += f"""FUNCIÓN: {func_name}{status}
  Llamadas totales: {data['calls']}
  Tiempo promedio:  {data['avg_time']:.0f} ms
  Tiempo máximo:    {data['max_time']:.0f} ms

"""

    _write_log(SLOW_FUNCTIONS_LOG, report)
    return report


def reset_stats() -> None:
    """Reinicia todas las estadísticas (útil para testing)"""
    with _stats_lock:
        _function_stats.clear()


# ═══════════════════════════════════════════════════════════════════════════
# EXPORTAR API PÚBLICA
# ═══════════════════════════════════════════════════════════════════════════

__all__ = [
    'configure',
    'init_profiling',
    'profile_function',
    'get_function_stats',
    'write_function_stats_report',
    'reset_stats',
]
