# ==============================================================================
# CONFIGURACIÓN
# ==============================================================================
# Valores leídos de variables de entorno al importar el módulo.
# Ejemplo:
#   export BOOKSTORE_DATA_DIR="/var/lib/bookstore"
#   export BOOKSTORE_PROFILING=0
# ==============================================================================

import os

BASE = os.path.dirname(os.path.abspath(__file__))


def _env_flag(name: str, default: bool) -> bool:
    """Interpreta una variable de entorno como booleano."""
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() not in ('0', 'false', 'no', 'off', '')


# ═══════════════════════════════════════════════════════════════════════════════
# MODO PRODUCCIÓN
# ═══════════════════════════════════════════════════════════════════════════════
# True = Sin mensajes de depuración en consola
PRODUCTION_MODE = _env_flag('BOOKSTORE_PRODUCTION', False)

# ═══════════════════════════════════════════════════════════════════════════════
# RUTAS DE DATOS
# ═══════════════════════════════════════════════════════════════════════════════
# Directorio donde viven users.json, books.json, orders.json, etc.
DATA_DIR = os.environ.get('BOOKSTORE_DATA_DIR') or os.path.join(BASE, 'data')

# Directorio de logs de rendimiento
LOGS_DIR = os.environ.get('BOOKSTORE_LOGS_DIR') or os.path.join(DATA_DIR, 'logs')

# ═══════════════════════════════════════════════════════════════════════════════
# PROFILING
# ═══════════════════════════════════════════════════════════════════════════════
ENABLE_PROFILING = _env_flag('BOOKSTORE_PROFILING', True)

# Umbrales de tiempo (en milisegundos)
THRESHOLD_WARNING_MS = 300
THRESHOLD_CRITICAL_MS = 700

# ═══════════════════════════════════════════════════════════════════════════════
# LÍMITES
# ═══════════════════════════════════════════════════════════════════════════════
# Registros de auditoría que se conservan (los más recientes)
MAX_AUDIT_LOGS = 10000

# Tamaño máximo de un request JSON
MAX_CONTENT_LENGTH = 1 * 1024 * 1024  # 1 MB

if not PRODUCTION_MODE and os.environ.get('BOOKSTORE_DEBUG'):
    print(f"[DEBUG] DATA_DIR = {os.path.abspath(DATA_DIR)}")
