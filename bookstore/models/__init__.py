# ==============================================================================
# CAPA DE MODELOS - Estructuras de datos del sistema
# ==============================================================================
# Este módulo define todas las entidades del dominio usando dataclasses.
#   - Type hints para mejor documentación y autocompletado
#   - Serialización to_dict/from_dict para el almacenamiento JSON
#   - Independiente del mecanismo de persistencia
# ==============================================================================

from .entities import (
    # Usuarios
    User,

    # Catálogo
    Book,
    Category,

    # Pedidos
    Order,
    OrderItem,
    OrderStatus,
    NON_CANCELLABLE_STATUSES,

    # Auditoría
    AuditLog,

    # Utilidades
    to_decimal,
    parse_status,
    utc_now,
)

__all__ = [
    # Usuarios
    'User',

    # Catálogo
    'Book',
    'Category',

    # Pedidos
    'Order',
    'OrderItem',
    'OrderStatus',
    'NON_CANCELLABLE_STATUSES',

    # Auditoría
    'AuditLog',

    # Utilidades
    'to_decimal',
    'parse_status',
    'utc_now',
]
