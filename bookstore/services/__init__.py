# ==============================================================================
# CAPA DE SERVICIOS - Lógica de negocio
# ==============================================================================
# Esta capa contiene TODA la lógica de negocio de la librería.
#
# PRINCIPIOS:
# 1. Los servicios orquestan operaciones entre repositorios
# 2. Aplican reglas de negocio y validaciones (lanzan BookstoreError)
# 3. Las rutas solo llaman a servicios
# 4. Los servicios NO conocen el tipo de almacenamiento
#
# ESTRUCTURA:
# ├── catalog_service.py → Libros, categorías, stock
# ├── user_service.py    → Usuarios, autenticación
# ├── order_service.py   → Pedidos, ítems, reserva de stock
# ├── audit_service.py   → Logs de actividad
# ├── validation.py      → Conversión de datos de entrada
# └── exceptions.py      → Errores de negocio
# ==============================================================================

from bookstore.services.exceptions import (
    BookstoreError,
    NotFoundError,
    DuplicateKeyError,
    InvalidArgumentError,
    InsufficientStockError,
)
from bookstore.services.audit_service import AuditService
from bookstore.services.catalog_service import CatalogService
from bookstore.services.user_service import UserService
from bookstore.services.order_service import OrderService

__all__ = [
    # Excepciones
    'BookstoreError',
    'NotFoundError',
    'DuplicateKeyError',
    'InvalidArgumentError',
    'InsufficientStockError',

    # Servicios
    'AuditService',
    'CatalogService',
    'UserService',
    'OrderService',
]
