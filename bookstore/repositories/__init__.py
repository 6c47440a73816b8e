# ==============================================================================
# CAPA DE REPOSITORIOS - Acceso a datos
# ==============================================================================
# Esta capa encapsula todo el acceso a la persistencia (archivos JSON).
# Para cambiar de almacenamiento solo hay que modificar esta capa:
# las interfaces (métodos públicos) permanecen iguales.
#
# ESTRUCTURA:
# ├── interfaces.py          → Protocolos (contratos)
# ├── base.py                → Clases base JSON + transaction()
# ├── user_repository.py     → users.json
# ├── category_repository.py → categories.json
# ├── book_repository.py     → books.json
# ├── order_repository.py    → orders.json, order_items.json
# └── audit_repository.py    → audit.json
# ==============================================================================

# Interfaces
from bookstore.repositories.interfaces import (
    IEntityRepository,
    IUserRepository,
    ICategoryRepository,
    IBookRepository,
    IOrderRepository,
    IOrderItemRepository,
    IAuditRepository,
)

# Implementaciones concretas (JSON)
from bookstore.repositories.base import (
    BaseRepository,
    DictRepository,
    ListRepository,
    EntityRepository,
    transaction,
)
from bookstore.repositories.user_repository import UserRepository
from bookstore.repositories.category_repository import CategoryRepository
from bookstore.repositories.book_repository import BookRepository
from bookstore.repositories.order_repository import OrderRepository, OrderItemRepository
from bookstore.repositories.audit_repository import AuditRepository

__all__ = [
    # Interfaces
    'IEntityRepository',
    'IUserRepository',
    'ICategoryRepository',
    'IBookRepository',
    'IOrderRepository',
    'IOrderItemRepository',
    'IAuditRepository',

    # Clases base
    'BaseRepository',
    'DictRepository',
    'ListRepository',
    'EntityRepository',
    'transaction',

    # Implementaciones JSON
    'UserRepository',
    'CategoryRepository',
    'BookRepository',
    'OrderRepository',
    'OrderItemRepository',
    'AuditRepository',
]
