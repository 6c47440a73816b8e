# ==============================================================================
# INTERFACES DE REPOSITORIOS
# ==============================================================================
#
# Contratos que deben cumplir los repositorios. Los servicios dependen de
# estas interfaces, no de las clases JSON concretas:
#
# 1. INDEPENDENCIA DE ALMACENAMIENTO
#    - Cambiar JSON → SQL solo requiere una nueva implementación
#
# 2. TESTING
#    - Fácil crear dobles que implementen estas interfaces
#
# ==============================================================================

from typing import Any, Callable, Dict, List, Optional, Protocol, runtime_checkable

from bookstore.models import User, Book, Category, Order, OrderItem


# ==============================================================================
# INTERFAZ BASE
# ==============================================================================

@runtime_checkable
class IEntityRepository(Protocol):
    """
    Primitivas que cada tipo de entidad necesita.
    Nada más rico: los servicios arman sus consultas con estas.
    """

    def find_by_id(self, entity_id: Any) -> Optional[Any]:
        """Busca por ID."""
        ...

    def find_one_by(self, field: str, value: Any) -> Optional[Any]:
        """Busca por campo único."""
        ...

    def find_all(self) -> List[Any]:
        """Todas las entidades."""
        ...

    def find_all_matching(self, predicate: Callable[[Any], bool]) -> List[Any]:
        """Entidades que cumplen un predicado."""
        ...

    def save(self, entity: Any) -> Any:
        """Inserta o actualiza."""
        ...

    def delete_by_id(self, entity_id: Any) -> bool:
        """Elimina por ID."""
        ...

    def exists_by_id(self, entity_id: Any) -> bool:
        """Verifica existencia por ID."""
        ...

    def exists_by(self, field: str, value: Any) -> bool:
        """Verifica existencia por campo único."""
        ...


# ==============================================================================
# INTERFACES ESPECÍFICAS POR DOMINIO
# ==============================================================================

@runtime_checkable
class IUserRepository(IEntityRepository, Protocol):
    """Repositorio de usuarios (email único)."""

    def find_by_email(self, email: str) -> Optional[User]:
        ...

    def exists_by_email(self, email: str) -> bool:
        ...


@runtime_checkable
class ICategoryRepository(IEntityRepository, Protocol):
    """Repositorio de categorías (nombre único)."""

    def find_by_name(self, name: str) -> Optional[Category]:
        ...

    def exists_by_name(self, name: str) -> bool:
        ...

    def find_first_by_name_containing(self, text: str) -> Optional[Category]:
        ...


@runtime_checkable
class IBookRepository(IEntityRepository, Protocol):
    """Repositorio de libros (ISBN único)."""

    def find_by_isbn(self, isbn: str) -> Optional[Book]:
        ...

    def exists_by_isbn(self, isbn: str) -> bool:
        ...

    def find_by_title_containing(self, text: str) -> List[Book]:
        ...

    def find_by_author_containing(self, text: str) -> List[Book]:
        ...

    def find_by_category(self, category_id: int) -> List[Book]:
        ...


@runtime_checkable
class IOrderRepository(IEntityRepository, Protocol):
    """Repositorio de pedidos (sin ítems)."""

    def find_by_user(self, user_id: int) -> List[Order]:
        ...

    def find_by_status(self, status: str) -> List[Order]:
        ...


@runtime_checkable
class IOrderItemRepository(IEntityRepository, Protocol):
    """Repositorio de líneas de pedido."""

    def find_by_order(self, order_id: int) -> List[OrderItem]:
        ...

    def delete_by_order(self, order_id: int) -> int:
        ...


@runtime_checkable
class IAuditRepository(Protocol):
    """Repositorio de auditoría."""

    def load(self) -> List[Dict[str, Any]]:
        """Carga todos los logs (más recientes primero)."""
        ...

    def log(
        self,
        log_type: str,
        user: str,
        message: str,
        related_id: str,
        details: Dict[str, Any]
    ) -> None:
        """Registra un evento de auditoría."""
        ...
