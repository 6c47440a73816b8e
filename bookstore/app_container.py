# ==============================================================================
# CONTENEDOR DE DEPENDENCIAS - Inyección de servicios
# ==============================================================================
# Este módulo proporciona una forma centralizada de obtener instancias
# de repositorios y servicios. Facilita:
#   - Inyección de dependencias
#   - Testing (cada test puede apuntar a su propia carpeta de datos)
#   - Cambiar el almacenamiento sin tocar los servicios
#
# Para pasar de JSON a otra base de datos basta con crear repositorios que
# cumplan los protocolos de repositories/interfaces.py e instanciarlos aquí.
# ==============================================================================

from typing import Optional

from bookstore import config

# ═══════════════════════════════════════════════════════════════════════════════
# REPOSITORIOS - Capa de persistencia
# ═══════════════════════════════════════════════════════════════════════════════
from bookstore.repositories import (
    UserRepository,
    CategoryRepository,
    BookRepository,
    OrderRepository,
    OrderItemRepository,
    AuditRepository,
)

# ═══════════════════════════════════════════════════════════════════════════════
# SERVICIOS - Capa de lógica de negocio
# ═══════════════════════════════════════════════════════════════════════════════
from bookstore.services import (
    AuditService,
    CatalogService,
    UserService,
    OrderService,
)


class AppContainer:
    """
    Contenedor de dependencias de la aplicación.

    Implementa el patrón Singleton para asegurar una única instancia
    de cada repositorio y servicio.

    Uso:
        container = AppContainer(base_path='/path/to/data')
        order_service = container.order_service
        catalog_service = container.catalog_service
    """

    _instance: Optional['AppContainer'] = None

    def __new__(cls, base_path: str = None):
        """Singleton pattern."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self, base_path: str = None):
        """
        Inicializa el contenedor.

        Args:
            base_path: Carpeta de datos (donde están los JSON).
                       Por defecto config.DATA_DIR
        """
        if self._initialized:
            return

        self._base_path = base_path or config.DATA_DIR

        # Inicializar repositorios (lazy loading)
        self._user_repo: Optional[UserRepository] = None
        self._category_repo: Optional[CategoryRepository] = None
        self._book_repo: Optional[BookRepository] = None
        self._order_repo: Optional[OrderRepository] = None
        self._order_item_repo: Optional[OrderItemRepository] = None
        self._audit_repo: Optional[AuditRepository] = None

        # Inicializar servicios (lazy loading)
        self._audit_service: Optional[AuditService] = None
        self._catalog_service: Optional[CatalogService] = None
        self._user_service: Optional[UserService] = None
        self._order_service: Optional[OrderService] = None

        self._initialized = True

    @property
    def base_path(self) -> str:
        return self._base_path

    # =========================================================================
    # REPOSITORIOS
    # =========================================================================

    @property
    def user_repo(self) -> UserRepository:
        """Repositorio de usuarios (singleton)."""
        if self._user_repo is None:
            self._user_repo = UserRepository(self._base_path)
        return self._user_repo

    @property
    def category_repo(self) -> CategoryRepository:
        """Repositorio de categorías (singleton)."""
        if self._category_repo is None:
            self._category_repo = CategoryRepository(self._base_path)
        return self._category_repo

    @property
    def book_repo(self) -> BookRepository:
        """Repositorio de libros (singleton)."""
        if self._book_repo is None:
            self._book_repo = BookRepository(self._base_path)
        return self._book_repo

    @property
    def order_repo(self) -> OrderRepository:
        """Repositorio de pedidos (singleton)."""
        if self._order_repo is None:
            self._order_repo = OrderRepository(self._base_path)
        return self._order_repo

    @property
    def order_item_repo(self) -> OrderItemRepository:
        """Repositorio de líneas de pedido (singleton)."""
        if self._order_item_repo is None:
            self._order_item_repo = OrderItemRepository(self._base_path)
        return self._order_item_repo

    @property
    def audit_repo(self) -> AuditRepository:
        """Repositorio de auditoría (singleton)."""
        if self._audit_repo is None:
            self._audit_repo = AuditRepository(self._base_path)
        return self._audit_repo

    # =========================================================================
    # SERVICIOS
    # =========================================================================

    @property
    def audit_service(self) -> AuditService:
        """Servicio de auditoría (singleton)."""
        if self._audit_service is None:
            self._audit_service = AuditService(self.audit_repo)
        return self._audit_service

    @property
    def catalog_service(self) -> CatalogService:
        """Servicio de catálogo (singleton)."""
        if self._catalog_service is None:
            self._catalog_service = CatalogService(
                self.book_repo,
                self.category_repo,
                self.audit_service
            )
        return self._catalog_service

    @property
    def user_service(self) -> UserService:
        """Servicio de usuarios (singleton)."""
        if self._user_service is None:
            self._user_service = UserService(
                self.user_repo,
                self.order_repo,
                self.order_item_repo,
                self.audit_service
            )
        return self._user_service

    @property
    def order_service(self) -> OrderService:
        """Servicio de pedidos (singleton)."""
        if self._order_service is None:
            self._order_service = OrderService(
                self.order_repo,
                self.order_item_repo,
                self.user_repo,
                self.book_repo,
                self.catalog_service,
                self.audit_service
            )
        return self._order_service

    # =========================================================================
    # UTILIDADES
    # =========================================================================

    def reset(self) -> None:
        """
        Reinicia todas las instancias.
        Útil para testing o para recargar datos.
        """
        self._user_repo = None
        self._category_repo = None
        self._book_repo = None
        self._order_repo = None
        self._order_item_repo = None
        self._audit_repo = None

        self._audit_service = None
        self._catalog_service = None
        self._user_service = None
        self._order_service = None

    @classmethod
    def get_instance(cls, base_path: str = None) -> 'AppContainer':
        """
        Obtiene la instancia singleton del contenedor.

        Args:
            base_path: Carpeta de datos (solo se usa en primera llamada)

        Returns:
            Instancia del contenedor
        """
        if cls._instance is None:
            return cls(base_path)
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Elimina la instancia singleton (útil para tests)."""
        if cls._instance is not None:
            cls._instance.reset()
            cls._instance = None


# Función helper para obtener el contenedor global
def get_container(base_path: str = None) -> AppContainer:
    """
    Obtiene el contenedor de dependencias global.

    Args:
        base_path: Carpeta de datos

    Returns:
        Instancia del contenedor
    """
    return AppContainer.get_instance(base_path)
