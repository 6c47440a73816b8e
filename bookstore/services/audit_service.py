# ==============================================================================
# SERVICIO DE AUDITORÍA
# ==============================================================================
# Centraliza toda la lógica de registro de auditoría.
# Formatea mensajes humanizados y categoriza eventos.
# ==============================================================================

from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from bookstore.models import Book, Order, OrderItem
from bookstore.repositories.interfaces import IAuditRepository
from bookstore.services.exceptions import InvalidArgumentError


class AuditService:
    """
    Servicio para registro y consulta de auditoría.

    Centraliza:
    - Registro de eventos con mensajes humanizados
    - Categorización de eventos (PEDIDO, STOCK, CATALOGO, USUARIO)
    - Búsqueda y filtrado de logs

    La regla de oro: todo movimiento de stock deja un log de STOCK.
    """

    # Tipos de eventos de auditoría
    TYPE_PEDIDO = 'PEDIDO'
    TYPE_STOCK = 'STOCK'
    TYPE_CATALOGO = 'CATALOGO'
    TYPE_USUARIO = 'USUARIO'

    VALID_TYPES = frozenset([TYPE_PEDIDO, TYPE_STOCK, TYPE_CATALOGO, TYPE_USUARIO])

    def __init__(self, audit_repo: IAuditRepository):
        """
        Inicializa el servicio de auditoría.

        Args:
            audit_repo: Repositorio de auditoría
        """
        self.audit_repo = audit_repo

    # =========================================================================
    # REGISTRO DE EVENTOS
    # =========================================================================

    def log(
        self,
        log_type: str,
        user: Optional[str],
        message: str,
        related_id: Any = '',
        details: Dict[str, Any] = None
    ) -> None:
        """
        Registra un evento de auditoría genérico.

        Args:
            log_type: Tipo de evento (PEDIDO, STOCK, etc.)
            user: Actor que realizó la acción (None = sistema)
            message: Mensaje descriptivo humanizado
            related_id: ID relacionado (pedido, libro, etc.)
            details: Detalles adicionales
        """
        try:
            self.audit_repo.log(
                log_type, user or 'sistema', message, str(related_id), _jsonable(details or {})
            )
        except (OSError, TypeError, ValueError) as e:
            # La operación auditada ya se confirmó: el fallo no se propaga
            print(f"[ERROR AUDITORÍA] {type(e).__name__}: {e}")

    def log_order_created(self, user: Optional[str], order: Order) -> None:
        """
        Registra la creación de un pedido.

        Args:
            user: Actor
            order: Pedido recién persistido (con ítems)
        """
        message = (
            f"Pedido #{order.id} creado para usuario #{order.user_id} - "
            f"Total: {order.total_amount:.2f} - {len(order.items)} ítems - "
            f"Estado: {order.status.value}"
        )
        self.log(
            self.TYPE_PEDIDO,
            user,
            message,
            order.id,
            {
                'user_id': order.user_id,
                'total': str(order.total_amount),
                'items_count': len(order.items),
            }
        )

    def log_order_item_added(
        self,
        user: Optional[str],
        order: Order,
        item: OrderItem,
        quantity: int
    ) -> None:
        """Registra una línea agregada (o ampliada) en un pedido."""
        message = (
            f"Pedido #{order.id}: +{quantity}x {item.book_title} - "
            f"Nuevo total: {order.total_amount:.2f}"
        )
        self.log(
            self.TYPE_PEDIDO,
            user,
            message,
            order.id,
            {'book_id': item.book_id, 'quantity': quantity, 'total': str(order.total_amount)}
        )

    def log_order_item_removed(self, user: Optional[str], order: Order, item: OrderItem) -> None:
        """Registra una línea eliminada de un pedido."""
        message = (
            f"Pedido #{order.id}: eliminada línea {item.quantity}x {item.book_title} - "
            f"Nuevo total: {order.total_amount:.2f}"
        )
        self.log(
            self.TYPE_PEDIDO,
            user,
            message,
            order.id,
            {'item_id': item.id, 'book_id': item.book_id, 'quantity': item.quantity}
        )

    def log_order_status_change(
        self,
        user: Optional[str],
        order_id: int,
        old_status: str,
        new_status: str
    ) -> None:
        """
        Registra un cambio de estado de pedido.

        Args:
            user: Actor
            order_id: ID del pedido
            old_status: Estado anterior
            new_status: Nuevo estado
        """
        message = f"Pedido #{order_id}: {old_status} → {new_status}"
        self.log(
            self.TYPE_PEDIDO,
            user,
            message,
            order_id,
            {'from': old_status, 'to': new_status}
        )

    def log_order_deleted(self, user: Optional[str], order_id: int) -> None:
        message = f"Pedido #{order_id} eliminado (sin devolución de stock)"
        self.log(self.TYPE_PEDIDO, user, message, order_id)

    def log_stock_change(
        self,
        user: Optional[str],
        book: Book,
        delta: int,
        reason: str = 'manual'
    ) -> None:
        """
        Registra un movimiento de stock.

        Args:
            user: Actor
            book: Libro ya actualizado
            delta: Cambio aplicado (positivo = entrada, negativo = salida)
            reason: Razón del movimiento (manual, pedido #N, cancelación...)
        """
        kind = 'Entrada' if delta >= 0 else 'Salida'
        message = (
            f"{kind} de stock: {delta:+d} {book.title} - "
            f"Nuevo stock: {book.stock_quantity} - Razón: {reason}"
        )
        self.log(
            self.TYPE_STOCK,
            user,
            message,
            book.id,
            {'delta': delta, 'new_stock': book.stock_quantity, 'reason': reason}
        )

    def log_catalog_change(
        self,
        user: Optional[str],
        action: str,
        entity: str,
        entity_id: int,
        name: str,
        changes: Dict[str, Any] = None
    ) -> None:
        """
        Registra altas, cambios y bajas de libros y categorías.

        Args:
            action: 'creado', 'actualizado' o 'eliminado'
            entity: 'Libro' o 'Categoría'
            entity_id: ID afectado
            name: Título o nombre para el mensaje
            changes: Campos modificados (solo en actualizaciones)
        """
        message = f"{entity} {action}: {name} (#{entity_id})"
        details = {'action': action, 'entity': entity}
        if changes:
            details['changes'] = dict(changes)
        self.log(self.TYPE_CATALOGO, user, message, entity_id, details)

    def log_user_change(self, user: Optional[str], action: str, target_id: int, email: str) -> None:
        """Registra altas, cambios y bajas de usuarios."""
        message = f"Usuario {action}: {email} (#{target_id})"
        self.log(self.TYPE_USUARIO, user, message, target_id, {'action': action})

    def log_user_login(self, email: str, user_id: int) -> None:
        """Registra un inicio de sesión exitoso."""
        self.log(self.TYPE_USUARIO, email, f"Inicio de sesión: {email}", user_id, {'action': 'login'})

    # =========================================================================
    # CONSULTA
    # =========================================================================

    def get_logs(self, log_type: str = None, related_id: Any = None) -> List[Dict[str, Any]]:
        """
        Obtiene logs con filtros opcionales.

        Args:
            log_type: Filtrar por tipo
            related_id: Filtrar por ID relacionado

        Returns:
            Lista de logs (más recientes primero)

        Raises:
            InvalidArgumentError: Tipo desconocido
        """
        if log_type and log_type not in self.VALID_TYPES:
            raise InvalidArgumentError(f"Tipo de log inválido: {log_type}")

        logs = self.audit_repo.load()
        if log_type:
            logs = [log for log in logs if log.get('type') == log_type]
        if related_id is not None and related_id != '':
            related_id = str(related_id)
            logs = [log for log in logs if log.get('related_id') == related_id]
        return logs


def _jsonable(value: Any) -> Any:
    """
    Convierte detalles de auditoría a tipos serializables por json.
    Decimal, Enum, fechas y cualquier otro objeto se guardan como string.
    """
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_jsonable(v) for v in value]
    if isinstance(value, Enum):
        return _jsonable(value.value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    return str(value)
