# ==============================================================================
# SERVICIO DE PEDIDOS
# ==============================================================================
# Ciclo de vida del pedido y reserva de stock.
#
# REGLAS:
# - Crear un pedido descuenta stock de cada línea (reserva inmediata)
# - Agregar/quitar líneas ajusta stock y recalcula el total
# - Cancelar devuelve el stock de todas las líneas
# - Eliminar un pedido NO devuelve stock
# - Cada operación es todo-o-nada: si un paso falla, pedido y stock quedan
#   como estaban
# ==============================================================================

from collections import defaultdict
from typing import Any, Dict, List, Optional, Tuple

from bookstore.models import Book, Order, OrderItem, OrderStatus
from bookstore.performance_logger import profile_function
from bookstore.repositories import transaction
from bookstore.repositories.book_repository import BookRepository
from bookstore.repositories.order_repository import OrderItemRepository, OrderRepository
from bookstore.repositories.user_repository import UserRepository
from bookstore.services.audit_service import AuditService
from bookstore.services.catalog_service import CatalogService
from bookstore.services.exceptions import (
    InsufficientStockError,
    InvalidArgumentError,
    NotFoundError,
)
from bookstore.services.validation import (
    parse_datetime,
    parse_int,
    parse_order_status,
    parse_quantity,
)


class OrderService:
    """
    Servicio para gestión de pedidos.

    Máquina de estados:
        PENDING → PROCESSING → SHIPPED → DELIVERED
        CANCELLED desde cualquier estado salvo SHIPPED o DELIVERED; el stock
        se devuelve una sola vez (Order.stock_released)
        REFUNDED solo con update_order_status()

    update_order_status() es una asignación directa: no valida el orden de
    los estados ni mueve stock.
    """

    def __init__(
        self,
        order_repo: OrderRepository,
        order_item_repo: OrderItemRepository,
        user_repo: UserRepository,
        book_repo: BookRepository,
        catalog_service: CatalogService,
        audit_service: AuditService = None
    ):
        """
        Inicializa el servicio de pedidos.

        Args:
            order_repo: Repositorio de pedidos
            order_item_repo: Repositorio de líneas de pedido
            user_repo: Repositorio de usuarios (validar dueño)
            book_repo: Repositorio de libros (validar stock y precio)
            catalog_service: Servicio de catálogo (ajustes de stock)
            audit_service: Servicio de auditoría (opcional)
        """
        self.order_repo = order_repo
        self.order_item_repo = order_item_repo
        self.user_repo = user_repo
        self.book_repo = book_repo
        self.catalog_service = catalog_service
        self.audit_service = audit_service

    def _transaction(self):
        """Transacción sobre todo lo que toca un pedido."""
        return transaction(self.order_repo, self.order_item_repo, self.book_repo)

    # =========================================================================
    # CONSULTAS
    # =========================================================================

    def get_all_orders(self) -> List[Order]:
        return self._attach_items(self.order_repo.find_all())

    def get_order(self, order_id: int) -> Optional[Order]:
        """
        Obtiene un pedido con sus ítems.

        Returns:
            Pedido o None si no existe
        """
        order = self.order_repo.find_by_id(order_id)
        if order is None:
            return None
        order.items = self.order_item_repo.find_by_order(order.id)
        return order

    def get_orders_by_user(self, user_id: int) -> List[Order]:
        return self._attach_items(self.order_repo.find_by_user(user_id))

    def get_orders_by_status(self, status: Any) -> List[Order]:
        """
        Raises:
            InvalidArgumentError: Estado desconocido
        """
        status = parse_order_status(status)
        return self._attach_items(self.order_repo.find_by_status(status))

    def get_orders_by_user_and_status(self, user_id: int, status: Any) -> List[Order]:
        status = parse_order_status(status)
        orders = self.order_repo.find_all_matching(
            lambda o: o.user_id == user_id and o.status == status
        )
        return self._attach_items(orders)

    def get_orders_created_after(self, moment: Any) -> List[Order]:
        """Pedidos creados estrictamente después de la fecha dada."""
        moment = parse_datetime(moment, 'created_after')
        orders = self.order_repo.find_all_matching(lambda o: o.created_at_dt > moment)
        return self._attach_items(orders)

    def get_orders_created_before(self, moment: Any) -> List[Order]:
        """Pedidos creados estrictamente antes de la fecha dada."""
        moment = parse_datetime(moment, 'created_before')
        orders = self.order_repo.find_all_matching(lambda o: o.created_at_dt < moment)
        return self._attach_items(orders)

    # =========================================================================
    # CREACIÓN
    # =========================================================================

    @profile_function(name="Crear pedido")
    def create_order(
        self,
        user_id: int,
        lines: List[Dict[str, Any]],
        shipping_address: str = None,
        billing_address: str = None,
        payment_method: str = None,
        actor: str = None
    ) -> Order:
        """
        Crea un pedido y reserva el stock de cada línea.

        Args:
            user_id: Dueño del pedido
            lines: Lista de {"book_id": int, "quantity": int}
            shipping_address: Dirección de envío
            billing_address: Dirección de facturación
            payment_method: Método de pago
            actor: Quién realiza la acción

        Returns:
            Pedido persistido (PENDING) con sus ítems

        Raises:
            NotFoundError: Usuario o libro inexistente
            InvalidArgumentError: Cantidad no positiva o línea mal formada
            InsufficientStockError: Stock menor a lo pedido
        """
        user_id = parse_int(user_id, 'user_id')
        if lines is None:
            lines = []
        if not isinstance(lines, list):
            raise InvalidArgumentError("items debe ser una lista")

        with self._transaction():
            if not self.user_repo.exists_by_id(user_id):
                raise NotFoundError('Usuario', user_id)

            items = []
            requested = defaultdict(int)  # book_id -> unidades pedidas en total

            for line in lines:
                if not isinstance(line, dict):
                    raise InvalidArgumentError("Cada línea debe tener book_id y quantity")
                quantity = parse_quantity(line.get('quantity'))
                book = self._require_book(parse_int(line.get('book_id'), 'book_id'))

                requested[book.id] += quantity
                if book.stock_quantity < requested[book.id]:
                    raise InsufficientStockError(
                        book.id, book.title, requested[book.id], book.stock_quantity
                    )

                items.append(OrderItem(
                    order_id=None,
                    book_id=book.id,
                    quantity=quantity,
                    price=book.price,
                    book_title=book.title,
                ))

            order = Order(
                user_id=user_id,
                status=OrderStatus.PENDING,
                items=items,
                shipping_address=shipping_address,
                billing_address=billing_address,
                payment_method=payment_method,
            )
            order.calculate_total()
            self.order_repo.save(order)

            for item in order.items:
                item.order_id = order.id
                self.order_item_repo.save(item)

            movements = []
            for item in order.items:
                book = self.catalog_service.adjust_stock(
                    item.book_id, -item.quantity, actor, audit=False
                )
                movements.append((book, -item.quantity))

        if self.audit_service:
            self.audit_service.log_order_created(actor, order)
            self._log_movements(actor, movements, f"pedido #{order.id}")

        return order

    # =========================================================================
    # LÍNEAS DEL PEDIDO
    # =========================================================================

    @profile_function(name="Agregar ítem")
    def add_order_item(
        self,
        order_id: int,
        book_id: int,
        quantity: int,
        actor: str = None
    ) -> Order:
        """
        Agrega unidades de un libro a un pedido.

        Si el libro ya está en el pedido se suma a esa línea y se mantiene
        su precio original; si no, se crea una línea con el precio actual.

        Raises:
            InvalidArgumentError: quantity <= 0, o el pedido ya devolvió su
                stock al cancelarse
            NotFoundError: Libro o pedido inexistente
            InsufficientStockError: Stock menor a quantity
        """
        quantity = parse_quantity(quantity)
        book_id = parse_int(book_id, 'book_id')

        with self._transaction():
            book = self._require_book(book_id)
            if book.stock_quantity < quantity:
                raise InsufficientStockError(book.id, book.title, quantity, book.stock_quantity)

            order = self._require_order(order_id)
            if order.stock_released:
                raise InvalidArgumentError(
                    f"El pedido #{order.id} fue cancelado: no admite nuevas líneas"
                )

            item = order.find_item_for_book(book.id)
            if item is not None:
                item.quantity += quantity
            else:
                item = OrderItem(
                    order_id=order.id,
                    book_id=book.id,
                    quantity=quantity,
                    price=book.price,
                    book_title=book.title,
                )
                order.items.append(item)
            self.order_item_repo.save(item)

            book = self.catalog_service.adjust_stock(book.id, -quantity, actor, audit=False)
            self._save_order(order)

        if self.audit_service:
            self.audit_service.log_order_item_added(actor, order, item, quantity)
            self._log_movements(actor, [(book, -quantity)], f"pedido #{order.id}")

        return order

    @profile_function(name="Quitar ítem")
    def remove_order_item(self, order_id: int, order_item_id: int, actor: str = None) -> Order:
        """
        Quita una línea de un pedido y devuelve su stock (salvo que el
        pedido ya lo haya devuelto al cancelarse).

        Raises:
            NotFoundError: La línea o el pedido no existen
            InvalidArgumentError: La línea pertenece a otro pedido
        """
        with self._transaction():
            item = self.order_item_repo.find_by_id(order_item_id)
            if item is None:
                raise NotFoundError('Ítem de pedido', order_item_id)

            order = self._require_order(order_id)
            if item.order_id != order.id:
                raise InvalidArgumentError("El ítem no pertenece a este pedido")

            movements = []
            if not order.stock_released:
                movements = self._restore_stock([item], actor)
            self.order_item_repo.delete_by_id(item.id)
            order.items = [i for i in order.items if i.id != item.id]
            self._save_order(order)

        if self.audit_service:
            self.audit_service.log_order_item_removed(actor, order, item)
            self._log_movements(actor, movements, f"ítem quitado del pedido #{order.id}")

        return order

    # =========================================================================
    # ESTADO Y ENVÍO
    # =========================================================================

    @profile_function(name="Cancelar pedido")
    def cancel_order(self, order_id: int, actor: str = None) -> Order:
        """
        Cancela un pedido y devuelve el stock de todas sus líneas.

        Raises:
            NotFoundError: El pedido no existe
            InvalidArgumentError: El pedido está SHIPPED, DELIVERED o ya cancelado
                con su stock devuelto
        """
        with self._transaction():
            order = self._require_order(order_id)
            if not order.is_cancellable:
                raise InvalidArgumentError(
                    f"No se puede cancelar un pedido en estado {order.status.value}"
                )

            old_status = order.status
            movements = []
            if not order.stock_released:
                movements = self._restore_stock(order.items, actor)
            order.stock_released = True
            order.status = OrderStatus.CANCELLED
            self._save_order(order)

        if self.audit_service:
            self.audit_service.log_order_status_change(
                actor, order.id, old_status.value, order.status.value
            )
            self._log_movements(actor, movements, f"cancelación pedido #{order.id}")

        return order

    def update_order_status(self, order_id: int, status: Any, actor: str = None) -> Order:
        """
        Asigna un estado directamente (sin efectos sobre el stock).

        Raises:
            NotFoundError: El pedido no existe
            InvalidArgumentError: Estado desconocido
        """
        status = parse_order_status(status)

        with self._transaction():
            order = self._require_order(order_id)
            old_status = order.status
            order.status = status
            self._save_order(order)

        if self.audit_service and old_status != status:
            self.audit_service.log_order_status_change(
                actor, order.id, old_status.value, status.value
            )
        return order

    def update_order_shipping(
        self,
        order_id: int,
        shipping_address: str = None,
        tracking_number: str = None,
        actor: str = None
    ) -> Order:
        """
        Actualiza datos de envío. Solo se sobreescriben los argumentos
        distintos de None.
        """
        with self._transaction():
            order = self._require_order(order_id)
            if shipping_address is not None:
                order.shipping_address = shipping_address
            if tracking_number is not None:
                order.tracking_number = tracking_number
            self._save_order(order)

        if self.audit_service:
            self.audit_service.log(
                AuditService.TYPE_PEDIDO,
                actor,
                f"Pedido #{order.id}: datos de envío actualizados",
                order.id,
                {'shipping_address': order.shipping_address, 'tracking_number': order.tracking_number}
            )
        return order

    def delete_order(self, order_id: int, actor: str = None) -> bool:
        """
        Elimina un pedido y sus líneas. NO devuelve stock.

        Returns:
            True si existía, False si no
        """
        with self._transaction():
            if not self.order_repo.exists_by_id(order_id):
                return False
            self.order_item_repo.delete_by_order(order_id)
            self.order_repo.delete_by_id(order_id)

        if self.audit_service:
            self.audit_service.log_order_deleted(actor, order_id)
        return True

    # =========================================================================
    # HELPERS PRIVADOS
    # =========================================================================

    def _require_order(self, order_id: int) -> Order:
        order = self.get_order(order_id)
        if order is None:
            raise NotFoundError('Pedido', order_id)
        return order

    def _require_book(self, book_id: int) -> Book:
        book = self.book_repo.find_by_id(book_id)
        if book is None:
            raise NotFoundError('Libro', book_id)
        return book

    def _save_order(self, order: Order) -> None:
        """Recalcula el total desde cero y persiste la cabecera."""
        order.calculate_total()
        order.touch()
        self.order_repo.save(order)

    def _restore_stock(self, items: List[OrderItem], actor: str) -> List[Tuple[Book, int]]:
        """
        Devuelve al catálogo el stock de las líneas dadas.
        Los libros que ya no existen se omiten.
        """
        movements = []
        for item in items:
            if not self.book_repo.exists_by_id(item.book_id):
                continue
            book = self.catalog_service.adjust_stock(
                item.book_id, item.quantity, actor, audit=False
            )
            movements.append((book, item.quantity))
        return movements

    def _log_movements(self, actor: str, movements: List[Tuple[Book, int]], reason: str) -> None:
        for book, delta in movements:
            self.audit_service.log_stock_change(actor, book, delta, reason)

    def _attach_items(self, orders: List[Order]) -> List[Order]:
        """Adjunta los ítems a varios pedidos con una sola lectura."""
        if not orders:
            return orders
        by_order = defaultdict(list)
        for item in self.order_item_repo.find_all():
            by_order[item.order_id].append(item)
        for order in orders:
            order.items = by_order.get(order.id, [])
        return orders
