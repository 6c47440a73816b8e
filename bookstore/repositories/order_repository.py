# ==============================================================================
# REPOSITORIOS DE PEDIDOS
# ==============================================================================
# orders.json guarda la cabecera del pedido; order_items.json sus líneas.
# Cada línea apunta a su pedido con order_id.
# ==============================================================================

from typing import Any, Dict, List

from bookstore.models import Order, OrderItem
from bookstore.repositories.base import EntityRepository


class OrderRepository(EntityRepository):
    """
    Repositorio de pedidos.

    Formato de datos en orders.json:
    {
        "seq": 1,
        "records": {
            "1": {
                "id": 1,
                "user_id": 3,
                "status": "PENDING",
                "total_amount": "39.98",
                "created_at": "2024-01-01T10:00:00+00:00",
                ...
            }
        }
    }

    Los ítems NO se guardan aquí: los entrega OrderItemRepository.
    """

    entity_class = Order
    file_name = 'orders.json'

    def _to_record(self, entity: Order) -> Dict[str, Any]:
        return entity.to_dict(include_items=False)

    def find_by_user(self, user_id: int) -> List[Order]:
        """Pedidos de un usuario, en orden de creación."""
        return self.find_all_by('user_id', user_id)

    def find_by_status(self, status: str) -> List[Order]:
        """Pedidos en un estado dado."""
        return self.find_all_by('status', status)


class OrderItemRepository(EntityRepository):
    """
    Repositorio de líneas de pedido.

    Formato de datos en order_items.json:
    {
        "seq": 2,
        "records": {
            "1": {"id": 1, "order_id": 1, "book_id": 4, "quantity": 2, "price": "19.99", ...}
        }
    }
    """

    entity_class = OrderItem
    file_name = 'order_items.json'

    def find_by_order(self, order_id: int) -> List[OrderItem]:
        """Líneas de un pedido, en orden de inserción."""
        return self.find_all_by('order_id', order_id)

    def delete_by_order(self, order_id: int) -> int:
        """
        Elimina todas las líneas de un pedido.

        Returns:
            Cantidad de líneas eliminadas
        """
        removed = 0
        for item in self.find_by_order(order_id):
            if self.delete_by_id(item.id):
                removed += 1
        return removed
