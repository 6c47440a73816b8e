# -*- coding: utf-8 -*-
"""
Tests del ciclo de vida de pedidos y la reserva de stock.
"""
import threading
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from bookstore.models import OrderStatus
from bookstore.services.exceptions import (
    InsufficientStockError,
    InvalidArgumentError,
    NotFoundError,
)


def stock_of(catalog, book):
    return catalog.get_book(book.id).stock_quantity


def assert_total_matches_items(order):
    expected = sum((i.price * i.quantity for i in order.items), Decimal('0'))
    assert order.total_amount == expected


# ═══════════════════════════════════════════════════════════════════════════
# CREACIÓN
# ═══════════════════════════════════════════════════════════════════════════

def test_create_order_reserves_stock(orders, catalog, customer, book):
    order = orders.create_order(customer.id, [{'book_id': book.id, 'quantity': 3}])

    assert order.id is not None
    assert order.status == OrderStatus.PENDING
    assert order.total_amount == Decimal('29.97')
    assert len(order.items) == 1
    assert order.items[0].price == Decimal('9.99')
    assert order.items[0].book_title == 'Dune'
    assert stock_of(catalog, book) == 2

    stored = orders.get_order(order.id)
    assert stored.total_amount == Decimal('29.97')
    assert [i.quantity for i in stored.items] == [3]


def test_create_order_keeps_addresses(orders, customer, book):
    order = orders.create_order(
        customer.id,
        [{'book_id': book.id, 'quantity': 1}],
        shipping_address='Calle 1',
        billing_address='Calle 2',
        payment_method='tarjeta',
    )
    stored = orders.get_order(order.id)
    assert stored.shipping_address == 'Calle 1'
    assert stored.billing_address == 'Calle 2'
    assert stored.payment_method == 'tarjeta'
    assert stored.tracking_number is None


def test_create_order_unknown_user(orders, book, catalog):
    with pytest.raises(NotFoundError):
        orders.create_order(999, [{'book_id': book.id, 'quantity': 1}])
    assert stock_of(catalog, book) == 5


def test_create_order_unknown_book(orders, customer, book, catalog):
    with pytest.raises(NotFoundError):
        orders.create_order(customer.id, [
            {'book_id': book.id, 'quantity': 1},
            {'book_id': 999, 'quantity': 1},
        ])
    assert stock_of(catalog, book) == 5
    assert orders.get_all_orders() == []


def test_create_order_insufficient_stock(orders, customer, book, catalog):
    with pytest.raises(InsufficientStockError) as excinfo:
        orders.create_order(customer.id, [{'book_id': book.id, 'quantity': 6}])

    assert excinfo.value.requested == 6
    assert excinfo.value.available == 5
    assert stock_of(catalog, book) == 5
    assert orders.get_all_orders() == []


def test_create_order_counts_repeated_lines_against_stock(orders, customer, book, catalog):
    with pytest.raises(InsufficientStockError):
        orders.create_order(customer.id, [
            {'book_id': book.id, 'quantity': 3},
            {'book_id': book.id, 'quantity': 3},
        ])
    assert stock_of(catalog, book) == 5


def test_create_order_rejects_non_positive_quantity(orders, customer, book):
    with pytest.raises(InvalidArgumentError) as excinfo:
        orders.create_order(customer.id, [{'book_id': book.id, 'quantity': 0}])
    assert excinfo.type is InvalidArgumentError


def test_create_empty_order(orders, customer):
    order = orders.create_order(customer.id, [])
    assert order.items == []
    assert order.total_amount == Decimal('0')


def test_create_order_rolls_back_when_stock_step_fails(orders, catalog, customer, book, other_book, monkeypatch):
    real_adjust = catalog.adjust_stock
    calls = []

    def failing_adjust(book_id, delta, *args, **kwargs):
        calls.append(book_id)
        if len(calls) == 2:
            raise RuntimeError('fallo de almacenamiento')
        return real_adjust(book_id, delta, *args, **kwargs)

    monkeypatch.setattr(orders.catalog_service, 'adjust_stock', failing_adjust)

    with pytest.raises(RuntimeError):
        orders.create_order(customer.id, [
            {'book_id': book.id, 'quantity': 2},
            {'book_id': other_book.id, 'quantity': 1},
        ])

    monkeypatch.undo()
    assert stock_of(catalog, book) == 5
    assert stock_of(catalog, other_book) == 3
    assert orders.get_all_orders() == []
    assert orders.order_item_repo.find_all() == []


# ═══════════════════════════════════════════════════════════════════════════
# LÍNEAS
# ═══════════════════════════════════════════════════════════════════════════

def test_add_item_beyond_stock_changes_nothing(orders, catalog, customer, book):
    order = orders.create_order(customer.id, [{'book_id': book.id, 'quantity': 3}])

    with pytest.raises(InsufficientStockError):
        orders.add_order_item(order.id, book.id, 4)

    assert stock_of(catalog, book) == 2
    stored = orders.get_order(order.id)
    assert stored.total_amount == Decimal('29.97')
    assert [i.quantity for i in stored.items] == [3]


def test_add_item_merges_and_keeps_original_price(orders, catalog, customer, book):
    order = orders.create_order(customer.id, [{'book_id': book.id, 'quantity': 1}])
    catalog.update_book(book.id, {'price': '20.00'})

    order = orders.add_order_item(order.id, book.id, 2)

    assert len(order.items) == 1
    assert order.items[0].quantity == 3
    assert order.items[0].price == Decimal('9.99')
    assert order.total_amount == Decimal('29.97')
    assert stock_of(catalog, book) == 2


def test_add_new_item_uses_current_price(orders, catalog, customer, book, other_book):
    order = orders.create_order(customer.id, [{'book_id': book.id, 'quantity': 1}])
    catalog.update_book(other_book.id, {'price': '12.00'})

    order = orders.add_order_item(order.id, other_book.id, 2)

    assert [i.book_id for i in order.items] == [book.id, other_book.id]
    assert order.items[1].price == Decimal('12.00')
    assert order.total_amount == Decimal('33.99')
    assert_total_matches_items(order)
    assert_total_matches_items(orders.get_order(order.id))
    assert stock_of(catalog, other_book) == 1


def test_add_item_validation_order(orders, customer, book):
    # La cantidad se valida antes que el libro, y el libro antes que el pedido
    with pytest.raises(InvalidArgumentError) as excinfo:
        orders.add_order_item(999, 999, 0)
    assert excinfo.type is InvalidArgumentError

    with pytest.raises(NotFoundError) as excinfo:
        orders.add_order_item(999, 999, 1)
    assert excinfo.value.entity == 'Libro'

    with pytest.raises(NotFoundError) as excinfo:
        orders.add_order_item(999, book.id, 1)
    assert excinfo.value.entity == 'Pedido'


def test_remove_item_restores_stock(orders, catalog, customer, book, other_book):
    order = orders.create_order(customer.id, [
        {'book_id': book.id, 'quantity': 2},
        {'book_id': other_book.id, 'quantity': 1},
    ])
    item = order.items[0]

    order = orders.remove_order_item(order.id, item.id)

    assert [i.book_id for i in order.items] == [other_book.id]
    assert order.total_amount == Decimal('15.50')
    assert_total_matches_items(orders.get_order(order.id))
    assert stock_of(catalog, book) == 5
    assert orders.order_item_repo.find_by_id(item.id) is None


def test_remove_all_items_round_trip(orders, catalog, customer, book, other_book):
    order = orders.create_order(customer.id, [
        {'book_id': book.id, 'quantity': 2},
        {'book_id': other_book.id, 'quantity': 3},
    ])
    assert stock_of(catalog, other_book) == 0

    for item in list(order.items):
        order = orders.remove_order_item(order.id, item.id)

    assert order.items == []
    assert order.total_amount == Decimal('0')
    assert stock_of(catalog, book) == 5
    assert stock_of(catalog, other_book) == 3


def test_remove_item_from_other_order(orders, catalog, customer, book, other_book):
    first = orders.create_order(customer.id, [{'book_id': book.id, 'quantity': 1}])
    second = orders.create_order(customer.id, [{'book_id': other_book.id, 'quantity': 1}])

    with pytest.raises(InvalidArgumentError) as excinfo:
        orders.remove_order_item(first.id, second.items[0].id)

    assert excinfo.type is InvalidArgumentError
    assert 'no pertenece' in str(excinfo.value)
    assert stock_of(catalog, book) == 4
    assert stock_of(catalog, other_book) == 2
    assert len(orders.get_order(second.id).items) == 1


def test_remove_missing_item(orders, customer, book):
    order = orders.create_order(customer.id, [{'book_id': book.id, 'quantity': 1}])
    with pytest.raises(NotFoundError):
        orders.remove_order_item(order.id, 999)


def test_remove_item_of_deleted_book_skips_stock(orders, catalog, customer, book):
    order = orders.create_order(customer.id, [{'book_id': book.id, 'quantity': 1}])
    catalog.delete_book(book.id)

    order = orders.remove_order_item(order.id, order.items[0].id)
    assert order.items == []
    assert order.total_amount == Decimal('0')


# ═══════════════════════════════════════════════════════════════════════════
# ESTADOS
# ═══════════════════════════════════════════════════════════════════════════

def test_cancel_restores_stock(orders, catalog, customer, book, other_book):
    order = orders.create_order(customer.id, [
        {'book_id': book.id, 'quantity': 2},
        {'book_id': other_book.id, 'quantity': 3},
    ])

    order = orders.cancel_order(order.id)

    assert order.status == OrderStatus.CANCELLED
    assert stock_of(catalog, book) == 5
    assert stock_of(catalog, other_book) == 3
    assert orders.get_order(order.id).status == OrderStatus.CANCELLED


@pytest.mark.parametrize('status', ['SHIPPED', 'DELIVERED'])
def test_cancel_after_shipping_is_rejected(orders, catalog, customer, book, status):
    order = orders.create_order(customer.id, [{'book_id': book.id, 'quantity': 3}])
    orders.update_order_status(order.id, status)

    with pytest.raises(InvalidArgumentError):
        orders.cancel_order(order.id)

    assert orders.get_order(order.id).status == OrderStatus(status)
    assert stock_of(catalog, book) == 2


def test_cancel_twice_does_not_credit_twice(orders, catalog, customer, book):
    order = orders.create_order(customer.id, [{'book_id': book.id, 'quantity': 3}])
    orders.cancel_order(order.id)

    with pytest.raises(InvalidArgumentError):
        orders.cancel_order(order.id)
    assert stock_of(catalog, book) == 5


def test_cancel_releases_stock_of_order_cancelled_by_status(orders, catalog, customer, book):
    order = orders.create_order(customer.id, [{'book_id': book.id, 'quantity': 3}])
    orders.update_order_status(order.id, 'CANCELLED')
    assert stock_of(catalog, book) == 2

    order = orders.cancel_order(order.id)
    assert order.status == OrderStatus.CANCELLED
    assert stock_of(catalog, book) == 5

    with pytest.raises(InvalidArgumentError):
        orders.cancel_order(order.id)
    assert stock_of(catalog, book) == 5


def test_reopened_order_is_not_credited_again(orders, catalog, customer, book):
    order = orders.create_order(customer.id, [{'book_id': book.id, 'quantity': 3}])
    orders.cancel_order(order.id)
    orders.update_order_status(order.id, 'PENDING')

    order = orders.cancel_order(order.id)
    assert order.status == OrderStatus.CANCELLED
    assert stock_of(catalog, book) == 5


def test_released_order_lines_do_not_move_stock(orders, catalog, customer, book, other_book):
    order = orders.create_order(customer.id, [{'book_id': book.id, 'quantity': 3}])
    orders.cancel_order(order.id)

    with pytest.raises(InvalidArgumentError):
        orders.add_order_item(order.id, other_book.id, 1)
    assert stock_of(catalog, other_book) == 3

    order = orders.remove_order_item(order.id, order.items[0].id)
    assert order.items == []
    assert stock_of(catalog, book) == 5


def test_cancel_missing_order(orders):
    with pytest.raises(NotFoundError):
        orders.cancel_order(42)


def test_update_status_is_a_direct_set(orders, catalog, customer, book):
    order = orders.create_order(customer.id, [{'book_id': book.id, 'quantity': 1}])

    order = orders.update_order_status(order.id, 'delivered')
    assert order.status == OrderStatus.DELIVERED

    # Sin validación de orden y sin efectos de stock
    order = orders.update_order_status(order.id, OrderStatus.PENDING)
    assert order.status == OrderStatus.PENDING
    order = orders.update_order_status(order.id, 'REFUNDED')
    assert order.status == OrderStatus.REFUNDED
    assert stock_of(catalog, book) == 4


def test_update_status_invalid(orders, customer):
    order = orders.create_order(customer.id, [])
    with pytest.raises(InvalidArgumentError):
        orders.update_order_status(order.id, 'LOST')
    with pytest.raises(NotFoundError):
        orders.update_order_status(999, 'SHIPPED')


def test_update_shipping_only_overwrites_given_fields(orders, customer):
    order = orders.create_order(customer.id, [], shipping_address='Calle 1')

    order = orders.update_order_shipping(order.id, tracking_number='TRK-1')
    assert order.shipping_address == 'Calle 1'
    assert order.tracking_number == 'TRK-1'

    order = orders.update_order_shipping(order.id, shipping_address='Calle 2')
    stored = orders.get_order(order.id)
    assert stored.shipping_address == 'Calle 2'
    assert stored.tracking_number == 'TRK-1'


def test_delete_order_does_not_restore_stock(orders, catalog, customer, book):
    order = orders.create_order(customer.id, [{'book_id': book.id, 'quantity': 2}])

    assert orders.delete_order(order.id) is True
    assert orders.delete_order(order.id) is False
    assert orders.get_order(order.id) is None
    assert orders.order_item_repo.find_by_order(order.id) == []
    assert stock_of(catalog, book) == 3


def test_mutations_stamp_updated_at(orders, customer):
    order = orders.create_order(customer.id, [])
    before = order.updated_at
    order = orders.update_order_status(order.id, 'PROCESSING')
    assert order.updated_at >= before
    assert order.created_at == orders.get_order(order.id).created_at


# ═══════════════════════════════════════════════════════════════════════════
# CONSULTAS
# ═══════════════════════════════════════════════════════════════════════════

def test_order_queries(orders, users, customer, book):
    other = users.create_user({'name': 'Luis', 'email': 'luis@example.com', 'password': 'x'})
    first = orders.create_order(customer.id, [{'book_id': book.id, 'quantity': 1}])
    second = orders.create_order(customer.id, [])
    third = orders.create_order(other.id, [])
    orders.update_order_status(second.id, 'SHIPPED')

    assert [o.id for o in orders.get_all_orders()] == [first.id, second.id, third.id]
    assert [o.id for o in orders.get_orders_by_user(customer.id)] == [first.id, second.id]
    assert [o.id for o in orders.get_orders_by_status('PENDING')] == [first.id, third.id]
    assert [o.id for o in orders.get_orders_by_user_and_status(customer.id, 'shipped')] == [second.id]
    assert orders.get_orders_by_user(customer.id)[0].items[0].book_id == book.id

    with pytest.raises(InvalidArgumentError):
        orders.get_orders_by_status('nope')


def test_orders_by_creation_date(orders, customer):
    order = orders.create_order(customer.id, [])
    now = datetime.now(timezone.utc)

    assert [o.id for o in orders.get_orders_created_after(now - timedelta(hours=1))] == [order.id]
    assert orders.get_orders_created_after(now + timedelta(hours=1)) == []
    assert [o.id for o in orders.get_orders_created_before((now + timedelta(hours=1)).isoformat())] == [order.id]
    assert orders.get_orders_created_before('2000-01-01T00:00:00') == []

    with pytest.raises(InvalidArgumentError):
        orders.get_orders_created_after('ayer')


# ═══════════════════════════════════════════════════════════════════════════
# AUDITORÍA
# ═══════════════════════════════════════════════════════════════════════════

def test_order_lifecycle_is_audited(orders, audit, customer, book):
    order = orders.create_order(customer.id, [{'book_id': book.id, 'quantity': 2}], actor='caja1')
    orders.cancel_order(order.id, actor='caja1')

    order_logs = audit.get_logs(log_type='PEDIDO', related_id=order.id)
    assert len(order_logs) == 2
    assert 'CANCELLED' in order_logs[0]['message']
    assert all(log['user'] == 'caja1' for log in order_logs)

    stock_logs = audit.get_logs(log_type='STOCK', related_id=book.id)
    assert [log['details']['delta'] for log in stock_logs] == [2, -2]


def test_failed_operation_leaves_no_audit(orders, audit, customer, book):
    with pytest.raises(InsufficientStockError):
        orders.create_order(customer.id, [{'book_id': book.id, 'quantity': 99}])
    assert audit.get_logs(log_type='PEDIDO') == []
    assert audit.get_logs(log_type='STOCK') == []


# ═══════════════════════════════════════════════════════════════════════════
# CONCURRENCIA
# ═══════════════════════════════════════════════════════════════════════════

def test_concurrent_orders_never_oversell(orders, catalog, customer, book):
    """12 hilos piden 1 unidad cada uno contra un stock de 5."""
    created, rejected, unexpected = [], [], []
    barrier = threading.Barrier(12)

    def buy():
        barrier.wait()
        try:
            created.append(orders.create_order(customer.id, [{'book_id': book.id, 'quantity': 1}]))
        except InsufficientStockError as e:
            rejected.append(e)
        except Exception as e:
            unexpected.append(e)

    threads = [threading.Thread(target=buy) for _ in range(12)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)

    assert unexpected == []
    assert len(created) == 5
    assert len(rejected) == 7
    assert stock_of(catalog, book) == 0
    assert len({order.id for order in created}) == 5
    assert len(orders.get_orders_by_user(customer.id)) == 5
