# -*- coding: utf-8 -*-
"""
Tests de la API HTTP (Flask test_client).
"""
import os

import pytest


@pytest.fixture
def seeded(client):
    """Categoría, libro (stock 5, precio 9.99) y usuario creados por la API."""
    category = client.post('/api/categories', json={'name': 'Fiction'}).get_json()
    book = client.post('/api/books', json={
        'title': 'Dune',
        'author': 'Frank Herbert',
        'isbn': '978-0441013593',
        'price': '9.99',
        'stock_quantity': 5,
        'category_id': category['id'],
    }).get_json()
    user = client.post('/api/users', json={
        'name': 'Ana', 'email': 'ana@example.com', 'password': 'secreto123'
    }).get_json()
    return {'category': category, 'book': book, 'user': user}


def create_order(client, seeded, quantity=3):
    return client.post('/api/orders', json={
        'user_id': seeded['user']['id'],
        'items': [{'book_id': seeded['book']['id'], 'quantity': quantity}],
        'shipping_address': 'Calle 1',
    })


def test_create_and_get_order(client, seeded):
    r = create_order(client, seeded)
    assert r.status_code == 201
    order = r.get_json()
    assert order['status'] == 'PENDING'
    assert order['total_amount'] == '29.97'
    assert order['items'][0]['price'] == '9.99'

    r2 = client.get(f"/api/orders/{order['id']}")
    assert r2.status_code == 200
    assert r2.get_json()['items'][0]['quantity'] == 3

    book = client.get(f"/api/books/{seeded['book']['id']}").get_json()
    assert book['stock_quantity'] == 2


def test_insufficient_stock_maps_to_409(client, seeded):
    order = create_order(client, seeded).get_json()

    r = client.post(f"/api/orders/{order['id']}/items", json={
        'book_id': seeded['book']['id'], 'quantity': 4
    })
    assert r.status_code == 409
    body = r.get_json()
    assert body['ok'] is False
    assert body['kind'] == 'InsufficientStock'


def test_order_item_add_and_remove(client, seeded):
    order = create_order(client, seeded, quantity=1).get_json()

    r = client.post(f"/api/orders/{order['id']}/items", json={
        'book_id': seeded['book']['id'], 'quantity': 2
    })
    assert r.status_code == 200
    order = r.get_json()
    assert order['items'][0]['quantity'] == 3
    assert order['total_amount'] == '29.97'

    r = client.delete(f"/api/orders/{order['id']}/items/{order['items'][0]['id']}")
    assert r.status_code == 200
    assert r.get_json()['total_amount'] == '0'


def test_not_found_and_invalid_argument(client, seeded):
    r = client.get('/api/books/999')
    assert r.status_code == 404
    assert r.get_json()['kind'] == 'NotFound'

    r = client.post('/api/orders/999/cancel')
    assert r.status_code == 404

    order = create_order(client, seeded).get_json()
    r = client.patch(f"/api/orders/{order['id']}/status", json={'status': 'PERDIDO'})
    assert r.status_code == 400
    assert r.get_json()['kind'] == 'InvalidArgument'

    r = client.post('/api/orders', data='no es json', content_type='application/json')
    assert r.status_code == 400


def test_cancel_shipped_order_is_rejected(client, seeded):
    order = create_order(client, seeded).get_json()
    client.patch(f"/api/orders/{order['id']}/status", json={'status': 'SHIPPED'})

    r = client.post(f"/api/orders/{order['id']}/cancel")
    assert r.status_code == 400
    assert client.get(f"/api/orders/{order['id']}").get_json()['status'] == 'SHIPPED'


def test_duplicate_keys_map_to_409(client, seeded):
    r = client.post('/api/categories', json={'name': 'Fiction'})
    assert r.status_code == 409
    assert r.get_json()['kind'] == 'DuplicateKey'

    r = client.post('/api/users', json={'name': 'X', 'email': 'ana@example.com', 'password': 'x'})
    assert r.status_code == 409


def test_book_search_and_stock(client, seeded):
    r = client.get('/api/books?title=dun')
    assert [b['id'] for b in r.get_json()] == [seeded['book']['id']]
    assert client.get('/api/books?author=zzz').get_json() == []
    r = client.get(f"/api/books?category_id={seeded['category']['id']}")
    assert len(r.get_json()) == 1
    r = client.get('/api/books/isbn/978-0441013593')
    assert r.get_json()['title'] == 'Dune'

    r = client.post(f"/api/books/{seeded['book']['id']}/stock", json={'quantity': -6})
    assert r.status_code == 400
    r = client.post(f"/api/books/{seeded['book']['id']}/stock", json={'quantity': 2})
    assert r.get_json()['stock_quantity'] == 7


def test_partial_update_and_delete(client, seeded):
    book_id = seeded['book']['id']
    r = client.patch(f'/api/books/{book_id}', json={'price': '12.00'})
    assert r.get_json()['price'] == '12.00'
    assert r.get_json()['title'] == 'Dune'

    assert client.delete(f'/api/books/{book_id}').get_json() == {'ok': True, 'deleted': True}
    assert client.delete(f'/api/books/{book_id}').get_json() == {'ok': True, 'deleted': False}


def test_users_and_login(client, seeded):
    users = client.get('/api/users').get_json()
    assert 'password' not in users[0]

    r = client.post('/api/auth/login', json={'email': 'ana@example.com', 'password': 'secreto123'})
    body = r.get_json()
    assert body['authenticated'] is True
    assert body['user']['email'] == 'ana@example.com'

    r = client.post('/api/auth/login', json={'email': 'ana@example.com', 'password': 'mal'})
    assert r.get_json() == {'ok': True, 'authenticated': False, 'user': None}


def test_user_orders_and_cascade(client, seeded):
    order = create_order(client, seeded).get_json()
    user_id = seeded['user']['id']

    r = client.get(f'/api/users/{user_id}/orders')
    assert [o['id'] for o in r.get_json()] == [order['id']]

    assert client.delete(f'/api/users/{user_id}').get_json()['deleted'] is True
    assert client.get(f"/api/orders/{order['id']}").status_code == 404
    assert client.get(f'/api/users/{user_id}/orders').status_code == 404


def test_order_filters(client, seeded):
    order = create_order(client, seeded).get_json()
    user_id = seeded['user']['id']

    assert len(client.get(f'/api/orders?user_id={user_id}').get_json()) == 1
    assert client.get(f'/api/orders?user_id={user_id}&status=SHIPPED').get_json() == []
    assert len(client.get('/api/orders?status=pending').get_json()) == 1
    assert client.get('/api/orders?created_before=2000-01-01').get_json() == []
    r = client.get('/api/orders?created_after=2000-01-01T00:00:00%2B00:00')
    assert [o['id'] for o in r.get_json()] == [order['id']]
    assert client.get('/api/orders?user_id=abc').status_code == 400


def test_audit_records_actor(client, seeded):
    r = client.post('/api/orders', headers={'X-Actor': 'caja1'}, json={
        'user_id': seeded['user']['id'],
        'items': [{'book_id': seeded['book']['id'], 'quantity': 1}],
    })
    order = r.get_json()

    logs = client.get(f"/api/audit?type=PEDIDO&related_id={order['id']}").get_json()
    assert logs[0]['user'] == 'caja1'
    assert logs[0]['type'] == 'PEDIDO'


def test_security_headers_and_profiling(client, container, seeded):
    r = client.get('/api/books')
    assert r.headers['X-Frame-Options'] == 'DENY'
    assert r.headers['X-Content-Type-Options'] == 'nosniff'

    assert os.path.exists(os.path.join(container.base_path, 'logs', 'performance.log'))

    stats = client.get('/api/profiling').get_json()['functions']
    assert stats['Crear libro']['calls'] == 1


def test_audit_rejects_unknown_type(client):
    r = client.get('/api/audit?type=VENTA')
    assert r.status_code == 400
    assert r.get_json()['kind'] == 'InvalidArgument'


def test_non_text_author_maps_to_400(client, seeded):
    r = client.post('/api/books', json={'title': 'X', 'isbn': '1', 'author': 123})
    assert r.status_code == 400
    assert r.get_json()['kind'] == 'InvalidArgument'

    r = client.patch(f"/api/books/{seeded['book']['id']}", json={'author': {'nombre': 'F'}})
    assert r.status_code == 400
    assert client.get(f"/api/books/{seeded['book']['id']}").get_json()['author'] == 'Frank Herbert'
