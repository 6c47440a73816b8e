# -*- coding: utf-8 -*-
"""
Fixtures compartidas.

Cada test trabaja sobre su propia carpeta de datos (tmp_path): no hay
estado compartido entre tests.
"""
import pytest

from bookstore import performance_logger
from bookstore.app_container import AppContainer
from bookstore.main import create_app


@pytest.fixture(autouse=True)
def isolated_logs(tmp_path):
    """Los logs de rendimiento van a la carpeta temporal del test."""
    performance_logger.configure(logs_dir=str(tmp_path / 'logs'), enabled=True)
    performance_logger.reset_stats()
    yield
    performance_logger.reset_stats()


@pytest.fixture
def container(tmp_path):
    AppContainer.reset_instance()
    c = AppContainer(base_path=str(tmp_path / 'data'))
    yield c
    AppContainer.reset_instance()


@pytest.fixture
def catalog(container):
    return container.catalog_service


@pytest.fixture
def users(container):
    return container.user_service


@pytest.fixture
def orders(container):
    return container.order_service


@pytest.fixture
def audit(container):
    return container.audit_service


@pytest.fixture
def app(container):
    app = create_app(container.base_path)
    app.config['TESTING'] = True
    return app


@pytest.fixture
def client(app):
    with app.test_client() as c:
        yield c


# ═══════════════════════════════════════════════════════════════════════════
# DATOS DE PRUEBA
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def fiction(catalog):
    return catalog.create_category({'name': 'Fiction', 'description': 'Novelas'})


@pytest.fixture
def book(catalog, fiction):
    """Libro con stock 5 y precio 9.99."""
    return catalog.create_book({
        'title': 'Dune',
        'author': 'Frank Herbert',
        'isbn': '978-0441013593',
        'price': '9.99',
        'stock_quantity': 5,
        'category_id': fiction.id,
    })


@pytest.fixture
def other_book(catalog, fiction):
    """Libro con stock 3 y precio 15.50."""
    return catalog.create_book({
        'title': 'Solaris',
        'author': 'Stanislaw Lem',
        'isbn': '978-0156027601',
        'price': '15.50',
        'stock_quantity': 3,
        'category_id': fiction.id,
    })


@pytest.fixture
def customer(users):
    return users.create_user({
        'name': 'Ana Pérez',
        'email': 'ana@example.com',
        'password': 'secreto123',
        'address': 'Calle Falsa 123',
    })
