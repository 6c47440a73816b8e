# ==============================================================================
# API HTTP - Rutas JSON de la librería
# ==============================================================================
# Las rutas solo traducen HTTP <-> servicios. Toda la lógica de negocio vive
# en services/. Los errores de negocio (BookstoreError) se convierten en
# {"ok": false, "error": ..., "kind": ...} con el código HTTP de cada clase.
#
# El actor de cada operación (para auditoría) se toma del header X-Actor.
# ==============================================================================

import os
from typing import Any, Dict, List, Optional

from flask import Blueprint, Flask, current_app, jsonify, request

from bookstore import config
from bookstore.app_container import AppContainer, get_container
from bookstore.performance_logger import configure, get_function_stats, init_profiling
from bookstore.services.exceptions import (
    BookstoreError,
    InvalidArgumentError,
    NotFoundError,
)
from bookstore.services.validation import parse_optional_int

api = Blueprint('api', __name__, url_prefix='/api')


# ═══════════════════════════════════════════════════════════════════════════
# HELPERS
# ═══════════════════════════════════════════════════════════════════════════

def _container() -> AppContainer:
    return current_app.extensions['bookstore']


def _actor() -> Optional[str]:
    """Actor de la petición (header X-Actor); None = sistema."""
    return request.headers.get('X-Actor') or None


def _json_body() -> Dict[str, Any]:
    """Cuerpo JSON como dict. Un cuerpo ausente o inválido es un error de argumento."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InvalidArgumentError("Datos no recibidos")
    return data


def _deleted(result: bool):
    return {'ok': True, 'deleted': result}


def _list(entities: List[Any]):
    return jsonify([e.to_dict() for e in entities])


# ═══════════════════════════════════════════════════════════════════════════
# LIBROS
# ═══════════════════════════════════════════════════════════════════════════

@api.route('/books', methods=['GET'])
def list_books():
    catalog = _container().catalog_service
    title = request.args.get('title')
    author = request.args.get('author')
    category_id = parse_optional_int(request.args.get('category_id'), 'category_id')

    if title:
        return _list(catalog.search_books_by_title(title))
    if author:
        return _list(catalog.search_books_by_author(author))
    if category_id is not None:
        return _list(catalog.get_books_by_category(category_id))
    return _list(catalog.get_all_books())


@api.route('/books/<int:book_id>', methods=['GET'])
def get_book(book_id):
    book = _container().catalog_service.get_book(book_id)
    if book is None:
        raise NotFoundError('Libro', book_id)
    return book.to_dict()


@api.route('/books/isbn/<isbn>', methods=['GET'])
def get_book_by_isbn(isbn):
    book = _container().catalog_service.get_book_by_isbn(isbn)
    if book is None:
        raise NotFoundError('Libro', isbn)
    return book.to_dict()


@api.route('/books', methods=['POST'])
def create_book():
    book = _container().catalog_service.create_book(_json_body(), actor=_actor())
    return book.to_dict(), 201


@api.route('/books/<int:book_id>', methods=['PATCH'])
def update_book(book_id):
    book = _container().catalog_service.update_book(book_id, _json_body(), actor=_actor())
    return book.to_dict()


@api.route('/books/<int:book_id>', methods=['DELETE'])
def delete_book(book_id):
    return _deleted(_container().catalog_service.delete_book(book_id, actor=_actor()))


@api.route('/books/<int:book_id>/stock', methods=['POST'])
def adjust_stock(book_id):
    data = _json_body()
    if 'quantity' not in data:
        raise InvalidArgumentError("quantity es obligatorio")
    book = _container().catalog_service.adjust_stock(
        book_id,
        data['quantity'],
        actor=_actor(),
        reason=data.get('reason') or 'manual'
    )
    return book.to_dict()


# ═══════════════════════════════════════════════════════════════════════════
# CATEGORÍAS
# ═══════════════════════════════════════════════════════════════════════════

@api.route('/categories', methods=['GET'])
def list_categories():
    catalog = _container().catalog_service
    name = request.args.get('name')
    text = request.args.get('q')

    if name:
        category = catalog.get_category_by_name(name)
        return jsonify([category.to_dict()] if category else [])
    if text:
        category = catalog.search_category_by_name(text)
        return jsonify([category.to_dict()] if category else [])
    return _list(catalog.get_all_categories())


@api.route('/categories/<int:category_id>', methods=['GET'])
def get_category(category_id):
    category = _container().catalog_service.get_category(category_id)
    if category is None:
        raise NotFoundError('Categoría', category_id)
    return category.to_dict()


@api.route('/categories', methods=['POST'])
def create_category():
    category = _container().catalog_service.create_category(_json_body(), actor=_actor())
    return category.to_dict(), 201


@api.route('/categories/<int:category_id>', methods=['PATCH'])
def update_category(category_id):
    category = _container().catalog_service.update_category(
        category_id, _json_body(), actor=_actor()
    )
    return category.to_dict()


@api.route('/categories/<int:category_id>', methods=['DELETE'])
def delete_category(category_id):
    return _deleted(_container().catalog_service.delete_category(category_id, actor=_actor()))


# ═══════════════════════════════════════════════════════════════════════════
# USUARIOS
# ═══════════════════════════════════════════════════════════════════════════

@api.route('/users', methods=['GET'])
def list_users():
    users = _container().user_service
    email = request.args.get('email')
    if email:
        user = users.get_user_by_email(email)
        return jsonify([user.to_public_dict()] if user else [])
    return jsonify([u.to_public_dict() for u in users.get_all_users()])


@api.route('/users/<int:user_id>', methods=['GET'])
def get_user(user_id):
    user = _container().user_service.get_user(user_id)
    if user is None:
        raise NotFoundError('Usuario', user_id)
    return user.to_public_dict()


@api.route('/users/<int:user_id>/orders', methods=['GET'])
def get_user_orders(user_id):
    return _list(_container().user_service.get_user_orders(user_id))


@api.route('/users', methods=['POST'])
def create_user():
    user = _container().user_service.create_user(_json_body(), actor=_actor())
    return user.to_public_dict(), 201


@api.route('/users/<int:user_id>', methods=['PATCH'])
def update_user(user_id):
    user = _container().user_service.update_user(user_id, _json_body(), actor=_actor())
    return user.to_public_dict()


@api.route('/users/<int:user_id>', methods=['DELETE'])
def delete_user(user_id):
    return _deleted(_container().user_service.delete_user(user_id, actor=_actor()))


@api.route('/auth/login', methods=['POST'])
def login():
    data = _json_body()
    user = _container().user_service.authenticate(data.get('email'), data.get('password'))
    return {
        'ok': True,
        'authenticated': user is not None,
        'user': user.to_public_dict() if user else None,
    }


# ═══════════════════════════════════════════════════════════════════════════
# PEDIDOS
# ═══════════════════════════════════════════════════════════════════════════

@api.route('/orders', methods=['GET'])
def list_orders():
    orders = _container().order_service
    user_id = parse_optional_int(request.args.get('user_id'), 'user_id')
    status = request.args.get('status')
    created_after = request.args.get('created_after')
    created_before = request.args.get('created_before')

    if user_id is not None and status:
        result = orders.get_orders_by_user_and_status(user_id, status)
    elif user_id is not None:
        result = orders.get_orders_by_user(user_id)
    elif status:
        result = orders.get_orders_by_status(status)
    else:
        result = orders.get_all_orders()

    # Los filtros de fecha se combinan con los anteriores
    if created_after:
        ids = {o.id for o in orders.get_orders_created_after(created_after)}
        result = [o for o in result if o.id in ids]
    if created_before:
        ids = {o.id for o in orders.get_orders_created_before(created_before)}
        result = [o for o in result if o.id in ids]

    return _list(result)


@api.route('/orders/<int:order_id>', methods=['GET'])
def get_order(order_id):
    order = _container().order_service.get_order(order_id)
    if order is None:
        raise NotFoundError('Pedido', order_id)
    return order.to_dict()


@api.route('/orders', methods=['POST'])
def create_order():
    data = _json_body()
    if 'user_id' not in data:
        raise InvalidArgumentError("user_id es obligatorio")
    order = _container().order_service.create_order(
        data['user_id'],
        data.get('items') or [],
        shipping_address=data.get('shipping_address'),
        billing_address=data.get('billing_address'),
        payment_method=data.get('payment_method'),
        actor=_actor(),
    )
    return order.to_dict(), 201


@api.route('/orders/<int:order_id>/status', methods=['PATCH'])
def update_order_status(order_id):
    data = _json_body()
    if not data.get('status'):
        raise InvalidArgumentError("status es obligatorio")
    order = _container().order_service.update_order_status(
        order_id, data['status'], actor=_actor()
    )
    return order.to_dict()


@api.route('/orders/<int:order_id>/shipping', methods=['PATCH'])
def update_order_shipping(order_id):
    data = _json_body()
    order = _container().order_service.update_order_shipping(
        order_id,
        shipping_address=data.get('shipping_address'),
        tracking_number=data.get('tracking_number'),
        actor=_actor(),
    )
    return order.to_dict()


@api.route('/orders/<int:order_id>/items', methods=['POST'])
def add_order_item(order_id):
    data = _json_body()
    order = _container().order_service.add_order_item(
        order_id,
        data.get('book_id'),
        data.get('quantity'),
        actor=_actor(),
    )
    return order.to_dict()


@api.route('/orders/<int:order_id>/items/<int:item_id>', methods=['DELETE'])
def remove_order_item(order_id, item_id):
    order = _container().order_service.remove_order_item(order_id, item_id, actor=_actor())
    return order.to_dict()


@api.route('/orders/<int:order_id>/cancel', methods=['POST'])
def cancel_order(order_id):
    order = _container().order_service.cancel_order(order_id, actor=_actor())
    return order.to_dict()


@api.route('/orders/<int:order_id>', methods=['DELETE'])
def delete_order(order_id):
    return _deleted(_container().order_service.delete_order(order_id, actor=_actor()))


# ═══════════════════════════════════════════════════════════════════════════
# AUDITORÍA Y RENDIMIENTO
# ═══════════════════════════════════════════════════════════════════════════

@api.route('/audit', methods=['GET'])
def list_audit():
    logs = _container().audit_service.get_logs(
        log_type=request.args.get('type') or None,
        related_id=request.args.get('related_id') or None,
    )
    return jsonify(logs)


@api.route('/profiling', methods=['GET'])
def profiling_stats():
    """Estadísticas en memoria de las funciones perfiladas."""
    return {'ok': True, 'functions': get_function_stats()}


# ═══════════════════════════════════════════════════════════════════════════
# FÁBRICA DE LA APLICACIÓN
# ═══════════════════════════════════════════════════════════════════════════

def _handle_bookstore_error(error: BookstoreError):
    return error.to_dict(), error.status_code


def set_security_headers(response):
    response.headers['X-Frame-Options'] = 'DENY'
    response.headers['X-Content-Type-Options'] = 'nosniff'
    response.headers['Referrer-Policy'] = 'no-referrer-when-downgrade'
    if request.is_secure:
        response.headers['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains'
    return response


def create_app(base_path: str = None) -> Flask:
    """
    Crea la aplicación Flask.

    Args:
        base_path: Carpeta de datos. Por defecto config.DATA_DIR.
                   Si se indica, los logs de rendimiento van a <base_path>/logs

    Returns:
        App lista para servir
    """
    app = Flask(__name__)
    app.config['MAX_CONTENT_LENGTH'] = config.MAX_CONTENT_LENGTH
    app.json.sort_keys = False

    if base_path:
        configure(logs_dir=os.path.join(base_path, 'logs'))

    # ═══════════════════════════════════════════════════════════════════════
    # INICIALIZAR SISTEMA DE PROFILING
    # ═══════════════════════════════════════════════════════════════════════
    # Mide rendimiento de rutas. Para desactivar: BOOKSTORE_PROFILING=0
    init_profiling(app)

    container = get_container(base_path)
    if base_path and container.base_path != base_path:
        AppContainer.reset_instance()
        container = get_container(base_path)
    app.extensions['bookstore'] = container

    app.register_blueprint(api)
    app.register_error_handler(BookstoreError, _handle_bookstore_error)
    app.after_request(set_security_headers)

    if not config.PRODUCTION_MODE and os.environ.get('BOOKSTORE_DEBUG'):
        print(f"[DEBUG] Datos en {container.base_path}")

    return app
