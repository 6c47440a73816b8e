# ==============================================================================
# ENTIDADES DEL DOMINIO - Definiciones de dataclasses
# ==============================================================================
# Cada entidad representa un concepto del negocio.
# Diseñadas para ser independientes del mecanismo de persistencia.
# Los montos usan Decimal y se guardan como string en JSON.
# ==============================================================================

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Optional, List, Dict, Any
from enum import Enum
from datetime import datetime, timezone


# ==============================================================================
# ENUMERACIONES - Estados válidos
# ==============================================================================

class OrderStatus(str, Enum):
    """Estados posibles de un pedido."""
    PENDING = "PENDING"          # Recién creado, stock ya reservado
    PROCESSING = "PROCESSING"    # En preparación
    SHIPPED = "SHIPPED"          # Enviado (ya no se puede cancelar)
    DELIVERED = "DELIVERED"      # Entregado al cliente
    CANCELLED = "CANCELLED"      # Cancelado, stock devuelto
    REFUNDED = "REFUNDED"        # Reembolsado (solo por cambio explícito)


# Estados desde los que NO se puede cancelar
NON_CANCELLABLE_STATUSES = frozenset([
    OrderStatus.SHIPPED,
    OrderStatus.DELIVERED,
])


# ==============================================================================
# UTILIDADES
# ==============================================================================

def utc_now() -> str:
    """Timestamp actual en formato ISO (UTC)."""
    return datetime.now(timezone.utc).isoformat()


def to_decimal(value: Any) -> Decimal:
    """
    Convierte un valor (str, int, float, Decimal) a Decimal.

    Los float pasan por str() para evitar arrastrar errores binarios
    (0.1 → Decimal('0.1') y no Decimal('0.1000000000000000055...')).

    Raises:
        ValueError: Si el valor no es numérico
    """
    if isinstance(value, Decimal):
        return value
    if value is None or isinstance(value, bool):
        raise ValueError(f"Monto inválido: {value!r}")
    try:
        return Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValueError(f"Monto inválido: {value!r}")


def parse_status(value: Any) -> OrderStatus:
    """
    Convierte un string a OrderStatus (acepta minúsculas).

    Raises:
        ValueError: Si no es un estado válido
    """
    if isinstance(value, OrderStatus):
        return value
    try:
        return OrderStatus(str(value).strip().upper())
    except ValueError:
        raise ValueError(f"Estado inválido: {value}")


# ==============================================================================
# ENTIDADES DE USUARIO
# ==============================================================================

@dataclass
class User:
    """
    Representa un cliente de la librería.

    Attributes:
        id: Identificador asignado por el repositorio
        name: Nombre completo
        email: Correo (único)
        password: Hash de la contraseña (o texto plano legacy)
        address: Dirección postal
        phone_number: Teléfono de contacto
    """
    name: str
    email: str
    password: str
    address: Optional[str] = None
    phone_number: Optional[str] = None
    id: Optional[int] = None
    created_at: str = ''
    updated_at: str = ''

    # Campos que acepta una actualización parcial
    UPDATABLE_FIELDS = ('name', 'email', 'password', 'address', 'phone_number')

    def __post_init__(self):
        if not self.created_at:
            self.created_at = utc_now()
        if not self.updated_at:
            self.updated_at = self.created_at

    def to_dict(self) -> Dict[str, Any]:
        """Convierte a diccionario para persistencia (incluye password)."""
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'password': self.password,
            'address': self.address,
            'phone_number': self.phone_number,
            'created_at': self.created_at,
            'updated_at': self.updated_at,
        }

    def to_public_dict(self) -> Dict[str, Any]:
        """Versión para respuestas de la API (sin password)."""
        d = self.to_dict()
        d.pop('password', None)
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'User':
        """Crea instancia desde diccionario."""
        return cls(
            id=data.get('id'),
            name=data.get('name', ''),
            email=data.get('email', ''),
            password=data.get('password', ''),
            address=data.get('address'),
            phone_number=data.get('phone_number'),
            created_at=data.get('created_at', ''),
            updated_at=data.get('updated_at', ''),
        )


# ==============================================================================
# ENTIDADES DE CATÁLOGO
# ==============================================================================

@dataclass
class Category:
    """Categoría del catálogo (nombre único)."""
    name: str
    description: Optional[str] = None
    id: Optional[int] = None
    created_at: str = ''
    updated_at: str = ''

    UPDATABLE_FIELDS = ('name', 'description')

    def __post_init__(self):
        if not self.created_at:
            self.created_at = utc_now()
        if not self.updated_at:
            self.updated_at = self.created_at

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'created_at': self.created_at,
            'updated_at': self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Category':
        return cls(
            id=data.get('id'),
            name=data.get('name', ''),
            description=data.get('description'),
            created_at=data.get('created_at', ''),
            updated_at=data.get('updated_at', ''),
        )


@dataclass
class Book:
    """
    Libro del catálogo.

    Attributes:
        id: Identificador asignado por el repositorio
        title: Título
        author: Autor
        isbn: Código ISBN (único)
        price: Precio de venta (Decimal, no negativo)
        stock_quantity: Unidades en inventario (nunca negativo)
        category_id: Categoría a la que pertenece (opcional)
        description: Sinopsis
        publisher: Editorial
        publication_year: Año de publicación
        language: Idioma
        page_count: Número de páginas
    """
    title: str
    author: str
    isbn: str
    price: Decimal = Decimal('0')
    stock_quantity: int = 0
    category_id: Optional[int] = None
    description: Optional[str] = None
    publisher: Optional[str] = None
    publication_year: Optional[int] = None
    language: Optional[str] = None
    page_count: Optional[int] = None
    id: Optional[int] = None
    created_at: str = ''
    updated_at: str = ''

    UPDATABLE_FIELDS = (
        'title', 'author', 'description', 'isbn', 'price', 'stock_quantity',
        'category_id', 'publisher', 'publication_year', 'language', 'page_count'
    )

    def __post_init__(self):
        self.price = to_decimal(self.price)
        if not self.created_at:
            self.created_at = utc_now()
        if not self.updated_at:
            self.updated_at = self.created_at

    def to_dict(self) -> Dict[str, Any]:
        """Convierte a diccionario para persistencia JSON."""
        return {
            'id': self.id,
            'title': self.title,
            'author': self.author,
            'description': self.description,
            'isbn': self.isbn,
            'price': str(self.price),
            'stock_quantity': self.stock_quantity,
            'category_id': self.category_id,
            'publisher': self.publisher,
            'publication_year': self.publication_year,
            'language': self.language,
            'page_count': self.page_count,
            'created_at': self.created_at,
            'updated_at': self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Book':
        """Crea instancia desde diccionario."""
        return cls(
            id=data.get('id'),
            title=data.get('title', ''),
            author=data.get('author', ''),
            description=data.get('description'),
            isbn=data.get('isbn', ''),
            price=data.get('price', '0'),
            stock_quantity=data.get('stock_quantity', 0),
            category_id=data.get('category_id'),
            publisher=data.get('publisher'),
            publication_year=data.get('publication_year'),
            language=data.get('language'),
            page_count=data.get('page_count'),
            created_at=data.get('created_at', ''),
            updated_at=data.get('updated_at', ''),
        )


# ==============================================================================
# ENTIDADES DE PEDIDO
# ==============================================================================

@dataclass
class OrderItem:
    """
    Línea de un pedido.

    El precio es una foto del precio del libro al momento de agregarlo:
    cambios posteriores en el catálogo no afectan pedidos existentes.

    Attributes:
        order_id: Pedido al que pertenece
        book_id: Libro referenciado
        quantity: Cantidad (positiva)
        price: Precio unitario congelado
        book_title: Título congelado (solo para mostrar)
    """
    order_id: Optional[int]
    book_id: int
    quantity: int
    price: Decimal
    book_title: str = ''
    id: Optional[int] = None

    def __post_init__(self):
        self.price = to_decimal(self.price)

    @property
    def line_total(self) -> Decimal:
        """Total de la línea (price * quantity)."""
        return self.price * self.quantity

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'order_id': self.order_id,
            'book_id': self.book_id,
            'book_title': self.book_title,
            'quantity': self.quantity,
            'price': str(self.price),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'OrderItem':
        return cls(
            id=data.get('id'),
            order_id=data.get('order_id'),
            book_id=data.get('book_id', 0),
            book_title=data.get('book_title', ''),
            quantity=data.get('quantity', 0),
            price=data.get('price', '0'),
        )


@dataclass
class Order:
    """
    Pedido de un usuario.

    Los ítems se persisten en su propio repositorio; aquí se adjuntan
    al cargar el pedido. total_amount siempre se recalcula desde los ítems.

    Attributes:
        user_id: Dueño del pedido
        status: Estado actual (OrderStatus)
        total_amount: Suma de price * quantity de los ítems
        items: Líneas del pedido (orden de inserción)
        shipping_address: Dirección de envío
        billing_address: Dirección de facturación
        payment_method: Método de pago
        tracking_number: Número de seguimiento (vacío hasta el envío)
        stock_released: True una vez que cancel_order() devolvió el stock
    """
    user_id: int
    status: OrderStatus = OrderStatus.PENDING
    total_amount: Decimal = Decimal('0')
    items: List[OrderItem] = field(default_factory=list)
    shipping_address: Optional[str] = None
    billing_address: Optional[str] = None
    payment_method: Optional[str] = None
    tracking_number: Optional[str] = None
    stock_released: bool = False
    id: Optional[int] = None
    created_at: str = ''
    updated_at: str = ''

    def __post_init__(self):
        self.status = parse_status(self.status)
        self.total_amount = to_decimal(self.total_amount)
        if not self.created_at:
            self.created_at = utc_now()
        if not self.updated_at:
            self.updated_at = self.created_at

    @property
    def is_cancellable(self) -> bool:
        """
        Verifica si el pedido todavía puede cancelarse.

        Un pedido CANCELLED por update_order_status() conserva su reserva
        y todavía puede cancelarse para liberarla.
        """
        if self.status in NON_CANCELLABLE_STATUSES:
            return False
        return not (self.status == OrderStatus.CANCELLED and self.stock_released)

    @property
    def created_at_dt(self) -> datetime:
        """created_at como datetime (para filtros por fecha)."""
        return datetime.fromisoformat(self.created_at)

    def calculate_total(self) -> Decimal:
        """Recalcula total_amount desde cero con los ítems actuales."""
        self.total_amount = sum(
            (item.line_total for item in self.items), Decimal('0')
        )
        return self.total_amount

    def find_item_for_book(self, book_id: int) -> Optional[OrderItem]:
        """Busca la línea de un libro dentro del pedido."""
        for item in self.items:
            if item.book_id == book_id:
                return item
        return None

    def touch(self) -> None:
        """Actualiza la marca de modificación."""
        self.updated_at = utc_now()

    def to_dict(self, include_items: bool = True) -> Dict[str, Any]:
        """
        Convierte a diccionario.

        Args:
            include_items: False para persistir (los ítems van aparte)
        """
        d = {
            'id': self.id,
            'user_id': self.user_id,
            'status': self.status.value,
            'total_amount': str(self.total_amount),
            'shipping_address': self.shipping_address,
            'billing_address': self.billing_address,
            'payment_method': self.payment_method,
            'tracking_number': self.tracking_number,
            'stock_released': self.stock_released,
            'created_at': self.created_at,
            'updated_at': self.updated_at,
        }
        if include_items:
            d['items'] = [item.to_dict() for item in self.items]
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Order':
        """Crea instancia desde diccionario (ítems opcionales)."""
        items = [OrderItem.from_dict(i) for i in data.get('items', [])]
        return cls(
            id=data.get('id'),
            user_id=data.get('user_id', 0),
            status=data.get('status', OrderStatus.PENDING.value),
            total_amount=data.get('total_amount', '0'),
            items=items,
            shipping_address=data.get('shipping_address'),
            billing_address=data.get('billing_address'),
            payment_method=data.get('payment_method'),
            tracking_number=data.get('tracking_number'),
            stock_released=bool(data.get('stock_released', False)),
            created_at=data.get('created_at', ''),
            updated_at=data.get('updated_at', ''),
        )


# ==============================================================================
# ENTIDADES DE AUDITORÍA
# ==============================================================================

@dataclass
class AuditLog:
    """
    Registro de auditoría.

    Attributes:
        type: Tipo de evento (PEDIDO, STOCK, CATALOGO, USUARIO)
        user: Actor que realizó la acción
        message: Mensaje descriptivo humanizado
        timestamp: Fecha y hora del evento
        related_id: ID relacionado (pedido, libro, etc.)
        details: Detalles adicionales
    """
    type: str
    user: str
    message: str
    timestamp: str = ''
    related_id: str = ''
    details: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not self.timestamp:
            self.timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': self.type,
            'user': self.user,
            'message': self.message,
            'timestamp': self.timestamp,
            'related_id': self.related_id,
            'details': self.details
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AuditLog':
        return cls(
            type=data.get('type', ''),
            user=data.get('user', ''),
            message=data.get('message', ''),
            timestamp=data.get('timestamp', ''),
            related_id=data.get('related_id', ''),
            details=data.get('details', {})
        )
