# ==============================================================================
# VALIDACIÓN DE DATOS DE ENTRADA
# ==============================================================================
# Conversión y chequeo de valores que llegan desde la API o desde código
# cliente. Todo error se reporta como InvalidArgumentError.
# ==============================================================================

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Iterable, Optional

from bookstore.models import OrderStatus, parse_status, to_decimal
from bookstore.services.exceptions import InvalidArgumentError


def parse_int(value: Any, field: str) -> int:
    """
    Convierte un valor a int (acepta int o string numérico).

    Raises:
        InvalidArgumentError: Si no es un entero
    """
    if isinstance(value, bool):
        raise InvalidArgumentError(f"{field} debe ser un número entero")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise InvalidArgumentError(f"{field} debe ser un número entero")


def parse_optional_int(value: Any, field: str) -> Optional[int]:
    if value is None or value == '':
        return None
    return parse_int(value, field)


def parse_quantity(value: Any) -> int:
    """Cantidad de una línea de pedido: entero estrictamente positivo."""
    quantity = parse_int(value, 'quantity')
    if quantity <= 0:
        raise InvalidArgumentError("La cantidad debe ser mayor a 0")
    return quantity


def parse_price(value: Any) -> Decimal:
    """Precio: Decimal no negativo."""
    try:
        price = to_decimal(value)
    except ValueError:
        raise InvalidArgumentError(f"Precio inválido: {value!r}")
    if not price.is_finite() or price < 0:
        raise InvalidArgumentError("El precio no puede ser negativo")
    return price


def parse_order_status(value: Any) -> OrderStatus:
    try:
        return parse_status(value)
    except ValueError:
        valid = ', '.join(s.value for s in OrderStatus)
        raise InvalidArgumentError(f"Estado inválido: {value}. Válidos: {valid}")


def parse_datetime(value: Any, field: str) -> datetime:
    """
    Convierte un string ISO 8601 (o datetime) a datetime con zona horaria.
    Los valores sin zona se interpretan como UTC.
    """
    if isinstance(value, datetime):
        dt = value
    else:
        try:
            dt = datetime.fromisoformat(str(value).strip())
        except ValueError:
            raise InvalidArgumentError(f"{field}: fecha inválida ({value})")
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def require_text(value: Any, field: str) -> str:
    """Campo de texto obligatorio (no vacío)."""
    if value is None or not str(value).strip():
        raise InvalidArgumentError(f"{field} es obligatorio")
    return str(value).strip()


def optional_text(value: Any, field: str) -> str:
    """Campo de texto opcional: None se guarda como cadena vacía."""
    if value is None:
        return ''
    if not isinstance(value, str):
        raise InvalidArgumentError(f"{field} debe ser texto")
    return value.strip()


def pick_updates(updates: Optional[Dict[str, Any]], allowed: Iterable[str]) -> Dict[str, Any]:
    """
    Filtra una actualización parcial.

    Solo se conservan las claves presentes y permitidas; una clave con
    valor None se conserva (limpia el campo). IDs y fechas nunca pasan.
    """
    if updates is None:
        return {}
    if not isinstance(updates, dict):
        raise InvalidArgumentError("La actualización debe ser un objeto")
    return {k: v for k, v in updates.items() if k in allowed}
