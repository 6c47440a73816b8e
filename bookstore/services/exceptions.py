# ==============================================================================
# EXCEPCIONES DE NEGOCIO
# ==============================================================================
# Los servicios lanzan estas excepciones; la API las traduce a JSON
# {"ok": false, "error": ..., "kind": ...} con el código HTTP de cada clase.
# ==============================================================================


class BookstoreError(Exception):
    """Excepción base de la librería."""

    kind = 'Error'
    status_code = 400

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_dict(self):
        return {'ok': False, 'error': self.message, 'kind': self.kind}


class NotFoundError(BookstoreError):
    """Se referenció una entidad que no existe."""

    kind = 'NotFound'
    status_code = 404

    def __init__(self, entity: str, entity_id):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} no encontrado con ID: {entity_id}")


class DuplicateKeyError(BookstoreError):
    """Violación de campo único (isbn, email, nombre de categoría)."""

    kind = 'DuplicateKey'
    status_code = 409

    def __init__(self, entity: str, field: str, value):
        self.entity = entity
        self.field = field
        self.value = value
        super().__init__(f"Ya existe {entity} con {field} {value}")


class InvalidArgumentError(BookstoreError):
    """Un valor enviado por el llamador viola una precondición."""

    kind = 'InvalidArgument'
    status_code = 400


class InsufficientStockError(InvalidArgumentError):
    """
    No hay stock suficiente de un libro.

    Es un InvalidArgumentError, pero separado para que la interfaz pueda
    mostrar un mensaje amigable.
    """

    kind = 'InsufficientStock'
    status_code = 409

    def __init__(self, book_id: int, title: str, requested: int, available: int):
        self.book_id = book_id
        self.title = title
        self.requested = requested
        self.available = available
        super().__init__(
            f"Stock insuficiente para {title}. "
            f"Solicitado: {requested}, Disponible: {available}"
        )
