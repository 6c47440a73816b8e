# ==============================================================================
# SERVICIO DE CATÁLOGO
# ==============================================================================
# Centraliza toda la lógica de negocio de libros y categorías.
# adjust_stock() es el único camino para mover stock fuera de la edición
# directa de un libro.
# ==============================================================================

from typing import Any, Dict, List, Optional

from bookstore.models import Book, Category, utc_now
from bookstore.performance_logger import profile_function
from bookstore.repositories import transaction
from bookstore.repositories.book_repository import BookRepository
from bookstore.repositories.category_repository import CategoryRepository
from bookstore.services.audit_service import AuditService
from bookstore.services.exceptions import (
    DuplicateKeyError,
    InvalidArgumentError,
    NotFoundError,
)
from bookstore.services.validation import (
    optional_text,
    parse_int,
    parse_optional_int,
    parse_price,
    pick_updates,
    require_text,
)


class CatalogService:
    """
    Servicio para gestión del catálogo.

    Responsabilidades:
    - CRUD de libros (isbn único)
    - CRUD de categorías (nombre único, borrado en cascada de sus libros)
    - Ajustes de stock (nunca negativo)
    - Búsquedas por título, autor, ISBN y categoría
    """

    def __init__(
        self,
        book_repo: BookRepository,
        category_repo: CategoryRepository,
        audit_service: AuditService = None
    ):
        """
        Inicializa el servicio de catálogo.

        Args:
            book_repo: Repositorio de libros
            category_repo: Repositorio de categorías
            audit_service: Servicio de auditoría (opcional)
        """
        self.book_repo = book_repo
        self.category_repo = category_repo
        self.audit_service = audit_service

    # =========================================================================
    # LIBROS - CONSULTAS
    # =========================================================================

    def get_all_books(self) -> List[Book]:
        return self.book_repo.find_all()

    def get_book(self, book_id: int) -> Optional[Book]:
        return self.book_repo.find_by_id(book_id)

    def get_book_by_isbn(self, isbn: str) -> Optional[Book]:
        return self.book_repo.find_by_isbn(isbn)

    def search_books_by_title(self, text: str) -> List[Book]:
        """Libros cuyo título contiene el texto (sin distinguir mayúsculas)."""
        return self.book_repo.find_by_title_containing(text)

    def search_books_by_author(self, text: str) -> List[Book]:
        """Libros cuyo autor contiene el texto (sin distinguir mayúsculas)."""
        return self.book_repo.find_by_author_containing(text)

    def get_books_by_category(self, category_id: int) -> List[Book]:
        return self.book_repo.find_by_category(category_id)

    # =========================================================================
    # LIBROS - ALTAS, CAMBIOS Y BAJAS
    # =========================================================================

    @profile_function(name="Crear libro")
    def create_book(self, data: Dict[str, Any], actor: str = None) -> Book:
        """
        Crea un libro nuevo.

        Args:
            data: Campos del libro (title e isbn obligatorios)
            actor: Quién realiza la acción (para auditoría)

        Returns:
            Libro persistido con su ID

        Raises:
            InvalidArgumentError: Campos obligatorios ausentes, precio o stock negativos
            DuplicateKeyError: El ISBN ya existe
            NotFoundError: La categoría indicada no existe
        """
        if not isinstance(data, dict):
            raise InvalidArgumentError("Los datos del libro deben ser un objeto")

        fields = pick_updates(data, Book.UPDATABLE_FIELDS)
        book = Book(
            title=require_text(fields.get('title'), 'title'),
            author=optional_text(fields.get('author'), 'author'),
            isbn=require_text(fields.get('isbn'), 'isbn'),
        )
        self._apply_book_fields(book, fields)

        with transaction(self.book_repo):
            if self.book_repo.exists_by_isbn(book.isbn):
                raise DuplicateKeyError('libro', 'ISBN', book.isbn)
            self._check_category(book.category_id)
            self.book_repo.save(book)

        if self.audit_service:
            self.audit_service.log_catalog_change(actor, 'creado', 'Libro', book.id, book.title)
        return book

    @profile_function(name="Editar libro")
    def update_book(self, book_id: int, updates: Dict[str, Any], actor: str = None) -> Book:
        """
        Actualización parcial de un libro.

        Solo se aplican las claves presentes en updates; una clave con
        valor None limpia el campo opcional correspondiente.

        Raises:
            NotFoundError: El libro no existe
            DuplicateKeyError: El nuevo ISBN pertenece a otro libro
            InvalidArgumentError: Valores inválidos
        """
        fields = pick_updates(updates, Book.UPDATABLE_FIELDS)

        with transaction(self.book_repo):
            book = self.book_repo.find_by_id(book_id)
            if book is None:
                raise NotFoundError('Libro', book_id)

            if 'title' in fields:
                book.title = require_text(fields['title'], 'title')
            if 'isbn' in fields:
                new_isbn = require_text(fields['isbn'], 'isbn')
                if new_isbn != book.isbn:
                    other = self.book_repo.find_by_isbn(new_isbn)
                    if other is not None and other.id != book.id:
                        raise DuplicateKeyError('libro', 'ISBN', new_isbn)
                book.isbn = new_isbn
            if 'author' in fields:
                book.author = optional_text(fields['author'], 'author')

            self._apply_book_fields(book, fields)
            self._check_category(book.category_id)
            book.updated_at = utc_now()
            self.book_repo.save(book)

        if self.audit_service and fields:
            self.audit_service.log_catalog_change(
                actor, 'actualizado', 'Libro', book.id, book.title, fields
            )
        return book

    def delete_book(self, book_id: int, actor: str = None) -> bool:
        """
        Elimina un libro.

        Returns:
            True si existía y se eliminó, False si no existía
        """
        book = self.book_repo.find_by_id(book_id)
        if book is None:
            return False

        deleted = self.book_repo.delete_by_id(book_id)
        if deleted and self.audit_service:
            self.audit_service.log_catalog_change(actor, 'eliminado', 'Libro', book.id, book.title)
        return deleted

    # =========================================================================
    # STOCK
    # =========================================================================

    @profile_function(name="Ajustar stock")
    def adjust_stock(
        self,
        book_id: int,
        delta: int,
        actor: str = None,
        reason: str = 'manual',
        audit: bool = True
    ) -> Book:
        """
        Suma delta al stock de un libro (delta negativo = salida).

        Args:
            book_id: ID del libro
            delta: Unidades a sumar o restar
            actor: Quién realiza la acción
            reason: Motivo para el log de auditoría
            audit: False cuando el llamador registra el movimiento él mismo
                   (por ejemplo, al terminar su propia transacción)

        Returns:
            Libro con el stock actualizado

        Raises:
            NotFoundError: El libro no existe
            InvalidArgumentError: El stock resultante sería negativo
        """
        delta = parse_int(delta, 'quantity')

        with transaction(self.book_repo):
            book = self.book_repo.find_by_id(book_id)
            if book is None:
                raise NotFoundError('Libro', book_id)

            new_stock = book.stock_quantity + delta
            if new_stock < 0:
                raise InvalidArgumentError(
                    f"El stock de {book.title} no puede quedar negativo "
                    f"(actual: {book.stock_quantity}, cambio: {delta:+d})"
                )

            book.stock_quantity = new_stock
            book.updated_at = utc_now()
            self.book_repo.save(book)

        if audit and self.audit_service:
            self.audit_service.log_stock_change(actor, book, delta, reason)
        return book

    # =========================================================================
    # CATEGORÍAS
    # =========================================================================

    def get_all_categories(self) -> List[Category]:
        return self.category_repo.find_all()

    def get_category(self, category_id: int) -> Optional[Category]:
        return self.category_repo.find_by_id(category_id)

    def get_category_by_name(self, name: str) -> Optional[Category]:
        return self.category_repo.find_by_name(name)

    def search_category_by_name(self, text: str) -> Optional[Category]:
        """Primera categoría cuyo nombre contiene el texto."""
        return self.category_repo.find_first_by_name_containing(text)

    def create_category(self, data: Dict[str, Any], actor: str = None) -> Category:
        """
        Crea una categoría.

        Raises:
            InvalidArgumentError: Falta el nombre
            DuplicateKeyError: Ya existe una categoría con ese nombre
        """
        if not isinstance(data, dict):
            raise InvalidArgumentError("Los datos de la categoría deben ser un objeto")

        category = Category(
            name=require_text(data.get('name'), 'name'),
            description=data.get('description'),
        )

        with transaction(self.category_repo):
            if self.category_repo.exists_by_name(category.name):
                raise DuplicateKeyError('categoría', 'nombre', category.name)
            self.category_repo.save(category)

        if self.audit_service:
            self.audit_service.log_catalog_change(
                actor, 'creada', 'Categoría', category.id, category.name
            )
        return category

    def update_category(
        self,
        category_id: int,
        updates: Dict[str, Any],
        actor: str = None
    ) -> Category:
        """Actualización parcial de una categoría (mismas reglas que libros)."""
        fields = pick_updates(updates, Category.UPDATABLE_FIELDS)

        with transaction(self.category_repo):
            category = self.category_repo.find_by_id(category_id)
            if category is None:
                raise NotFoundError('Categoría', category_id)

            if 'name' in fields:
                new_name = require_text(fields['name'], 'name')
                if new_name != category.name:
                    other = self.category_repo.find_by_name(new_name)
                    if other is not None and other.id != category.id:
                        raise DuplicateKeyError('categoría', 'nombre', new_name)
                category.name = new_name
            if 'description' in fields:
                category.description = fields['description']

            category.updated_at = utc_now()
            self.category_repo.save(category)

        if self.audit_service and fields:
            self.audit_service.log_catalog_change(
                actor, 'actualizada', 'Categoría', category.id, category.name, fields
            )
        return category

    @profile_function(name="Eliminar categoría")
    def delete_category(self, category_id: int, actor: str = None) -> bool:
        """
        Elimina una categoría y, antes, todos sus libros.

        Returns:
            True si existía, False si no
        """
        with transaction(self.book_repo, self.category_repo):
            category = self.category_repo.find_by_id(category_id)
            if category is None:
                return False

            books = self.book_repo.find_by_category(category.id)
            for book in books:
                self.book_repo.delete_by_id(book.id)
            self.category_repo.delete_by_id(category.id)

        if self.audit_service:
            for book in books:
                self.audit_service.log_catalog_change(
                    actor, 'eliminado', 'Libro', book.id, book.title
                )
            self.audit_service.log_catalog_change(
                actor, 'eliminada', 'Categoría', category.id, category.name
            )
        return True

    # =========================================================================
    # HELPERS PRIVADOS
    # =========================================================================

    def _apply_book_fields(self, book: Book, fields: Dict[str, Any]) -> None:
        """Aplica y valida los campos no textuales de un libro."""
        if 'price' in fields:
            book.price = parse_price(fields['price'])

        if 'stock_quantity' in fields:
            stock = parse_int(fields['stock_quantity'], 'stock_quantity')
            if stock < 0:
                raise InvalidArgumentError("El stock no puede ser negativo")
            book.stock_quantity = stock

        if 'category_id' in fields:
            book.category_id = parse_optional_int(fields['category_id'], 'category_id')

        for name in ('publication_year', 'page_count'):
            if name in fields:
                setattr(book, name, parse_optional_int(fields[name], name))

        for name in ('description', 'publisher', 'language'):
            if name in fields:
                setattr(book, name, fields[name])

    def _check_category(self, category_id: Optional[int]) -> None:
        if category_id is not None and not self.category_repo.exists_by_id(category_id):
            raise NotFoundError('Categoría', category_id)
