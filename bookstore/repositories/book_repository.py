# ==============================================================================
# REPOSITORIO DE LIBROS
# ==============================================================================
# Encapsula todo el acceso a books.json
# ==============================================================================

from typing import List, Optional

from bookstore.models import Book
from bookstore.repositories.base import EntityRepository


class BookRepository(EntityRepository):
    """
    Repositorio para el catálogo de libros.

    Formato de datos en books.json:
    {
        "seq": 1,
        "records": {
            "1": {
                "id": 1,
                "title": "Cien años de soledad",
                "isbn": "978-0307474728",
                "price": "19.99",
                "stock_quantity": 12,
                "category_id": 1,
                ...
            }
        }
    }

    Nota: price se guarda como string para no perder precisión decimal.
    """

    entity_class = Book
    file_name = 'books.json'

    def find_by_isbn(self, isbn: str) -> Optional[Book]:
        """Busca un libro por ISBN exacto."""
        return self.find_one_by('isbn', isbn)

    def exists_by_isbn(self, isbn: str) -> bool:
        return self.exists_by('isbn', isbn)

    def find_by_title_containing(self, text: str) -> List[Book]:
        """
        Busca libros por título (búsqueda parcial, sin distinguir mayúsculas).

        Args:
            text: Texto a buscar

        Returns:
            Lista de libros que coinciden
        """
        needle = (text or '').lower()
        return self.find_all_matching(lambda b: needle in (b.title or '').lower())

    def find_by_author_containing(self, text: str) -> List[Book]:
        """Busca libros por autor (búsqueda parcial, sin distinguir mayúsculas)."""
        needle = (text or '').lower()
        return self.find_all_matching(lambda b: needle in (b.author or '').lower())

    def find_by_category(self, category_id: int) -> List[Book]:
        """Libros de una categoría."""
        return self.find_all_by('category_id', category_id)
