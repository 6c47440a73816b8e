# ==============================================================================
# REPOSITORIO DE CATEGORÍAS
# ==============================================================================
# Encapsula todo el acceso a categories.json
# ==============================================================================

from typing import Optional

from bookstore.models import Category
from bookstore.repositories.base import EntityRepository


class CategoryRepository(EntityRepository):
    """Repositorio de categorías. El nombre es único."""

    entity_class = Category
    file_name = 'categories.json'

    def find_by_name(self, name: str) -> Optional[Category]:
        """Busca una categoría por nombre exacto."""
        return self.find_one_by('name', name)

    def exists_by_name(self, name: str) -> bool:
        return self.exists_by('name', name)

    def find_first_by_name_containing(self, text: str) -> Optional[Category]:
        """
        Primera categoría cuyo nombre contiene el texto (sin distinguir
        mayúsculas).

        Args:
            text: Texto a buscar

        Returns:
            Categoría con menor ID que coincide, o None
        """
        needle = (text or '').lower()
        matches = self.find_all_matching(lambda c: needle in (c.name or '').lower())
        return matches[0] if matches else None
