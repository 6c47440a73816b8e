# ==============================================================================
# REPOSITORIO DE USUARIOS
# ==============================================================================
# Encapsula todo el acceso a users.json
# ==============================================================================

from typing import Optional

from bookstore.models import User
from bookstore.repositories.base import EntityRepository


class UserRepository(EntityRepository):
    """
    Repositorio para gestión de usuarios.

    Formato de datos en users.json:
    {
        "seq": 2,
        "records": {
            "1": {"id": 1, "name": "Ana", "email": "ana@mail.com", "password": "scrypt:...", ...},
            "2": {...}
        }
    }
    """

    entity_class = User
    file_name = 'users.json'

    def find_by_email(self, email: str) -> Optional[User]:
        """
        Obtiene un usuario por su email.

        Args:
            email: Correo exacto

        Returns:
            Usuario o None
        """
        return self.find_one_by('email', email)

    def exists_by_email(self, email: str) -> bool:
        """Verifica si ya existe un usuario con ese email."""
        return self.exists_by('email', email)
