# ==============================================================================
# SERVICIO DE USUARIOS
# ==============================================================================
# Centraliza la lógica de negocio de clientes: registro, edición,
# autenticación y baja (con sus pedidos).
# ==============================================================================

from typing import Any, Dict, List, Optional

from werkzeug.security import generate_password_hash, check_password_hash

from bookstore.models import Order, User, utc_now
from bookstore.repositories import transaction
from bookstore.repositories.order_repository import OrderItemRepository, OrderRepository
from bookstore.repositories.user_repository import UserRepository
from bookstore.services.audit_service import AuditService
from bookstore.services.exceptions import (
    DuplicateKeyError,
    InvalidArgumentError,
    NotFoundError,
)
from bookstore.services.validation import pick_updates, require_text


class UserService:
    """
    Servicio para gestión de usuarios.

    Responsabilidades:
    - Registro y edición (email único)
    - Autenticación con contraseñas hasheadas
    - Baja de usuario con borrado previo de sus pedidos
    """

    def __init__(
        self,
        user_repo: UserRepository,
        order_repo: OrderRepository,
        order_item_repo: OrderItemRepository,
        audit_service: AuditService = None
    ):
        """
        Inicializa el servicio de usuarios.

        Args:
            user_repo: Repositorio de usuarios
            order_repo: Repositorio de pedidos (para baja en cascada)
            order_item_repo: Repositorio de líneas de pedido
            audit_service: Servicio de auditoría (opcional)
        """
        self.user_repo = user_repo
        self.order_repo = order_repo
        self.order_item_repo = order_item_repo
        self.audit_service = audit_service

    # =========================================================================
    # CONSULTAS
    # =========================================================================

    def get_all_users(self) -> List[User]:
        return self.user_repo.find_all()

    def get_user(self, user_id: int) -> Optional[User]:
        return self.user_repo.find_by_id(user_id)

    def get_user_by_email(self, email: str) -> Optional[User]:
        return self.user_repo.find_by_email(email)

    def get_user_orders(self, user_id: int) -> List[Order]:
        """
        Pedidos de un usuario (con sus ítems).

        Raises:
            NotFoundError: El usuario no existe
        """
        if not self.user_repo.exists_by_id(user_id):
            raise NotFoundError('Usuario', user_id)

        orders = self.order_repo.find_by_user(user_id)
        for order in orders:
            order.items = self.order_item_repo.find_by_order(order.id)
        return orders

    # =========================================================================
    # AUTENTICACIÓN
    # =========================================================================

    def authenticate(self, email: str, password: str) -> Optional[User]:
        """
        Autentica un usuario.

        Args:
            email: Correo
            password: Contraseña en texto plano

        Returns:
            Usuario si las credenciales son válidas, None si no
        """
        if not email or not isinstance(password, str):
            return None

        user = self.user_repo.find_by_email(email)
        if not user:
            return None

        stored = user.password or ''

        # Soportar tanto hash como texto plano (legacy)
        if self.is_password_hashed(stored):
            if not check_password_hash(stored, password):
                return None
        else:
            if stored != password:
                return None

        if self.audit_service:
            self.audit_service.log_user_login(user.email, user.id)
        return user

    def is_password_hashed(self, password_value: str) -> bool:
        """
        Verifica si una contraseña ya está hasheada.

        Returns:
            True si está hasheado (pbkdf2: o scrypt:)
        """
        if not password_value:
            return False
        return password_value.startswith('pbkdf2:') or password_value.startswith('scrypt:')

    def migrate_passwords_to_hash(self) -> Dict[str, Any]:
        """
        Migra las contraseñas en texto plano a hash seguro.

        Returns:
            Dict con información de migración
        """
        migrated_count = 0

        with transaction(self.user_repo):
            for user in self.user_repo.find_all():
                if user.password and not self.is_password_hashed(user.password):
                    user.password = generate_password_hash(user.password)
                    self.user_repo.save(user)
                    migrated_count += 1

        if migrated_count > 0 and self.audit_service:
            self.audit_service.log(
                AuditService.TYPE_USUARIO,
                None,
                f'Migración de contraseñas: {migrated_count} contraseñas actualizadas a hash seguro'
            )

        return {'ok': True, 'migrated_count': migrated_count}

    # =========================================================================
    # ALTAS, CAMBIOS Y BAJAS
    # =========================================================================

    def create_user(self, data: Dict[str, Any], actor: str = None) -> User:
        """
        Registra un usuario nuevo.

        Args:
            data: name, email, password (obligatorios), address, phone_number
            actor: Quién realiza la acción

        Returns:
            Usuario persistido

        Raises:
            InvalidArgumentError: Faltan campos obligatorios
            DuplicateKeyError: El email ya está registrado
        """
        if not isinstance(data, dict):
            raise InvalidArgumentError("Los datos del usuario deben ser un objeto")

        password = data.get('password')
        if not password:
            raise InvalidArgumentError("password es obligatorio")

        user = User(
            name=require_text(data.get('name'), 'name'),
            email=require_text(data.get('email'), 'email'),
            password=generate_password_hash(str(password)),
            address=data.get('address'),
            phone_number=data.get('phone_number'),
        )

        with transaction(self.user_repo):
            if self.user_repo.exists_by_email(user.email):
                raise DuplicateKeyError('usuario', 'email', user.email)
            self.user_repo.save(user)

        if self.audit_service:
            self.audit_service.log_user_change(actor, 'registrado', user.id, user.email)
        return user

    def update_user(self, user_id: int, updates: Dict[str, Any], actor: str = None) -> User:
        """
        Actualización parcial de un usuario.

        Raises:
            NotFoundError: El usuario no existe
            DuplicateKeyError: El nuevo email pertenece a otro usuario
        """
        fields = pick_updates(updates, User.UPDATABLE_FIELDS)

        with transaction(self.user_repo):
            user = self.user_repo.find_by_id(user_id)
            if user is None:
                raise NotFoundError('Usuario', user_id)

            if 'name' in fields:
                user.name = require_text(fields['name'], 'name')
            if 'email' in fields:
                new_email = require_text(fields['email'], 'email')
                if new_email != user.email:
                    other = self.user_repo.find_by_email(new_email)
                    if other is not None and other.id != user.id:
                        raise DuplicateKeyError('usuario', 'email', new_email)
                user.email = new_email
            if 'password' in fields:
                if not fields['password']:
                    raise InvalidArgumentError("password es obligatorio")
                user.password = generate_password_hash(str(fields['password']))
            if 'address' in fields:
                user.address = fields['address']
            if 'phone_number' in fields:
                user.phone_number = fields['phone_number']

            user.updated_at = utc_now()
            self.user_repo.save(user)

        if self.audit_service and fields:
            self.audit_service.log_user_change(actor, 'actualizado', user.id, user.email)
        return user

    def delete_user(self, user_id: int, actor: str = None) -> bool:
        """
        Elimina un usuario junto con sus pedidos y las líneas de éstos.
        No devuelve stock.

        Returns:
            True si existía, False si no
        """
        with transaction(self.user_repo, self.order_repo, self.order_item_repo):
            user = self.user_repo.find_by_id(user_id)
            if user is None:
                return False

            for order in self.order_repo.find_by_user(user.id):
                self.order_item_repo.delete_by_order(order.id)
                self.order_repo.delete_by_id(order.id)
            self.user_repo.delete_by_id(user.id)

        if self.audit_service:
            self.audit_service.log_user_change(actor, 'eliminado', user.id, user.email)
        return True
