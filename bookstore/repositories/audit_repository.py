# ==============================================================================
# REPOSITORIO DE AUDITORÍA
# ==============================================================================
# Encapsula todo el acceso a audit.json
# La auditoría se almacena como lista: [{log1}, {log2}, ...]
# ==============================================================================

import os
from typing import Any, Dict, List

from bookstore import config
from bookstore.models import AuditLog
from bookstore.repositories.base import ListRepository


class AuditRepository(ListRepository):
    """
    Repositorio para gestión del log de auditoría.

    Formato de datos en audit.json:
    [
        {
            "type": "PEDIDO",
            "user": "sistema",
            "message": "Pedido #1 creado para usuario #3 - Total: 39.98 - 2 ítems",
            "timestamp": "2024-01-01 10:00:00",
            "related_id": "1",
            "details": {...}
        }
    ]

    Los registros más recientes van primero.
    """

    def __init__(self, base_path: str, max_logs: int = None):
        """
        Inicializa el repositorio de auditoría.

        Args:
            base_path: Carpeta de datos
            max_logs: Límite de registros (por defecto config.MAX_AUDIT_LOGS)
        """
        file_path = os.path.join(base_path, 'audit.json')
        super().__init__(file_path)
        self.max_logs = max_logs or config.MAX_AUDIT_LOGS

    def load(self) -> List[Dict[str, Any]]:
        """
        Carga todos los logs de auditoría.

        Returns:
            Lista de logs (más recientes primero)
        """
        return self.get_all()

    def save(self, logs: List[Dict[str, Any]]) -> None:
        """
        Guarda todos los logs.
        Aplica límite de registros para evitar archivos muy grandes.
        """
        if len(logs) > self.max_logs:
            logs = logs[:self.max_logs]
        self.save_all(logs)

    def log(
        self,
        log_type: str,
        user: str,
        message: str,
        related_id: str = '',
        details: Dict[str, Any] = None
    ) -> None:
        """
        Registra un nuevo evento de auditoría.

        Args:
            log_type: Tipo de evento (PEDIDO, STOCK, CATALOGO, USUARIO)
            user: Actor que realizó la acción
            message: Mensaje descriptivo humanizado
            related_id: ID relacionado (pedido, libro, etc.)
            details: Detalles adicionales
        """
        entry = AuditLog(
            type=log_type,
            user=user or 'sistema',
            message=message,
            related_id=str(related_id or ''),
            details=details or {}
        )

        with self._file_lock:
            logs = self.get_all()
            logs.insert(0, entry.to_dict())  # Más reciente primero
            self.save(logs)
