# ==============================================================================
# REPOSITORIO BASE - Funcionalidad común para acceso a archivos JSON
# ==============================================================================

import json
import os
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Optional, Type


class BaseRepository(ABC):
    """
    Clase base abstracta para todos los repositorios.
    Proporciona funcionalidad común para lectura/escritura de archivos JSON
    con manejo de concurrencia mediante un lock compartido.

    El lock es global a TODOS los repositorios: una transacción que toca
    libros y pedidos a la vez queda serializada frente a cualquier otra
    escritura del proceso.
    """

    # Lock global para evitar escrituras concurrentes a archivos
    _file_lock = threading.RLock()

    def __init__(self, file_path: str):
        """
        Inicializa el repositorio con la ruta al archivo JSON.

        Args:
            file_path: Ruta absoluta al archivo JSON de datos
        """
        self.file_path = file_path
        self._ensure_file_exists()

    def _ensure_file_exists(self) -> None:
        """Crea el archivo (y su carpeta) con datos vacíos si no existe."""
        with self._file_lock:
            folder = os.path.dirname(self.file_path)
            if folder:
                os.makedirs(folder, exist_ok=True)
            if not os.path.exists(self.file_path):
                self._write_raw(self._empty_data())

    @abstractmethod
    def _empty_data(self) -> Any:
        """
        Retorna la estructura de datos vacía para este repositorio.
        Debe ser implementado por cada repositorio concreto.
        """
        pass

    def _read_raw(self) -> Any:
        """
        Lee los datos crudos del archivo JSON.

        Returns:
            Datos parseados del JSON

        Raises:
            json.JSONDecodeError: Si el archivo tiene JSON inválido
        """
        with self._file_lock:
            try:
                with open(self.file_path, 'r', encoding='utf-8') as f:
                    return json.load(f)
            except FileNotFoundError:
                return self._empty_data()

    def _write_raw(self, data: Any) -> None:
        """
        Escribe datos al archivo JSON.

        Args:
            data: Datos a serializar y escribir
        """
        with self._file_lock:
            # Escribir a archivo temporal primero para atomicidad
            temp_path = self.file_path + '.tmp'
            try:
                with open(temp_path, 'w', encoding='utf-8') as f:
                    json.dump(data, f, indent=2, ensure_ascii=False)
                os.replace(temp_path, self.file_path)
            except Exception:
                # Limpiar archivo temporal si algo falla
                if os.path.exists(temp_path):
                    os.remove(temp_path)
                raise

    def snapshot(self) -> Any:
        """Copia del contenido actual (para deshacer una transacción)."""
        return self._read_raw()

    def restore(self, data: Any) -> None:
        """Reemplaza el contenido por una copia tomada con snapshot()."""
        self._write_raw(data)


class DictRepository(BaseRepository):
    """
    Repositorio base para registros con ID numérico.

    Formato del archivo:
    {
        "seq": 3,
        "records": {"1": {...}, "3": {...}}
    }

    "seq" es el último ID asignado: los IDs nunca se reutilizan,
    aunque se borre el registro más reciente.
    """

    def _empty_data(self) -> Dict[str, Any]:
        return {'seq': 0, 'records': {}}

    def _load(self) -> Dict[str, Any]:
        data = self._read_raw()
        data.setdefault('seq', 0)
        data.setdefault('records', {})
        return data

    def get_all(self) -> Dict[str, Dict[str, Any]]:
        """
        Obtiene todos los registros.

        Returns:
            Diccionario {id (str): registro}
        """
        return self._load()['records']

    def get_by_id(self, record_id: Any) -> Optional[Dict[str, Any]]:
        """
        Obtiene un registro por su ID.

        Args:
            record_id: ID del registro (int o str)

        Returns:
            Datos del registro o None si no existe
        """
        return self.get_all().get(str(record_id))

    def insert(self, record: Dict[str, Any]) -> int:
        """
        Inserta un registro nuevo asignándole el siguiente ID.

        Args:
            record: Datos del registro (se modifica: recibe 'id')

        Returns:
            ID asignado
        """
        with self._file_lock:
            data = self._load()
            new_id = int(data['seq']) + 1
            data['seq'] = new_id
            record['id'] = new_id
            data['records'][str(new_id)] = record
            self._write_raw(data)
            return new_id

    def update(self, record_id: Any, record: Dict[str, Any]) -> bool:
        """
        Reemplaza un registro existente.

        Returns:
            True si se actualizó, False si no existía
        """
        with self._file_lock:
            data = self._load()
            key = str(record_id)
            if key not in data['records']:
                return False
            data['records'][key] = record
            self._write_raw(data)
            return True

    def delete(self, record_id: Any) -> Optional[Dict[str, Any]]:
        """
        Elimina un registro.

        Returns:
            Datos del registro eliminado o None si no existía
        """
        with self._file_lock:
            data = self._load()
            removed = data['records'].pop(str(record_id), None)
            if removed is not None:
                self._write_raw(data)
            return removed

    def find_by(self, field: str, value: Any) -> Optional[Dict[str, Any]]:
        """Primer registro cuyo campo coincide con el valor."""
        for record in self.get_all().values():
            if record.get(field) == value:
                return record
        return None

    def find_all_by(self, field: str, value: Any) -> List[Dict[str, Any]]:
        """Todos los registros cuyo campo coincide con el valor."""
        return [r for r in self.get_all().values() if r.get(field) == value]


class ListRepository(BaseRepository):
    """
    Repositorio base para datos almacenados como lista.

    Ejemplo: audit.json -> [{...}, {...}]
    """

    def _empty_data(self) -> List:
        return []

    def get_all(self) -> List[Dict[str, Any]]:
        """Obtiene todos los registros."""
        data = self._read_raw()
        return data if isinstance(data, list) else []

    def save_all(self, data: List[Dict[str, Any]]) -> None:
        """Guarda todos los registros (reemplazo completo)."""
        self._write_raw(data)


class EntityRepository(DictRepository):
    """
    Repositorio que traduce registros JSON a entidades (dataclasses).

    Las subclases definen:
        entity_class: Clase con to_dict()/from_dict()
        file_name: Nombre del archivo dentro de base_path

    Contrato mínimo que usan los servicios:
        find_by_id, find_one_by, find_all, find_all_by, find_all_matching,
        save, delete_by_id, exists_by_id, exists_by
    """

    entity_class: Type = None
    file_name: str = ''

    def __init__(self, base_path: str):
        """
        Args:
            base_path: Carpeta donde viven los archivos JSON
        """
        super().__init__(os.path.join(base_path, self.file_name))

    def _to_entity(self, record: Dict[str, Any]) -> Any:
        return self.entity_class.from_dict(record)

    def _to_record(self, entity: Any) -> Dict[str, Any]:
        return entity.to_dict()

    # =========================================================================
    # LECTURA
    # =========================================================================

    def find_by_id(self, entity_id: Any) -> Optional[Any]:
        record = self.get_by_id(entity_id)
        return self._to_entity(record) if record is not None else None

    def find_all(self) -> List[Any]:
        """Todas las entidades, ordenadas por ID (orden de creación)."""
        records = sorted(self.get_all().values(), key=lambda r: r.get('id', 0))
        return [self._to_entity(r) for r in records]

    def find_one_by(self, field: str, value: Any) -> Optional[Any]:
        record = self.find_by(field, value)
        return self._to_entity(record) if record is not None else None

    def find_all_by(self, field: str, value: Any) -> List[Any]:
        return [e for e in self.find_all() if getattr(e, field, None) == value]

    def find_all_matching(self, predicate: Callable[[Any], bool]) -> List[Any]:
        """Entidades que cumplen el predicado, en orden de creación."""
        return [e for e in self.find_all() if predicate(e)]

    def exists_by_id(self, entity_id: Any) -> bool:
        return self.get_by_id(entity_id) is not None

    def exists_by(self, field: str, value: Any) -> bool:
        return self.find_by(field, value) is not None

    def count(self) -> int:
        return len(self.get_all())

    # =========================================================================
    # ESCRITURA
    # =========================================================================

    def save(self, entity: Any) -> Any:
        """
        Inserta o actualiza una entidad.

        Si entity.id es None se inserta y se le asigna el ID nuevo.

        Returns:
            La misma entidad (con id asignado)
        """
        with self._file_lock:
            record = self._to_record(entity)
            if entity.id is None or not self.exists_by_id(entity.id):
                record.pop('id', None)
                entity.id = self.insert(record)
            else:
                self.update(entity.id, record)
        return entity

    def delete_by_id(self, entity_id: Any) -> bool:
        """Elimina por ID. Retorna True si existía."""
        return self.delete(entity_id) is not None


# ==============================================================================
# TRANSACCIONES
# ==============================================================================

@contextmanager
def transaction(*repositories: BaseRepository) -> Iterator[None]:
    """
    Ejecuta un bloque como unidad todo-o-nada sobre varios repositorios.

    Toma el lock global durante todo el bloque y guarda una copia de
    cada archivo. Si el bloque lanza una excepción, restaura todas las
    copias y re-lanza la excepción.

    Uso:
        with transaction(order_repo, order_item_repo, book_repo):
            ...

    Las transacciones anidadas son válidas (el lock es re-entrante);
    la externa es la que restaura.
    """
    with BaseRepository._file_lock:
        snapshots = [(repo, repo.snapshot()) for repo in repositories]
        try:
            yield
        except Exception:
            for repo, data in snapshots:
                repo.restore(data)
            raise
