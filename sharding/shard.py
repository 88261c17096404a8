"""
Shard: unidad de almacenamiento clave/valor aislada.
"""
import logging
import threading
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Tuple

from sharding.exceptions import ConfigurationError, InvalidValueError, validate_key
from sharding import metrics

logger = logging.getLogger(__name__)


class _NotFoundType:
    """Centinela para claves ausentes. Distinto de cualquier valor almacenado."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self):
        return False

    def __repr__(self):
        return "NOT_FOUND"

    def __reduce__(self):
        return (_NotFoundType, ())


NOT_FOUND = _NotFoundType()


class Shard:
    """
    Partición independiente de clave/valor en memoria.

    Cada shard tiene su propio lock, de modo que operaciones sobre
    shards distintos nunca compiten entre sí.
    """

    def __init__(self, shard_id: str):
        """
        Args:
            shard_id: Identificador del shard (inmutable)
        """
        if not isinstance(shard_id, str) or not shard_id:
            raise ConfigurationError(
                f"shard_id inválido: {shard_id!r}",
                field="shard_id",
                value=shard_id
            )

        self._id = shard_id
        self._entries: Dict[str, Any] = {}
        self._op_count = 0
        self._last_access = 0.0
        self._lock = threading.Lock()

    @property
    def id(self) -> str:
        return self._id

    @property
    def op_count(self) -> int:
        return self._op_count

    @property
    def last_access(self) -> float:
        return self._last_access

    def _touch(self, operation: str):
        # Llamar con self._lock tomado
        self._op_count += 1
        self._last_access = time.time()
        metrics.record_shard_operation(self._id, operation)

    def store(self, key: str, value: Any):
        """
        Guarda un valor, sobrescribiendo el anterior si existía.

        Args:
            key: Clave
            value: Valor opaco
        """
        validate_key(key)
        if value is NOT_FOUND:
            raise InvalidValueError("NOT_FOUND no puede almacenarse como valor")

        with self._lock:
            self._entries[key] = value
            self._touch("store")
            size = len(self._entries)

        metrics.set_shard_entries(self._id, size)

    def retrieve(self, key: str) -> Any:
        """
        Obtiene el valor de una clave.

        Returns:
            Valor almacenado o NOT_FOUND
        """
        validate_key(key)
        with self._lock:
            self._touch("retrieve")
            return self._entries.get(key, NOT_FOUND)

    def get_all(self) -> List[Any]:
        """Snapshot independiente de todos los valores, en orden de inserción."""
        with self._lock:
            self._touch("scan")
            return list(self._entries.values())

    def has(self, key: str) -> bool:
        validate_key(key)
        with self._lock:
            self._touch("has")
            return key in self._entries

    def delete(self, key: str) -> bool:
        """
        Elimina una clave.

        Returns:
            True si la clave existía
        """
        validate_key(key)
        with self._lock:
            self._touch("delete")
            existed = self._entries.pop(key, NOT_FOUND) is not NOT_FOUND
            size = len(self._entries)

        metrics.set_shard_entries(self._id, size)
        return existed

    def clear(self):
        """Elimina todas las entradas. Irreversible."""
        with self._lock:
            removed = len(self._entries)
            self._entries.clear()
            self._touch("clear")

        metrics.set_shard_entries(self._id, 0)
        logger.debug(f"Shard {self._id}: {removed} entradas eliminadas")

    def size(self) -> int:
        with self._lock:
            return len(self._entries)

    def __len__(self) -> int:
        return self.size()

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._entries.keys())

    def items(self) -> List[Tuple[str, Any]]:
        with self._lock:
            return list(self._entries.items())

    def stats(self) -> Dict:
        """Estadísticas del shard."""
        with self._lock:
            last_access = self._last_access
            return {
                "id": self._id,
                "size": len(self._entries),
                "op_count": self._op_count,
                "last_access": last_access,
                "last_access_iso": datetime.fromtimestamp(
                    last_access, tz=timezone.utc
                ).isoformat(),
            }

    def __repr__(self) -> str:
        return f"Shard[{self._id}](size={self.size()}, ops={self._op_count})"
